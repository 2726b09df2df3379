"""Process-wide container for application entry points.

Thin wrappers over one module-level `Container`. Libraries should accept a
`Container` explicitly instead; these helpers exist for the application boundary.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar, overload

from ._container import Container, Scope
from ._metadata import type_hint_metadata
from ._options import ContainerOptions
from ._providers import modules


if TYPE_CHECKING:
    from ._metadata import MetadataReader
    from ._options import OverrideStrategy
    from ._providers import Module, Qualifier, Token

    T = TypeVar("T")


logger = logging.getLogger(__name__)

_container = Container()


def current_container() -> Container:
    return _container


def start_di(
    *mods: Module,
    allow_override: bool = False,
    override_strategy: OverrideStrategy | str | None = None,
    metadata: MetadataReader | None = type_hint_metadata,
) -> Container:
    """(Re)initialize the process-wide container from the merged modules.

    The previous container is replaced without cleanup; call `shutdown_di()` first
    if it holds resources.
    """
    global _container  # noqa: PLW0603
    options = ContainerOptions(allow_override=allow_override, override_strategy=override_strategy, metadata=metadata)
    container = Container(options)
    container.load(modules(*mods))
    _container = container
    logger.debug("Started container with %d module(s)", len(mods))
    return container


@overload
def inject(token: type[T], qualifier: Qualifier | None = None) -> T: ...


@overload
def inject(token: Token, qualifier: Qualifier | None = None) -> Any: ...


def inject(token: Token, qualifier: Qualifier | None = None) -> Any:
    return _container.get(token, qualifier)


@overload
async def inject_async(token: type[T], qualifier: Qualifier | None = None) -> T: ...


@overload
async def inject_async(token: Token, qualifier: Qualifier | None = None) -> Any: ...


async def inject_async(token: Token, qualifier: Qualifier | None = None) -> Any:
    return await _container.get_async(token, qualifier)


def begin_scope() -> Scope:
    return _container.begin_scope()


def override(token: Token, value: Any, qualifier: Qualifier | None = None) -> None:
    _container.override(token, value, qualifier)


async def shutdown_di() -> None:
    await _container.shutdown()


def reset_di() -> None:
    _container.reset()
