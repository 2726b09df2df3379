"""Constructor dependency discovery from ``__init__`` type hints.

A metadata reader maps a class to the ordered tokens of its constructor's
positional dependencies, or ``None`` when it has nothing to say. The container
only asks for it when a class provider declares no explicit ``deps``.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any, get_type_hints

from ._errors import ResolutionError


if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    MetadataReader = Callable[[type], Sequence[Any] | None]


logger = logging.getLogger(__name__)


def type_hint_metadata(cls: type) -> list[Any] | None:
    """Return the annotated types of the required positional ``__init__`` parameters.

    Parameters with defaults and variadics are left to Python; only the
    leading run of required positional parameters becomes dependencies.
    A required parameter that cannot be described raises ResolutionError.
    """
    if cls.__init__ is object.__init__:
        return None

    try:
        sig = inspect.signature(cls)
    except (TypeError, ValueError):
        return None

    hints = _get_init_type_hints(cls)
    deps: list[Any] = []

    for name, p in sig.parameters.items():
        if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
            continue

        if p.default is not p.empty:
            if p.kind is p.KEYWORD_ONLY:
                continue
            # later positionals can't be passed without passing this one
            break

        if p.kind is p.KEYWORD_ONLY:
            msg = f"Cannot satisfy keyword-only constructor parameter '{name}' for {cls.__name__}."
            raise ResolutionError(msg)

        ann = hints.get(name, inspect.Signature.empty)
        if ann is inspect.Signature.empty:
            msg = (
                f"Cannot satisfy constructor parameter '{name}' for {cls.__name__}. "
                "No annotation found; declare `deps` on the provider instead."
            )
            raise ResolutionError(msg)
        deps.append(ann)

    return deps or None


def _get_init_type_hints(cls: type) -> dict[str, Any]:
    try:
        init = inspect.getattr_static(cls, "__init__")
        hints = get_type_hints(init)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s (%s) type hints", exc.name, cls.__name__, cls.__qualname__)
        hints = {}

    return hints
