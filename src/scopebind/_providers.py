from __future__ import annotations

import inspect
import typing
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, NamedTuple, get_type_hints

from ._errors import InvalidProviderError


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Hashable, Iterable

    Token = type | str | Hashable
    Qualifier = Hashable
    OnClose = Callable[[Any], Awaitable[None] | None]


class Lifetime(Enum):
    SINGLE = "single"
    FACTORY = "factory"
    SCOPED = "scoped"


class Qualified(NamedTuple):
    """A dependency reference carrying a qualifier, usable inside ``deps``."""

    token: Token
    qualifier: Qualifier


@dataclass(frozen=True)
class UseValue:
    value: Any


@dataclass(frozen=True)
class UseFactory:
    factory: Callable[..., Any]
    takes_context: bool = True


@dataclass(frozen=True)
class UseClass:
    cls: type
    deps: tuple[Token | Qualified, ...] | None = None


Recipe = UseValue | UseFactory | UseClass


@dataclass(frozen=True)
class Provider:
    """How to build the instance registered under ``(token, qualifier)``."""

    token: Token
    lifetime: Lifetime
    recipe: Recipe
    qualifier: Qualifier | None = None
    on_close: OnClose | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.recipe, (UseValue, UseFactory, UseClass)):
            msg = f"Provider for {describe_key(self.token, self.qualifier)} has an invalid recipe: {self.recipe!r}"
            raise InvalidProviderError(msg, describe_key(self.token, self.qualifier))
        if not isinstance(self.lifetime, Lifetime):
            msg = f"Unknown lifetime {self.lifetime!r}"
            raise InvalidProviderError(msg, describe_key(self.token, self.qualifier))


@dataclass(frozen=True)
class Module:
    providers: tuple[Provider, ...] = field(default_factory=tuple)


def module(*providers: Provider) -> Module:
    return Module(tuple(providers))


def modules(*mods: Module) -> Module:
    """Merge modules, keeping provider registration order."""
    return Module(tuple(p for m in mods for p in m.providers))


_MISSING: Any = object()


def make_provider(
    token: Token,
    lifetime: Lifetime,
    using: type | Callable[..., Any] | None = None,
    *,
    value: Any = _MISSING,
    deps: Iterable[Token | Qualified] | None = None,
    qualifier: Qualifier | None = None,
    on_close: OnClose | None = None,
) -> Provider:
    """Build a provider, picking exactly one construction mode.

    Example:
      make_provider(Repo, Lifetime.SINGLE)                       # Repo()
      make_provider(IRepo, Lifetime.SINGLE, SqlRepo, deps=[Db])  # SqlRepo(get(Db))
      make_provider(Conn, Lifetime.SINGLE, open_conn)            # open_conn(ctx)
      make_provider("port", Lifetime.SINGLE, value=8080)

    """
    key = describe_key(token, qualifier)
    deps = tuple(deps) if deps is not None else None

    if using is not None and value is not _MISSING:
        msg = f"Provider for {key}: provide either `using` or `value`, not both."
        raise InvalidProviderError(msg, key)

    if value is not _MISSING:
        recipe: Recipe = UseValue(value)
    elif using is None:
        if not inspect.isclass(token):
            msg = f"Provider for {key} declares no construction mode; pass `using` or `value`."
            raise InvalidProviderError(msg, key)
        recipe = UseClass(token, deps)
    elif inspect.isclass(using):
        if inspect.isclass(token):
            validate_impl(token, using)
        recipe = UseClass(using, deps)
    elif callable(using):
        recipe = UseFactory(using, takes_context=_accepts_positional(using))
    else:
        msg = f"Provider for {key}: `using` must be a class or a callable, got {using!r}"
        raise InvalidProviderError(msg, key)

    if deps is not None and not isinstance(recipe, UseClass):
        msg = f"Provider for {key}: `deps` only apply to class providers."
        raise InvalidProviderError(msg, key)

    return Provider(token=token, lifetime=lifetime, recipe=recipe, qualifier=qualifier, on_close=on_close)


def single(token: Token, using: type | Callable[..., Any] | None = None, **kwargs: Any) -> Provider:
    """One instance for the whole container tree."""
    return make_provider(token, Lifetime.SINGLE, using, **kwargs)


def factory(token: Token, using: type | Callable[..., Any] | None = None, **kwargs: Any) -> Provider:
    """A new instance on every resolution."""
    return make_provider(token, Lifetime.FACTORY, using, **kwargs)


def scoped(token: Token, using: type | Callable[..., Any] | None = None, **kwargs: Any) -> Provider:
    """One instance per scope."""
    return make_provider(token, Lifetime.SCOPED, using, **kwargs)


def _accepts_positional(fn: Callable[..., Any]) -> bool:
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return True
    return any(
        p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD, p.VAR_POSITIONAL) for p in sig.parameters.values()
    )


def describe_key(token: Token, qualifier: Qualifier | None = None) -> str:
    """Render a key for error messages and logs. Never used as an index."""
    name = getattr(token, "__name__", None) or (token if isinstance(token, str) else repr(token))
    return name if qualifier is None else f"{name}::{qualifier}"


def is_protocol(tp: Any) -> bool:
    if hasattr(typing, "is_protocol"):
        # https://docs.python.org/3/library/typing.html#typing.is_protocol
        return inspect.isclass(tp) and typing.is_protocol(tp)
    return inspect.isclass(tp) and bool(getattr(tp, "_is_protocol", False)) and tp is not typing.Protocol


def validate_impl(cls: type, impl: type) -> None:
    """Validate that ``impl`` can stand in for ``cls``.

    - Normal classes/ABCs: require issubclass(impl, cls).
    - Protocols: nominal via MRO, otherwise every public member of the
      protocol must exist on impl (callable where the protocol declares a method).
    """
    if not is_protocol(cls):
        if not issubclass(impl, cls):
            msg = f"Implementation {impl.__name__} must be a subclass of {cls.__name__}"
            raise TypeError(msg)
        return

    if cls in getattr(impl, "__mro__", ()):
        return

    try:
        annotated = [name for name in get_type_hints(cls) if not name.startswith("_")]
    except (TypeError, NameError):
        annotated = []

    missing = [name for name in annotated if not hasattr(impl, name)]
    not_callable = []
    for name, member in cls.__dict__.items():
        if name.startswith("_") or not inspect.isfunction(member):
            continue
        if not hasattr(impl, name):
            missing.append(name)
        elif not callable(getattr(impl, name)):
            not_callable.append(name)

    if missing or not_callable:
        problems = []
        if missing:
            problems.append(f"missing members: {', '.join(missing)}")
        if not_callable:
            problems.append(f"not callable: {', '.join(not_callable)}")
        msg = f"Implementation {impl.__name__} does not conform to protocol {cls.__name__}: {'; '.join(problems)}"
        raise TypeError(msg)
