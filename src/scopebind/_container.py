from __future__ import annotations

import inspect
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar, overload

from ._disposal import Disposable, dispose_all
from ._errors import (
    AsyncProviderError,
    CircularDependencyError,
    InvalidProviderError,
    MissingProviderError,
    OverrideConflictError,
)
from ._options import ContainerOptions
from ._providers import (
    Lifetime,
    Qualified,
    UseClass,
    UseFactory,
    UseValue,
    describe_key,
    make_provider,
    single,
)


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterator, Sequence

    from ._providers import Module, Provider, Qualifier, Token

    T = TypeVar("T")
    Key = tuple[Token, Qualifier | None]

_MISSING: Any = object()


@dataclass(frozen=True)
class ResolutionContext:
    """Handed to factories; resolves against the container running the factory."""

    get: Callable[..., Any]
    get_async: Callable[..., Awaitable[Any]]


class Container:
    """Lifecycle-aware DI container.

    - register providers (class, factory or value) per (token, qualifier)
    - resolve synchronously or asynchronously, with cycle detection
    - lifetimes: single / factory / scoped
    - child scopes and ordered disposal on shutdown.
    """

    def __init__(self, options: ContainerOptions | None = None) -> None:
        self._options = options or ContainerOptions()
        self._parent: Container | None = None
        self._providers: dict[Key, Provider] = {}
        self._singles: dict[Key, Any] = {}  # only ever read on the root
        self._scoped: dict[Key, Any] = {}
        self._resolving: set[Key] = set()
        self._disposables: list[Disposable] = []
        self._lock = threading.RLock()
        self._context = ResolutionContext(get=self.get, get_async=self.get_async)

    @property
    def options(self) -> ContainerOptions:
        return self._options

    def configure(self, options: ContainerOptions) -> None:
        self._options = options

    # ---------- registry ----------

    def load(self, mod: Module) -> None:
        for provider in mod.providers:
            self.set_provider(provider)
        logger.debug("Loaded module with %d provider(s)", len(mod.providers))

    def register(
        self,
        token: Token,
        using: type | Callable[..., Any] | None = None,
        *,
        lifetime: Lifetime = Lifetime.SINGLE,
        **kwargs: Any,
    ) -> None:
        """Register a provider for a token.

        Example:
          container.register(IFoo, FooImpl)
          container.register("db", create_db, lifetime=Lifetime.SCOPED, on_close=close_db)

        """
        self.set_provider(make_provider(token, lifetime, using, **kwargs))

    def set_provider(self, provider: Provider) -> None:
        key = (provider.token, provider.qualifier)
        with self._lock:
            if key in self._providers:
                if not self._options.replaces_duplicates:
                    raise OverrideConflictError(describe_key(*key))
                logger.debug("Replacing provider for %s", describe_key(*key))
                # the old provider's instance must not outlive its registration
                self._root()._singles.pop(key, None)
                self._scoped.pop(key, None)
            self._providers[key] = provider

    def get_provider(self, token: Token, qualifier: Qualifier | None = None) -> Provider | None:
        """Local registration first, then the parent chain."""
        provider = self._providers.get((token, qualifier))
        if provider is None and self._parent is not None:
            return self._parent.get_provider(token, qualifier)
        return provider

    def override(self, token: Token, value: Any, qualifier: Qualifier | None = None) -> None:
        """Bind ``value`` as a single and make it the cached instance right away."""
        with self._lock:
            self.set_provider(single(token, value=value, qualifier=qualifier))
            self._root()._singles[(token, qualifier)] = value
        logger.debug("Overrode %s", describe_key(token, qualifier))

    # ---------- resolution ----------

    @overload
    def get(self, token: type[T], qualifier: Qualifier | None = None) -> T: ...

    @overload
    def get(self, token: Token, qualifier: Qualifier | None = None) -> Any: ...

    def get(self, token: Token, qualifier: Qualifier | None = None) -> Any:
        """Resolve the token to an instance.

        - Cached single/scoped instances are returned as is.
        - Otherwise the provider found in this container or its parents builds it.
        - An unregistered class is constructed directly (dependencies from metadata).
        Raises AsyncProviderError if building needs to await; use `get_async`.
        """
        key = (token, qualifier)
        with self._lock:
            cached = self._lookup_cached(key)
            if cached is not _MISSING:
                return cached

            provider = self.get_provider(token, qualifier)
            if provider is None:
                cls = self._fallback_class(token, qualifier)
                with self._in_flight(key):
                    return self._construct(cls, None)

            with self._in_flight(key):
                instance = self._instantiate(provider)
                # a literal value is returned as is, even when it is awaitable
                if not isinstance(provider.recipe, UseValue) and inspect.isawaitable(instance):
                    _discard(instance)
                    raise AsyncProviderError(describe_key(*key))

            self._cache_and_track(provider, key, instance)
            return instance

    @overload
    async def get_async(self, token: type[T], qualifier: Qualifier | None = None) -> T: ...

    @overload
    async def get_async(self, token: Token, qualifier: Qualifier | None = None) -> Any: ...

    async def get_async(self, token: Token, qualifier: Qualifier | None = None) -> Any:
        """Resolve the token, awaiting asynchronous factories along the way."""
        key = (token, qualifier)
        with self._lock:
            cached = self._lookup_cached(key)
            if cached is not _MISSING:
                return cached
            provider = self.get_provider(token, qualifier)
            cls = self._fallback_class(token, qualifier) if provider is None else None

        if provider is None:
            with self._in_flight(key):
                return await self._aconstruct(cls, None)

        with self._in_flight(key):
            instance = await self._ainstantiate(provider)

        with self._lock:
            self._cache_and_track(provider, key, instance)
        return instance

    def _lookup_cached(self, key: Key) -> Any:
        root = self._root()
        if key in root._singles:
            return root._singles[key]
        return self._scoped.get(key, _MISSING)

    def _fallback_class(self, token: Token, qualifier: Qualifier | None) -> type:
        # builtins like int/str are never dependencies by themselves
        if inspect.isclass(token) and getattr(token, "__module__", "") != "builtins":
            return token
        raise MissingProviderError(describe_key(token, qualifier))

    @contextmanager
    def _in_flight(self, key: Key) -> Iterator[None]:
        with self._lock:
            if key in self._resolving:
                raise CircularDependencyError(describe_key(*key))
            self._resolving.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._resolving.discard(key)

    def _instantiate(self, provider: Provider) -> Any:
        recipe = provider.recipe
        if isinstance(recipe, UseValue):
            return recipe.value
        if isinstance(recipe, UseFactory):
            return recipe.factory(self._context) if recipe.takes_context else recipe.factory()
        if isinstance(recipe, UseClass):
            return self._construct(recipe.cls, recipe.deps)
        raise _invalid(provider)

    async def _ainstantiate(self, provider: Provider) -> Any:
        recipe = provider.recipe
        if isinstance(recipe, UseValue):
            return recipe.value
        if isinstance(recipe, UseFactory):
            result = recipe.factory(self._context) if recipe.takes_context else recipe.factory()
            if inspect.isawaitable(result):
                result = await result
            return result
        if isinstance(recipe, UseClass):
            return await self._aconstruct(recipe.cls, recipe.deps)
        raise _invalid(provider)

    def _construct(self, cls: type[T], deps: Sequence[Any] | None) -> T:
        args = [self.get(token, qualifier) for token, qualifier in self._dependencies(cls, deps)]
        return cls(*args)

    async def _aconstruct(self, cls: type[T], deps: Sequence[Any] | None) -> T:
        # Sequential on purpose: sibling dependencies sharing a key would look circular if gathered.
        args = [await self.get_async(token, qualifier) for token, qualifier in self._dependencies(cls, deps)]
        return cls(*args)

    def _dependencies(self, cls: type, deps: Sequence[Any] | None) -> list[Key]:
        if deps is None:
            reader = self._options.metadata
            deps = (reader(cls) or ()) if reader is not None else ()
        return [(d.token, d.qualifier) if isinstance(d, Qualified) else (d, None) for d in deps]

    def _cache_and_track(self, provider: Provider, key: Key, instance: Any) -> None:
        if provider.lifetime is Lifetime.FACTORY:
            return

        # singles belong to the root: its cache, its teardown
        owner = self._root() if provider.lifetime is Lifetime.SINGLE else self
        if provider.lifetime is Lifetime.SINGLE:
            owner._singles[key] = instance
        else:
            owner._scoped[key] = instance
        owner._disposables.append(Disposable(describe_key(*key), instance, provider.on_close))

    def _root(self) -> Container:
        return self._parent._root() if self._parent is not None else self

    # ---------- scopes & lifecycle ----------

    def begin_scope(self) -> Scope:
        """Create a scope that caches its own scoped instances and falls back to this container."""
        scope = Scope(self, _from_parent=True)
        logger.debug("Began scope %#x", id(scope))
        return scope

    async def shutdown(self) -> None:
        """Run cleanups newest first, then drop this container's caches.

        Never raises because of a cleanup; failures are logged.
        """
        with self._lock:
            entries, self._disposables = self._disposables, []

        failures = await dispose_all(entries)
        if failures:
            logger.warning("%d of %d cleanup(s) failed during shutdown", failures, len(entries))

        with self._lock:
            self._singles.clear()
            self._scoped.clear()

    def reset(self) -> None:
        """Forget everything without running any cleanup."""
        with self._lock:
            self._providers.clear()
            self._singles.clear()
            self._scoped.clear()
            self._resolving.clear()
            self._disposables = []


class Scope(Container):
    """A child container for per-request/per-operation lifetimes.

    Providers are looked up in the scope first, then in the parent. Scoped
    instances live in the scope and are released by `end()`; singles always
    live in the root container.
    """

    def __init__(self, parent: Container, *, _from_parent: bool = False) -> None:
        if not _from_parent:
            msg = "Scope instances must be created via Container.begin_scope()"
            raise RuntimeError(msg)
        super().__init__(parent.options)
        self._parent = parent
        self._lock = parent._lock  # noqa: SLF001

    @property
    def parent(self) -> Container:
        assert self._parent is not None
        return self._parent

    async def end(self) -> None:
        await self.shutdown()

    async def __aenter__(self) -> Scope:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.end()


def _invalid(provider: Provider) -> InvalidProviderError:
    key = describe_key(provider.token, provider.qualifier)
    return InvalidProviderError(f"Invalid provider for {key}", key)


def _discard(awaitable: Any) -> None:
    close = getattr(awaitable, "close", None)
    if callable(close):
        close()
