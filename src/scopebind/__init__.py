"""Minimal lifecycle-aware dependency injection container.

Providers describe how to build an instance (class, factory or literal value)
and how long it lives; a container resolves tokens to instances, detects
cycles and releases resources on shutdown.

Exports:
- `Container`: registry and resolution engine, sync (`get`) and async (`get_async`).
- `Scope`: child container created by `Container.begin_scope()` for
  per-request lifetimes; `end()` releases its scoped instances.
- `single`, `factory`, `scoped`: provider builders, grouped with `module`/`modules`.
- `start_di`, `inject`, `inject_async`, ...: helpers over a process-wide container.
"""

from ._ambient import (
    begin_scope,
    current_container,
    inject,
    inject_async,
    override,
    reset_di,
    shutdown_di,
    start_di,
)
from ._container import Container, ResolutionContext, Scope
from ._errors import (
    AsyncProviderError,
    CircularDependencyError,
    ContainerError,
    InvalidProviderError,
    MissingProviderError,
    OverrideConflictError,
    ResolutionError,
)
from ._metadata import type_hint_metadata
from ._options import ContainerOptions, OverrideStrategy
from ._providers import (
    Lifetime,
    Module,
    Provider,
    Qualified,
    UseClass,
    UseFactory,
    UseValue,
    factory,
    module,
    modules,
    scoped,
    single,
)


__all__ = [
    "AsyncProviderError",
    "CircularDependencyError",
    "Container",
    "ContainerError",
    "ContainerOptions",
    "InvalidProviderError",
    "Lifetime",
    "MissingProviderError",
    "Module",
    "OverrideConflictError",
    "OverrideStrategy",
    "Provider",
    "Qualified",
    "ResolutionContext",
    "ResolutionError",
    "Scope",
    "UseClass",
    "UseFactory",
    "UseValue",
    "begin_scope",
    "current_container",
    "factory",
    "inject",
    "inject_async",
    "module",
    "modules",
    "override",
    "reset_di",
    "scoped",
    "shutdown_di",
    "single",
    "start_di",
    "type_hint_metadata",
]
