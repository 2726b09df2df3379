from __future__ import annotations


class ContainerError(Exception):
    """Base class for every error raised by scopebind."""

    def __init__(self, msg: str, key: str | None = None) -> None:
        super().__init__(msg)
        self.key = key

    def __str__(self) -> str:
        # KeyError subclasses would otherwise render the message with quotes
        return str(self.args[0]) if self.args else ""


class ResolutionError(ContainerError, RuntimeError):
    pass


class MissingProviderError(ResolutionError, KeyError):
    def __init__(self, key: str) -> None:
        super().__init__(f"No provider for: {key}", key)


class CircularDependencyError(ResolutionError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Circular dependency detected at {key}", key)


class AsyncProviderError(ResolutionError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Tried to resolve async provider with sync get(): {key}. Use get_async().", key)


class OverrideConflictError(ContainerError, KeyError):
    def __init__(self, key: str) -> None:
        super().__init__(
            f"Provider override detected for {key}. "
            "Pass allow_override=True with the 'last_wins' strategy to replace it.",
            key,
        )


class InvalidProviderError(ContainerError, ValueError):
    pass
