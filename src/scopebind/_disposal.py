from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Sequence

    from ._providers import OnClose


logger = logging.getLogger(__name__)

# Probed in this order when a provider declares no on_close hook.
CLEANUP_METHODS = ("dispose", "close", "aclose", "destroy")


@dataclass
class Disposable:
    key: str
    instance: Any
    close: OnClose | None = None


async def dispose_all(entries: Sequence[Disposable]) -> int:
    """Release entries newest first; returns how many cleanups failed.

    A failing cleanup is logged and skipped so every remaining entry still runs.
    """
    failures = 0
    for entry in reversed(entries):
        try:
            if entry.close is not None:
                await _maybe_await(entry.close(entry.instance))
            else:
                await auto_dispose(entry.instance)
        except Exception:  # noqa: BLE001
            failures += 1
            logger.warning("Cleanup of %s failed", entry.key, exc_info=True)
        else:
            logger.debug("Disposed %s", entry.key)
    return failures


async def auto_dispose(instance: Any) -> None:
    for name in CLEANUP_METHODS:
        method = getattr(instance, name, None)
        if callable(method):
            await _maybe_await(method())
            return


async def _maybe_await(result: Any) -> None:
    if inspect.isawaitable(result):
        await result
