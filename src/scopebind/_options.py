from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ._metadata import type_hint_metadata


if TYPE_CHECKING:
    from ._metadata import MetadataReader


class OverrideStrategy(Enum):
    ERROR = "error"
    LAST_WINS = "last_wins"

    @classmethod
    def _missing_(cls, value: object) -> OverrideStrategy | None:
        # camelCase spelling, e.g. "lastWins"
        if isinstance(value, str):
            normalized = "".join(f"_{ch.lower()}" if ch.isupper() else ch for ch in value)
            for member in cls:
                if member.value == normalized:
                    return member
        return None


@dataclass(frozen=True)
class ContainerOptions:
    """Container configuration.

    - allow_override: permit registering a key twice.
    - override_strategy: what a duplicate registration does. Defaults to
      LAST_WINS when overriding is allowed, ERROR otherwise.
    - metadata: reader used to discover constructor dependencies when a class
      provider declares no `deps`. None disables discovery.
    """

    allow_override: bool = False
    override_strategy: OverrideStrategy | str | None = None
    metadata: MetadataReader | None = type_hint_metadata

    def __post_init__(self) -> None:
        strategy = self.override_strategy
        if strategy is None:
            strategy = OverrideStrategy.LAST_WINS if self.allow_override else OverrideStrategy.ERROR
        object.__setattr__(self, "allow_override", bool(self.allow_override))
        object.__setattr__(self, "override_strategy", OverrideStrategy(strategy))

    @property
    def replaces_duplicates(self) -> bool:
        return self.allow_override and self.override_strategy is OverrideStrategy.LAST_WINS
