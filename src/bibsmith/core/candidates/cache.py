"""Cache slot states for the candidate index.

A slot is either :data:`NOT_LOADED` or a :class:`Loaded` value holding an
immutable tuple of candidates. Rebuilding binds a brand new ``Loaded`` to the
slot; nothing ever mutates a ``Loaded`` in place, so a reader holding the old
value keeps a complete, consistent sequence.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Final, Union


if TYPE_CHECKING:  # pragma: no cover - typing only
    from bibsmith.core.bibliography import BibliographyIssue

    from .index import Candidate


class CacheSlot(str, Enum):
    """Named cache slots."""

    GLOBAL = "global"
    LOCAL = "local"


class RefreshScope(str, Enum):
    """Slots touched by a refresh."""

    GLOBAL = "global"
    LOCAL = "local"
    BOTH = "both"

    @property
    def slots(self) -> tuple[CacheSlot, ...]:
        if self is RefreshScope.GLOBAL:
            return (CacheSlot.GLOBAL,)
        if self is RefreshScope.LOCAL:
            return (CacheSlot.LOCAL,)
        return (CacheSlot.GLOBAL, CacheSlot.LOCAL)


class NotLoaded:
    """Marker state of a slot that has never been populated."""

    _instance: NotLoaded | None = None

    def __new__(cls) -> NotLoaded:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_LOADED"

    def __bool__(self) -> bool:
        return False


NOT_LOADED: Final = NotLoaded()


@dataclass(frozen=True, slots=True)
class Loaded:
    """Populated slot: the candidates and the files they were built from.

    ``issues`` holds what the record source reported while loading them.
    """

    candidates: tuple[Candidate, ...]
    sources: tuple[Path, ...] = ()
    issues: tuple[BibliographyIssue, ...] = ()
    loaded_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc), compare=False
    )

    def __len__(self) -> int:
        return len(self.candidates)


CacheState = Union[NotLoaded, Loaded]


__all__ = [
    "NOT_LOADED",
    "CacheSlot",
    "CacheState",
    "Loaded",
    "NotLoaded",
    "RefreshScope",
]
