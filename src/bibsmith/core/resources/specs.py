"""Resource specifications: the files, notes and links attached to a record."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import ClassVar, NamedTuple, Union


class ResourceType(str, Enum):
    """Kinds of resources, in default display order."""

    FILE = "file"
    NOTE = "note"
    URL = "url"


class UrlId(NamedTuple):
    """Canonical form of a recognised URL: identifier type and identifier."""

    type: str
    id: str


UrlSpec = Union[str, UrlId]


@dataclass(frozen=True, slots=True)
class Resource:
    """Base class of the resource variants.

    ``display`` is the string shown to users; ``value`` is what equivalence
    predicates compare.
    """

    type: ClassVar[ResourceType]
    display: str

    @property
    def value(self) -> object:  # pragma: no cover - overridden
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class FileResource(Resource):
    """A document file attached to a record."""

    type: ClassVar[ResourceType] = ResourceType.FILE
    path: Path

    @classmethod
    def from_path(cls, path: Path | str) -> FileResource:
        return cls(display=str(path), path=Path(path))

    @property
    def value(self) -> Path:
        return self.path


@dataclass(frozen=True, slots=True)
class NoteResource(Resource):
    """A note file about a record."""

    type: ClassVar[ResourceType] = ResourceType.NOTE
    path: Path

    @classmethod
    def from_path(cls, path: Path | str) -> NoteResource:
        return cls(display=str(path), path=Path(path))

    @property
    def value(self) -> Path:
        return self.path


@dataclass(frozen=True, slots=True)
class UrlResource(Resource):
    """A link, held either as a raw URL or as a canonical ``UrlId``."""

    type: ClassVar[ResourceType] = ResourceType.URL
    spec: UrlSpec

    @property
    def value(self) -> UrlSpec:
        return self.spec


__all__ = [
    "FileResource",
    "NoteResource",
    "Resource",
    "ResourceType",
    "UrlId",
    "UrlResource",
    "UrlSpec",
]
