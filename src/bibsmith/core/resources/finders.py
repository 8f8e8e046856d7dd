"""Finders: producers of candidate resources for one record."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
import logging
from pathlib import Path
import re
import stat
from threading import Lock
from typing import Protocol, runtime_checkable

from bibsmith.core.bibliography import Record
from bibsmith.core.exceptions import ConfigurationError

from .specs import FileResource, NoteResource, Resource, ResourceType, UrlId
from .urls import UrlRegistry, normalise_doi


logger = logging.getLogger(__name__)


@runtime_checkable
class ResourceFinder(Protocol):
    """Capability interface implemented by every finder.

    ``fields`` lists the record fields the finder reads so the candidate index
    can request them from the record source.
    """

    name: str
    kind: ResourceType
    fields: tuple[str, ...]

    def find(self, key: str, record: Record) -> Sequence[Resource]: ...


@dataclass(frozen=True)
class CallableFinder:
    """Adapter turning a plain function into a finder."""

    name: str
    kind: ResourceType
    function: Callable[[str, Record], Iterable[Resource]]
    fields: tuple[str, ...] = ()

    def find(self, key: str, record: Record) -> Sequence[Resource]:
        return list(self.function(key, record))


def _as_paths(paths: Iterable[Path | str]) -> tuple[Path, ...]:
    return tuple(Path(path).expanduser() for path in paths)


def _normalise_extensions(extensions: Iterable[str] | None) -> frozenset[str] | None:
    if extensions is None:
        return None
    return frozenset(extension.lower().lstrip(".") for extension in extensions)


_UNESCAPED_COLON_RE = re.compile(r"(?<!\\):")


def split_file_field(value: str) -> list[str]:
    """Split a ``file`` field into paths.

    Entries are separated by ``;``. JabRef/Zotero style ``description:path:type``
    triplets are reduced to their path, with ``\\:`` unescaped.
    """
    paths: list[str] = []
    for item in value.split(";"):
        item = item.strip()
        if not item:
            continue
        parts = _UNESCAPED_COLON_RE.split(item)
        if len(parts) >= 3:
            item = ":".join(parts[1:-1])
        item = item.replace("\\:", ":").replace("\\\\", "\\").strip()
        if item:
            paths.append(item)
    return paths


class FileFieldFinder:
    """Files listed in the record's ``file`` field."""

    name = "file-field"
    kind = ResourceType.FILE

    def __init__(
        self,
        library_paths: Iterable[Path | str] = (),
        *,
        field_name: str = "file",
        check_exists: bool = True,
    ) -> None:
        self.library_paths = _as_paths(library_paths)
        self.field_name = field_name.lower()
        self.check_exists = check_exists
        self.fields = (self.field_name,)

    def find(self, key: str, record: Record) -> Sequence[Resource]:
        resources: list[Resource] = []
        for raw in split_file_field(record.get(self.field_name, "")):
            path = self._locate(Path(raw).expanduser())
            if path is None:
                logger.debug("File '%s' listed for '%s' does not exist.", raw, key)
                continue
            resources.append(FileResource.from_path(path))
        return resources

    def _locate(self, path: Path) -> Path | None:
        if path.is_absolute():
            return path if not self.check_exists or path.exists() else None
        for directory in self.library_paths:
            candidate = directory / path
            if candidate.exists():
                return candidate
        if not self.check_exists or path.exists():
            return path
        return None


class LibraryFileFinder:
    """Files in library directories named after the citation key.

    A file matches when its stem equals the key, or starts with the key
    followed by ``separator`` when one is configured.

    Each directory is listed once and indexed by the keys its files can
    match. The index is reused until the directory's modification time
    changes, so a rebuild over many records lists every directory once.
    """

    name = "library-files"
    kind = ResourceType.FILE
    fields: tuple[str, ...] = ()

    def __init__(
        self,
        library_paths: Iterable[Path | str],
        *,
        extensions: Iterable[str] | None = None,
        separator: str | None = None,
    ) -> None:
        self.library_paths = _as_paths(library_paths)
        self.extensions = _normalise_extensions(extensions)
        self.separator = separator
        self._listings: dict[Path, tuple[int, dict[str, tuple[Path, ...]]]] = {}
        self._lock = Lock()

    def find(self, key: str, record: Record) -> Sequence[Resource]:
        resources: list[Resource] = []
        for directory in self.library_paths:
            listing = self._listing(directory)
            resources.extend(FileResource.from_path(path) for path in listing.get(key, ()))
        return resources

    def _listing(self, directory: Path) -> Mapping[str, tuple[Path, ...]]:
        try:
            status = directory.stat()
        except OSError:
            return {}
        if not stat.S_ISDIR(status.st_mode):
            return {}
        with self._lock:
            cached = self._listings.get(directory)
            if cached is not None and cached[0] == status.st_mtime_ns:
                return cached[1]
            logger.debug("Indexing library directory %s.", directory)
            listing = self._index(directory)
            self._listings[directory] = (status.st_mtime_ns, listing)
            return listing

    def _index(self, directory: Path) -> dict[str, tuple[Path, ...]]:
        by_key: dict[str, list[Path]] = {}
        for path in sorted(directory.iterdir()):
            if not path.is_file() or not self._accepts(path):
                continue
            for key in self._keys_for(path.stem):
                by_key.setdefault(key, []).append(path)
        return {key: tuple(paths) for key, paths in by_key.items()}

    def _accepts(self, path: Path) -> bool:
        extension = path.suffix.lower().lstrip(".")
        return self.extensions is None or extension in self.extensions

    def _keys_for(self, stem: str) -> list[str]:
        keys = [stem]
        if self.separator:
            start = stem.find(self.separator)
            while start != -1:
                if start > 0:
                    keys.append(stem[:start])
                start = stem.find(self.separator, start + 1)
        return keys


class NoteFinder:
    """Note files named ``<key>.<extension>`` inside the notes directories."""

    name = "notes"
    kind = ResourceType.NOTE
    fields: tuple[str, ...] = ()

    def __init__(
        self,
        notes_paths: Iterable[Path | str],
        *,
        extensions: Iterable[str] = ("org", "md"),
    ) -> None:
        self.notes_paths = _as_paths(notes_paths)
        self.extensions = tuple(extension.lstrip(".") for extension in extensions)

    def find(self, key: str, record: Record) -> Sequence[Resource]:
        resources: list[Resource] = []
        for directory in self.notes_paths:
            for extension in self.extensions:
                candidate = directory / f"{key}.{extension}"
                if candidate.is_file():
                    resources.append(NoteResource.from_path(candidate))
        return resources


DEFAULT_LINK_FIELDS: Mapping[str, str | None] = {
    "doi": "doi",
    "pmid": "pmid",
    "pmcid": "pmcid",
    "eprint": "arxiv",
    "url": None,
}

_EPRINT_TYPE_FIELDS = ("archiveprefix", "eprinttype")


@dataclass
class LinkFieldFinder:
    """Links built from identifier fields (``doi``, ``pmid``...) and raw ``url``.

    ``link_fields`` maps a record field to an identifier type, or to ``None``
    when the field already holds a URL. An ``eprint`` field is only used when
    the record does not declare a different eprint archive.
    """

    registry: UrlRegistry
    link_fields: Mapping[str, str | None] = field(default_factory=lambda: dict(DEFAULT_LINK_FIELDS))
    name: str = "link-fields"
    kind: ResourceType = ResourceType.URL

    def __post_init__(self) -> None:
        self.link_fields = {name.lower(): tag for name, tag in self.link_fields.items()}
        for field_name, type_tag in self.link_fields.items():
            if type_tag is not None and self.registry.get(type_tag) is None:
                raise ConfigurationError(
                    f"Link field '{field_name}' refers to unknown URL type '{type_tag}'."
                )

    @property
    def fields(self) -> tuple[str, ...]:
        return (*self.link_fields, *_EPRINT_TYPE_FIELDS)

    def find(self, key: str, record: Record) -> Sequence[Resource]:
        resources: list[Resource] = []
        for field_name, type_tag in self.link_fields.items():
            value = record.get(field_name, "").strip()
            if not value:
                continue
            if field_name == "eprint" and not self._eprint_matches(record, type_tag):
                continue
            if type_tag is None:
                resources.append(self.registry.resource(value))
                continue
            if type_tag == "doi":
                value = normalise_doi(value)
                if not value:
                    continue
            resources.append(self.registry.resource(UrlId(type_tag, value)))
        return resources

    def _eprint_matches(self, record: Record, type_tag: str | None) -> bool:
        for name in _EPRINT_TYPE_FIELDS:
            declared = record.get(name, "").strip().lower()
            if declared:
                return declared == (type_tag or "")
        return True


__all__ = [
    "DEFAULT_LINK_FIELDS",
    "CallableFinder",
    "FileFieldFinder",
    "LibraryFileFinder",
    "LinkFieldFinder",
    "NoteFinder",
    "ResourceFinder",
    "split_file_field",
]
