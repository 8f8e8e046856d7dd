"""Candidate index: cached, rendered, searchable bibliography candidates.

Two cache slots are kept. The *global* slot is built from the configured
bibliography files and lives as long as the index. The *local* slot is built
from the files a :class:`SourceContext` (typically one open document)
discovers, minus the global ones, and is dropped whenever the context changes.

Each refresh builds a complete tuple of candidates before binding it to its
slot, so a reader holding a previous value never sees a half-built cache.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
import logging
from pathlib import Path
import shutil
from threading import Lock
from typing import Protocol

from rich.cells import cell_len
from rich.text import Text

from bibsmith.core.bibliography import BibliographyIssue, Record, RecordSource
from bibsmith.core.diagnostics import DiagnosticEmitter, LoggingEmitter
from bibsmith.core.exceptions import ConfigurationError
from bibsmith.core.resources import ResourceResolver, ResourceType

from .cache import NOT_LOADED, CacheSlot, CacheState, Loaded, NotLoaded, RefreshScope
from .templates import (
    HIDDEN_STYLE,
    Template,
    TemplateEngine,
    compute_width,
    parse_template,
    visible_text,
)


logger = logging.getLogger(__name__)

DEFAULT_MAIN_TEMPLATE = "${date year issued:4}     ${title:48}"
DEFAULT_SUFFIX_TEMPLATE = "          ${=key= id:15}    ${=type=:12}    ${tags keywords:*}"
DEFAULT_PREVIEW_TEMPLATE = (
    "${author editor} (${year issued date}) ${title}, "
    "${journal journaltitle publisher container-title collection-title}."
)
DEFAULT_NOTE_TEMPLATE = "Notes on ${author editor}, ${title}"

AVAILABILITY_MARKERS: Mapping[ResourceType, str] = {
    ResourceType.FILE: "has:files",
    ResourceType.NOTE: "has:notes",
    ResourceType.URL: "has:links",
}
CITED_TAG = "is:cited"

HeavyRebuildHook = Callable[[], None]


@dataclass(frozen=True)
class CandidateTemplates:
    """The four templates used by the index, parsed once at construction."""

    main: Template
    suffix: Template
    preview: Template
    note: Template

    @classmethod
    def from_strings(
        cls,
        main: str = DEFAULT_MAIN_TEMPLATE,
        suffix: str = DEFAULT_SUFFIX_TEMPLATE,
        preview: str = DEFAULT_PREVIEW_TEMPLATE,
        note: str = DEFAULT_NOTE_TEMPLATE,
    ) -> CandidateTemplates:
        return cls(
            main=parse_template(main),
            suffix=parse_template(suffix),
            preview=parse_template(preview),
            note=parse_template(note),
        )

    @property
    def field_names(self) -> tuple[str, ...]:
        names: dict[str, None] = {}
        for template in (self.main, self.suffix, self.preview, self.note):
            for name in template.field_names:
                names.setdefault(name, None)
        return tuple(names)


@dataclass(frozen=True)
class SymbolSet:
    """Present/absent symbols per resource type, joined into a prefix column."""

    symbols: Mapping[ResourceType, tuple[str, str]] = field(
        default_factory=lambda: {
            ResourceType.FILE: ("F", " "),
            ResourceType.NOTE: ("N", " "),
            ResourceType.URL: ("L", " "),
        }
    )
    separator: str = " "

    def __post_init__(self) -> None:
        for kind, (present, absent) in self.symbols.items():
            if cell_len(present) != cell_len(absent):
                raise ConfigurationError(
                    f"Symbols for '{kind.value}' must have the same display width: "
                    f"{present!r} vs {absent!r}."
                )

    def prefix(self, availability: Collection[ResourceType]) -> str:
        return self.separator.join(
            present if kind in availability else absent
            for kind, (present, absent) in self.symbols.items()
        )

    @property
    def width(self) -> int:
        return cell_len(self.prefix(()))


class SourceContext(Protocol):
    """Where local bibliography files and cited keys come from."""

    def local_sources(self) -> Sequence[Path]: ...

    def cited_keys(self) -> Collection[str]: ...


@dataclass(frozen=True)
class StaticContext:
    """Context with a fixed list of local files and cited keys."""

    sources: tuple[Path, ...] = ()
    cited: frozenset[str] = frozenset()

    @classmethod
    def of(cls, sources: Iterable[Path | str] = (), cited: Iterable[str] = ()) -> StaticContext:
        return cls(tuple(Path(source) for source in sources), frozenset(cited))

    def local_sources(self) -> Sequence[Path]:
        return self.sources

    def cited_keys(self) -> Collection[str]:
        return self.cited


@dataclass(frozen=True)
class Candidate:
    """One rendered bibliography entry.

    ``display`` holds the visible main and suffix segments followed by a
    concealed search segment (availability markers, context tag and key).
    It is shared with the cached slot: call ``display.copy()`` before
    changing it.
    """

    display: Text = field(hash=False)
    key: str
    record: Record
    scope: CacheSlot = CacheSlot.GLOBAL
    availability: frozenset[ResourceType] = frozenset()

    @property
    def search_text(self) -> str:
        """Return everything a substring search should match, hidden parts included."""
        return self.display.plain

    @property
    def visible(self) -> str:
        return visible_text(self.display)

    def as_triple(self) -> tuple[str, str, Record]:
        return (self.search_text, self.key, self.record)


def _normalise_path(path: Path | str) -> Path:
    return Path(path).expanduser().resolve()


def _terminal_width() -> int:
    return shutil.get_terminal_size().columns


class CandidateIndex:
    """Maintain the global and local candidate caches for a bibliography."""

    def __init__(
        self,
        source: RecordSource,
        global_sources: Iterable[Path | str] = (),
        *,
        engine: TemplateEngine | None = None,
        templates: CandidateTemplates | None = None,
        symbols: SymbolSet | None = None,
        resolver: ResourceResolver | None = None,
        context: SourceContext | None = None,
        heavy_rebuild_hook: HeavyRebuildHook | None = None,
        width: int | Callable[[], int] = _terminal_width,
        margin: int = 2,
        cited_tag: str = CITED_TAG,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self._source = source
        self._global_sources = tuple(Path(path) for path in global_sources)
        self.engine = engine or TemplateEngine()
        self.templates = templates or CandidateTemplates.from_strings()
        self.symbols = symbols or SymbolSet()
        self.resolver = resolver
        self._context = context
        self._heavy_rebuild_hook = heavy_rebuild_hook
        self._width = width
        self.margin = margin
        self.cited_tag = cited_tag
        self._emitter = emitter or LoggingEmitter(logger_obj=logger)
        self._slots: dict[CacheSlot, CacheState] = {
            CacheSlot.GLOBAL: NOT_LOADED,
            CacheSlot.LOCAL: NOT_LOADED,
        }
        self._rebuild_lock = Lock()

    # ------------------------------------------------------------------ state

    @property
    def global_sources(self) -> tuple[Path, ...]:
        return self._global_sources

    @property
    def context(self) -> SourceContext | None:
        return self._context

    def set_context(self, context: SourceContext | None) -> None:
        """Switch to another context, discarding the local cache."""
        self._context = context
        self._slots[CacheSlot.LOCAL] = NOT_LOADED

    def state(self, slot: CacheSlot) -> CacheState:
        return self._slots[slot]

    def local_sources(self) -> tuple[Path, ...]:
        """Return the context's files that are not already global sources."""
        if self._context is None:
            return ()
        global_paths = {_normalise_path(path) for path in self._global_sources}
        local: list[Path] = []
        seen: set[Path] = set()
        for path in self._context.local_sources():
            normalised = _normalise_path(path)
            if normalised in global_paths or normalised in seen:
                continue
            seen.add(normalised)
            local.append(Path(path))
        return tuple(local)

    @property
    def requested_fields(self) -> tuple[str, ...]:
        names = dict.fromkeys(self.templates.field_names)
        if self.resolver is not None:
            names.update(dict.fromkeys(self.resolver.required_fields))
        return tuple(names)

    # ------------------------------------------------------------------ widths

    def terminal_width(self) -> int:
        return self._width() if callable(self._width) else self._width

    def star_width(self) -> int:
        """Return the columns left for ``*`` placeholders on one line."""
        fixed = (
            self.symbols.width
            + compute_width(self.templates.main)
            + compute_width(self.templates.suffix)
            + self.margin
        )
        return max(0, self.terminal_width() - fixed)

    # ------------------------------------------------------------------ refresh

    def refresh(
        self,
        scope: RefreshScope = RefreshScope.BOTH,
        force_heavy_rebuild: bool = False,
    ) -> None:
        """Rebuild the requested cache slots from their source files.

        With ``force_heavy_rebuild`` the configured hook runs to completion
        first; any exception it raises propagates unchanged.
        """
        scope = RefreshScope(scope)
        if force_heavy_rebuild and self._heavy_rebuild_hook is not None:
            logger.debug("Running heavy rebuild hook before refreshing %s.", scope.value)
            self._heavy_rebuild_hook()
        with self._rebuild_lock:
            for slot in scope.slots:
                self._rebuild(slot)

    def _rebuild(self, slot: CacheSlot) -> None:
        if slot is CacheSlot.GLOBAL:
            sources = self._global_sources
        else:
            sources = self.local_sources()
        cited = frozenset(self._context.cited_keys()) if self._context is not None else frozenset()
        records = self._source.load(sources, self.requested_fields) if sources else {}
        issues = tuple(getattr(self._source, "issues", ())) if sources else ()
        star_width = self.star_width()
        candidates = tuple(
            self._make_candidate(key, record, slot, star_width, cited)
            for key, record in records.items()
        )
        self._slots[slot] = Loaded(candidates=candidates, sources=tuple(sources), issues=issues)
        self._emitter.event(
            "cache_refresh",
            {
                "scope": slot.value,
                "candidates": len(candidates),
                "sources": [str(path) for path in sources],
            },
        )

    def _make_candidate(
        self,
        key: str,
        record: Record,
        slot: CacheSlot,
        star_width: int,
        cited: Collection[str],
    ) -> Candidate:
        availability = self._availability(key, record)
        display = self.engine.render_entry(record, star_width, self.templates.main)
        display.append(" ")
        display.append_text(self.engine.render_entry(record, star_width, self.templates.suffix))
        display.append(self._search_segment(key, availability, cited), style=HIDDEN_STYLE)
        return Candidate(
            display=display,
            key=key,
            record=record,
            scope=slot,
            availability=availability,
        )

    def _availability(self, key: str, record: Record) -> frozenset[ResourceType]:
        if self.resolver is None:
            return frozenset()
        return frozenset(
            kind for kind in ResourceType if self.resolver.has_resources(kind, key, record)
        )

    def _search_segment(
        self,
        key: str,
        availability: Collection[ResourceType],
        cited: Collection[str],
    ) -> str:
        tokens = [marker for kind, marker in AVAILABILITY_MARKERS.items() if kind in availability]
        if key in cited:
            tokens.append(self.cited_tag)
        tokens.append(key)
        return " " + " ".join(tokens)

    # ------------------------------------------------------------------ lookup

    def _check_configured(self) -> None:
        if not self._global_sources and (
            self._context is None or not self._context.local_sources()
        ):
            raise ConfigurationError(
                "No bibliography files configured: set global sources or open a "
                "context that declares local ones."
            )

    def _ensure_loaded(self) -> None:
        pending = [slot for slot, state in self._slots.items() if isinstance(state, NotLoaded)]
        if not pending:
            return
        with self._rebuild_lock:
            for slot in pending:
                if isinstance(self._slots[slot], NotLoaded):
                    self._rebuild(slot)

    def get_candidates(self, force_rebuild: bool = False) -> tuple[Candidate, ...]:
        """Return local candidates followed by global candidates."""
        self._check_configured()
        if force_rebuild:
            self.refresh(RefreshScope.BOTH)
        else:
            self._ensure_loaded()
        local_state = self._slots[CacheSlot.LOCAL]
        global_state = self._slots[CacheSlot.GLOBAL]
        local = local_state.candidates if isinstance(local_state, Loaded) else ()
        global_ = global_state.candidates if isinstance(global_state, Loaded) else ()
        return local + global_

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self.get_candidates())

    def get_entry(self, key: str) -> Record | None:
        """Return the first record for ``key``, local before global, or ``None``."""
        for candidate in self.get_candidates():
            if candidate.key == key:
                return candidate.record
        return None

    def has_entry(self, key: str) -> bool:
        return self.get_entry(key) is not None

    def get_entries(self, keys: Iterable[str]) -> dict[str, Record]:
        """Return the records of the keys that exist, in the order requested."""
        wanted = list(dict.fromkeys(keys))
        found: dict[str, Record] = {}
        for candidate in self.get_candidates():
            if candidate.key in wanted and candidate.key not in found:
                found[candidate.key] = candidate.record
        return {key: found[key] for key in wanted if key in found}

    def issues(self) -> tuple[BibliographyIssue, ...]:
        """Return the loading issues of the local slot followed by the global slot."""
        collected: list[BibliographyIssue] = []
        for slot in (CacheSlot.LOCAL, CacheSlot.GLOBAL):
            state = self._slots[slot]
            if isinstance(state, Loaded):
                collected.extend(state.issues)
        return tuple(collected)

    def format_preview(self, key: str) -> str | None:
        record = self.get_entry(key)
        if record is None:
            return None
        return self.engine.format(self.templates.preview, record)

    def format_note_title(self, key: str) -> str | None:
        record = self.get_entry(key)
        if record is None:
            return None
        return self.engine.format(self.templates.note, record)

    def symbol_prefix(self, candidate: Candidate) -> str:
        return self.symbols.prefix(candidate.availability)


__all__ = [
    "AVAILABILITY_MARKERS",
    "CITED_TAG",
    "DEFAULT_MAIN_TEMPLATE",
    "DEFAULT_NOTE_TEMPLATE",
    "DEFAULT_PREVIEW_TEMPLATE",
    "DEFAULT_SUFFIX_TEMPLATE",
    "Candidate",
    "CandidateIndex",
    "CandidateTemplates",
    "HeavyRebuildHook",
    "SourceContext",
    "StaticContext",
    "SymbolSet",
]
