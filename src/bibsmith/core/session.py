"""Wiring of the candidate index and the resource resolver from configuration.

Selection is left to the caller: an `EntrySelector` receives the
`(display, key, record)` triples of every candidate and returns the chosen
ones, a `ResourceSelector` receives the deduplicated resources of those
entries and returns the ones to open. The CLI passes simple key or type
filters; an interactive front-end would pass its own picker.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable, Sequence
import logging
from pathlib import Path
import shlex
import subprocess

from bibsmith.core.bibliography import BibtexRecordSource, Record, RecordSource
from bibsmith.core.candidates import (
    Candidate,
    CandidateIndex,
    RefreshScope,
    SourceContext,
    TemplateEngine,
)
from bibsmith.core.config import BibsmithConfig
from bibsmith.core.diagnostics import DiagnosticEmitter, LoggingEmitter
from bibsmith.core.exceptions import EntryNotFoundError
from bibsmith.core.resources import (
    FileFieldFinder,
    LibraryFileFinder,
    LinkFieldFinder,
    NoteFinder,
    Resource,
    ResourceResolver,
    ResourceType,
    TypePolicy,
    UrlRegistry,
    default_openers,
)


logger = logging.getLogger(__name__)

EntryTriple = tuple[str, str, Record]
EntrySelector = Callable[[Sequence[EntryTriple]], Iterable[EntryTriple]]
ResourceSelector = Callable[[Sequence[Resource]], Iterable[Resource]]


def build_resolver(
    config: BibsmithConfig,
    *,
    registry: UrlRegistry | None = None,
    emitter: DiagnosticEmitter | None = None,
) -> ResourceResolver:
    """Create the resolver described by ``config``.

    Finder order, and therefore display order, is: files named in the record,
    files found in the library directories, notes, then links.
    """
    registry = registry or config.url_registry()
    finders = [
        FileFieldFinder(config.library_paths, field_name=config.file_field),
        LibraryFileFinder(
            config.library_paths,
            extensions=config.library_file_extensions,
            separator=config.file_additional_separator,
        ),
        NoteFinder(config.notes_paths, extensions=config.note_extensions),
        LinkFieldFinder(registry, config.link_fields),
    ]
    openers = default_openers(
        registry,
        commands=[(entry.command, entry.extensions) for entry in config.open_commands],
    )
    return ResourceResolver(finders, openers, registry=registry, emitter=emitter)


def command_hook(command: str) -> Callable[[], None]:
    """Return a hook running ``command`` to completion; failures propagate."""
    arguments = shlex.split(command)

    def _run() -> None:
        logger.info("Running rebuild command: %s", command)
        subprocess.run(arguments, check=True)

    return _run


def build_index(
    config: BibsmithConfig,
    *,
    source: RecordSource | None = None,
    resolver: ResourceResolver | None = None,
    context: SourceContext | None = None,
    global_sources: Iterable[Path | str] | None = None,
    width: int | Callable[[], int] | None = None,
    emitter: DiagnosticEmitter | None = None,
) -> CandidateIndex:
    """Create the candidate index described by ``config``."""
    sources = config.bibliography if global_sources is None else list(global_sources)
    hook = command_hook(config.rebuild_command) if config.rebuild_command else None
    options: dict[str, object] = {}
    if width is not None:
        options["width"] = width
    return CandidateIndex(
        source or BibtexRecordSource(),
        sources,
        engine=TemplateEngine(),
        templates=config.templates.build(),
        symbols=config.symbols.build(),
        resolver=resolver,
        context=context,
        heavy_rebuild_hook=hook,
        margin=config.margin,
        cited_tag=config.cited_tag,
        emitter=emitter,
        **options,  # type: ignore[arg-type]
    )


class BibsmithSession:
    """Candidate index and resolver sharing one configuration."""

    def __init__(
        self,
        index: CandidateIndex,
        resolver: ResourceResolver,
        *,
        normalization: TypePolicy | None = None,
    ) -> None:
        self.index = index
        self.resolver = resolver
        self.normalization = normalization

    @classmethod
    def from_config(
        cls,
        config: BibsmithConfig,
        *,
        context: SourceContext | None = None,
        global_sources: Iterable[Path | str] | None = None,
        width: int | Callable[[], int] | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> BibsmithSession:
        emitter = emitter or LoggingEmitter(logger_obj=logger)
        resolver = build_resolver(config, emitter=emitter)
        index = build_index(
            config,
            resolver=resolver,
            context=context,
            global_sources=global_sources,
            width=width,
            emitter=emitter,
        )
        return cls(index, resolver, normalization=config.normalization_policy)

    # ------------------------------------------------------------------ entries

    def candidates(self, force_rebuild: bool = False) -> tuple[Candidate, ...]:
        return self.index.get_candidates(force_rebuild)

    def refresh(
        self,
        scope: RefreshScope = RefreshScope.BOTH,
        force_heavy_rebuild: bool = False,
    ) -> None:
        self.index.refresh(scope, force_heavy_rebuild)

    def entry(self, key: str) -> Record | None:
        return self.index.get_entry(key)

    def require_entry(self, key: str) -> Record:
        record = self.index.get_entry(key)
        if record is None:
            raise EntryNotFoundError(key)
        return record

    def require_entries(self, keys: Iterable[str]) -> dict[str, Record]:
        """Return the records of ``keys``, failing on the first unknown key."""
        keys = list(keys)
        entries = self.index.get_entries(keys)
        for key in keys:
            if key not in entries:
                raise EntryNotFoundError(key)
        return entries

    def select_entries(self, selector: EntrySelector) -> dict[str, Record]:
        """Let ``selector`` choose among the candidates and return the chosen records."""
        triples = [candidate.as_triple() for candidate in self.candidates()]
        return {key: record for _, key, record in selector(triples)}

    # ---------------------------------------------------------------- resources

    def resources(
        self,
        entries: dict[str, Record],
        *,
        kinds: Collection[ResourceType] | None = None,
    ) -> list[Resource]:
        return self.resolver.resolve_many(
            entries, kinds=kinds, normalization=self.normalization
        )

    def open(self, resources: Iterable[Resource]) -> list[Resource]:
        """Open ``resources`` and return those no opener could handle."""
        return self.resolver.open_all(resources)

    def select_and_open(
        self,
        entry_selector: EntrySelector,
        resource_selector: ResourceSelector,
        *,
        kinds: Collection[ResourceType] | None = None,
    ) -> list[Resource]:
        """Run the full pick-entries, pick-resources, open flow."""
        entries = self.select_entries(entry_selector)
        if not entries:
            return []
        resources = self.resources(entries, kinds=kinds)
        return self.open(resource_selector(resources))


def select_keys(keys: Iterable[str]) -> EntrySelector:
    """Return an entry selector keeping the candidates whose key is in ``keys``."""
    wanted = list(dict.fromkeys(keys))

    def _select(triples: Sequence[EntryTriple]) -> list[EntryTriple]:
        by_key: dict[str, EntryTriple] = {}
        for triple in triples:
            by_key.setdefault(triple[1], triple)
        return [by_key[key] for key in wanted if key in by_key]

    return _select


def select_first(resources: Sequence[Resource]) -> list[Resource]:
    return list(resources[:1])


def select_all(resources: Sequence[Resource]) -> list[Resource]:
    return list(resources)


__all__ = [
    "BibsmithSession",
    "EntrySelector",
    "EntryTriple",
    "ResourceSelector",
    "build_index",
    "build_resolver",
    "command_hook",
    "select_all",
    "select_first",
    "select_keys",
]
