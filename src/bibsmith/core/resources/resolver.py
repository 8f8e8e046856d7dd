"""Resource resolution: ordered finder chain, deduplication and open dispatch."""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable, Mapping, Sequence
import logging
from pathlib import Path
from typing import Any

from bibsmith.core.bibliography import Record
from bibsmith.core.diagnostics import DiagnosticEmitter, LoggingEmitter

from .finders import ResourceFinder
from .openers import ResourceOpener
from .specs import Resource, ResourceType, UrlResource
from .urls import TypePolicy, UrlRegistry


logger = logging.getLogger(__name__)

Equivalence = Callable[[Any, Any], bool]
Equivalences = Mapping[ResourceType, Sequence[Equivalence]]


def _normalised_path(value: Path | str) -> Path:
    return Path(value).expanduser().resolve()


def same_path(first: Path | str, second: Path | str) -> bool:
    """Return whether two path spellings designate the same absolute path."""
    return _normalised_path(first) == _normalised_path(second)


def url_equivalence(registry: UrlRegistry, policy: TypePolicy) -> Equivalence:
    """Return a predicate comparing URL specs normalised under ``policy``."""

    def _compare(first: Any, second: Any) -> bool:
        return registry.normalize(first, policy) == registry.normalize(second, policy)

    return _compare


def default_equivalences(registry: UrlRegistry, policy: TypePolicy | None = None) -> Equivalences:
    return {
        ResourceType.FILE: (same_path,),
        ResourceType.NOTE: (same_path,),
        ResourceType.URL: (url_equivalence(registry, policy or registry.normalization),),
    }


def _equivalent(first: Resource, second: Resource, equivalences: Equivalences) -> bool:
    if first.type is not second.type:
        return False
    if first.display == second.display:
        return True
    predicates = equivalences.get(first.type, ())
    return any(predicate(first.value, second.value) for predicate in predicates)


def dedup_resources(resources: Iterable[Resource], equivalences: Equivalences) -> list[Resource]:
    """Keep the first resource of every equivalence class, preserving order."""
    kept: list[Resource] = []
    for resource in resources:
        if any(_equivalent(existing, resource, equivalences) for existing in kept):
            continue
        kept.append(resource)
    return kept


class ResourceResolver:
    """Find, deduplicate and open the resources attached to records.

    Finders and openers are fixed at construction; :meth:`extend` returns a new
    resolver with additional ones appended. Finder order is the display order
    of the resolved resources, opener order is the order in which openers are
    tried.
    """

    def __init__(
        self,
        finders: Iterable[ResourceFinder] = (),
        openers: Iterable[ResourceOpener] = (),
        *,
        registry: UrlRegistry | None = None,
        equivalences: Equivalences | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self._finders = tuple(finders)
        self._openers = tuple(openers)
        self.registry = registry or UrlRegistry()
        self._equivalences = equivalences
        self._emitter = emitter or LoggingEmitter(logger_obj=logger)

    @property
    def finders(self) -> tuple[ResourceFinder, ...]:
        return self._finders

    @property
    def openers(self) -> tuple[ResourceOpener, ...]:
        return self._openers

    @property
    def required_fields(self) -> tuple[str, ...]:
        """Return the record fields read by the finders."""
        names: dict[str, None] = {}
        for finder in self._finders:
            for name in finder.fields:
                names.setdefault(name.lower(), None)
        return tuple(names)

    def extend(
        self,
        *,
        finders: Iterable[ResourceFinder] = (),
        openers: Iterable[ResourceOpener] = (),
    ) -> ResourceResolver:
        return ResourceResolver(
            (*self._finders, *finders),
            (*self._openers, *openers),
            registry=self.registry,
            equivalences=self._equivalences,
            emitter=self._emitter,
        )

    # ------------------------------------------------------------------ finding

    def _find(
        self,
        key: str,
        record: Record,
        kinds: Collection[ResourceType] | None,
        normalization: TypePolicy | None,
    ) -> list[Resource]:
        found: list[Resource] = []
        for finder in self._finders:
            if kinds is not None and finder.kind not in kinds:
                continue
            found.extend(finder.find(key, record))
        if normalization is None:
            return found
        return [self._renormalise(resource, normalization) for resource in found]

    def _renormalise(self, resource: Resource, policy: TypePolicy) -> Resource:
        if not isinstance(resource, UrlResource):
            return resource
        return self.registry.resource(resource.spec, normalization=policy)

    def resolve(
        self,
        key: str,
        record: Record,
        *,
        kinds: Collection[ResourceType] | None = None,
        normalization: TypePolicy | None = None,
    ) -> list[Resource]:
        """Return the deduplicated resources of one record."""
        found = self._find(key, record, kinds, normalization)
        return self.dedup(found, normalization=normalization)

    def resolve_many(
        self,
        entries: Mapping[str, Record],
        *,
        kinds: Collection[ResourceType] | None = None,
        normalization: TypePolicy | None = None,
    ) -> list[Resource]:
        """Return the deduplicated union of the resources of several records."""
        found: list[Resource] = []
        for key, record in entries.items():
            found.extend(self._find(key, record, kinds, normalization))
        return self.dedup(found, normalization=normalization)

    def has_resources(self, kind: ResourceType, key: str, record: Record) -> bool:
        return any(finder.find(key, record) for finder in self._finders if finder.kind is kind)

    def dedup(
        self,
        resources: Iterable[Resource],
        *,
        normalization: TypePolicy | None = None,
    ) -> list[Resource]:
        equivalences = self._equivalences or default_equivalences(self.registry, normalization)
        return dedup_resources(resources, equivalences)

    @staticmethod
    def group(resources: Iterable[Resource]) -> dict[ResourceType, list[Resource]]:
        """Group resources by type, in type order, keeping their relative order."""
        grouped: dict[ResourceType, list[Resource]] = {kind: [] for kind in ResourceType}
        for resource in resources:
            grouped[resource.type].append(resource)
        return {kind: items for kind, items in grouped.items() if items}

    # ------------------------------------------------------------------ opening

    def open(self, resource: Resource) -> bool:
        """Try the openers registered for the resource's type until one succeeds."""
        for opener in self._openers:
            if opener.kind is not resource.type:
                continue
            try:
                opened = opener.open(resource)
            except OSError as exc:
                self._emitter.warning(
                    f"Opener '{opener.name}' failed for {resource.display}: {exc}", exc
                )
                continue
            if opened:
                self._emitter.event(
                    "resource_open",
                    {
                        "display": resource.display,
                        "type": resource.type.value,
                        "opener": opener.name,
                    },
                )
                return True
        self._emitter.event(
            "resource_unopenable",
            {"display": resource.display, "type": resource.type.value},
        )
        return False

    def open_all(self, resources: Iterable[Resource]) -> list[Resource]:
        """Open every resource and return those no opener could handle."""
        return [resource for resource in resources if not self.open(resource)]


__all__ = [
    "Equivalence",
    "ResourceResolver",
    "dedup_resources",
    "default_equivalences",
    "same_path",
    "url_equivalence",
]
