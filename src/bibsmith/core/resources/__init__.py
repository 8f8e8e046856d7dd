"""Resources attached to bibliography records.

Architecture
: `specs` defines the tagged resource variants (`FileResource`,
  `NoteResource`, `UrlResource`).
: `urls` recognises identifier URLs and converts them to and from their
  canonical `UrlId` form.
: `finders` and `openers` are the two extension points: small objects
  implementing `find(key, record)` and `open(resource)`.
: `resolver` chains the finders, deduplicates their output with per-type
  equivalence predicates, and dispatches open requests.
"""

from __future__ import annotations

from .finders import (
    DEFAULT_LINK_FIELDS,
    CallableFinder,
    FileFieldFinder,
    LibraryFileFinder,
    LinkFieldFinder,
    NoteFinder,
    ResourceFinder,
)
from .openers import (
    BrowserOpener,
    CallableOpener,
    CommandOpener,
    LaunchOpener,
    ResourceOpener,
    default_openers,
)
from .resolver import ResourceResolver, dedup_resources, same_path
from .specs import FileResource, NoteResource, Resource, ResourceType, UrlId, UrlResource
from .urls import (
    ALL_TYPES,
    DEFAULT_URL_IDENTIFIERS,
    NO_TYPES,
    Recognition,
    TypePolicy,
    UrlIdentifier,
    UrlRegistry,
    normalise_doi,
)


__all__ = [
    "ALL_TYPES",
    "DEFAULT_LINK_FIELDS",
    "DEFAULT_URL_IDENTIFIERS",
    "NO_TYPES",
    "BrowserOpener",
    "CallableFinder",
    "CallableOpener",
    "CommandOpener",
    "FileFieldFinder",
    "FileResource",
    "LaunchOpener",
    "LibraryFileFinder",
    "LinkFieldFinder",
    "NoteFinder",
    "NoteResource",
    "Recognition",
    "Resource",
    "ResourceFinder",
    "ResourceOpener",
    "ResourceResolver",
    "ResourceType",
    "TypePolicy",
    "UrlId",
    "UrlIdentifier",
    "UrlRegistry",
    "UrlResource",
    "dedup_resources",
    "default_openers",
    "normalise_doi",
    "same_path",
]
