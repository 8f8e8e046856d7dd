"""Searchable candidate lists built from bibliography records.

Architecture
: `templates` parses display templates once, computes their fixed widths and
  renders records into fixed-width `rich.text.Text` lines whose cut-off tails
  stay searchable but concealed.
: `cache` defines the explicit `NotLoaded | Loaded` slot states.
: `index` owns the global and local slots and turns records into
  `Candidate` objects, local candidates first.
"""

from __future__ import annotations

from .cache import NOT_LOADED, CacheSlot, CacheState, Loaded, NotLoaded, RefreshScope
from .index import (
    AVAILABILITY_MARKERS,
    CITED_TAG,
    Candidate,
    CandidateIndex,
    CandidateTemplates,
    SourceContext,
    StaticContext,
    SymbolSet,
)
from .templates import (
    DEFAULT_TRANSFORMS,
    FieldTransform,
    Placeholder,
    Template,
    TemplateEngine,
    clean_string,
    compute_width,
    fit_to_width,
    parse_template,
    shorten_names,
    visible_text,
)


__all__ = [
    "AVAILABILITY_MARKERS",
    "CITED_TAG",
    "DEFAULT_TRANSFORMS",
    "NOT_LOADED",
    "CacheSlot",
    "CacheState",
    "Candidate",
    "CandidateIndex",
    "CandidateTemplates",
    "FieldTransform",
    "Loaded",
    "NotLoaded",
    "Placeholder",
    "RefreshScope",
    "SourceContext",
    "StaticContext",
    "SymbolSet",
    "Template",
    "TemplateEngine",
    "clean_string",
    "compute_width",
    "fit_to_width",
    "parse_template",
    "shorten_names",
    "visible_text",
]
