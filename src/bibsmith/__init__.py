"""Primary public API for bibsmith."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as _pkg_version

from bibsmith.core.bibliography import BibliographyIssue, BibtexRecordSource, Record
from bibsmith.core.candidates import (
    Candidate,
    CandidateIndex,
    CandidateTemplates,
    RefreshScope,
    StaticContext,
    SymbolSet,
    TemplateEngine,
    parse_template,
)
from bibsmith.core.config import BibsmithConfig, load_config
from bibsmith.core.exceptions import (
    BibsmithError,
    ConfigurationError,
    EntryNotFoundError,
    TemplateError,
)
from bibsmith.core.resources import (
    FileResource,
    NoteResource,
    ResourceResolver,
    ResourceType,
    TypePolicy,
    UrlId,
    UrlRegistry,
    UrlResource,
)
from bibsmith.core.session import BibsmithSession, build_index, build_resolver
from bibsmith.core.user_dir import (
    BibsmithUserDir,
    configure_user_dir,
    get_user_dir,
    user_dir_context,
)


try:
    __version__ = _pkg_version("bibsmith")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "BibliographyIssue",
    "BibsmithConfig",
    "BibsmithError",
    "BibsmithSession",
    "BibsmithUserDir",
    "BibtexRecordSource",
    "Candidate",
    "CandidateIndex",
    "CandidateTemplates",
    "ConfigurationError",
    "EntryNotFoundError",
    "FileResource",
    "NoteResource",
    "Record",
    "RefreshScope",
    "ResourceResolver",
    "ResourceType",
    "StaticContext",
    "SymbolSet",
    "TemplateEngine",
    "TemplateError",
    "TypePolicy",
    "UrlId",
    "UrlRegistry",
    "UrlResource",
    "__version__",
    "build_index",
    "build_resolver",
    "configure_user_dir",
    "get_user_dir",
    "load_config",
    "user_dir_context",
]
