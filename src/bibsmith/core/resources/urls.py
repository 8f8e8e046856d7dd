"""Recognition and canonicalisation of identifier URLs (DOI, arXiv, PubMed...).

A :class:`UrlRegistry` maps raw URLs to ``UrlId(type, id)`` pairs and back.
Two policies steer it. The *recognition* policy selects which identifier
types are tried at all; the *normalization* policy selects which recognised
types are stored in canonical form rather than as the raw URL. Both are
explicit arguments with per-registry defaults, so a caller can vary them from
one resolution to the next.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
import re
from typing import NamedTuple

from bibsmith.core.exceptions import ConfigurationError

from .specs import UrlId, UrlResource, UrlSpec


@dataclass(frozen=True, slots=True)
class TypePolicy:
    """Set of identifier types a policy applies to; ``None`` means every type."""

    types: frozenset[str] | None = None

    @classmethod
    def only(cls, *types: str) -> TypePolicy:
        return cls(frozenset(types))

    @classmethod
    def coerce(cls, value: TypePolicy | str | Iterable[str] | None) -> TypePolicy:
        """Accept ``"all"``, ``"none"``, a list of type tags or a policy."""
        if isinstance(value, TypePolicy):
            return value
        if value is None:
            return ALL_TYPES
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered == "all":
                return ALL_TYPES
            if lowered == "none":
                return NO_TYPES
            return cls.only(value)
        return cls(frozenset(value))

    def allows(self, type_tag: str) -> bool:
        return self.types is None or type_tag in self.types

    @property
    def disabled(self) -> bool:
        return self.types is not None and not self.types


ALL_TYPES = TypePolicy()
NO_TYPES = TypePolicy(frozenset())


@dataclass(frozen=True, slots=True)
class UrlIdentifier:
    """One registered identifier type.

    ``url_format`` holds exactly one ``%s`` marking where the identifier goes;
    the first capture group of ``pattern`` extracts it from a URL.
    """

    type: str
    name: str
    url_format: str
    pattern: re.Pattern[str]
    example: str | None = None

    def __post_init__(self) -> None:
        if self.url_format.count("%s") != 1:
            raise ConfigurationError(
                f"URL format for '{self.type}' must contain exactly one '%s': {self.url_format!r}"
            )
        if isinstance(self.pattern, str):
            try:
                compiled = re.compile(self.pattern)
            except re.error as exc:
                raise ConfigurationError(
                    f"Invalid recognition pattern for '{self.type}': {exc}"
                ) from exc
            object.__setattr__(self, "pattern", compiled)
        if self.pattern.groups < 1:
            raise ConfigurationError(
                f"Recognition pattern for '{self.type}' needs a capture group."
            )

    def format(self, identifier: str) -> str:
        return self.url_format.replace("%s", identifier, 1)

    def match(self, url: str) -> str | None:
        found = self.pattern.search(url)
        if found is None or not found.group(1):
            return None
        return found.group(1)


DEFAULT_URL_IDENTIFIERS: tuple[UrlIdentifier, ...] = (
    UrlIdentifier(
        type="doi",
        name="DOI",
        url_format="https://doi.org/%s",
        pattern=re.compile(r"^https?://(?:dx\.)?doi\.org/(10\.[^/\s]+/\S+)$"),
        example="https://doi.org/10.1000/182",
    ),
    UrlIdentifier(
        type="arxiv",
        name="arXiv",
        url_format="https://arxiv.org/abs/%s",
        pattern=re.compile(r"^https?://(?:www\.)?arxiv\.org/(?:abs|pdf)/([^?#\s]+?)(?:\.pdf)?/?$"),
        example="https://arxiv.org/abs/2001.01234",
    ),
    UrlIdentifier(
        type="pmid",
        name="PMID",
        url_format="https://pubmed.ncbi.nlm.nih.gov/%s",
        pattern=re.compile(
            r"^https?://(?:pubmed\.ncbi\.nlm\.nih\.gov"
            r"|(?:www\.)?ncbi\.nlm\.nih\.gov/pubmed)/(\d+)/?$"
        ),
        example="https://pubmed.ncbi.nlm.nih.gov/31452104",
    ),
    UrlIdentifier(
        type="pmcid",
        name="PMCID",
        url_format="https://www.ncbi.nlm.nih.gov/pmc/articles/%s",
        pattern=re.compile(r"^https?://(?:www\.)?ncbi\.nlm\.nih\.gov/pmc/articles/(PMC\d+)/?$"),
        example="https://www.ncbi.nlm.nih.gov/pmc/articles/PMC6711455",
    ),
)


class Recognition(NamedTuple):
    display: str
    canonical: UrlSpec


class UrlRegistry:
    """Ordered table of identifier types with recognise/format helpers."""

    def __init__(
        self,
        identifiers: Iterable[UrlIdentifier] = DEFAULT_URL_IDENTIFIERS,
        *,
        recognition: TypePolicy = ALL_TYPES,
        normalization: TypePolicy = ALL_TYPES,
    ) -> None:
        self._identifiers = tuple(identifiers)
        seen: set[str] = set()
        for identifier in self._identifiers:
            if identifier.type in seen:
                raise ConfigurationError(
                    f"URL identifier type '{identifier.type}' is registered twice."
                )
            seen.add(identifier.type)
        self.recognition = recognition
        self.normalization = normalization

    @property
    def identifiers(self) -> Sequence[UrlIdentifier]:
        return self._identifiers

    def get(self, type_tag: str) -> UrlIdentifier | None:
        for identifier in self._identifiers:
            if identifier.type == type_tag:
                return identifier
        return None

    def recognize(
        self,
        url: str,
        *,
        recognition: TypePolicy | None = None,
        normalization: TypePolicy | None = None,
    ) -> Recognition:
        """Return the display string and canonical form of ``url``."""
        if recognition is None:
            recognition = self.recognition
        if normalization is None:
            normalization = self.normalization
        if recognition.disabled:
            return Recognition(url, url)
        for identifier in self._identifiers:
            if not recognition.allows(identifier.type):
                continue
            found = identifier.match(url)
            if found is None:
                continue
            display = f"{identifier.name}: {found}"
            if normalization.allows(identifier.type):
                return Recognition(display, UrlId(identifier.type, found))
            return Recognition(display, url)
        return Recognition(url, url)

    def to_url(self, spec: UrlSpec) -> str:
        """Return the URL for a raw string or a canonical ``UrlId``."""
        if isinstance(spec, UrlId):
            identifier = self.get(spec.type)
            if identifier is None:
                raise ConfigurationError(f"Unknown URL identifier type '{spec.type}'.")
            return identifier.format(spec.id)
        return spec

    def normalize(self, spec: UrlSpec, policy: TypePolicy = ALL_TYPES) -> UrlSpec:
        """Return the form of ``spec`` that ``policy`` prescribes."""
        if isinstance(spec, UrlId):
            return spec if policy.allows(spec.type) else self.to_url(spec)
        return self.recognize(spec, recognition=ALL_TYPES, normalization=policy).canonical

    def equivalent(self, first: UrlSpec, second: UrlSpec) -> bool:
        """Return whether two specs designate the same resource."""
        return self.normalize(first) == self.normalize(second)

    def resource(
        self,
        spec: UrlSpec,
        *,
        recognition: TypePolicy | None = None,
        normalization: TypePolicy | None = None,
    ) -> UrlResource:
        """Build a :class:`UrlResource` for a raw URL or a ``UrlId``."""
        url = self.to_url(spec)
        display, canonical = self.recognize(
            url, recognition=recognition, normalization=normalization
        )
        return UrlResource(display=display, spec=canonical)


_DOI_PREFIXES = (
    "https://doi.org/",
    "http://doi.org/",
    "https://dx.doi.org/",
    "http://dx.doi.org/",
)


def normalise_doi(value: str) -> str:
    """Return the bare DOI from a field value that may carry a URL or ``doi:`` prefix."""
    candidate = value.strip()
    lowered = candidate.lower()
    for prefix in _DOI_PREFIXES:
        if lowered.startswith(prefix):
            candidate = candidate[len(prefix) :]
            break

    candidate = candidate.strip()
    if candidate.lower().startswith("doi:"):
        candidate = candidate.split(":", 1)[1]
    return candidate.strip().strip("/")


__all__ = [
    "ALL_TYPES",
    "DEFAULT_URL_IDENTIFIERS",
    "NO_TYPES",
    "Recognition",
    "TypePolicy",
    "UrlIdentifier",
    "UrlRegistry",
    "normalise_doi",
]
