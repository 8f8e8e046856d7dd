"""BibTeX record source backed by pybtex."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import html
import logging
from pathlib import Path
import re

from pybtex.database import Entry, Person
from pybtex.database.input import bibtex

from .issues import BibliographyIssue
from .records import KEY_FIELD, TYPE_FIELD, Record


logger = logging.getLogger(__name__)


class BibtexRecordSource:
    """Load BibTeX files into records keyed by citation key.

    Files are parsed in the order given. When the same key appears in several
    files the first definition wins; a later definition with different content
    is reported as an issue. Parse errors are not caught: ``PybtexError`` and
    ``OSError`` reach the caller untouched.
    """

    def __init__(self) -> None:
        self._issues: list[BibliographyIssue] = []
        self._file_entry_counts: dict[Path, int] = {}

    @property
    def issues(self) -> Sequence[BibliographyIssue]:
        """Return the issues discovered by the most recent ``load`` call."""
        return tuple(self._issues)

    @property
    def file_stats(self) -> Sequence[tuple[Path, int]]:
        """Return (file, entry_count) pairs in the order files were processed."""
        return tuple(self._file_entry_counts.items())

    def load(self, paths: Iterable[Path | str], fields: Iterable[str] = ()) -> dict[str, Record]:
        """Return the records found in ``paths`` restricted to ``fields``."""
        self._issues = []
        self._file_entry_counts = {}
        wanted = frozenset(name.lower() for name in fields)
        records: dict[str, Record] = {}
        for raw_path in paths:
            path = Path(raw_path).expanduser().resolve()
            self._load_file(path, wanted, records)
        return records

    def _load_file(self, path: Path, wanted: frozenset[str], records: dict[str, Record]) -> None:
        parser = bibtex.Parser()
        with path.open(encoding="utf-8") as handle:
            data = parser.parse_stream(handle)

        entry_count = len(data.entries)
        self._file_entry_counts[path] = entry_count
        if entry_count == 0:
            self._report(BibliographyIssue(message="No references found in file.", source=path))
            return

        for key, entry in data.entries.items():
            record = entry_to_record(key, entry, wanted)
            existing = records.get(key)
            if existing is None:
                records[key] = record
                continue
            if existing != record:
                self._report(
                    BibliographyIssue(
                        message=(
                            "Duplicate entry conflicts with an existing "
                            "reference; ignoring the newer definition."
                        ),
                        key=key,
                        source=path,
                    )
                )

    def _report(self, issue: BibliographyIssue) -> None:
        self._issues.append(issue)
        if issue.key:
            logger.warning("%s: %s (%s)", issue.source, issue.message, issue.key)
        else:
            logger.warning("%s: %s", issue.source, issue.message)


def entry_to_record(key: str, entry: Entry, wanted: frozenset[str] = frozenset()) -> Record:
    """Flatten a pybtex entry into a record.

    Person roles become ``"Last, First and Last, First"`` strings. The
    pseudo-fields ``=key=`` and ``=type=`` are always present.
    """
    fields: dict[str, str] = {KEY_FIELD: key, TYPE_FIELD: entry.type}
    for field_name, value in entry.fields.items():
        name = str(field_name).lower()
        if wanted and name not in wanted:
            continue
        fields[name] = _sanitize_field(name, str(value))
    for role, persons in entry.persons.items():
        name = str(role).lower()
        if wanted and name not in wanted:
            continue
        fields[name] = format_persons(persons)
    return Record(fields)


def format_persons(persons: Iterable[Person]) -> str:
    return " and ".join(str(person) for person in persons)


_HTML_TAG_RE = re.compile(r"<[^>]+?>")


def _sanitize_field(name: str, value: str) -> str:
    if name == "month":
        normalised_month = _normalise_month_field(value)
        if normalised_month is not None:
            return normalised_month
    return _sanitize_field_text(value, field=name)


def _sanitize_field_text(value: str, *, field: str | None = None) -> str:
    """Strip lightweight HTML markup and unescape entities from bibliography fields."""
    if "<" in value and ">" in value:
        value = _HTML_TAG_RE.sub("", value)
    value = html.unescape(value)
    if field and field.lower() in {"url", "doi"}:
        value = value.replace(r"\_", "_")
    return value


_MONTH_NAMES = (
    ("jan", "january"),
    ("feb", "february"),
    ("mar", "march"),
    ("apr", "april"),
    ("may",),
    ("jun", "june"),
    ("jul", "july"),
    ("aug", "august"),
    ("sep", "sept", "september"),
    ("oct", "october"),
    ("nov", "november"),
    ("dec", "december"),
)
_MONTH_NAME_TO_INT: dict[str, int] = {
    name: index for index, names in enumerate(_MONTH_NAMES, start=1) for name in names
}


def _normalise_month_field(value: str) -> str | None:
    """Convert month names/abbreviations to their integer representation."""
    candidate = value.strip().strip("{}\"'").lower()
    if not candidate:
        return None

    if candidate.isdigit():
        month_int = int(candidate)
        if 1 <= month_int <= 12:
            return f"{month_int:02d}"
        return None

    month_int = _MONTH_NAME_TO_INT.get(candidate)
    if month_int is None:
        return None
    return f"{month_int:02d}"


__all__ = ["BibtexRecordSource", "entry_to_record", "format_persons"]
