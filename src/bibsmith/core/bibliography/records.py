"""Record type shared by record sources, the candidate index and the resolver."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Protocol


KEY_FIELD = "=key="
TYPE_FIELD = "=type="


class Record(Mapping[str, str]):
    """Immutable mapping from case-insensitive field names to string values.

    Field names are folded to lower case on construction, so ``record["DOI"]``
    and ``record["doi"]`` address the same value. Equality is plain mapping
    equality, which lets rebuilt caches compare equal to earlier ones.
    """

    __slots__ = ("_fields",)

    def __init__(
        self,
        fields: Mapping[str, str] | Iterable[tuple[str, str]] = (),
    ) -> None:
        items = fields.items() if isinstance(fields, Mapping) else fields
        self._fields: dict[str, str] = {str(name).lower(): str(value) for name, value in items}

    def __getitem__(self, name: str) -> str:
        return self._fields[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __hash__(self) -> int:
        return hash(frozenset(self._fields.items()))

    def __repr__(self) -> str:
        return f"Record({self._fields!r})"

    @property
    def key(self) -> str | None:
        """Return the citation key recorded by the source, if any."""
        return self._fields.get(KEY_FIELD)

    @property
    def entry_type(self) -> str | None:
        return self._fields.get(TYPE_FIELD)

    def value(self, name: str) -> str:
        """Return the stripped value of a field or an empty string."""
        return self._fields.get(name.lower(), "").strip()


class RecordSource(Protocol):
    """Producer of records for a list of bibliography files."""

    def load(self, paths: Iterable[Path], fields: Iterable[str] = ()) -> dict[str, Record]:
        """Return records keyed by citation key, in file order."""
        ...


__all__ = ["KEY_FIELD", "TYPE_FIELD", "Record", "RecordSource"]
