"""Bibliography records and the sources that produce them.

Architecture
: `Record` is the immutable, case-insensitive field mapping every other layer
  consumes. Candidate rendering and resource lookup never see pybtex objects.
: `RecordSource` is the loading contract: given file paths and the field names
  a caller needs, return records keyed by citation key.
: `BibtexRecordSource` implements the contract with pybtex, flattening person
  lists and sanitising field text on the way.

Usage Example

```pycon
>>> from pathlib import Path
>>> from bibsmith.core.bibliography import BibtexRecordSource
>>> source = BibtexRecordSource()
>>> records = source.load([Path("refs.bib")], fields=["title", "author"])  # doctest: +SKIP
>>> records["doe2023"]["title"]  # doctest: +SKIP
'A Minimal Example'
```
"""

from __future__ import annotations

from .issues import BibliographyIssue
from .records import KEY_FIELD, TYPE_FIELD, Record, RecordSource
from .source import BibtexRecordSource, entry_to_record


__all__ = [
    "KEY_FIELD",
    "TYPE_FIELD",
    "BibliographyIssue",
    "BibtexRecordSource",
    "Record",
    "RecordSource",
    "entry_to_record",
]
