from pathlib import Path
import subprocess
import textwrap

from pybtex.database import Entry, Person
from pybtex.exceptions import PybtexError
import pytest

from bibsmith.core.bibliography import (
    KEY_FIELD,
    TYPE_FIELD,
    BibtexRecordSource,
    Record,
    entry_to_record,
)


def _write(
    tmp_path: Path,
    filename: str,
    payload: str,
) -> Path:
    file_path = tmp_path / filename
    file_path.write_text(textwrap.dedent(payload).strip() + "\n", encoding="utf-8")
    return file_path


def test_source_loads_multiple_files_in_order(tmp_path: Path) -> None:
    file_one = _write(
        tmp_path,
        "first.bib",
        """
        @article{smith2020,
            title = {Example Article},
            author = {Smith, John},
            year = {2020},
            journal = {Journal of Testing},
        }
        """,
    )
    file_two = _write(
        tmp_path,
        "second.bib",
        """
        @book{doe2021,
            title = {Example Book},
            author = {Doe, Jane and Roe, Richard},
            year = {2021},
            publisher = {Publishing House},
        }
        """,
    )

    source = BibtexRecordSource()
    records = source.load([file_one, file_two])

    assert list(records) == ["smith2020", "doe2021"]
    smith = records["smith2020"]
    assert smith["title"] == "Example Article"
    assert smith["author"] == "Smith, John"
    assert smith[KEY_FIELD] == "smith2020"
    assert smith[TYPE_FIELD] == "article"
    assert records["doe2021"]["author"] == "Doe, Jane and Roe, Richard"
    assert source.file_stats == ((file_one.resolve(), 1), (file_two.resolve(), 1))
    assert not source.issues


def test_source_restricts_to_requested_fields(tmp_path: Path) -> None:
    bib = _write(
        tmp_path,
        "refs.bib",
        """
        @article{key1,
            title = {Only Title},
            journal = {Dropped},
            author = {Doe, Jane},
        }
        """,
    )

    record = BibtexRecordSource().load([bib], fields=["TITLE"])["key1"]

    assert set(record) == {KEY_FIELD, TYPE_FIELD, "title"}
    assert record.key == "key1"
    assert record.entry_type == "article"


def test_source_first_definition_wins_and_reports_conflict(tmp_path: Path) -> None:
    original = _write(
        tmp_path,
        "one.bib",
        """
        @book{refkey,
            title = {Original Title},
        }
        """,
    )
    conflict = _write(
        tmp_path,
        "two.bib",
        """
        @book{refkey,
            title = {Conflicting Title},
        }
        """,
    )

    source = BibtexRecordSource()
    records = source.load([original, conflict])

    assert records["refkey"]["title"] == "Original Title"
    assert len(source.issues) == 1
    issue = source.issues[0]
    assert issue.key == "refkey"
    assert issue.source == conflict.resolve()
    assert "Duplicate entry" in issue.message


def test_source_identical_duplicate_is_silent(tmp_path: Path) -> None:
    payload = """
        @misc{same,
            title = {Same},
        }
        """
    first = _write(tmp_path, "a.bib", payload)
    second = _write(tmp_path, "b.bib", payload)

    source = BibtexRecordSource()
    records = source.load([first, second])

    assert list(records) == ["same"]
    assert not source.issues


def test_source_reports_empty_files(tmp_path: Path) -> None:
    empty = tmp_path / "empty.bib"
    empty.write_text("% nothing here\n", encoding="utf-8")

    source = BibtexRecordSource()

    assert source.load([empty]) == {}
    assert [issue.message for issue in source.issues] == ["No references found in file."]


def test_source_propagates_missing_files(tmp_path: Path, monkeypatch) -> None:
    def _no_subprocess(*args, **kwargs):
        raise AssertionError("no external lookup expected")

    monkeypatch.setattr(subprocess, "Popen", _no_subprocess)

    with pytest.raises(FileNotFoundError):
        BibtexRecordSource().load([tmp_path / "missing.bib"])


def test_source_propagates_parse_errors(tmp_path: Path) -> None:
    broken = _write(
        tmp_path,
        "broken.bib",
        """
        @article{broken,
            title = {Unbalanced,
        """,
    )

    with pytest.raises(PybtexError):
        BibtexRecordSource().load([broken])


def test_entry_to_record_sanitises_fields() -> None:
    entry = Entry(
        "article",
        fields={
            "title": "<i>Italic</i> &amp; bold",
            "url": r"https://example.com/a\_b",
            "month": "March",
        },
        persons={"author": [Person("Doe, Jane"), Person("John Roe")]},
    )

    record = entry_to_record("key", entry)

    assert record["title"] == "Italic & bold"
    assert record["url"] == "https://example.com/a_b"
    assert record["month"] == "03"
    assert record["author"] == "Doe, Jane and Roe, John"


def test_record_is_case_insensitive_and_value_equal() -> None:
    first = Record({"DOI": "10.1/x", "Title": "T"})
    second = Record([("doi", "10.1/x"), ("title", "T")])

    assert first["doi"] == "10.1/x"
    assert "TITLE" in first
    assert first == second
    assert hash(first) == hash(second)
    assert first.value("missing") == ""
    assert first.key is None
