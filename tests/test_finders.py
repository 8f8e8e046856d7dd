import os
from pathlib import Path

import pytest

from bibsmith.core.bibliography import Record
from bibsmith.core.exceptions import ConfigurationError
from bibsmith.core.resources import (
    FileFieldFinder,
    FileResource,
    LibraryFileFinder,
    LinkFieldFinder,
    NoteFinder,
    NoteResource,
    ResourceFinder,
    ResourceType,
    UrlId,
    UrlRegistry,
    UrlResource,
)
from bibsmith.core.resources.finders import split_file_field


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("x", encoding="utf-8")
    return path


def test_split_file_field_accepts_plain_paths_and_triplets() -> None:
    value = r"paper.pdf; Full text:C\:/papers/doe.pdf:PDF;;:slides.pdf:application/pdf"

    assert split_file_field(value) == ["paper.pdf", "C:/papers/doe.pdf", "slides.pdf"]


def test_file_field_finder_resolves_against_library(tmp_path: Path) -> None:
    library = tmp_path / "library"
    relative = _touch(library / "doe.pdf")
    absolute = _touch(tmp_path / "elsewhere" / "doe-supplement.pdf")
    record = Record({"file": f"doe.pdf;{absolute};missing.pdf"})

    finder = FileFieldFinder([library])

    assert finder.find("doe", record) == [
        FileResource.from_path(relative),
        FileResource.from_path(absolute),
    ]
    assert finder.fields == ("file",)
    assert isinstance(finder, ResourceFinder)


def test_file_field_finder_can_skip_existence_check(tmp_path: Path) -> None:
    finder = FileFieldFinder(check_exists=False)

    resources = finder.find("k", Record({"file": "/nowhere/k.pdf"}))

    assert resources == [FileResource.from_path("/nowhere/k.pdf")]


def test_library_finder_matches_stem_and_separator(tmp_path: Path) -> None:
    library = tmp_path / "library"
    main = _touch(library / "doe2020.pdf")
    extra = _touch(library / "doe2020-slides.pdf")
    _touch(library / "doe2020.txt")
    _touch(library / "doe20201.pdf")

    plain = LibraryFileFinder([library], extensions=["PDF"])
    with_separator = LibraryFileFinder([library], extensions=[".pdf"], separator="-")

    assert plain.find("doe2020", Record()) == [FileResource.from_path(main)]
    assert with_separator.find("doe2020", Record()) == [
        FileResource.from_path(extra),
        FileResource.from_path(main),
    ]


def test_library_finder_lists_each_directory_once(tmp_path: Path, monkeypatch) -> None:
    library = tmp_path / "library"
    for number in range(20):
        _touch(library / f"key{number}.pdf")
    listed: list[Path] = []
    iterdir = Path.iterdir

    def _counting_iterdir(self):
        listed.append(self)
        return iterdir(self)

    monkeypatch.setattr(Path, "iterdir", _counting_iterdir)
    finder = LibraryFileFinder([library])

    found = [finder.find(f"key{number}", Record()) for number in range(20)]

    assert all(len(resources) == 1 for resources in found)
    assert listed == [library]


def test_library_finder_notices_new_files(tmp_path: Path) -> None:
    library = tmp_path / "library"
    _touch(library / "doe.pdf")
    finder = LibraryFileFinder([library])
    assert finder.find("roe", Record()) == []

    added = _touch(library / "roe.pdf")
    later = library.stat().st_mtime_ns + 1_000_000_000
    os.utime(library, ns=(later, later))

    assert finder.find("roe", Record()) == [FileResource.from_path(added)]


def test_library_finder_ignores_missing_directories(tmp_path: Path) -> None:
    finder = LibraryFileFinder([tmp_path / "absent"])

    assert finder.find("key", Record()) == []


def test_note_finder_tries_extensions_in_order(tmp_path: Path) -> None:
    notes = tmp_path / "notes"
    markdown = _touch(notes / "doe.md")
    org = _touch(notes / "doe.org")

    finder = NoteFinder([notes], extensions=["md", "org"])

    assert finder.kind is ResourceType.NOTE
    assert finder.find("doe", Record()) == [
        NoteResource.from_path(markdown),
        NoteResource.from_path(org),
    ]


def test_link_finder_builds_identifier_links() -> None:
    finder = LinkFieldFinder(UrlRegistry())
    record = Record(
        {
            "doi": "https://doi.org/10.1/x",
            "pmid": "31452104",
            "url": "https://example.com/paper",
        }
    )

    assert finder.find("k", record) == [
        UrlResource(display="DOI: 10.1/x", spec=UrlId("doi", "10.1/x")),
        UrlResource(display="PMID: 31452104", spec=UrlId("pmid", "31452104")),
        UrlResource(display="https://example.com/paper", spec="https://example.com/paper"),
    ]


def test_link_finder_uses_eprint_only_for_arxiv() -> None:
    finder = LinkFieldFinder(UrlRegistry())

    arxiv = Record({"eprint": "2001.01234", "archiveprefix": "arXiv"})
    other = Record({"eprint": "hep-th/123", "eprinttype": "jstor"})
    undeclared = Record({"eprint": "2001.01234"})

    assert finder.find("a", arxiv) == [
        UrlResource(display="arXiv: 2001.01234", spec=UrlId("arxiv", "2001.01234"))
    ]
    assert finder.find("b", other) == []
    assert len(finder.find("c", undeclared)) == 1
    assert {"eprint", "archiveprefix", "eprinttype"} <= set(finder.fields)


def test_link_finder_rejects_unknown_types() -> None:
    with pytest.raises(ConfigurationError):
        LinkFieldFinder(UrlRegistry(), {"isbn": "isbn"})
