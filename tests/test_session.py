from pathlib import Path
import textwrap

import pytest

from bibsmith.core.config import parse_config
from bibsmith.core.diagnostics import NullEmitter
from bibsmith.core.exceptions import EntryNotFoundError
from bibsmith.core.resources import (
    FileFieldFinder,
    LibraryFileFinder,
    LinkFieldFinder,
    NoteFinder,
    ResourceType,
    UrlId,
)
from bibsmith.core.session import (
    BibsmithSession,
    build_resolver,
    select_all,
    select_first,
    select_keys,
)


BIBTEX = """
@article{doe2020,
  author = {Doe, Jane},
  title = {A Study of Things},
  journal = {Journal of Things},
  year = {2020},
  doi = {10.1000/182},
}

@book{roe2019,
  author = {Roe, Richard},
  title = {Collected Works},
  year = {2019},
  url = {https://example.com/roe},
}
"""


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    (tmp_path / "refs.bib").write_text(textwrap.dedent(BIBTEX), encoding="utf-8")
    library = tmp_path / "papers"
    library.mkdir()
    (library / "doe2020.pdf").write_text("pdf", encoding="utf-8")
    notes = tmp_path / "notes"
    notes.mkdir()
    (notes / "roe2019.org").write_text("* Notes", encoding="utf-8")
    return tmp_path


@pytest.fixture
def session(workspace: Path) -> BibsmithSession:
    config = parse_config(
        {
            "bibliography": ["refs.bib"],
            "library_paths": ["papers"],
            "library_file_extensions": ["pdf"],
            "notes_paths": ["notes"],
        },
        base=workspace,
    )
    return BibsmithSession.from_config(config, width=100, emitter=NullEmitter())


def test_build_resolver_orders_finders() -> None:
    resolver = build_resolver(parse_config({}))

    assert [type(finder) for finder in resolver.finders] == [
        FileFieldFinder,
        LibraryFileFinder,
        NoteFinder,
        LinkFieldFinder,
    ]
    assert [opener.kind for opener in resolver.openers] == [
        ResourceType.FILE,
        ResourceType.NOTE,
        ResourceType.URL,
    ]


def test_build_resolver_puts_configured_commands_first() -> None:
    config = parse_config({"open_commands": [{"command": "zathura", "extensions": ["pdf"]}]})

    resolver = build_resolver(config)

    assert resolver.openers[0].name == "command:zathura"


def test_session_loads_candidates_from_configured_bibliography(session: BibsmithSession) -> None:
    keys = [candidate.key for candidate in session.candidates()]

    assert keys == ["doe2020", "roe2019"]
    assert session.require_entry("doe2020").get("doi") == "10.1000/182"
    assert session.entry("missing") is None


def test_require_entry_raises_for_unknown_keys(session: BibsmithSession) -> None:
    with pytest.raises(EntryNotFoundError) as excinfo:
        session.require_entry("missing")
    assert excinfo.value.key == "missing"

    with pytest.raises(EntryNotFoundError):
        session.require_entries(["doe2020", "missing"])


def test_select_entries_uses_the_selector(session: BibsmithSession) -> None:
    entries = session.select_entries(select_keys(["roe2019", "absent", "roe2019"]))

    assert list(entries) == ["roe2019"]


def test_resources_follow_finder_order(session: BibsmithSession, workspace: Path) -> None:
    entries = session.require_entries(["doe2020", "roe2019"])

    resources = session.resources(entries)

    assert [resource.type for resource in resources] == [
        ResourceType.FILE,
        ResourceType.URL,
        ResourceType.NOTE,
        ResourceType.URL,
    ]
    assert resources[0].value == workspace / "papers" / "doe2020.pdf"
    assert resources[1].spec == UrlId("doi", "10.1000/182")
    assert session.resources(entries, kinds={ResourceType.NOTE})[0].display.endswith(
        "roe2019.org"
    )


def test_select_and_open_launches_the_chosen_resources(
    session: BibsmithSession, monkeypatch
) -> None:
    launched: list[str] = []
    monkeypatch.setattr("typer.launch", lambda target: launched.append(target) or 0)

    unopenable = session.select_and_open(
        select_keys(["doe2020"]), select_all, kinds={ResourceType.URL}
    )

    assert unopenable == []
    assert launched == ["https://doi.org/10.1000/182"]


def test_select_and_open_with_no_entries_opens_nothing(session: BibsmithSession) -> None:
    assert session.select_and_open(select_keys(["absent"]), select_first) == []


def test_resource_selectors() -> None:
    assert select_first([]) == []
    assert select_first(["a", "b"]) == ["a"]  # type: ignore[list-item]
    assert select_all(("a", "b")) == ["a", "b"]  # type: ignore[arg-type]
