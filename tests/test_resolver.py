from pathlib import Path

import pytest

from bibsmith.core.bibliography import Record
from bibsmith.core.diagnostics import NullEmitter
from bibsmith.core.resources import (
    NO_TYPES,
    BrowserOpener,
    CallableFinder,
    CallableOpener,
    CommandOpener,
    FileResource,
    LaunchOpener,
    LinkFieldFinder,
    NoteResource,
    ResourceResolver,
    ResourceType,
    UrlId,
    UrlRegistry,
    UrlResource,
    dedup_resources,
    default_openers,
    same_path,
)
from bibsmith.core.resources.resolver import default_equivalences


class RecordingEmitter(NullEmitter):
    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []
        self.warnings: list[str] = []

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self.warnings.append(message)

    def event(self, name: str, payload) -> None:
        self.events.append((name, dict(payload)))


def _static_finder(kind: ResourceType, *resources, name: str = "static") -> CallableFinder:
    return CallableFinder(name, kind, lambda key, record: list(resources))


def test_same_path_compares_normalised_spellings(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    assert same_path("papers/x.pdf", "./papers/../papers/x.pdf")
    assert same_path("papers/x.pdf", tmp_path / "papers" / "x.pdf")
    assert not same_path("papers/x.pdf", "papers/y.pdf")


def test_resolve_deduplicates_path_spellings_keeping_the_first(
    tmp_path: Path, monkeypatch
) -> None:
    monkeypatch.chdir(tmp_path)
    resolver = ResourceResolver(
        [
            _static_finder(ResourceType.FILE, FileResource.from_path("papers/x.pdf")),
            _static_finder(
                ResourceType.FILE, FileResource.from_path("./papers/../papers/x.pdf")
            ),
        ]
    )

    resources = resolver.resolve("k", Record())

    assert [resource.display for resource in resources] == ["papers/x.pdf"]


def test_dedup_keeps_distinct_types_apart(tmp_path: Path) -> None:
    path = tmp_path / "k.md"
    resources = [FileResource.from_path(path), NoteResource.from_path(path)]

    kept = dedup_resources(resources, default_equivalences(UrlRegistry()))

    assert kept == resources


def test_dedup_is_idempotent() -> None:
    registry = UrlRegistry()
    resources = [
        registry.resource("https://doi.org/10.1000/182"),
        registry.resource(UrlId("doi", "10.1000/182")),
        registry.resource("https://arxiv.org/pdf/2001.01234.pdf"),
        registry.resource("https://arxiv.org/abs/2001.01234"),
        registry.resource("https://example.com"),
    ]
    equivalences = default_equivalences(registry)

    once = dedup_resources(resources, equivalences)

    assert [resource.display for resource in once] == [
        "DOI: 10.1000/182",
        "arXiv: 2001.01234",
        "https://example.com",
    ]
    assert dedup_resources(once, equivalences) == once


def test_doi_from_field_and_url_field_collapse_to_one_link() -> None:
    registry = UrlRegistry()
    resolver = ResourceResolver([LinkFieldFinder(registry)], registry=registry)
    record = Record({"doi": "10.1/x", "url": "https://doi.org/10.1/x"})

    resources = resolver.resolve("k", record)

    assert resources == [UrlResource(display="DOI: 10.1/x", spec=UrlId("doi", "10.1/x"))]


def test_normalization_policy_is_a_per_call_parameter() -> None:
    registry = UrlRegistry()
    resolver = ResourceResolver([LinkFieldFinder(registry)], registry=registry)
    record = Record({"doi": "10.1/x"})

    (canonical,) = resolver.resolve("k", record)
    (raw,) = resolver.resolve("k", record, normalization=NO_TYPES)

    assert canonical.spec == UrlId("doi", "10.1/x")
    assert raw.spec == "https://doi.org/10.1/x"
    assert raw.display == "DOI: 10.1/x"


def test_resolve_filters_kinds_and_required_fields() -> None:
    registry = UrlRegistry()
    note = NoteResource.from_path("/notes/k.org")
    resolver = ResourceResolver(
        [_static_finder(ResourceType.NOTE, note), LinkFieldFinder(registry)],
        registry=registry,
    )
    record = Record({"url": "https://example.com"})

    assert resolver.resolve("k", record, kinds={ResourceType.NOTE}) == [note]
    assert "url" in resolver.required_fields
    assert resolver.has_resources(ResourceType.URL, "k", record)
    assert not resolver.has_resources(ResourceType.FILE, "k", record)


def test_resolve_many_deduplicates_across_entries() -> None:
    registry = UrlRegistry()
    resolver = ResourceResolver([LinkFieldFinder(registry)], registry=registry)
    entries = {
        "a": Record({"doi": "10.1/x"}),
        "b": Record({"url": "https://doi.org/10.1/x", "pmid": "1"}),
    }

    resources = resolver.resolve_many(entries)

    assert [resource.display for resource in resources] == ["DOI: 10.1/x", "PMID: 1"]


def test_group_orders_by_type_and_keeps_relative_order() -> None:
    url = UrlResource(display="https://example.com", spec="https://example.com")
    first = FileResource.from_path("/a.pdf")
    second = FileResource.from_path("/b.pdf")
    note = NoteResource.from_path("/a.org")

    grouped = ResourceResolver.group([url, first, note, second])

    assert list(grouped) == [ResourceType.FILE, ResourceType.NOTE, ResourceType.URL]
    assert grouped[ResourceType.FILE] == [first, second]


def test_extend_returns_a_new_resolver() -> None:
    base = ResourceResolver()
    finder = _static_finder(ResourceType.FILE)

    extended = base.extend(finders=[finder])

    assert base.finders == ()
    assert extended.finders == (finder,)


def test_open_tries_openers_in_order_and_skips_failures(tmp_path: Path) -> None:
    calls: list[str] = []

    def _broken(resource) -> bool:
        calls.append("broken")
        raise OSError("no display")

    def _declines(resource) -> bool:
        calls.append("declines")
        return False

    def _accepts(resource) -> bool:
        calls.append("accepts")
        return True

    emitter = RecordingEmitter()
    resolver = ResourceResolver(
        [],
        [
            CallableOpener("url-only", ResourceType.URL, _accepts),
            CallableOpener("broken", ResourceType.FILE, _broken),
            CallableOpener("declines", ResourceType.FILE, _declines),
            CallableOpener("accepts", ResourceType.FILE, _accepts),
        ],
        emitter=emitter,
    )
    resource = FileResource.from_path(tmp_path / "x.pdf")

    assert resolver.open(resource)
    assert calls == ["broken", "declines", "accepts"]
    assert len(emitter.warnings) == 1
    assert emitter.events[-1][0] == "resource_open"
    assert emitter.events[-1][1]["opener"] == "accepts"


def test_open_all_reports_unopenable_resources(tmp_path: Path) -> None:
    launched: list[str] = []
    existing = tmp_path / "x.pdf"
    existing.write_text("pdf", encoding="utf-8")
    registry = UrlRegistry()
    emitter = RecordingEmitter()
    resolver = ResourceResolver(
        [],
        default_openers(registry, launcher=lambda target: launched.append(target) or 0),
        registry=registry,
        emitter=emitter,
    )
    present = FileResource.from_path(existing)
    gone = FileResource.from_path(tmp_path / "gone.pdf")
    link = registry.resource(UrlId("doi", "10.1/x"))

    unopenable = resolver.open_all([present, gone, link])

    assert unopenable == [gone]
    assert launched == [str(existing), "https://doi.org/10.1/x"]
    assert ("resource_unopenable", {"display": gone.display, "type": "file"}) in emitter.events


def test_launch_opener_requires_zero_exit_status(tmp_path: Path) -> None:
    path = tmp_path / "x.pdf"
    path.write_text("pdf", encoding="utf-8")

    assert LaunchOpener(launcher=lambda target: 0).open(FileResource.from_path(path))
    assert not LaunchOpener(launcher=lambda target: 1).open(FileResource.from_path(path))
    assert not LaunchOpener(launcher=lambda target: 0).open(NoteResource.from_path(path))


def test_browser_opener_only_handles_web_schemes() -> None:
    registry = UrlRegistry()
    opener = BrowserOpener(registry, launcher=lambda target: 0)

    assert opener.open(UrlResource(display="x", spec="https://example.com"))
    assert not opener.open(UrlResource(display="x", spec="zotero://select/items/1"))


@pytest.mark.parametrize(
    ("command", "expected"),
    [
        ("zathura --fork", ["zathura", "--fork", "{file}"]),
        ("okular --page 1 {path}", ["okular", "--page", "1", "{file}"]),
    ],
)
def test_command_opener_builds_arguments(tmp_path: Path, command: str, expected) -> None:
    path = tmp_path / "x.pdf"
    path.write_text("pdf", encoding="utf-8")
    spawned: list[list[str]] = []
    opener = CommandOpener(
        command,
        extensions=["pdf"],
        spawner=lambda args, **kwargs: spawned.append(args),
    )

    assert opener.open(FileResource.from_path(path))
    assert spawned == [[str(path) if item == "{file}" else item for item in expected]]
    assert opener.name == f"command:{expected[0]}"


def test_command_opener_skips_other_extensions(tmp_path: Path) -> None:
    path = tmp_path / "x.djvu"
    path.write_text("djvu", encoding="utf-8")
    opener = CommandOpener("zathura", extensions=["pdf"], spawner=lambda *a, **k: None)

    assert not opener.open(FileResource.from_path(path))


def test_url_dedup_follows_the_normalization_policy_of_the_call() -> None:
    registry = UrlRegistry()
    pdf = UrlResource(display="pdf", spec="https://arxiv.org/pdf/2001.01234.pdf")
    abstract = UrlResource(display="abstract", spec="https://arxiv.org/abs/2001.01234")
    resolver = ResourceResolver(registry=registry)

    assert resolver.dedup([pdf, abstract]) == [pdf]
    assert resolver.dedup([pdf, abstract], normalization=NO_TYPES) == [pdf, abstract]
    assert registry.equivalent(pdf.spec, abstract.spec)
