"""Rich renderables for records, resources and recognised URLs."""

from __future__ import annotations

from collections.abc import Iterable

from rich import box
from rich.panel import Panel
from rich.table import Table

from bibsmith.core.bibliography import KEY_FIELD, TYPE_FIELD, BibliographyIssue, Record
from bibsmith.core.resources import Recognition, Resource, ResourceResolver, UrlId

from .state import CLIState


_LEADING_FIELDS = (
    ("Title", ("title",)),
    ("Authors", ("author", "editor")),
    ("Year", ("year", "date")),
    ("Journal", ("journal", "journaltitle", "booktitle")),
)

_TYPE_LABELS = {"file": "Files", "note": "Notes", "url": "Links"}


def build_reference_panel(key: str, record: Record, preview: str | None = None) -> Panel:
    """Create a Rich panel that visualises a single record."""
    fields = {
        name: value for name, value in record.items() if name not in (KEY_FIELD, TYPE_FIELD)
    }
    grid = Table.grid(padding=(0, 1))
    grid.add_column(style="bold green", no_wrap=True)
    grid.add_column()

    def _pop_field(*names: str) -> str | None:
        for name in names:
            value = fields.pop(name, "").strip()
            if value:
                return value
        return None

    for label, names in _LEADING_FIELDS:
        value = _pop_field(*names)
        if value is not None:
            grid.add_row(label, value)

    for name, value in sorted(fields.items()):
        if value.strip():
            grid.add_row(name.title(), value)

    if preview:
        grid.add_row("Preview", preview)

    title = f"{key} ({record.entry_type or 'entry'})"
    return Panel(grid, title=title, box=box.SIMPLE)


def build_resource_table(resources: Iterable[Resource]) -> Table:
    """Tabulate resources grouped by type, keeping their resolved order."""
    table = Table(title="Resources", box=box.SQUARE, show_edge=True, header_style="bold cyan")
    table.add_column("Type", style="magenta", no_wrap=True)
    table.add_column("#", justify="right")
    table.add_column("Resource", overflow="fold")
    for kind, items in ResourceResolver.group(resources).items():
        label = _TYPE_LABELS.get(kind.value, kind.value)
        for position, resource in enumerate(items, start=1):
            table.add_row(label if position == 1 else "", str(position), resource.display)
    return table


def build_recognition_table(url: str, recognition: Recognition, target: str) -> Table:
    grid = Table.grid(padding=(0, 1))
    grid.add_column(style="bold green", no_wrap=True)
    grid.add_column(overflow="fold")
    grid.add_row("URL", url)
    grid.add_row("Display", recognition.display)
    canonical = recognition.canonical
    if isinstance(canonical, UrlId):
        grid.add_row("Type", canonical.type)
        grid.add_row("Identifier", canonical.id)
    else:
        grid.add_row("Type", "-")
    grid.add_row("Opens", target)
    return grid


def print_issues(state: CLIState, issues: Iterable[BibliographyIssue]) -> None:
    """Print bibliography loading issues as a warnings table."""
    items = list(issues)
    if not items:
        return
    table = Table(title="Warnings", box=box.SQUARE, header_style="bold cyan", show_edge=True)
    table.add_column("Key", style="yellow", no_wrap=True)
    table.add_column("Message", style="yellow")
    table.add_column("Source", style="yellow")
    for issue in items:
        table.add_row(issue.key or "-", issue.message, str(issue.source or "-"))
    state.err_console.print(table)


__all__ = [
    "build_recognition_table",
    "build_reference_panel",
    "build_resource_table",
    "print_issues",
]
