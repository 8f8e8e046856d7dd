"""Shared Typer option definitions for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from bibsmith.core.resources import ResourceType


SOURCES_PANEL = "Sources"
DISPLAY_PANEL = "Display"
RESOURCES_PANEL = "Resources"
DIAGNOSTICS_PANEL = "Diagnostics"

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Configuration file (defaults to config.yml in the bibsmith user directory).",
        dir_okay=False,
        rich_help_panel=SOURCES_PANEL,
    ),
]

BibliographyOption = Annotated[
    list[Path] | None,
    typer.Option(
        "--bib",
        help="Global bibliography file. Repeat to add several; replaces the configured list.",
        dir_okay=False,
        rich_help_panel=SOURCES_PANEL,
    ),
]

LocalOption = Annotated[
    list[Path] | None,
    typer.Option(
        "--local",
        help="Bibliography file local to the current document. Repeatable.",
        dir_okay=False,
        rich_help_panel=SOURCES_PANEL,
    ),
]

CitedOption = Annotated[
    list[str] | None,
    typer.Option(
        "--cited",
        help="Citation key cited in the current document. Repeatable.",
        rich_help_panel=SOURCES_PANEL,
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase CLI verbosity. Combine multiple times for additional diagnostics.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug",
        help="Show full tracebacks when an unexpected error occurs.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

KeysArgument = Annotated[
    list[str],
    typer.Argument(metavar="KEY...", help="Citation keys."),
]

TypeOption = Annotated[
    list[ResourceType] | None,
    typer.Option(
        "--type",
        "-t",
        case_sensitive=False,
        help="Restrict to resources of this type. Repeatable.",
        rich_help_panel=RESOURCES_PANEL,
    ),
]
