"""`bibsmith resources` and `bibsmith open`: resolve and open attached resources."""

from __future__ import annotations

from typing import Annotated

import typer

from bibsmith.core.exceptions import BibsmithError
from bibsmith.core.resources import Resource, ResourceType
from bibsmith.core.session import BibsmithSession, select_all, select_first

from .._options import RESOURCES_PANEL, KeysArgument, TypeOption
from ..presenter import build_resource_table
from ..state import emit_error, emit_warning, get_cli_state


def _resolve(
    keys: list[str], types: list[ResourceType] | None
) -> tuple[BibsmithSession, list[Resource]]:
    state = get_cli_state()
    try:
        session = state.build_session()
        entries = session.require_entries(keys)
        resources = session.resources(entries, kinds=types or None)
    except BibsmithError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc
    return session, resources


def list_resources(keys: KeysArgument, types: TypeOption = None) -> None:
    """List the deduplicated files, notes and links of one or more entries."""
    _, resources = _resolve(keys, types)
    if not resources:
        emit_warning(f"No resources found for {', '.join(keys)}.")
        return
    get_cli_state().console.print(build_resource_table(resources))


def open_resources(
    keys: KeysArgument,
    types: TypeOption = None,
    open_all: Annotated[
        bool,
        typer.Option(
            "--all",
            help="Open every resource instead of only the first one.",
            rich_help_panel=RESOURCES_PANEL,
        ),
    ] = False,
) -> None:
    """Open the first resource of the given entries, or all of them with --all."""
    session, resources = _resolve(keys, types)
    selected = select_all(resources) if open_all else select_first(resources)
    if not selected:
        emit_error(f"No resources found for {', '.join(keys)}.")
        raise typer.Exit(code=1)

    unopenable = session.open(selected)
    for resource in unopenable:
        emit_warning(f"Could not open {resource.type.value} {resource.display}.")
    if len(unopenable) == len(selected):
        raise typer.Exit(code=1)
