"""`bibsmith list`: print the candidate list the way a picker would show it."""

from __future__ import annotations

from typing import Annotated

import typer

from bibsmith.core.candidates import RefreshScope
from bibsmith.core.exceptions import BibsmithError

from .._options import DISPLAY_PANEL
from ..presenter import print_issues
from ..state import emit_error, get_cli_state


def list_candidates(
    refresh: Annotated[
        bool,
        typer.Option("--refresh", help="Reload every bibliography file before listing."),
    ] = False,
    rebuild: Annotated[
        bool,
        typer.Option(
            "--rebuild",
            help="Run the configured rebuild command, then reload every bibliography file.",
        ),
    ] = False,
    width: Annotated[
        int | None,
        typer.Option(
            "--width",
            min=0,
            help="Line width used for '*' columns (defaults to the terminal width).",
            rich_help_panel=DISPLAY_PANEL,
        ),
    ] = None,
) -> None:
    """List candidates, local entries first, prefixed by resource symbols."""
    state = get_cli_state()
    try:
        session = state.build_session(width=width)
        if rebuild:
            session.refresh(RefreshScope.BOTH, force_heavy_rebuild=True)
        candidates = session.candidates(force_rebuild=refresh and not rebuild)
    except BibsmithError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    print_issues(state, session.index.issues())
    for candidate in candidates:
        line = f"{session.index.symbol_prefix(candidate)} {candidate.visible}"
        typer.echo(line.rstrip())
