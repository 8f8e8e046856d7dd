"""`bibsmith show`: display one record."""

from __future__ import annotations

from typing import Annotated

import typer

from bibsmith.core.exceptions import BibsmithError

from ..presenter import build_reference_panel
from ..state import emit_error, get_cli_state


def show_entry(
    key: Annotated[str, typer.Argument(metavar="KEY", help="Citation key to display.")],
) -> None:
    """Show every field of one bibliography entry."""
    state = get_cli_state()
    try:
        session = state.build_session()
        record = session.require_entry(key)
    except BibsmithError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    preview = session.index.format_preview(key)
    state.console.print(build_reference_panel(key, record, preview))
