"""`bibsmith url`: show how a URL is recognised."""

from __future__ import annotations

from typing import Annotated

import typer

from bibsmith.core.exceptions import BibsmithError

from ..presenter import build_recognition_table
from ..state import emit_error, get_cli_state


def recognise_url(
    url: Annotated[str, typer.Argument(metavar="URL", help="URL to recognise.")],
) -> None:
    """Print the display string and canonical form of a URL."""
    state = get_cli_state()
    try:
        registry = state.config.url_registry()
        recognition = registry.recognize(url)
        target = registry.to_url(recognition.canonical)
    except BibsmithError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc
    state.console.print(build_recognition_table(url, recognition, target))
