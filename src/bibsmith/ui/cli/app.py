"""Typer application wiring for the bibsmith CLI."""

from __future__ import annotations

import typer

from bibsmith.core.exceptions import exception_hint

from ._options import (
    BibliographyOption,
    CitedOption,
    ConfigOption,
    DebugOption,
    LocalOption,
    VerboseOption,
)
from .commands import (
    list_candidates,
    list_resources,
    open_resources,
    recognise_url,
    show_entry,
)
from .state import debug_enabled, emit_error, get_cli_state, set_cli_state


app = typer.Typer(
    help="Search bibliography entries and open their files, notes and links.",
    context_settings={"help_option_names": ["--help"]},
    no_args_is_help=True,
)


@app.callback()
def configure(
    ctx: typer.Context,
    config: ConfigOption = None,
    bib: BibliographyOption = None,
    local: LocalOption = None,
    cited: CitedOption = None,
    verbose: VerboseOption = 0,
    debug: DebugOption = False,
) -> None:
    """Store the global options shared by every command."""
    set_cli_state(
        ctx=ctx,
        verbosity=verbose,
        debug=debug,
        config_path=config,
        bibliography=bib,
        local_sources=local,
        cited_keys=cited,
    )


app.command("list")(list_candidates)
app.command("show")(show_entry)
app.command("resources")(list_resources)
app.command("open")(open_resources)
app.command("url")(recognise_url)


def main() -> None:
    """Entry point compatible with console scripts."""
    try:
        app()
    except typer.Exit:
        raise
    except KeyboardInterrupt as exc:
        if debug_enabled():
            raise
        emit_error("Operation cancelled by user.", exception=exc)
        raise typer.Exit(code=1) from exc
    except SystemExit:
        raise
    except Exception as exc:  # pragma: no cover - top-level reporting
        state = get_cli_state()
        if state.show_tracebacks:
            from rich.traceback import Traceback

            tb = Traceback.from_exception(
                type(exc),
                exc,
                exc.__traceback__,
                show_locals=state.verbosity >= 2,
            )
            state.err_console.print(tb)
        else:
            emit_error(exception_hint(exc) or type(exc).__name__, exception=exc)
        raise typer.Exit(code=1) from exc


__all__ = ["app", "main"]
