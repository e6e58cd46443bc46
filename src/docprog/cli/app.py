"""
Root Typer application for the docprog CLI.
"""

from __future__ import annotations

import typer
from pydantic import ValidationError
from typer import Typer

from docprog.cli.utils import console, err_console, open_backend

app = Typer(
    name="docprog",
    help="docprog -- run document-store programs against a Redis bucket.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from docprog import __version__

        typer.echo(f"docprog {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging."),
) -> None:
    """docprog CLI -- documents, counters and configuration."""
    from docprog.core.logging import configure_logging
    from docprog.core.settings import load_settings

    try:
        settings = load_settings()
    except ValidationError as e:
        err_console.print(f"[red]Configuration Error:[/red] {e}")
        raise typer.Exit(1) from e

    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_format=settings.log_format == "json",
    )


@app.command("ping")
def ping() -> None:
    """Check that the configured store is reachable."""
    backend = open_backend()
    try:
        console.print(f"[green]✓[/green] connected to {backend.settings.url}")
    finally:
        backend.disconnect()


# ── Sub-command registration ─────────────────────────────────────────────

from docprog.cli.config import app as config_app  # noqa: E402
from docprog.cli.counters import app as counter_app  # noqa: E402
from docprog.cli.docs import app as doc_app  # noqa: E402

app.add_typer(config_app, name="config", help="Configuration inspection.")
app.add_typer(doc_app, name="doc", help="Document commands.")
app.add_typer(counter_app, name="counter", help="Counter commands.")
