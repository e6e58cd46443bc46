"""
CLI: ``docprog config`` -- configuration inspection.
"""

from __future__ import annotations

import typer

from docprog.cli.utils import console

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json, env"),
) -> None:
    """Show the resolved store configuration."""
    from docprog.core.settings import load_settings

    settings = load_settings()

    if format == "json":
        console.print_json(settings.model_dump_json())
        return

    if format == "env":
        for key, value in sorted(settings.model_dump().items()):
            console.print(f"DOCPROG_{key.upper()}={value}")
        return

    from rich.table import Table

    console.print(f"[bold]Store:[/bold] {settings.url} (bucket {settings.bucket_name})")
    table = Table()
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in settings.model_dump().items():
        table.add_row(key, str(value))
    console.print(table)


@app.command("files")
def show_env_files() -> None:
    """Show which env files are layered, in load order."""
    from docprog.core.settings import BUNDLED_ENV_FILE, LOCAL_ENV_FILE

    for path in (BUNDLED_ENV_FILE, LOCAL_ENV_FILE.resolve()):
        mark = "[green]✓[/green]" if path.exists() else "[dim]-[/dim]"
        console.print(f"  {mark} {path}")
