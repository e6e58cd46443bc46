"""
CLI: ``docprog counter`` -- atomic counters.
"""

from __future__ import annotations

import typer

from docprog.cli.utils import output_result, run_program
from docprog.program import program as p

app = typer.Typer(no_args_is_help=True)


@app.command("get")
def get_counter(
    key: str = typer.Argument(..., help="Counter key"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Read a counter."""
    output_result(run_program(p.get_counter(key)), as_json=as_json, title=key)


@app.command("incr")
def increment_counter(
    key: str = typer.Argument(..., help="Counter key"),
    by: int = typer.Option(1, "--by", "-d", help="Delta (may be negative)"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Add to a counter, creating it with the delta if absent."""
    output_result(run_program(p.increment_counter(key, by)), as_json=as_json, title=key)
