"""
CLI utility helpers: backend lifecycle and result rendering.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from docprog.backends.redis import RedisBackend
from docprog.core.errors import DocProgError
from docprog.core.result import Err, Ok, Result
from docprog.core.settings import load_settings
from docprog.program.interpreter import Interpreter
from docprog.program.program import Program

console = Console()
err_console = Console(stderr=True)


# ── Backend helpers ──────────────────────────────────────────────────────


def open_backend() -> Any:
    """Connect a :class:`RedisBackend` from the loaded settings.

    Exits with status 1 if the store is unreachable.
    """
    backend = RedisBackend(load_settings())
    match backend.connect():
        case Err(error):
            _print_error(error)
            raise typer.Exit(code=1)
    return backend


def run_program(program: Program[Any]) -> Result[Any]:
    """Run one program on a fresh connection, then disconnect."""
    backend = open_backend()
    try:
        return Interpreter(backend).run(program)
    finally:
        backend.disconnect()


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert a result value to a plain dict."""
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": obj}


def output_result(
    result: Result[Any],
    *,
    as_json: bool = False,
    title: str = "",
) -> None:
    """Render a ``Result`` to the terminal; ``Err`` exits with status 1."""
    match result:
        case Err(error):
            if as_json:
                payload = error.to_dict() if isinstance(error, DocProgError) else {"message": str(error)}
                console.print_json(json.dumps({"ok": False, "error": payload}, default=str))
            else:
                _print_error(error)
            raise typer.Exit(code=1)
        case Ok(value):
            data = _to_dict(value)
            if as_json:
                console.print_json(json.dumps({"ok": True, **data}, default=str))
                return
            _print_dict(data, title=title)


# ── Private helpers ──────────────────────────────────────────────────────


def _print_error(error: Exception) -> None:
    if isinstance(error, DocProgError):
        err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {error.message}")
    else:
        err_console.print(f"[bold red]Error[/bold red]: {error}")


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value rows."""
    table = Table(title=title or None, show_header=False, pad_edge=False)
    table.add_column("field", style="bold")
    table.add_column("value", overflow="fold")
    for k, v in data.items():
        table.add_row(str(k), "" if v is None else str(v))
    console.print(table)
