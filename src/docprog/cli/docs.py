"""
CLI: ``docprog doc`` -- single-document commands and bulk import.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer

from docprog.cli.utils import output_result, run_program
from docprog.core.documents import VersionToken
from docprog.core.errors import DecodeError
from docprog.core.result import Err, Ok, Result
from docprog.program import program as p
from docprog.program.batch import continue_always, stop_on_first_error

app = typer.Typer(no_args_is_help=True)


@app.command("get")
def get_document(
    key: str = typer.Argument(..., help="Document key"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Fetch a document and its version token."""
    output_result(run_program(p.get(key)), as_json=as_json, title=key)


@app.command("create")
def create_document(
    key: str = typer.Argument(..., help="Document key"),
    content: str = typer.Argument(..., help="Raw document content"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Create a document. Fails if the key already exists."""
    output_result(run_program(p.create(key, content)), as_json=as_json, title=key)


@app.command("update")
def update_document(
    key: str = typer.Argument(..., help="Document key"),
    content: str = typer.Argument(..., help="Raw document content"),
    version: int = typer.Option(0, "--version", "-v", help="Expected version token (0 = unconditional)"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Replace a document, checking the version token when one is given."""
    program = p.update(key, content, VersionToken(version))
    output_result(run_program(program), as_json=as_json, title=key)


@app.command("remove")
def remove_document(
    key: str = typer.Argument(..., help="Document key"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Delete a document."""
    output_result(
        run_program(p.remove(key).map(lambda _: {"removed": key})),
        as_json=as_json,
    )


def _line_item(line: str, key_field: str) -> Result[tuple[Any, str]]:
    try:
        record = json.loads(line)
        key = str(record[key_field])
    except (ValueError, KeyError, TypeError) as exc:
        return Err(DecodeError(f"Bad record: {exc}", cause=exc))
    return Ok((p.pure(key), line.strip()))


@app.command("import")
def import_documents(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON-lines file"),
    key_field: str = typer.Option("id", "--key-field", "-k", help="Field holding the document key"),
    stop_on_error: bool = typer.Option(False, "--stop-on-error", help="Stop at the first failure"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Create one document per line of a JSON-lines file."""
    policy = stop_on_first_error if stop_on_error else continue_always
    with path.open(encoding="utf-8") as fh:
        items = (_line_item(line, key_field) for line in fh if line.strip())
        result = run_program(p.batch_create(items, policy))
    output_result(result, as_json=as_json, title=str(path))
    outcome = result.unwrap()
    if not outcome.is_success:
        raise typer.Exit(code=1)
