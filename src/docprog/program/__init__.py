"""
Command algebra, program composition, interpretation and batch creation.

    from docprog.program import program as p

    p.get("k").and_then(lambda doc: p.update("k", doc.content, doc.version))
"""

from docprog.program.commands import (
    BatchCreate,
    Command,
    Create,
    Get,
    GetCounter,
    IncrementCounter,
    Remove,
    Update,
)
from docprog.program.program import Program
from docprog.program.batch import (
    BatchOutcome,
    continue_always,
    run_batch,
    stop_on_first_error,
)
from docprog.program.interpreter import Interpreter, execute, run, run_blocking

__all__ = [
    "BatchCreate",
    "BatchOutcome",
    "Command",
    "Create",
    "Get",
    "GetCounter",
    "IncrementCounter",
    "Interpreter",
    "Program",
    "Remove",
    "Update",
    "continue_always",
    "execute",
    "run",
    "run_batch",
    "run_blocking",
    "stop_on_first_error",
]
