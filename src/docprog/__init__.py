"""
docprog - composable programs over a CAS document store.

Build a :class:`~docprog.program.program.Program` from document and counter
commands, compose it with ``map``/``and_then``/``or_else``, then hand it to
an :class:`~docprog.program.interpreter.Interpreter` bound to a backend.

Architecture::

    core/          Value types, Result, errors, logging, settings, codecs
    program/       Command algebra, Program composition, interpreter, batch
    backends/      Backend protocol, in-memory and Redis implementations
    cli/           Typer command-line front end

Example::

    from docprog import InMemoryBackend, Interpreter, program as p

    interpreter = Interpreter(InMemoryBackend())
    interpreter.run(p.increment_counter("hits", 5))   # Ok(value=5)
"""

__version__ = "0.1.0"

from docprog.backends import InMemoryBackend, RedisBackend
from docprog.core.documents import NO_VERSION, DocumentValue, Key, VersionToken
from docprog.core.result import Err, Ok, Result
from docprog.program import program
from docprog.program.batch import BatchOutcome, run_batch
from docprog.program.interpreter import Interpreter, execute, run
from docprog.program.program import Program

__all__ = [
    "__version__",
    "BatchOutcome",
    "DocumentValue",
    "Err",
    "InMemoryBackend",
    "Interpreter",
    "Key",
    "NO_VERSION",
    "Ok",
    "Program",
    "RedisBackend",
    "Result",
    "VersionToken",
    "execute",
    "program",
    "run",
    "run_batch",
]
