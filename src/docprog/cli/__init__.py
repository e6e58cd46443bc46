"""
CLI layer for docprog.

A Typer application whose commands each build one program, run it against
the configured Redis backend and render the result. All document semantics
live in :mod:`docprog.program`; this package only handles argument
parsing and terminal output.

Entry point::

    docprog --help
"""

from docprog.cli.app import app

__all__ = ["app"]
