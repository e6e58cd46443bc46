"""
Shared pytest fixtures for docprog tests.

- Settings isolation: ``DOCPROG_*`` variables are stripped and the settings
  cache is cleared around every test
- Logging isolation: structlog is reset after every test so a configured
  renderer never outlives the stream it was bound to
- Backend fixtures: a fresh in-memory backend and an interpreter over it
"""

from __future__ import annotations

import os

import pytest
import structlog

from docprog.backends.memory import InMemoryBackend
from docprog.core.errors import DecodeError
from docprog.core.result import Err, Ok
from docprog.core.settings import clear_settings_cache
from docprog.program import program as p
from docprog.program.interpreter import Interpreter


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    for name in list(os.environ):
        if name.startswith("DOCPROG_"):
            monkeypatch.delenv(name)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def interpreter(backend) -> Interpreter:
    return Interpreter(backend)


@pytest.fixture
def make_item():
    """Build batch items: ``make_item("k")`` or ``make_item(error=exc)``."""

    def _make(key: str | None = None, content: str = "{}", *, error: Exception | None = None):
        if error is not None:
            return Err(error)
        return Ok((p.pure(key), content))

    return _make


@pytest.fixture
def bad_item_error() -> DecodeError:
    return DecodeError("unparseable record")
