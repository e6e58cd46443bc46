"""
In-memory backend for tests and prototyping.

Implements the full backend contract over a plain ``dict[Key,
DocumentValue]`` supplied by the caller (or a fresh one). CAS and counter
semantics mirror the network backend exactly; operations complete
synchronously but keep the coroutine interface.

Version tokens are drawn from a sequence that starts one above the highest
token the session has handed out. :meth:`InMemoryBackend.snapshot` returns a
:class:`VersionedStore` carrying that high-water mark, so a session continued
from it never reissues a token, even for a key that was removed and created
again. Replaying the same program against the same starting map always
yields the same tokens.

Example::

    backend = InMemoryBackend()
    result, store = run_with_state(p.create("k", "{}"), {})
    result, store = run_with_state(p.get("k"), store)   # continue the session

Tags:
    backend, in-memory, testing, deterministic, docprog
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, TypeVar

from docprog.core.documents import (
    DocumentStore,
    DocumentValue,
    Key,
    RawContent,
    VersionToken,
)
from docprog.core.errors import (
    AlreadyExistsError,
    DecodeError,
    NotFoundError,
    VersionConflictError,
)
from docprog.core.result import Err, Ok, Result

if TYPE_CHECKING:
    from docprog.program.program import Program


T = TypeVar("T")

# Same shape the Redis increment script accepts: ASCII digits only.
_COUNTER_TEXT = re.compile(r"\s*[-+]?[0-9]+\s*", re.ASCII)


def parse_counter(key: Key, content: RawContent) -> Result[int]:
    """Interpret stored content as a counter value."""
    if isinstance(content, str) and _COUNTER_TEXT.fullmatch(content):
        return Ok(int(content))
    error = DecodeError(f"Counter {key} holds non-numeric content")
    return Err(error.with_context(key=str(key)))


class VersionedStore(dict):
    """
    Document map plus the highest version token issued against it.

    Compares equal to a plain ``dict`` with the same documents.
    """

    def __init__(self, documents: DocumentStore | None = None, last_version: int = 0):
        super().__init__(documents or {})
        self.last_version = last_version

    def copy(self) -> VersionedStore:
        return VersionedStore(self, self.last_version)


def _high_water(store: DocumentStore) -> int:
    highest = max((doc.version.value for doc in store.values()), default=0)
    return max(highest, getattr(store, "last_version", 0))


class InMemoryBackend:
    """
    Dict-backed backend. Always connected.

    Attributes:
        name: ``"memory"``
    """

    name = "memory"

    def __init__(self, store: DocumentStore | None = None):
        self._store: DocumentStore = store if store is not None else {}
        self._last_version = _high_water(self._store)

    # ── Connectivity ─────────────────────────────────────────────────

    def is_connected(self) -> bool:
        return True

    def connect(self) -> Result[None]:
        return Ok(None)

    def disconnect(self) -> None:
        return None

    # ── Documents ────────────────────────────────────────────────────

    def _next_version(self) -> VersionToken:
        self._last_version += 1
        if isinstance(self._store, VersionedStore):
            self._store.last_version = self._last_version
        return VersionToken(self._last_version)

    def _write(self, key: Key, content: RawContent) -> DocumentValue:
        doc = DocumentValue(content=content, version=self._next_version())
        self._store[key] = doc
        return doc

    async def get(self, key: Key) -> Result[DocumentValue]:
        doc = self._store.get(key)
        if doc is None:
            return Err(NotFoundError.for_key(str(key), "get"))
        return Ok(doc)

    async def create(self, key: Key, content: RawContent) -> Result[DocumentValue]:
        if key in self._store:
            return Err(AlreadyExistsError.for_key(str(key)))
        return Ok(self._write(key, content))

    async def update(
        self, key: Key, content: RawContent, version: VersionToken
    ) -> Result[DocumentValue]:
        current = self._store.get(key)
        if current is None:
            return Err(NotFoundError.for_key(str(key), "update"))
        if version.is_set and version != current.version:
            return Err(
                VersionConflictError(
                    f"Version mismatch for {key}",
                    expected=version.value,
                    actual=current.version.value,
                ).with_context(key=str(key), command="update")
            )
        return Ok(self._write(key, content))

    async def remove(self, key: Key) -> Result[None]:
        if self._store.pop(key, None) is None:
            return Err(NotFoundError.for_key(str(key), "remove"))
        return Ok(None)

    # ── Counters ─────────────────────────────────────────────────────

    async def get_counter(self, key: Key) -> Result[int]:
        doc = self._store.get(key)
        if doc is None:
            return Err(NotFoundError.for_key(str(key), "get_counter"))
        return parse_counter(key, doc.content)

    async def increment_counter(self, key: Key, delta: int) -> Result[int]:
        doc = self._store.get(key)
        if doc is None:
            value = delta
        else:
            match parse_counter(key, doc.content):
                case Err(error):
                    return Err(error)
                case Ok(current):
                    value = current + delta
        self._write(key, str(value))
        return Ok(value)

    # ── Inspection ───────────────────────────────────────────────────

    def snapshot(self) -> VersionedStore:
        """Copy of the current map, with the version high-water mark."""
        return VersionedStore(self._store, self._last_version)

    def size(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"InMemoryBackend(documents={len(self._store)})"


# ── State threading helpers ──────────────────────────────────────────────


async def execute_with_state(
    program: Program[T], store: DocumentStore | None = None
) -> tuple[Result[T], DocumentStore]:
    """
    Run ``program`` against a copy of ``store`` and return the result
    together with the resulting map. The input map is never mutated.
    """
    from docprog.program.interpreter import Interpreter

    start = store if store is not None else {}
    backend = InMemoryBackend(VersionedStore(start, _high_water(start)))
    result = await Interpreter(backend).execute(program)
    return result, backend.snapshot()


def run_with_state(
    program: Program[T], store: DocumentStore | None = None
) -> tuple[Result[T], DocumentStore]:
    """Blocking form of :func:`execute_with_state`."""
    from docprog.program.interpreter import run_blocking

    return run_blocking(execute_with_state(program, store))


__all__ = [
    "InMemoryBackend",
    "VersionedStore",
    "parse_counter",
    "execute_with_state",
    "run_with_state",
]
