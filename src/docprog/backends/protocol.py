"""
Backend contract: the capabilities a storage backend must provide.

The interpreter only ever talks to this protocol. Every method is a
coroutine returning a :data:`~docprog.core.result.Result`; backends must not
let driver exceptions escape.

Implementations:
    - :class:`~docprog.backends.memory.InMemoryBackend`, dict-backed, for
      tests and prototyping
    - :class:`~docprog.backends.redis.RedisBackend`, network store

Tags:
    backend, protocol, structural-typing, docprog

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from docprog.core.documents import DocumentValue, Key, RawContent, VersionToken
from docprog.core.result import Result


@runtime_checkable
class Backend(Protocol):
    """Single-document and counter operations plus connectivity state."""

    name: str

    def is_connected(self) -> bool:
        """``True`` if commands may be dispatched to this backend."""
        ...

    async def get(self, key: Key) -> Result[DocumentValue]:
        """Fetch a document. ``Err(NotFoundError)`` if absent."""
        ...

    async def create(self, key: Key, content: RawContent) -> Result[DocumentValue]:
        """Create a document. ``Err(AlreadyExistsError)`` if present."""
        ...

    async def update(
        self, key: Key, content: RawContent, version: VersionToken
    ) -> Result[DocumentValue]:
        """
        Replace a document.

        ``Err(NotFoundError)`` if absent, ``Err(VersionConflictError)`` if
        ``version`` is set and differs from the stored token.
        """
        ...

    async def remove(self, key: Key) -> Result[None]:
        """Delete a document. ``Err(NotFoundError)`` if absent."""
        ...

    async def get_counter(self, key: Key) -> Result[int]:
        """Read a counter. ``Err(NotFoundError)`` if absent."""
        ...

    async def increment_counter(self, key: Key, delta: int) -> Result[int]:
        """Add ``delta`` atomically; an absent counter is created as ``delta``."""
        ...


@runtime_checkable
class ConnectableBackend(Backend, Protocol):
    """A backend with an explicit session lifecycle."""

    def connect(self) -> Result[None]:
        ...

    def disconnect(self) -> None:
        ...


__all__ = ["Backend", "ConnectableBackend"]
