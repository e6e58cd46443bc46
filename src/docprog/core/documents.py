"""
Document model value types.

Keys, raw content, version tokens and the CAS-validated document record.
All types are immutable and freely shareable between programs, backends
and callers.

Examples:
    >>> doc = DocumentValue(content='{"name": "ada"}', version=VersionToken(7))
    >>> doc.version.is_set
    True
    >>> Key("user::1") == Key("user::1")
    True

Tags:
    document-model, cas, value-types, docprog

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias


RawContent: TypeAlias = str
"""Serialized document payload (JSON text by convention). Opaque to the core."""


@dataclass(frozen=True, slots=True, order=True)
class Key:
    """Non-empty document identifier. Equality and ordering by value."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value:
            raise ValueError(f"Key must be a non-empty string, got {self.value!r}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True, order=True)
class VersionToken:
    """
    Opaque revision marker assigned by the backend on every successful write.

    ``VersionToken(0)`` (:data:`NO_VERSION`) means "no existing document" on
    read paths and "unconditional" on write paths.
    """

    value: int = 0

    @property
    def is_set(self) -> bool:
        return self.value != 0

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


NO_VERSION = VersionToken(0)


@dataclass(frozen=True, slots=True)
class DocumentValue:
    """Result of a successful get/create/update: content plus its version."""

    content: RawContent
    version: VersionToken

    def to_dict(self) -> dict[str, object]:
        return {"content": self.content, "version": self.version.value}


DocumentStore: TypeAlias = dict[Key, DocumentValue]
"""Mutable key → document map owned by the in-memory backend."""


def as_key(key: Key | str) -> Key:
    """Accept either a :class:`Key` or a plain string."""
    if isinstance(key, Key):
        return key
    return Key(key)


__all__ = [
    "RawContent",
    "Key",
    "VersionToken",
    "NO_VERSION",
    "DocumentValue",
    "DocumentStore",
    "as_key",
]
