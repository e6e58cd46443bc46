"""
Typed document layer.

The core treats content as an opaque string. A :class:`DocumentCodec`
supplies the mapping between an application type and that string, plus
the key a value is stored under. :class:`JsonCodec` is the stock codec for
pydantic models.

The ``typed_*`` helpers build ordinary programs, so typed and raw commands
compose freely.

Examples:
    >>> from pydantic import BaseModel
    >>> class User(BaseModel):
    ...     id: int
    ...     name: str
    >>> users = JsonCodec(User, key=lambda u: f"user::{u.id}")
    >>> prog = typed_create(users, User(id=1, name="ada"))
    >>> prog.command.key.value
    'user::1'

Tags:
    codec, serialization, pydantic, typed-documents, docprog
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from docprog.core.documents import (
    NO_VERSION,
    DocumentValue,
    Key,
    RawContent,
    VersionToken,
    as_key,
)
from docprog.core.errors import DecodeError
from docprog.core.result import Err, Ok, Result, try_result
from docprog.program import program as p
from docprog.program.batch import BatchItem
from docprog.program.program import Program


T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class DocumentCodec(Protocol[T]):
    """Maps values of ``T`` to stored content and keys."""

    def serialize(self, value: T) -> RawContent:
        ...

    def deserialize(self, content: RawContent) -> Result[T]:
        ...

    def key_for(self, value: T) -> Key:
        ...


class JsonCodec(Generic[M]):
    """
    JSON codec for a pydantic model class.

    Parameters
    ----------
    model:
        The pydantic model type.
    key:
        Derives the document key from a model instance.
    """

    def __init__(self, model: type[M], key: Callable[[M], Key | str]) -> None:
        self.model = model
        self._key = key

    def serialize(self, value: M) -> RawContent:
        return value.model_dump_json()

    def deserialize(self, content: RawContent) -> Result[M]:
        try:
            return Ok(self.model.model_validate_json(content))
        except ValidationError as exc:
            return Err(
                DecodeError(
                    f"Content is not a valid {self.model.__name__}: {exc.error_count()} error(s)",
                    cause=exc,
                ).with_context(model=self.model.__name__)
            )

    def key_for(self, value: M) -> Key:
        return as_key(self._key(value))

    def __repr__(self) -> str:
        return f"JsonCodec({self.model.__name__})"


@dataclass(frozen=True, slots=True)
class Typed(Generic[T]):
    """A decoded document together with its version token."""

    value: T
    version: VersionToken


def _decode(codec: DocumentCodec[T], doc: DocumentValue) -> Program[Typed[T]]:
    return p.from_result(codec.deserialize(doc.content).map(lambda v: Typed(v, doc.version)))


def typed_get(codec: DocumentCodec[T], key: Key | str) -> Program[Typed[T]]:
    """Fetch and decode the document at ``key``."""
    return p.get(key).and_then(lambda doc: _decode(codec, doc))


def typed_create(codec: DocumentCodec[T], value: T) -> Program[Typed[T]]:
    """Store ``value`` under its derived key. Fails if the key is taken."""
    return p.create(codec.key_for(value), codec.serialize(value)).map(
        lambda doc: Typed(value, doc.version)
    )


def typed_update(
    codec: DocumentCodec[T],
    value: T,
    version: VersionToken = NO_VERSION,
) -> Program[Typed[T]]:
    """Replace the stored value, checking ``version`` when it is set."""
    return p.update(codec.key_for(value), codec.serialize(value), version).map(
        lambda doc: Typed(value, doc.version)
    )


def typed_modify(
    codec: DocumentCodec[T],
    key: Key | str,
    change: Callable[[T], T],
) -> Program[Typed[T]]:
    """
    Read-modify-write under CAS.

    Fails with ``VersionConflictError`` if the document changed between the
    read and the write; retrying is left to the caller.
    """
    return typed_get(codec, key).and_then(
        lambda current: typed_update(codec, change(current.value), current.version)
    )


def batch_items(codec: DocumentCodec[T], values: Iterable[T]) -> Iterable[BatchItem]:
    """
    Lazily turn values into batch items.

    A value whose key or content cannot be derived becomes an ``Err`` item,
    so the batch records it as a failure at that index.
    """
    for value in values:
        yield try_result(
            lambda value=value: (p.pure(codec.key_for(value)), codec.serialize(value)),
            lambda exc: DecodeError(f"Cannot encode batch item: {exc}", cause=exc),
        )


__all__ = [
    "DocumentCodec",
    "JsonCodec",
    "Typed",
    "typed_get",
    "typed_create",
    "typed_update",
    "typed_modify",
    "batch_items",
]
