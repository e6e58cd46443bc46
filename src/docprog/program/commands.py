"""
Command algebra: the closed set of primitive database actions.

A command is a frozen description of one operation. It carries only the
data needed to perform it and never holds a backend reference, so commands
can be built, stored and compared freely. The interpreter maps each command
class to a backend call through an explicit dispatch table.

Architecture:
    ::

        Command
          ├── Get(key)                          -> DocumentValue
          ├── Create(key, content)              -> DocumentValue
          ├── Update(key, content, version)     -> DocumentValue
          ├── Remove(key)                       -> None
          ├── GetCounter(key)                   -> int
          ├── IncrementCounter(key, delta)      -> int
          └── BatchCreate(items, should_continue) -> BatchOutcome

Guardrails:
    ❌ DON'T: Add a command without a dispatch-table entry
    ✅ DO: Add the command to ``Command`` and the interpreter table together

Tags:
    command-pattern, algebra, docprog

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, TypeAlias

from docprog.core.documents import Key, NO_VERSION, RawContent, VersionToken

if TYPE_CHECKING:
    from docprog.core.result import Result


@dataclass(frozen=True, slots=True)
class Get:
    """Fetch a document."""

    tag: ClassVar[str] = "get"
    key: Key


@dataclass(frozen=True, slots=True)
class Create:
    """Create a document; fails if the key is already present."""

    tag: ClassVar[str] = "create"
    key: Key
    content: RawContent


@dataclass(frozen=True, slots=True)
class Update:
    """Replace a document if its stored version still equals ``version``."""

    tag: ClassVar[str] = "update"
    key: Key
    content: RawContent
    version: VersionToken = NO_VERSION


@dataclass(frozen=True, slots=True)
class Remove:
    """Delete a document."""

    tag: ClassVar[str] = "remove"
    key: Key


@dataclass(frozen=True, slots=True)
class GetCounter:
    """Read a counter; absent counters are not treated as zero."""

    tag: ClassVar[str] = "get_counter"
    key: Key


@dataclass(frozen=True, slots=True)
class IncrementCounter:
    """Atomically add ``delta``; an absent counter starts at ``delta``."""

    tag: ClassVar[str] = "increment_counter"
    key: Key
    delta: int = 1


@dataclass(frozen=True, slots=True, eq=False)
class BatchCreate:
    """
    Create many documents from a (possibly lazy) sequence of items.

    Each item is ``Result[(Program[Key], RawContent)]``. A lazy iterator is
    consumed by the first execution, so a program holding one is not
    reusable.
    """

    tag: ClassVar[str] = "batch_create"
    items: Iterable[Result[tuple[Any, RawContent]]]
    should_continue: Callable[[Exception], bool] = field(default=lambda error: True)


Command: TypeAlias = Get | Create | Update | Remove | GetCounter | IncrementCounter | BatchCreate

def describe(command: Command) -> dict[str, Any]:
    """Log-friendly summary of a command (never includes document content)."""
    summary: dict[str, Any] = {"command": command.tag}
    key = getattr(command, "key", None)
    if key is not None:
        summary["key"] = str(key)
    if isinstance(command, Update):
        summary["version"] = command.version.value
    if isinstance(command, IncrementCounter):
        summary["delta"] = command.delta
    return summary


__all__ = [
    "Get",
    "Create",
    "Update",
    "Remove",
    "GetCounter",
    "IncrementCounter",
    "BatchCreate",
    "Command",
    "describe",
]
