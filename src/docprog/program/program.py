"""
Programs: composable, not-yet-executed descriptions of database work.

A :class:`Program` is a root node (a command, or an already-known value or
error) followed by a chain of stages. Composition only appends stages to an
immutable tuple; nothing touches a backend until the program is handed to
an :class:`~docprog.program.interpreter.Interpreter`.

Manifesto:
    - **Description, not execution:** Building a program never performs I/O
    - **Values all the way down:** Programs can be stored, reused and
      composed like any other immutable value
    - **Sequential binding:** ``and_then`` lets one result choose the next
      program; stages run strictly in declared order
    - **Failures short-circuit:** ``map``/``and_then`` stages are skipped
      after a failure; ``map_err``/``or_else`` are the only recovery points

Architecture:
    ::

        Program
        ├── root:   Command | Pure(value) | Fail(error)
        └── stages: (Stage, Stage, ...)       # continuation chain
                     │
                     ├── MAP       f(value) -> value
                     ├── AND_THEN  f(value) -> Program
                     ├── MAP_ERR   f(error) -> error
                     └── OR_ELSE   f(error) -> Program

Examples:
    Read-modify-write with an explicit version check:

    >>> from docprog.program import program as p
    >>> rename = p.get("user::1").and_then(
    ...     lambda doc: p.update("user::1", doc.content.upper(), doc.version)
    ... )

    Counters:

    >>> next_id = p.increment_counter("ids::user", 1).map(lambda n: f"user::{n}")

Guardrails:
    ❌ DON'T: Perform I/O inside stage functions
    ✅ DO: Return another Program from ``and_then`` and let the
       interpreter run it

    ❌ DON'T: Raise inside stage functions to signal failure
    ✅ DO: Return ``fail(error)`` from ``and_then``

Tags:
    free-program, continuation, composition, docprog

Doc-Types:
    - API Reference
    - Program Composition Guide
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from docprog.core.documents import (
    DocumentValue,
    Key,
    NO_VERSION,
    RawContent,
    VersionToken,
    as_key,
)
from docprog.core.result import Err, Ok, Result
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


T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Pure:
    """Root node for a value known before execution."""

    value: Any


@dataclass(frozen=True, slots=True)
class Fail:
    """Root node for an error known before execution."""

    error: Exception


class StageKind(str, Enum):
    MAP = "map"
    AND_THEN = "and_then"
    MAP_ERR = "map_err"
    OR_ELSE = "or_else"

    @property
    def on_success(self) -> bool:
        return self in (StageKind.MAP, StageKind.AND_THEN)


@dataclass(frozen=True, slots=True)
class Stage:
    kind: StageKind
    fn: Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class Program(Generic[T]):
    """
    An immutable program producing ``Result[T]`` when interpreted.

    Composition methods return new programs; the receiver is never
    modified, so a program may be shared between several compositions.
    """

    root: Command | Pure | Fail
    stages: tuple[Stage, ...] = ()

    def _with(self, kind: StageKind, fn: Callable[[Any], Any]) -> Program[Any]:
        return Program(self.root, self.stages + (Stage(kind, fn),))

    def map(self, f: Callable[[T], U]) -> Program[U]:
        """Transform the result value."""
        return self._with(StageKind.MAP, f)

    def and_then(self, f: Callable[[T], Program[U]]) -> Program[U]:
        """Choose the next program from this program's result."""
        return self._with(StageKind.AND_THEN, f)

    def flat_map(self, f: Callable[[T], Program[U]]) -> Program[U]:
        """Alias for and_then."""
        return self.and_then(f)

    def then(self, other: Program[U]) -> Program[U]:
        """Run ``other`` after this program succeeds, discarding this result."""
        return self.and_then(lambda _: other)

    def map_err(self, f: Callable[[Exception], Exception]) -> Program[T]:
        """Transform a failure."""
        return self._with(StageKind.MAP_ERR, f)

    def or_else(self, f: Callable[[Exception], Program[T]]) -> Program[T]:
        """Recover from a failure by running another program."""
        return self._with(StageKind.OR_ELSE, f)

    @property
    def command(self) -> Command | None:
        """The root command, or ``None`` for pure/fail programs."""
        if isinstance(self.root, (Pure, Fail)):
            return None
        return self.root

    def __repr__(self) -> str:
        stages = ", ".join(stage.kind.value for stage in self.stages)
        return f"Program({self.root!r}{', ' + stages if stages else ''})"


# =============================================================================
# CONSTRUCTORS
# =============================================================================


def pure(value: T) -> Program[T]:
    """A program that succeeds with ``value`` without touching the backend."""
    return Program(Pure(value))


def fail(error: Exception) -> Program[Any]:
    """A program that fails with ``error`` without touching the backend."""
    return Program(Fail(error))


def from_result(result: Result[T]) -> Program[T]:
    """Lift an already-computed Result into a program."""
    match result:
        case Ok(value):
            return pure(value)
        case Err(error):
            return fail(error)
    raise TypeError(f"Expected Ok or Err, got {type(result).__name__}")


def get(key: Key | str) -> Program[DocumentValue]:
    return Program(Get(as_key(key)))


def create(key: Key | str, content: RawContent) -> Program[DocumentValue]:
    return Program(Create(as_key(key), content))


def update(
    key: Key | str,
    content: RawContent,
    version: VersionToken = NO_VERSION,
) -> Program[DocumentValue]:
    return Program(Update(as_key(key), content, version))


def remove(key: Key | str) -> Program[None]:
    return Program(Remove(as_key(key)))


def get_counter(key: Key | str) -> Program[int]:
    return Program(GetCounter(as_key(key)))


def increment_counter(key: Key | str, delta: int = 1) -> Program[int]:
    return Program(IncrementCounter(as_key(key), delta))


def batch_create(
    items: Iterable[Result[tuple[Program[Key], RawContent]]],
    should_continue: Callable[[Exception], bool] = lambda error: True,
) -> Program[Any]:
    """Program form of :func:`docprog.program.batch.run_batch`."""
    return Program(BatchCreate(items, should_continue))


def sequence(programs: Iterable[Program[T]]) -> Program[list[T]]:
    """
    Combine programs into one that runs them in order and collects results.

    Stops at the first failure.
    """
    combined: Program[list[T]] = pure([])
    for item in programs:
        combined = combined.and_then(
            lambda acc, item=item: item.map(lambda value, acc=acc: [*acc, value])
        )
    return combined


__all__ = [
    "Program",
    "Pure",
    "Fail",
    "Stage",
    "StageKind",
    "pure",
    "fail",
    "from_result",
    "get",
    "create",
    "update",
    "remove",
    "get_counter",
    "increment_counter",
    "batch_create",
    "sequence",
]
