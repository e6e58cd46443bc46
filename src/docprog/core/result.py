"""
Result envelope for explicit success/failure handling.

Every backend call, interpreter run and codec operation in docprog returns a
``Result[T]``: ``Ok[T]`` on success, ``Err[T]`` carrying a
:class:`~docprog.core.errors.DocProgError` on failure. Nothing is thrown
across the command boundary.

Manifesto:
    - **Explicit over implicit:** Failures are values the type checker sees
    - **Short-circuit composition:** ``map``/``flat_map`` skip ``Err``
    - **Recovery is opt-in:** ``or_else``/``map_err`` only act on ``Err``

Architecture:
    ::

        ┌───────────────────────────────────────────────┐
        │                  Result[T]                    │
        ├─────────────────┬─────────────────┬───────────┤
        │     Ok[T]       │     Err[T]      │ Utilities │
        ├─────────────────┼─────────────────┼───────────┤
        │ • value: T      │ • error: Exc    │ • try_    │
        │ • map()         │ • map_err()     │   result()│
        │ • flat_map()    │ • or_else()     │           │
        │ • unwrap()      │ • unwrap_or()   │           │
        └─────────────────┴─────────────────┴───────────┘

Examples:
    >>> from docprog.core.result import Ok, Err
    >>> Ok(10).map(lambda x: x * 2).unwrap()
    20
    >>> Err(ValueError("oops")).map(lambda x: x * 2).unwrap_or(0)
    0

    Pattern matching:

    >>> match Ok("doc"):
    ...     case Ok(value):
    ...         print(value)
    ...     case Err(error):
    ...         print(error)
    doc

Guardrails:
    ❌ DON'T: Call unwrap() without checking is_ok() first
    ✅ DO: Use pattern matching or unwrap_or()

    ❌ DON'T: Raise inside map/flat_map callbacks
    ✅ DO: Return Err from flat_map

Tags:
    result-pattern, error-handling, functional-programming, docprog

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar


T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Successful result containing a value.

    Examples:
        >>> Ok(42).is_ok()
        True
        >>> Ok(5).flat_map(lambda x: Ok(x + 1)).unwrap()
        6
    """

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """Transform the value if Ok."""
        return Ok(f(self.value))

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """Chain to another Result-returning function."""
        return f(self.value)

    def map_err(self, f: Callable[[Exception], Exception]) -> Result[T]:
        return self

    def or_else(self, f: Callable[[Exception], Result[T]]) -> Result[T]:
        return self

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """
    Failed result containing an error.

    ``map`` and ``flat_map`` return the same error unchanged, so an ``Err``
    flows through a chain of transformations untouched. ``or_else`` and
    ``map_err`` are the recovery points.

    Examples:
        >>> err = Err(ValueError("x"))
        >>> err.is_err()
        True
        >>> err.or_else(lambda e: Ok("fallback")).unwrap()
        'fallback'
    """

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the error. Use only when you're sure it's Ok."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        return default

    def map(self, f: Callable[[T], U]) -> Result[U]:
        return Err(self.error)

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        return Err(self.error)

    def map_err(self, f: Callable[[Exception], Exception]) -> Result[T]:
        """Transform the error."""
        return Err(f(self.error))

    def or_else(self, f: Callable[[Exception], Result[T]]) -> Result[T]:
        """Call f with error to try recovery."""
        return f(self.error)

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


def try_result(
    f: Callable[[], T],
    error_mapper: Callable[[Exception], Exception] | None = None,
) -> Result[T]:
    """
    Execute a zero-argument function and wrap its outcome in a Result.

    ``error_mapper`` converts the caught exception into a domain error.

    Examples:
        >>> import json
        >>> try_result(lambda: json.loads('{"a": 1}')).unwrap()
        {'a': 1}
        >>> try_result(lambda: json.loads("nope")).is_err()
        True
    """
    try:
        return Ok(f())
    except Exception as e:
        if error_mapper:
            return Err(error_mapper(e))
        return Err(e)


__all__ = [
    "Ok",
    "Err",
    "Result",
    "try_result",
]
