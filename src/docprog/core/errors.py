"""
Structured error types for docprog.

Every command-level failure in docprog is a value: backends and the
interpreter return ``Err(<DocProgError>)`` instead of raising. This module
defines the single flat taxonomy those values are drawn from, so callers can
``match`` on the error class rather than unwrapping nested disjunctions.

Manifesto:
    - **One flat taxonomy:** Seven error kinds cover every failure a program
      can observe
    - **Errors as data:** Each error carries category, retryability and
      context for logging
    - **Expected vs fatal:** ``VersionConflictError`` is retryable and
      expected; ``BackendFailure`` is opaque and not
    - **Chaining:** Driver exceptions are kept as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        DocProgError                              │
        │        (category, retryable, context, cause)                     │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  NotConnectedError   NotFoundError      AlreadyExistsError       │
        │  (CONNECTION)        (NOT_FOUND)        (CONFLICT)               │
        │                                                                  │
        │  VersionConflictError  DecodeError      BackendFailure           │
        │  (CONFLICT, retry)     (DECODE)         (BACKEND)                │
        │                                                                  │
        │  BatchItemFailure(index, cause)                                  │
        │  (BATCH)                                                         │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = NotFoundError.for_key("user::1")
    >>> error.category
    <ErrorCategory.NOT_FOUND: 'NOT_FOUND'>
    >>> error.context.key
    'user::1'

    >>> VersionConflictError("stale").retryable
    True

Guardrails:
    ❌ DON'T: Raise these from backend methods
    ✅ DO: Return ``Err(error)`` and let the interpreter short-circuit

    ❌ DON'T: Retry on ``VersionConflictError`` inside a backend
    ✅ DO: Re-``get`` and retry at the call site

Tags:
    error-handling, exception-hierarchy, cas, docprog

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Categories used for classifying and routing docprog errors.

    Attributes:
        CONNECTION: No live session with the store
        NOT_FOUND: Document or counter missing
        CONFLICT: Key already present or stale version token
        DECODE: Stored content cannot be interpreted
        BACKEND: Opaque driver / I/O failure
        BATCH: Per-item failure inside a batch run
        INTERNAL: Bugs, unexpected state
    """

    CONNECTION = "CONNECTION"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    DECODE = "DECODE"
    BACKEND = "BACKEND"
    BATCH = "BATCH"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        key: Document key the command targeted
        command: Command tag (``get``, ``create``, ...)
        backend: Backend name (``memory``, ``redis``)
        index: Batch item index, for batch failures
        metadata: Additional key-value pairs
    """

    key: str | None = None
    command: str | None = None
    backend: str | None = None
    index: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for name in ["key", "command", "backend", "index"]:
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class DocProgError(Exception):
    """
    Base exception for every docprog error value.

    Subclasses set ``default_category`` and ``default_retryable``; instances
    may override both. Although these are ``Exception`` subclasses (so
    ``Err.unwrap()`` can raise them), they travel as values inside ``Err``.

    Examples:
        >>> error = DocProgError("boom")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(key="k").context.key
        'k'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DocProgError:
        """
        Add context to this error (fluent API).

        Usage:
            return Err(NotFoundError("missing").with_context(key=k, command="get"))
        """
        for name, value in kwargs.items():
            if hasattr(self.context, name) and name != "metadata":
                setattr(self.context, name, value)
            else:
                self.context.metadata[name] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONNECTION
# =============================================================================


class NotConnectedError(DocProgError):
    """Command dispatched while the backend has no live session."""

    default_category = ErrorCategory.CONNECTION

    def __init__(self, message: str = "Not connected", **kwargs: Any):
        super().__init__(message, **kwargs)


# =============================================================================
# DOCUMENT STATE
# =============================================================================


class NotFoundError(DocProgError):
    """Document or counter does not exist."""

    default_category = ErrorCategory.NOT_FOUND

    @classmethod
    def for_key(cls, key: str, command: str | None = None) -> NotFoundError:
        error = cls(f"Document not found: {key}")
        return error.with_context(key=key, command=command)  # type: ignore[return-value]


class AlreadyExistsError(DocProgError):
    """Create attempted on a key that already holds a document."""

    default_category = ErrorCategory.CONFLICT

    @classmethod
    def for_key(cls, key: str) -> AlreadyExistsError:
        error = cls(f"Document already exists: {key}")
        return error.with_context(key=key, command="create")  # type: ignore[return-value]


class VersionConflictError(DocProgError):
    """
    Update supplied a version token that no longer matches the stored one.

    Retryable: the caller is expected to re-read the document and retry the
    read-modify-write cycle. docprog itself never retries.
    """

    default_category = ErrorCategory.CONFLICT
    default_retryable = True

    def __init__(
        self,
        message: str,
        *,
        expected: int | None = None,
        actual: int | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.expected = expected
        self.actual = actual

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.expected is not None:
            result["expected"] = self.expected
        if self.actual is not None:
            result["actual"] = self.actual
        return result


# =============================================================================
# DATA / DRIVER
# =============================================================================


class DecodeError(DocProgError):
    """Stored content is malformed (non-numeric counter, bad JSON, ...)."""

    default_category = ErrorCategory.DECODE


class BackendFailure(DocProgError):
    """Opaque I/O or driver failure."""

    default_category = ErrorCategory.BACKEND

    @classmethod
    def wrap(cls, exc: Exception, **context: Any) -> BackendFailure:
        """Wrap a raw exception, preserving it as the cause."""
        error = cls(f"{type(exc).__name__}: {exc}", cause=exc)
        if context:
            error.with_context(**context)
        return error


# =============================================================================
# BATCH
# =============================================================================


class BatchItemFailure(DocProgError):
    """
    Failure of a single item in a batch run.

    Carries the item's position in the input sequence and the
    error that caused it.
    """

    default_category = ErrorCategory.BATCH

    def __init__(self, index: int, cause: Exception):
        super().__init__(
            f"Batch item {index} failed: {cause}",
            context=ErrorContext(index=index),
            cause=cause,
        )
        self.index = index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BatchItemFailure):
            return NotImplemented
        return self.index == other.index and self.cause is other.cause

    def __hash__(self) -> int:
        return hash((self.index, id(self.cause)))

    def __repr__(self) -> str:
        return f"BatchItemFailure(index={self.index}, cause={self.cause!r})"


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def as_docprog_error(error: Exception, **context: Any) -> DocProgError:
    """Return ``error`` unchanged if it is a DocProgError, else wrap it."""
    if isinstance(error, DocProgError):
        return error
    return BackendFailure.wrap(error, **context)


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "DocProgError",
    "NotConnectedError",
    "NotFoundError",
    "AlreadyExistsError",
    "VersionConflictError",
    "DecodeError",
    "BackendFailure",
    "BatchItemFailure",
    "as_docprog_error",
]
