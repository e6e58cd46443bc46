"""Tests for docprog.core.errors module."""

import pytest

from docprog.core.errors import (
    AlreadyExistsError,
    BackendFailure,
    BatchItemFailure,
    DecodeError,
    DocProgError,
    ErrorCategory,
    ErrorContext,
    NotConnectedError,
    NotFoundError,
    VersionConflictError,
    as_docprog_error,
)


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_empty_context_to_dict(self):
        """Empty context serialises to empty dict."""
        assert ErrorContext().to_dict() == {}

    def test_fields_and_metadata(self):
        """Set fields and metadata are merged in to_dict."""
        ctx = ErrorContext(key="k", command="get", metadata={"attempt": 2})
        assert ctx.to_dict() == {"key": "k", "command": "get", "attempt": 2}


class TestDocProgError:
    """Test base error behaviour."""

    def test_defaults(self):
        """Base error is INTERNAL and not retryable."""
        error = DocProgError("boom")
        assert error.message == "boom"
        assert error.category == ErrorCategory.INTERNAL
        assert error.retryable is False
        assert error.cause is None

    def test_overrides(self):
        """Category and retryable can be overridden per instance."""
        error = DocProgError("x", category=ErrorCategory.BACKEND, retryable=True)
        assert error.category == ErrorCategory.BACKEND
        assert error.retryable is True

    def test_cause_chained(self):
        """cause is stored and chained as __cause__."""
        original = OSError("socket closed")
        error = DocProgError("wrapped", cause=original)
        assert error.cause is original
        assert error.__cause__ is original

    def test_with_context_known_and_unknown(self):
        """Known names set context fields, others land in metadata."""
        error = DocProgError("x").with_context(key="k", stage="map")
        assert error.context.key == "k"
        assert error.context.metadata == {"stage": "map"}

    def test_to_dict(self):
        """to_dict includes type, category and context."""
        error = DocProgError("x", cause=ValueError("v")).with_context(key="k")
        data = error.to_dict()
        assert data["error_type"] == "DocProgError"
        assert data["category"] == "INTERNAL"
        assert data["context"] == {"key": "k"}
        assert data["cause"] == "v"

    def test_is_exception(self):
        """Errors can be raised, e.g. by Err.unwrap()."""
        with pytest.raises(DocProgError, match="boom"):
            raise DocProgError("boom")


class TestErrorKinds:
    """Test each concrete error kind."""

    def test_not_connected(self):
        error = NotConnectedError()
        assert str(error) == "Not connected"
        assert error.category == ErrorCategory.CONNECTION

    def test_not_found_for_key(self):
        error = NotFoundError.for_key("user::1", "get")
        assert error.category == ErrorCategory.NOT_FOUND
        assert error.context.key == "user::1"
        assert error.context.command == "get"

    def test_already_exists_for_key(self):
        error = AlreadyExistsError.for_key("user::1")
        assert error.category == ErrorCategory.CONFLICT
        assert error.context.command == "create"

    def test_version_conflict_is_retryable(self):
        """VersionConflictError is the one retryable kind."""
        error = VersionConflictError("stale", expected=3, actual=5)
        assert error.retryable is True
        assert error.to_dict()["expected"] == 3
        assert error.to_dict()["actual"] == 5

    def test_decode_category(self):
        assert DecodeError("bad").category == ErrorCategory.DECODE

    def test_backend_failure_wrap(self):
        """wrap keeps the driver exception as cause."""
        original = ConnectionError("refused")
        error = BackendFailure.wrap(original, key="k")
        assert error.cause is original
        assert "ConnectionError" in error.message
        assert error.context.key == "k"


class TestBatchItemFailure:
    """Test per-item batch failures."""

    def test_fields(self):
        cause = DecodeError("bad")
        failure = BatchItemFailure(2, cause)
        assert failure.index == 2
        assert failure.cause is cause
        assert failure.context.index == 2
        assert failure.category == ErrorCategory.BATCH

    def test_equality_by_index_and_cause_identity(self):
        """Two failures are equal when index matches and cause is the same object."""
        cause = DecodeError("bad")
        assert BatchItemFailure(1, cause) == BatchItemFailure(1, cause)
        assert BatchItemFailure(1, cause) != BatchItemFailure(2, cause)
        assert BatchItemFailure(1, cause) != BatchItemFailure(1, DecodeError("bad"))

    def test_hashable(self):
        cause = DecodeError("bad")
        assert len({BatchItemFailure(1, cause), BatchItemFailure(1, cause)}) == 1


class TestUtilities:
    """Test helper functions."""

    def test_as_docprog_error_passthrough(self):
        error = NotFoundError("x")
        assert as_docprog_error(error) is error

    def test_as_docprog_error_wraps(self):
        wrapped = as_docprog_error(TimeoutError("slow"), key="k")
        assert isinstance(wrapped, BackendFailure)
        assert wrapped.context.key == "k"
