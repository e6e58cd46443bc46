"""Tests for docprog.program.batch -- sequential bulk creation.

Covers:
- continue-always and abort-on-first-error policies
- failures from Err items, key programs and creates
- laziness: items after an abort are never pulled
- BatchOutcome combination laws
"""

from __future__ import annotations

import pytest

from docprog.backends.memory import InMemoryBackend
from docprog.core.errors import (
    AlreadyExistsError,
    BatchItemFailure,
    DecodeError,
    NotFoundError,
)
from docprog.core.result import Ok
from docprog.program import program as p
from docprog.program.batch import (
    BatchOutcome,
    continue_always,
    run_batch,
    run_batch_async,
    stop_on_first_error,
)


class TestContinueAlways:
    def test_records_failure_and_continues(self, make_item, bad_item_error):
        backend = InMemoryBackend()
        items = [make_item("k0"), make_item(error=bad_item_error), make_item("k2")]

        outcome = run_batch(items, continue_always, backend)

        assert outcome.succeeded == frozenset({0, 2})
        assert outcome.failures == (BatchItemFailure(1, bad_item_error),)
        assert backend.size() == 2

    def test_empty_input(self):
        outcome = run_batch([], continue_always, InMemoryBackend())
        assert outcome == BatchOutcome.empty()
        assert outcome.is_success

    def test_create_conflict_is_item_failure(self, make_item):
        backend = InMemoryBackend()
        outcome = run_batch([make_item("dup"), make_item("dup")], continue_always, backend)
        assert outcome.succeeded == frozenset({0})
        assert isinstance(outcome.causes[1], AlreadyExistsError)

    def test_key_program_failure(self):
        items = [Ok((p.get("no-such-key").map(lambda doc: doc.content), "{}"))]
        outcome = run_batch(items, continue_always, InMemoryBackend())
        assert isinstance(outcome.causes[0], NotFoundError)

    def test_key_program_can_use_counters(self):
        backend = InMemoryBackend()
        next_key = lambda: p.increment_counter("ids").map(lambda n: f"user::{n}")
        items = [Ok((next_key(), '{"n": 1}')), Ok((next_key(), '{"n": 2}'))]

        outcome = run_batch(items, continue_always, backend)

        assert outcome.succeeded == frozenset({0, 1})
        assert {str(k) for k in backend.snapshot()} == {"ids", "user::1", "user::2"}

    def test_invalid_key_from_key_program(self):
        outcome = run_batch([Ok((p.pure(""), "{}"))], continue_always, InMemoryBackend())
        assert isinstance(outcome.causes[0], DecodeError)


class TestAbortOnFirstError:
    def test_stopping_failure_is_reported(self, make_item, bad_item_error):
        backend = InMemoryBackend()
        items = [make_item("k0"), make_item(error=bad_item_error), make_item("k2")]

        outcome = run_batch(items, stop_on_first_error, backend)

        assert outcome.failures == (BatchItemFailure(1, bad_item_error),)
        assert outcome.succeeded == frozenset({0})
        assert not any(str(k) == "k2" for k in backend.snapshot())

    def test_stops_consuming_iterator(self, make_item, bad_item_error):
        pulled = []

        def items():
            for i in range(5):
                pulled.append(i)
                yield make_item(error=bad_item_error) if i == 1 else make_item(f"k{i}")

        run_batch(items(), stop_on_first_error, InMemoryBackend())
        assert pulled == [0, 1]

    def test_predicate_sees_cause(self, make_item, bad_item_error):
        seen = []

        def policy(error: Exception) -> bool:
            seen.append(error)
            return len(seen) < 2

        items = [make_item(error=bad_item_error)] * 3
        outcome = run_batch(items, policy, InMemoryBackend())

        assert seen == [bad_item_error, bad_item_error]
        assert outcome.failed_indices == [0, 1]

    def test_predicate_not_called_on_success(self, make_item):
        policy_calls = []
        run_batch([make_item("a")], lambda e: policy_calls.append(e) or True, InMemoryBackend())
        assert policy_calls == []


class TestAsyncEntryPoint:
    @pytest.mark.asyncio
    async def test_run_batch_async(self, make_item):
        outcome = await run_batch_async([make_item("a")], continue_always, InMemoryBackend())
        assert outcome.succeeded == frozenset({0})


class TestBatchOutcome:
    def test_constructors(self):
        cause = DecodeError("x")
        assert BatchOutcome.success(3).succeeded == frozenset({3})
        assert BatchOutcome.failure(3, cause).failures == (BatchItemFailure(3, cause),)

    def test_combine_unions_and_deduplicates(self):
        first, second = DecodeError("first"), DecodeError("second")
        combined = (
            BatchOutcome.success(0)
            + BatchOutcome.failure(1, first)
            + BatchOutcome.failure(1, second)
        )
        assert combined.succeeded == frozenset({0})
        assert combined.failures == (BatchItemFailure(1, first),)

    def test_associative(self):
        cause_a, cause_b = DecodeError("a"), DecodeError("b")
        a = BatchOutcome.success(0) + BatchOutcome.failure(1, cause_a)
        b = BatchOutcome.success(2)
        c = BatchOutcome.failure(3, cause_b) + BatchOutcome.success(4)
        assert (a + b) + c == a + (b + c)

    def test_order_independent_sets(self):
        cause_a, cause_b = DecodeError("a"), DecodeError("b")
        a = BatchOutcome.success(0) + BatchOutcome.failure(1, cause_a)
        b = BatchOutcome.success(2) + BatchOutcome.failure(3, cause_b)
        assert (a + b).succeeded == (b + a).succeeded
        assert set((a + b).failures) == set((b + a).failures)

    def test_identity(self):
        a = BatchOutcome.success(1) + BatchOutcome.failure(2, DecodeError("x"))
        assert BatchOutcome.empty() + a == a
        assert a + BatchOutcome.empty() == a

    def test_summary(self):
        outcome = BatchOutcome.success(0) + BatchOutcome.failure(1, DecodeError("bad"))
        assert outcome.total == 2
        assert not outcome.is_success
        assert outcome.to_dict() == {
            "succeeded": [0],
            "failed": [{"index": 1, "error": "DecodeError", "message": "bad"}],
        }
