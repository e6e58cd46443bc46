"""
Batch engine: sequential bulk creation with per-item failure accounting.

Drives many ``Create`` commands from an ordered, possibly lazy input
sequence. Each input item is itself a Result: an item may already be known
to have failed (for example, its key could not be derived) before any
creation is attempted.

Manifesto:
    - **One bad record doesn't abort the job:** Failures are recorded per
      index and processing continues while the caller's policy allows
    - **The stopping failure is always reported:** When the continuation
      policy says stop, the failure that triggered it is still in the outcome
    - **Deterministic indices:** Items run strictly one at a time, in order;
      indices refer to positions in the input sequence
    - **No automatic retry:** The policy only decides whether to go on

Architecture:
    ::

        items ──► enumerate ──► for (index, item):
                                   │
                    Err(cause) ────┼──► failure(index, cause)
                                   │
                    Ok((key_prog, content))
                                   │
                         execute(key_prog) ── Err ──► failure(index, cause)
                                   │ Ok(key)
                         execute(create(key, content))
                                   │
                       Ok ──► success(index)   Err ──► failure(index, cause)
                                   │
                        outcome = outcome + step
                                   │
                  failure and not should_continue(cause) ──► stop

Examples:
    >>> outcome = BatchOutcome.success(0) + BatchOutcome.failure(1, ValueError("x"))
    >>> sorted(outcome.succeeded), outcome.failed_indices
    ([0], [1])

Tags:
    batch-processing, partial-failure, continuation-policy, docprog

Doc-Types:
    - API Reference
    - Batch Processing Guide
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from docprog.backends.protocol import Backend
from docprog.core.documents import Key, RawContent, as_key
from docprog.core.errors import BatchItemFailure, DecodeError
from docprog.core.logging import LogContext, get_logger
from docprog.core.result import Err, Ok, Result, try_result
from docprog.program.program import Program, create

if TYPE_CHECKING:
    from docprog.program.interpreter import Interpreter


logger = get_logger(__name__)

BatchItem = Result[tuple[Program[Key], RawContent]]
ContinuePredicate = Callable[[Exception], bool]


def continue_always(error: Exception) -> bool:
    """Continuation policy: never stop early."""
    return True


def stop_on_first_error(error: Exception) -> bool:
    """Continuation policy: stop at the first failure."""
    return False


@dataclass(frozen=True)
class BatchOutcome:
    """
    Accumulated summary of a batch run.

    ``succeeded`` is the set of indices whose create succeeded;
    ``failures`` is the ordered list of failure records. Outcomes combine
    with ``+``: successes union, failures concatenate keeping the first
    record per index. Combination is associative and ``empty()`` is its
    identity, so partial outcomes fold into one summary.
    """

    succeeded: frozenset[int] = field(default_factory=frozenset)
    failures: tuple[BatchItemFailure, ...] = ()

    @classmethod
    def empty(cls) -> BatchOutcome:
        return cls()

    @classmethod
    def success(cls, index: int) -> BatchOutcome:
        return cls(succeeded=frozenset((index,)))

    @classmethod
    def failure(cls, index: int, cause: Exception) -> BatchOutcome:
        return cls(failures=(BatchItemFailure(index, cause),))

    def combine(self, other: BatchOutcome) -> BatchOutcome:
        seen = {f.index for f in self.failures}
        extra = tuple(f for f in other.failures if f.index not in seen)
        return BatchOutcome(
            succeeded=self.succeeded | other.succeeded,
            failures=self.failures + extra,
        )

    __add__ = combine

    @property
    def is_success(self) -> bool:
        """``True`` when no item failed."""
        return not self.failures

    @property
    def failed_indices(self) -> list[int]:
        return [f.index for f in self.failures]

    @property
    def causes(self) -> dict[int, Exception]:
        """Map of failed index to the error that caused it."""
        return {f.index: f.cause for f in self.failures}  # type: ignore[misc]

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failures)

    def to_dict(self) -> dict[str, Any]:
        """Serialise for logging / CLI output."""
        return {
            "succeeded": sorted(self.succeeded),
            "failed": [
                {"index": f.index, "error": type(f.cause).__name__, "message": str(f.cause)}
                for f in self.failures
            ],
        }


async def _create_one(index: int, item: BatchItem, interpreter: Interpreter) -> BatchOutcome:
    match item:
        case Err(cause):
            return BatchOutcome.failure(index, cause)
        case Ok((key_program, content)):
            key_result = (await interpreter.execute(key_program)).flat_map(
                lambda raw: try_result(
                    lambda: as_key(raw),
                    lambda e: DecodeError(f"Invalid key from key program: {e}", cause=e),
                )
            )
            match key_result:
                case Err(cause):
                    return BatchOutcome.failure(index, cause)
                case Ok(key):
                    created = await interpreter.execute(create(key, content))
                    match created:
                        case Ok(_):
                            return BatchOutcome.success(index)
                        case Err(cause):
                            return BatchOutcome.failure(index, cause)
    return BatchOutcome.failure(
        index, DecodeError(f"Batch item must be Ok((program, content)) or Err, got {item!r}")
    )


async def execute_batch(
    items: Iterable[BatchItem],
    should_continue: ContinuePredicate,
    interpreter: Interpreter,
) -> BatchOutcome:
    """Run the batch algorithm with an existing interpreter."""
    batch_id = uuid.uuid4().hex[:12]
    outcome = BatchOutcome.empty()
    stopped_at: int | None = None

    with LogContext(batch_id=batch_id):
        logger.debug("batch.start", backend=interpreter.backend.name)
        for index, item in enumerate(items):
            step = await _create_one(index, item, interpreter)
            outcome = outcome + step
            if step.failures:
                cause = step.failures[0].cause
                logger.info(
                    "batch.item_failed",
                    index=index,
                    error_type=type(cause).__name__,
                    error=str(cause),
                )
                if not should_continue(cause):  # type: ignore[arg-type]
                    stopped_at = index
                    break

        logger.info(
            "batch.complete",
            succeeded=len(outcome.succeeded),
            failed=len(outcome.failures),
            stopped_at=stopped_at,
        )
    return outcome


async def run_batch_async(
    items: Iterable[BatchItem],
    should_continue: ContinuePredicate,
    backend: Backend,
) -> BatchOutcome:
    """Async entry point: run a batch against ``backend``."""
    from docprog.program.interpreter import Interpreter

    return await execute_batch(items, should_continue, Interpreter(backend))


def run_batch(
    items: Iterable[BatchItem],
    should_continue: ContinuePredicate,
    backend: Backend,
) -> BatchOutcome:
    """
    Blocking entry point: run a batch against ``backend``.

    Args:
        items: Ordered, possibly lazy sequence of
            ``Result[(Program[Key], RawContent)]``
        should_continue: Called with the cause after each failure;
            returning ``False`` stops consumption of ``items``
        backend: Backend the creates are dispatched to

    Returns:
        The accumulated :class:`BatchOutcome`
    """
    from docprog.program.interpreter import run_blocking

    return run_blocking(run_batch_async(items, should_continue, backend))


__all__ = [
    "BatchItem",
    "BatchOutcome",
    "ContinuePredicate",
    "continue_always",
    "stop_on_first_error",
    "execute_batch",
    "run_batch",
    "run_batch_async",
]
