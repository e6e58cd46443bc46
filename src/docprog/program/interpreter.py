"""
Interpreter: executes programs against a backend.

The interpreter walks a :class:`~docprog.program.program.Program`: it runs
the root command through an explicit dispatch table, then applies each
stage in order. ``and_then``/``or_else`` stages push the program they
return as a new frame, so deeply chained programs evaluate in constant
Python stack depth.

Manifesto:
    - **Stateless:** Nothing is kept between ``execute`` calls
    - **Never throws:** Backend and stage exceptions become ``Err`` values
    - **Connectivity first:** A disconnected backend fails with
      ``NotConnectedError`` before any command is dispatched
    - **No recovery of its own:** Only ``map_err``/``or_else`` stages
      declared by the caller act on failures

Architecture:
    ::

        execute(program)
            │
            ├── backend.is_connected()? ── no ──> Err(NotConnectedError)
            │
            ▼
        frames = [(program.stages, 0)]
        result = dispatch(program.root)
            │
            ▼
        loop over frames:
            MAP       Ok  -> Ok(f(v))
            AND_THEN  Ok  -> result = dispatch(f(v).root); push f(v).stages
            MAP_ERR   Err -> Err(f(e))
            OR_ELSE   Err -> result = dispatch(f(e).root); push f(e).stages
            otherwise     -> skip stage

Examples:
    >>> from docprog.backends.memory import InMemoryBackend
    >>> from docprog.program import program as p
    >>> interpreter = Interpreter(InMemoryBackend())
    >>> interpreter.run(p.increment_counter("hits", 5)).unwrap()
    5

Guardrails:
    ❌ DON'T: Call ``run()`` from inside a coroutine
    ✅ DO: ``await interpreter.execute(program)`` in async code

Tags:
    interpreter, dispatch-table, asyncio, docprog

Doc-Types:
    - API Reference
    - Program Composition Guide
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any, TypeVar

from docprog.backends.protocol import Backend
from docprog.core.errors import (
    DocProgError,
    ErrorCategory,
    NotConnectedError,
    as_docprog_error,
)
from docprog.core.logging import get_logger
from docprog.core.result import Err, Ok, Result
from docprog.program.batch import execute_batch
from docprog.program.commands import (
    BatchCreate,
    Command,
    Create,
    Get,
    GetCounter,
    IncrementCounter,
    Remove,
    Update,
    describe,
)
from docprog.program.program import Fail, Program, Pure, StageKind


T = TypeVar("T")

logger = get_logger(__name__)


# ── Dispatch table ───────────────────────────────────────────────────────
# One entry per single-document command. BatchCreate is dispatched by the
# interpreter itself because it needs to execute sub-programs.

_DISPATCH: dict[type, Callable[[Backend, Any], Awaitable[Result[Any]]]] = {
    Get: lambda backend, c: backend.get(c.key),
    Create: lambda backend, c: backend.create(c.key, c.content),
    Update: lambda backend, c: backend.update(c.key, c.content, c.version),
    Remove: lambda backend, c: backend.remove(c.key),
    GetCounter: lambda backend, c: backend.get_counter(c.key),
    IncrementCounter: lambda backend, c: backend.increment_counter(c.key, c.delta),
}


def _stage_failure(stage: StageKind, exc: Exception) -> DocProgError:
    error = DocProgError(
        f"{stage.value} stage raised {type(exc).__name__}: {exc}",
        category=ErrorCategory.INTERNAL,
        cause=exc,
    )
    return error.with_context(stage=stage.value)


class Interpreter:
    """
    Runs programs against one backend.

    Parameters
    ----------
    backend:
        Any object satisfying :class:`~docprog.backends.protocol.Backend`.
    """

    def __init__(self, backend: Backend) -> None:
        self._backend = backend

    @property
    def backend(self) -> Backend:
        return self._backend

    # ── Execution ────────────────────────────────────────────────────

    async def execute(self, program: Program[T]) -> Result[T]:
        """Execute ``program`` and return its result."""
        if not self._backend.is_connected():
            logger.warning("interpreter.not_connected", backend=self._backend.name)
            return Err(NotConnectedError().with_context(backend=self._backend.name))

        result = await self._dispatch(program.root)
        frames: list[tuple[tuple[Any, ...], int]] = [(program.stages, 0)]

        while frames:
            stages, position = frames.pop()
            if position >= len(stages):
                continue
            stage = stages[position]
            frames.append((stages, position + 1))

            if stage.kind.on_success != result.is_ok():
                continue

            match stage.kind, result:
                case StageKind.MAP, Ok(value):
                    result = self._apply(stage.kind, lambda: Ok(stage.fn(value)))
                case StageKind.MAP_ERR, Err(error):
                    result = self._apply(stage.kind, lambda: Err(stage.fn(error)))
                case StageKind.AND_THEN, Ok(value):
                    result = await self._continue_with(stage.kind, stage.fn, value, frames)
                case StageKind.OR_ELSE, Err(error):
                    result = await self._continue_with(stage.kind, stage.fn, error, frames)

        return result

    def run(self, program: Program[T]) -> Result[T]:
        """
        Blocking convenience around :meth:`execute`.

        Raises ``RuntimeError`` if called while an event loop is running in
        this thread, since waiting there would deadlock the loop.
        """
        return run_blocking(self.execute(program))

    def __call__(self, program: Program[T]) -> Result[T]:
        """Alias for :meth:`run`."""
        return self.run(program)

    # ── Internals ────────────────────────────────────────────────────

    async def _dispatch(self, root: Command | Pure | Fail) -> Result[Any]:
        match root:
            case Pure(value):
                return Ok(value)
            case Fail(error):
                return Err(error)
            case BatchCreate(items=items, should_continue=should_continue):
                logger.debug("interpreter.command", command=root.tag, backend=self._backend.name)
                try:
                    return Ok(await execute_batch(items, should_continue, self))
                except Exception as exc:
                    return Err(as_docprog_error(exc, command=root.tag))

        handler = _DISPATCH.get(type(root))
        if handler is None:
            return Err(DocProgError(f"Unsupported command: {type(root).__name__}"))

        summary = describe(root)
        logger.debug("interpreter.command", backend=self._backend.name, **summary)
        try:
            result = await handler(self._backend, root)
        except Exception as exc:
            logger.warning(
                "interpreter.backend_raised",
                backend=self._backend.name,
                error=str(exc),
                **summary,
            )
            return Err(as_docprog_error(exc, backend=self._backend.name, **summary))
        return result

    @staticmethod
    def _apply(kind: StageKind, f: Callable[[], Result[Any]]) -> Result[Any]:
        try:
            return f()
        except Exception as exc:
            return Err(_stage_failure(kind, exc))

    async def _continue_with(
        self,
        kind: StageKind,
        fn: Callable[[Any], Any],
        argument: Any,
        frames: list[tuple[tuple[Any, ...], int]],
    ) -> Result[Any]:
        try:
            next_program = fn(argument)
        except Exception as exc:
            return Err(_stage_failure(kind, exc))
        if not isinstance(next_program, Program):
            return Err(
                _stage_failure(
                    kind,
                    TypeError(f"expected Program, got {type(next_program).__name__}"),
                )
            )
        # Drop exhausted frames before pushing so long bind chains stay flat.
        while frames and frames[-1][1] >= len(frames[-1][0]):
            frames.pop()
        frames.append((next_program.stages, 0))
        return await self._dispatch(next_program.root)


# ── Module-level entry points ────────────────────────────────────────────


async def execute(program: Program[T], backend: Backend) -> Result[T]:
    """Execute ``program`` against ``backend``."""
    return await Interpreter(backend).execute(program)


def run(program: Program[T], backend: Backend) -> Result[T]:
    """Blocking form of :func:`execute`."""
    return Interpreter(backend).run(program)


_local = threading.local()


def run_blocking(coro: Coroutine[Any, Any, T]) -> T:
    """
    Drive ``coro`` to completion on this thread's persistent event loop.

    The loop is reused across calls so network clients bound to it stay
    valid between blocking runs.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        runner = getattr(_local, "runner", None)
        if runner is None or runner.get_loop().is_closed():
            # A private loop; never installed as the thread's current loop.
            runner = asyncio.Runner(loop_factory=asyncio.new_event_loop)
            _local.runner = runner
        return runner.run(coro)
    coro.close()
    raise RuntimeError(
        "run() cannot be used inside a running event loop; await execute() instead"
    )


__all__ = ["Interpreter", "execute", "run", "run_blocking"]
