"""
Callback-to-future bridge for driver operations.

Drivers report completion through callbacks: zero or more values, then
either ``completed`` or ``error``; or they are cancelled. A
:class:`Completion` turns that stream into a single awaitable
``Result``, resolved exactly once. The first terminal signal wins and
everything after it is ignored.

Manifesto:
    - **Exactly once:** The underlying future is resolved by the first
      terminal signal; late signals are no-ops
    - **Zero results means absent:** Completing without a value (or with
      ``None``) is ``NotFoundError``, never an empty success
    - **No raw driver exceptions:** Errors and cancellation become
      ``BackendFailure`` values

Architecture:
    ::

        driver callbacks            Completion                 caller
        ─────────────────           ──────────                 ──────
        on_value(v)     ──────►  first value kept
        on_completed()  ──────►  Ok(convert(v)) | Err(NotFound) ──► await
        on_error(exc)   ──────►  Err(BackendFailure)            ──► await
        cancel()        ──────►  Err(BackendFailure)            ──► await

Examples:
    >>> async def fetch(client, key):
    ...     return await from_awaitable(
    ...         client.get(key), lambda raw: Ok(raw), key=key, command="get"
    ...     )

Tags:
    bridge, callbacks, asyncio, future, docprog
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Generator
from typing import Any, Generic, TypeVar

from docprog.core.errors import BackendFailure, DecodeError, NotFoundError
from docprog.core.logging import get_logger
from docprog.core.result import Err, Result


T = TypeVar("T")

logger = get_logger(__name__)

Converter = Callable[[Any], Result[T]]

_MISSING = object()


class Completion(Generic[T]):
    """
    One-shot sink for driver callbacks.

    Parameters
    ----------
    convert:
        Turns the first raw value into a ``Result``. Exceptions it raises
        become ``DecodeError``.
    key, command:
        Attached as context to every error this completion produces.
    loop:
        Event loop owning the future. Defaults to the running loop.
    """

    def __init__(
        self,
        convert: Converter[T],
        *,
        key: str | None = None,
        command: str | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._convert = convert
        self._key = key
        self._command = command
        self._loop = loop or asyncio.get_running_loop()
        self._future: asyncio.Future[Result[T]] = self._loop.create_future()
        self._value: Any = _MISSING

    @property
    def done(self) -> bool:
        return self._future.done()

    # ── Driver-facing callbacks ──────────────────────────────────────

    def on_value(self, value: Any) -> None:
        """Record a value. Only the first non-``None`` value is kept."""
        if self.done or value is None or self._value is not _MISSING:
            return
        self._value = value

    def on_completed(self) -> None:
        if self.done:
            return
        if self._value is _MISSING:
            self._resolve(Err(NotFoundError.for_key(self._key or "?", self._command)))
            return
        try:
            result = self._convert(self._value)
        except Exception as exc:
            error = DecodeError(f"Cannot decode driver reply: {exc}", cause=exc)
            result = Err(error.with_context(key=self._key, command=self._command))
        self._resolve(result)

    def on_error(self, exc: BaseException) -> None:
        if self.done:
            return
        cause = exc if isinstance(exc, Exception) else RuntimeError(str(exc))
        self._resolve(Err(BackendFailure.wrap(cause, key=self._key, command=self._command)))

    def cancel(self) -> None:
        if self.done:
            return
        self._resolve(
            Err(
                BackendFailure(f"Operation cancelled: {self._command}").with_context(
                    key=self._key, command=self._command
                )
            )
        )

    def _resolve(self, result: Result[T]) -> None:
        # Callbacks may arrive on a driver thread.
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._set(result)
        else:
            self._loop.call_soon_threadsafe(self._set, result)

    def _set(self, result: Result[T]) -> None:
        if not self._future.done():
            self._future.set_result(result)

    # ── Caller-facing ────────────────────────────────────────────────

    def __await__(self) -> Generator[Any, None, Result[T]]:
        return self._future.__await__()


async def from_awaitable(
    awaitable: Awaitable[Any],
    convert: Converter[T],
    *,
    key: str | None = None,
    command: str | None = None,
) -> Result[T]:
    """
    Run a driver coroutine and adapt its outcome through a :class:`Completion`.

    A ``None`` reply is treated as "no result" and yields ``NotFoundError``.
    """
    completion: Completion[T] = Completion(convert, key=key, command=command)
    task = asyncio.ensure_future(awaitable)

    def _on_done(finished: asyncio.Future[Any]) -> None:
        if finished.cancelled():
            completion.cancel()
            return
        exc = finished.exception()
        if exc is not None:
            logger.debug("bridge.driver_error", key=key, command=command, error=str(exc))
            completion.on_error(exc)
            return
        completion.on_value(finished.result())
        completion.on_completed()

    task.add_done_callback(_on_done)
    try:
        return await completion
    except asyncio.CancelledError:
        task.cancel()
        raise


__all__ = ["Completion", "Converter", "from_awaitable"]
