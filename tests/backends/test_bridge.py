"""Tests for docprog.backends.bridge -- callback-to-future adaptation."""

from __future__ import annotations

import asyncio
import threading

import pytest

from docprog.backends.bridge import Completion, from_awaitable
from docprog.core.errors import BackendFailure, DecodeError, NotFoundError
from docprog.core.result import Err, Ok


def ok(raw):
    return Ok(raw)


class TestCompletion:
    @pytest.mark.asyncio
    async def test_value_then_completed(self):
        completion = Completion(ok, key="k", command="get")
        completion.on_value("raw")
        completion.on_completed()
        assert await completion == Ok("raw")

    @pytest.mark.asyncio
    async def test_first_value_wins(self):
        completion = Completion(ok)
        completion.on_value("first")
        completion.on_value("second")
        completion.on_completed()
        assert await completion == Ok("first")

    @pytest.mark.asyncio
    async def test_zero_results_is_not_found(self):
        completion = Completion(ok, key="k", command="get")
        completion.on_completed()
        result = await completion
        assert isinstance(result.error, NotFoundError)
        assert result.error.context.key == "k"
        assert result.error.context.command == "get"

    @pytest.mark.asyncio
    async def test_none_value_is_ignored(self):
        completion = Completion(ok, key="k")
        completion.on_value(None)
        completion.on_completed()
        assert isinstance((await completion).error, NotFoundError)

    @pytest.mark.asyncio
    async def test_error(self):
        completion = Completion(ok, key="k", command="create")
        completion.on_error(TimeoutError("slow"))
        result = await completion
        assert isinstance(result.error, BackendFailure)
        assert isinstance(result.error.cause, TimeoutError)

    @pytest.mark.asyncio
    async def test_cancel(self):
        completion = Completion(ok, command="remove")
        completion.cancel()
        assert isinstance((await completion).error, BackendFailure)

    @pytest.mark.asyncio
    async def test_resolved_exactly_once(self):
        completion = Completion(ok)
        completion.on_error(OSError("first"))
        completion.on_value("late")
        completion.on_completed()
        completion.cancel()
        result = await completion
        assert isinstance(result.error, BackendFailure)
        assert "first" in result.error.message
        assert completion.done

    @pytest.mark.asyncio
    async def test_converter_exception_is_decode_error(self):
        completion = Completion(lambda raw: Ok(int(raw)), key="k")
        completion.on_value("not-a-number")
        completion.on_completed()
        assert isinstance((await completion).error, DecodeError)

    @pytest.mark.asyncio
    async def test_converter_err_passes_through(self):
        error = DecodeError("bad")
        completion = Completion(lambda raw: Err(error))
        completion.on_value("x")
        completion.on_completed()
        assert (await completion).error is error

    @pytest.mark.asyncio
    async def test_callbacks_from_another_thread(self):
        completion = Completion(ok)

        def driver():
            completion.on_value(42)
            completion.on_completed()

        thread = threading.Thread(target=driver)
        thread.start()
        thread.join()
        assert await asyncio.wait_for(completion, timeout=1) == Ok(42)


class TestFromAwaitable:
    @pytest.mark.asyncio
    async def test_value(self):
        async def reply():
            return [1, 2]

        result = await from_awaitable(reply(), lambda r: Ok(sum(r)), key="k", command="get")
        assert result == Ok(3)

    @pytest.mark.asyncio
    async def test_none_reply_is_not_found(self):
        async def reply():
            return None

        result = await from_awaitable(reply(), ok, key="k", command="get")
        assert isinstance(result.error, NotFoundError)

    @pytest.mark.asyncio
    async def test_exception_is_backend_failure(self):
        async def reply():
            raise ConnectionError("refused")

        result = await from_awaitable(reply(), ok, key="k", command="get")
        assert isinstance(result.error, BackendFailure)
        assert result.error.context.key == "k"

    @pytest.mark.asyncio
    async def test_cancelled_driver_task(self):
        async def reply():
            raise asyncio.CancelledError()

        result = await from_awaitable(reply(), ok, command="get")
        assert isinstance(result.error, BackendFailure)
