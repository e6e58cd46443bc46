"""
Live connection state for the Redis backend.

A :class:`Session` bundles the async client, the bucket namespace and the
registered Lua scripts. The backend owns at most one session; tests can
detach it and attach it again to simulate a dropped connection.

Storage layout::

    <bucket>:<key>      hash {content: <raw>, version: <int>}
    <bucket>:__cas__    integer, source of version tokens (INCR)

Every command is a single script invocation, so CAS checks and counter
updates are atomic on the server.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from docprog.core.documents import Key
from docprog.core.logging import get_logger


logger = get_logger(__name__)

VERSION_SEQUENCE = "__cas__"

# Close tasks scheduled from inside a running loop, held until they finish.
_closing: set[asyncio.Task[None]] = set()


# =============================================================================
# LUA SCRIPTS
# =============================================================================
# KEYS[1] = document key, KEYS[2] = version sequence key

GET_SCRIPT = """
local doc = redis.call('HMGET', KEYS[1], 'content', 'version')
if doc[2] == false then
    return nil
end
return {doc[1], tonumber(doc[2])}
"""

# {1, version} on success, {0} if the key exists.
CREATE_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 1 then
    return {0}
end
local version = redis.call('INCR', KEYS[2])
redis.call('HSET', KEYS[1], 'content', ARGV[1], 'version', version)
return {1, version}
"""

# nil if absent, {2, current} on version mismatch, {1, version} on success.
# ARGV[2] == 0 skips the version check.
UPDATE_SCRIPT = """
local current = redis.call('HGET', KEYS[1], 'version')
if current == false then
    return nil
end
local expected = tonumber(ARGV[2])
if expected ~= 0 and tonumber(current) ~= expected then
    return {2, tonumber(current)}
end
local version = redis.call('INCR', KEYS[2])
redis.call('HSET', KEYS[1], 'content', ARGV[1], 'version', version)
return {1, version}
"""

REMOVE_SCRIPT = """
if redis.call('DEL', KEYS[1]) == 0 then
    return nil
end
return 1
"""

GET_COUNTER_SCRIPT = """
local content = redis.call('HGET', KEYS[1], 'content')
if content == false then
    return nil
end
return content
"""

# {0, content} if the stored content is not an integer, {1, value} otherwise.
INCREMENT_SCRIPT = """
local content = redis.call('HGET', KEYS[1], 'content')
local value
if content == false then
    value = tonumber(ARGV[1])
else
    if not string.match(content, '^%s*[-+]?%d+%s*$') then
        return {0, content}
    end
    value = tonumber(content) + tonumber(ARGV[1])
end
local text = string.format('%d', value)
local version = redis.call('INCR', KEYS[2])
redis.call('HSET', KEYS[1], 'content', text, 'version', version)
return {1, text}
"""


@dataclass(frozen=True, slots=True)
class ScriptSet:
    """Scripts registered against one client."""

    get: Any
    create: Any
    update: Any
    remove: Any
    get_counter: Any
    increment: Any

    @classmethod
    def register(cls, client: Any) -> ScriptSet:
        return cls(
            get=client.register_script(GET_SCRIPT),
            create=client.register_script(CREATE_SCRIPT),
            update=client.register_script(UPDATE_SCRIPT),
            remove=client.register_script(REMOVE_SCRIPT),
            get_counter=client.register_script(GET_COUNTER_SCRIPT),
            increment=client.register_script(INCREMENT_SCRIPT),
        )


@dataclass
class Session:
    """An open connection to one bucket."""

    client: Any
    bucket: str
    scripts: ScriptSet
    opened_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def open(cls, client: Any, bucket: str) -> Session:
        return cls(client=client, bucket=bucket, scripts=ScriptSet.register(client))

    def key(self, key: Key) -> str:
        return f"{self.bucket}:{key.value}"

    def keys_for(self, key: Key) -> list[str]:
        """Script ``KEYS`` for ``key``: document key, then version sequence."""
        return [self.key(key), f"{self.bucket}:{VERSION_SEQUENCE}"]

    def close(self) -> None:
        """Release the client's connection pool."""
        from docprog.program.interpreter import run_blocking

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            run_blocking(self.client.aclose())
        else:
            task = loop.create_task(self.client.aclose())
            _closing.add(task)
            task.add_done_callback(self._on_closed)
            return
        logger.debug("redis.session_closed", bucket=self.bucket)

    def _on_closed(self, task: asyncio.Task[None]) -> None:
        _closing.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("redis.session_close_failed", bucket=self.bucket, error=str(error))
            return
        logger.debug("redis.session_closed", bucket=self.bucket)


__all__ = [
    "Session",
    "ScriptSet",
    "VERSION_SEQUENCE",
    "GET_SCRIPT",
    "CREATE_SCRIPT",
    "UPDATE_SCRIPT",
    "REMOVE_SCRIPT",
    "GET_COUNTER_SCRIPT",
    "INCREMENT_SCRIPT",
]
