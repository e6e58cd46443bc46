"""
Redis-backed document store.

Implements the backend contract on top of ``redis.asyncio``. Each command
runs one Lua script (see :mod:`docprog.backends.session`) so CAS checks,
create-if-absent and counter updates are atomic server-side. Driver replies
are adapted through :mod:`docprog.backends.bridge`, which maps an empty
reply to ``NotFoundError`` and driver exceptions to ``BackendFailure``.

Manifesto:
    - **Explicit session:** ``connect()`` builds a :class:`Session` owned by
      this backend instance; there is no process-wide connection
    - **Failures are values:** A failed connect returns
      ``Err(BackendFailure)`` and leaves the backend disconnected
    - **Idempotent teardown:** ``disconnect()`` may be called any number
      of times

Architecture:
    ::

        DocStoreSettings ──► RedisBackend.connect()
                                 │  sync PING check
                                 ▼
                           Session(client, bucket, scripts)
                                 │
        Interpreter ──► get/create/update/... ──► script(keys, args)
                                                     │
                                              bridge.from_awaitable
                                                     │
                                               Result[...]

Examples:
    >>> backend = RedisBackend(DocStoreSettings(_env_file=None))
    >>> backend.connect()                      # doctest: +SKIP
    Ok(None)
    >>> run(p.increment_counter("hits"), backend)   # doctest: +SKIP

Guardrails:
    ❌ DON'T: Share one backend's session between event loops
    ✅ DO: Use one backend per thread, or stay on the blocking ``run()`` path

Tags:
    backend, redis, lua, cas, asyncio, docprog

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Any

import redis
import redis.asyncio as aioredis

from docprog.backends.bridge import from_awaitable
from docprog.backends.memory import parse_counter
from docprog.backends.session import Session
from docprog.core.documents import DocumentValue, Key, RawContent, VersionToken
from docprog.core.errors import (
    AlreadyExistsError,
    BackendFailure,
    DecodeError,
    NotConnectedError,
    VersionConflictError,
)
from docprog.core.logging import get_logger
from docprog.core.result import Err, Ok, Result
from docprog.core.settings import DocStoreSettings, load_settings


logger = get_logger(__name__)


def _document(content: Any, version: Any) -> DocumentValue:
    return DocumentValue(content=content, version=VersionToken(int(version)))


class RedisBackend:
    """
    Network backend over a Redis server.

    Parameters
    ----------
    settings:
        Connection settings. Defaults to :func:`load_settings`.
    """

    name = "redis"

    def __init__(self, settings: DocStoreSettings | None = None) -> None:
        self._settings = settings if settings is not None else load_settings()
        self._session: Session | None = None

    @property
    def settings(self) -> DocStoreSettings:
        return self._settings

    @property
    def session(self) -> Session | None:
        return self._session

    # ── Connectivity ─────────────────────────────────────────────────

    def is_connected(self) -> bool:
        return self._session is not None

    def connect(self) -> Result[None]:
        """Open a session. A no-op when already connected."""
        if self._session is not None:
            return Ok(None)

        s = self._settings
        try:
            pinger = redis.Redis(
                host=s.host,
                port=s.port,
                socket_timeout=s.socket_timeout,
                socket_connect_timeout=s.socket_timeout,
            )
            try:
                pinger.ping()
            finally:
                pinger.close()
        except (redis.RedisError, OSError) as exc:
            logger.warning(
                "redis.connect_failed",
                host=s.host,
                port=s.port,
                error=str(exc),
            )
            return Err(BackendFailure.wrap(exc, backend=self.name, host=s.host, port=s.port))

        client = aioredis.from_url(
            s.url,
            max_connections=s.max_connections,
            socket_timeout=s.socket_timeout,
            socket_connect_timeout=s.socket_timeout,
            decode_responses=True,
        )
        self._session = Session.open(client, s.bucket_name)
        logger.info(
            "redis.connected",
            host=s.host,
            port=s.port,
            bucket=s.bucket_name,
            max_connections=s.max_connections,
            computation_pool_size=s.computation_pool_size,
        )
        return Ok(None)

    def disconnect(self) -> None:
        session, self._session = self._session, None
        if session is None:
            return
        session.close()
        logger.info("redis.disconnected", bucket=session.bucket)

    def detach_session(self) -> Session | None:
        """Take the live session out, leaving the backend disconnected."""
        session, self._session = self._session, None
        return session

    def attach_session(self, session: Session | None) -> None:
        """Put back a session previously returned by :meth:`detach_session`."""
        self._session = session

    # ── Documents ────────────────────────────────────────────────────

    def _require_session(self, key: Key, command: str) -> Session | Result[Any]:
        if self._session is None:
            return Err(NotConnectedError().with_context(key=str(key), command=command, backend=self.name))
        return self._session

    async def get(self, key: Key) -> Result[DocumentValue]:
        session = self._require_session(key, "get")
        if not isinstance(session, Session):
            return session
        return await from_awaitable(
            session.scripts.get(keys=session.keys_for(key)),
            lambda reply: Ok(_document(reply[0], reply[1])),
            key=str(key),
            command="get",
        )

    async def create(self, key: Key, content: RawContent) -> Result[DocumentValue]:
        session = self._require_session(key, "create")
        if not isinstance(session, Session):
            return session

        def convert(reply: list[Any]) -> Result[DocumentValue]:
            if reply[0] == 0:
                return Err(AlreadyExistsError.for_key(str(key)))
            return Ok(_document(content, reply[1]))

        return await from_awaitable(
            session.scripts.create(keys=session.keys_for(key), args=[content]),
            convert,
            key=str(key),
            command="create",
        )

    async def update(
        self, key: Key, content: RawContent, version: VersionToken
    ) -> Result[DocumentValue]:
        session = self._require_session(key, "update")
        if not isinstance(session, Session):
            return session

        def convert(reply: list[Any]) -> Result[DocumentValue]:
            if reply[0] == 2:
                return Err(
                    VersionConflictError(
                        f"Version mismatch for {key}",
                        expected=version.value,
                        actual=int(reply[1]),
                    ).with_context(key=str(key), command="update")
                )
            return Ok(_document(content, reply[1]))

        return await from_awaitable(
            session.scripts.update(
                keys=session.keys_for(key), args=[content, version.value]
            ),
            convert,
            key=str(key),
            command="update",
        )

    async def remove(self, key: Key) -> Result[None]:
        session = self._require_session(key, "remove")
        if not isinstance(session, Session):
            return session
        return await from_awaitable(
            session.scripts.remove(keys=session.keys_for(key)),
            lambda reply: Ok(None),
            key=str(key),
            command="remove",
        )

    # ── Counters ─────────────────────────────────────────────────────

    async def get_counter(self, key: Key) -> Result[int]:
        session = self._require_session(key, "get_counter")
        if not isinstance(session, Session):
            return session
        return await from_awaitable(
            session.scripts.get_counter(keys=session.keys_for(key)),
            lambda content: parse_counter(key, content),
            key=str(key),
            command="get_counter",
        )

    async def increment_counter(self, key: Key, delta: int) -> Result[int]:
        session = self._require_session(key, "increment_counter")
        if not isinstance(session, Session):
            return session

        def convert(reply: list[Any]) -> Result[int]:
            if reply[0] == 0:
                error = DecodeError(f"Counter {key} holds non-numeric content")
                return Err(error.with_context(key=str(key), command="increment_counter"))
            return Ok(int(reply[1]))

        return await from_awaitable(
            session.scripts.increment(keys=session.keys_for(key), args=[delta]),
            convert,
            key=str(key),
            command="increment_counter",
        )

    def __repr__(self) -> str:
        state = "connected" if self.is_connected() else "disconnected"
        return f"RedisBackend({self._settings.host}:{self._settings.port}, {state})"


__all__ = ["RedisBackend"]
