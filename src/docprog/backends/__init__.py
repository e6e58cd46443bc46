"""
Storage backends.

    memory.py     InMemoryBackend (tests, prototyping)
    redis.py      RedisBackend (network store, Lua-scripted CAS)
    bridge.py     Driver callback -> Result adaptation
    session.py    Live Redis connection state
"""

from docprog.backends.memory import InMemoryBackend, run_with_state
from docprog.backends.protocol import Backend, ConnectableBackend
from docprog.backends.redis import RedisBackend
from docprog.backends.session import Session

__all__ = [
    "Backend",
    "ConnectableBackend",
    "InMemoryBackend",
    "RedisBackend",
    "Session",
    "run_with_state",
]
