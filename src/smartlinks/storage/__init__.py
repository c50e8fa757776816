"""Key-value persistence for the session (async only)."""

from contextlib import suppress

from smartlinks.storage.base import SessionStorage
from smartlinks.storage.memory import MemorySessionStorage

# Optional storage - only available when dependencies are installed
with suppress(ImportError):
    from smartlinks.storage.redis import RedisSessionStorage

__all__ = [
    "MemorySessionStorage",
    "RedisSessionStorage",
    "SessionStorage",
]
