"""In-memory session storage."""

import asyncio


class MemorySessionStorage:
    """Dict-backed storage for tests and short-lived processes."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> str | None:
        async with self._lock:
            return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            self._values[key] = value

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._values.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        """Copy of everything stored."""
        return dict(self._values)
