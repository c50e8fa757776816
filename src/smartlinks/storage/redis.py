"""Redis session storage."""

from __future__ import annotations

import redis.asyncio


class RedisSessionStorage:
    """Async Redis-backed session storage."""

    def __init__(
        self,
        client: redis.asyncio.Redis,
        *,
        prefix: str = "smartlinks",
    ) -> None:
        self._client = client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        """Generate full Redis key for a session field."""
        return f"{self._prefix}:session:{key}"

    async def get(self, key: str) -> str | None:
        data = await self._client.get(self._key(key))
        if data is None:
            return None
        if isinstance(data, bytes):
            return data.decode("utf-8")
        return str(data)

    async def set(self, key: str, value: str) -> None:
        await self._client.set(self._key(key), value)

    async def delete(self, key: str) -> None:
        await self._client.delete(self._key(key))

    async def disconnect(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()
