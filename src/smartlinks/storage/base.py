"""Persistence protocol for session state."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class SessionStorage(Protocol):
    """Async string key-value store the session is persisted to."""

    async def get(self, key: str) -> str | None:
        """Get a stored value, or None if absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store a value."""
        ...

    async def delete(self, key: str) -> None:
        """Remove a value. Missing keys are ignored."""
        ...
