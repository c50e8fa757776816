"""Quiet-period debouncing on the running event loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Generic, TypeVar

from smartlinks.duration import to_seconds
from smartlinks.types import Duration

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Debouncer(Generic[T]):
    """Commit only the last value pushed within a quiet period.

    Every ``push`` cancels the pending timer and starts a new one, so earlier
    values in the window never reach ``callback``.
    """

    def __init__(self, delay: Duration, callback: Callable[[T], None]) -> None:
        self._delay = to_seconds(delay)
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self._value: T | None = None

    @property
    def delay(self) -> float:
        """Quiet period in seconds."""
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def push(self, value: T) -> None:
        self.cancel()
        self._value = value
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire)

    def flush(self) -> None:
        """Commit the pending value now."""
        if self._handle is not None:
            self._handle.cancel()
            self._fire()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        value = self._value
        self._value = None
        logger.debug("Debounced value committed: %r", value)
        self._callback(value)  # type: ignore[arg-type]
