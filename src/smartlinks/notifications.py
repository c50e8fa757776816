"""Transient user notifications."""

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Receives short messages meant for the person using the client."""

    def success(self, message: str) -> None:
        """Report a completed action."""
        ...

    def error(self, message: str) -> None:
        """Report a failed action."""
        ...


class LoggingNotifier:
    """Notifier that writes to the ``smartlinks.notifications`` logger."""

    def success(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.error(message)
