"""Base transport protocol."""

from typing import Any, Protocol, runtime_checkable

from smartlinks.types import Request


@runtime_checkable
class AsyncTransport(Protocol):
    """Async transport interface.

    ``send`` returns the decoded response body or raises
    :class:`~smartlinks.errors.ApiError`.
    """

    async def send(self, request: Request) -> Any:
        """Perform a request."""
        ...

    async def aclose(self) -> None:
        """Release connections."""
        ...
