"""Transports that carry requests to the directory API (async only)."""

from smartlinks.transport.base import AsyncTransport
from smartlinks.transport.http import HttpTransport

__all__ = [
    "AsyncTransport",
    "HttpTransport",
]
