"""Shared pytest fixtures."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import pytest

from smartlinks import CacheStore, MemorySessionStorage, Request, default_registry
from smartlinks.errors import ClientError


class FakeTransport:
    """Scripted in-process transport.

    Routes map ``(method, url)`` to a value, an exception, or a callable
    receiving the request. ``hold()`` parks every call until ``release()`` so
    tests can observe pending states.
    """

    def __init__(self) -> None:
        self.calls: list[Request] = []
        self.closed = False
        self._routes: dict[tuple[str, str], Any] = {}
        self._gate: asyncio.Event | None = None
        self._gate_route: tuple[str | None, str | None] = (None, None)

    def route(self, method: str, url: str, response: Any = None) -> None:
        self._routes[(method, url)] = response

    def hold(self, method: str | None = None, url: str | None = None) -> None:
        """Park matching calls (all calls by default) until release()."""
        self._gate = asyncio.Event()
        self._gate_route = (method, url)

    def release(self) -> None:
        if self._gate is not None:
            self._gate.set()
            self._gate = None

    def _gated(self, request: Request) -> bool:
        method, url = self._gate_route
        return (method is None or method == request.method) and (
            url is None or url == request.url
        )

    def calls_to(self, method: str, url: str) -> list[Request]:
        return [c for c in self.calls if c.method == method and c.url == url]

    async def send(self, request: Request) -> Any:
        self.calls.append(request)
        gate = self._gate if self._gated(request) else None
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)

        key = (request.method, request.url)
        if key not in self._routes:
            raise ClientError(404, {"message": f"No route for {request.method} {request.url}"})
        response = self._routes[key]
        if callable(response) and not isinstance(response, type):
            response = response(request)
        if isinstance(response, Exception):
            raise response
        return response

    async def aclose(self) -> None:
        self.closed = True


SITES = [
    {
        "_id": "1",
        "title": "GitHub",
        "site_url": "https://github.com",
        "category": "Technology",
    },
    {
        "id": "2",
        "name": "GitLab",
        "siteUrl": "https://gitlab.com",
        "coverImage": "https://gitlab.com/cover.png",
        "category": {"_id": "tech", "name": "Technology"},
    },
]


@pytest.fixture
def transport() -> FakeTransport:
    """Create a fresh FakeTransport with the site listing routed."""
    fake = FakeTransport()
    fake.route(
        "GET",
        "/sites",
        {"results": SITES, "page": 1, "limit": 10, "total": 2, "totalPages": 1},
    )
    return fake


@pytest.fixture
def store(transport: FakeTransport) -> CacheStore:
    """Create a CacheStore over the default registry."""
    return CacheStore(default_registry(), transport, keep_unused_for="60s")


@pytest.fixture
def session_storage() -> MemorySessionStorage:
    """Create a fresh MemorySessionStorage for each test."""
    return MemorySessionStorage()


@pytest.fixture
def drain() -> Callable[[], Awaitable[None]]:
    """Return a coroutine function that lets every ready task run."""

    async def run() -> None:
        for _ in range(10):
            await asyncio.sleep(0)

    return run


@pytest.fixture
def sites() -> list[dict[str, Any]]:
    """Raw site records as the API returns them."""
    return [dict(site) for site in SITES]
