"""HTTP transport for the directory REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from smartlinks.auth import prepare_headers
from smartlinks.errors import PARSING_ERROR, ApiError, TransportError
from smartlinks.session import SessionStore
from smartlinks.types import Request

logger = logging.getLogger(__name__)


class HttpTransport:
    """Async HTTP transport.

    Headers are rebuilt from ``session_store.current`` for every request, so
    a token rotation applies to the next call and never to one already in
    flight.
    """

    def __init__(
        self,
        base_url: str,
        session_store: SessionStore | None = None,
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._session_store = session_store
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
        )

    async def send(self, request: Request) -> Any:
        """Perform a request and decode its JSON body."""
        session = self._session_store.current if self._session_store else None
        headers = prepare_headers(session)
        logger.debug("%s %s params=%s", request.method, request.url, request.params)

        try:
            response = await self._client.request(
                request.method,
                request.url,
                params=dict(request.params) if request.params else None,
                json=request.body,
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise TransportError(str(e) or type(e).__name__) from e

        if not response.is_success:
            raise ApiError.from_response(response.status_code, _decode_error(response))

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(PARSING_ERROR, response.text, str(e)) from e

    async def aclose(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()


def _decode_error(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
