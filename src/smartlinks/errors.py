"""Error types and message extraction.

Failed requests are classified the same way regardless of endpoint:

- ``TransportError``: no response at all (``status == "FETCH_ERROR"``)
- ``ClientError``: HTTP 4xx, validation or auth problems
- ``ServerError``: HTTP 5xx
- ``ApiError`` with ``status == "PARSING_ERROR"``: a 2xx whose body was not JSON

``data`` always holds the decoded response body verbatim so callers can
inspect application-level shapes such as ``{"message": ...}`` or
``{"errors": [...]}``.
"""

from __future__ import annotations

import json
from typing import Any

FETCH_ERROR = "FETCH_ERROR"
PARSING_ERROR = "PARSING_ERROR"

GENERIC_MESSAGE = "An error occurred while contacting the server."
UNKNOWN_MESSAGE = "An unknown error occurred."


class ApiError(Exception):
    """A failed API call."""

    def __init__(
        self,
        status: int | str,
        data: Any = None,
        error: str | None = None,
    ) -> None:
        self.status = status
        self.data = data
        self.error = error
        super().__init__(error or f"API request failed with status {status}")

    @classmethod
    def from_response(cls, status: int, data: Any) -> ApiError:
        """Pick the error class for an HTTP status."""
        if 400 <= status < 500:
            return ClientError(status, data)
        if status >= 500:
            return ServerError(status, data)
        return cls(status, data)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status!r}, data={self.data!r})"


class TransportError(ApiError):
    """The request never produced a response."""

    def __init__(self, error: str) -> None:
        super().__init__(FETCH_ERROR, None, error)


class ClientError(ApiError):
    """HTTP 4xx."""


class ServerError(ApiError):
    """HTTP 5xx."""


class UploadError(Exception):
    """The presigned upload flow failed."""


class RegistryFrozenError(RuntimeError):
    """An endpoint was registered after the registry was frozen."""


class UnknownEndpointError(KeyError):
    """No endpoint is registered under the requested name."""


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def get_error_message(error: Any) -> str:
    """Extract a displayable message from any error shape.

    Checks, in order: a plain string, ``data`` as a string, ``data.message``,
    ``data.error``, ``data.errors`` (joined), top-level ``error``, top-level
    ``message``. Falls back to a generic message so callers always get text.
    """
    if not error:
        return UNKNOWN_MESSAGE

    if isinstance(error, str):
        return error

    data = _field(error, "data")
    if data:
        if isinstance(data, str):
            return data
        message = _field(data, "message")
        if message:
            return str(message)
        nested = _field(data, "error")
        if nested:
            return str(nested)
        errors = _field(data, "errors")
        if errors:
            if isinstance(errors, (list, tuple)):
                return ", ".join(str(e) for e in errors)
            return json.dumps(errors, default=str)

    top_error = _field(error, "error")
    if top_error:
        return str(top_error)

    message = _field(error, "message")
    if message:
        return str(message)

    if isinstance(error, Exception) and not isinstance(error, ApiError):
        text = str(error)
        if text:
            return text

    return GENERIC_MESSAGE
