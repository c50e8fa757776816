"""Presigned upload of cover images.

    uploader = Uploader(client, public_url="https://bucket.s3.amazonaws.com")
    url = await uploader.upload(UploadFile("cover.png", "image/png", data))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from smartlinks.client import SmartLinksClient
from smartlinks.errors import ApiError, UploadError, get_error_message

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UploadFile:
    name: str
    content_type: str
    content: bytes


class Uploader:
    """Request a presigned URL, PUT the bytes there, return the public URL."""

    def __init__(
        self,
        client: SmartLinksClient,
        *,
        public_url: str | None = None,
        http: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ) -> None:
        self._client = client
        public_url = public_url if public_url is not None else client.settings.upload_public_url
        if not public_url:
            raise ValueError("public_url is required to build uploaded file URLs")
        self._public_url = public_url.rstrip("/")
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout)

    async def upload(self, file: UploadFile) -> str:
        try:
            target = await self._client.get_upload_url(file.name, file.content_type)
        except ApiError as e:
            raise UploadError(
                f"Failed to get upload URL: {get_error_message(e)}"
            ) from e

        url = target.get("url")
        file_key = target.get("fileKey")
        if not url or not file_key:
            raise UploadError("Upload helper response is missing url or fileKey")

        try:
            response = await self._http.put(
                url,
                content=file.content,
                headers={"Content-Type": file.content_type},
            )
        except httpx.HTTPError as e:
            raise UploadError(f"Failed to upload {file.name}: {e}") from e
        if not response.is_success:
            raise UploadError(
                f"Failed to upload {file.name}: HTTP {response.status_code}"
            )

        logger.debug("Uploaded %s as %s", file.name, file_key)
        return f"{self._public_url}/{file_key}"

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()
