"""Client configuration from the environment.

Every field can be overridden with a ``SMARTLINKS_``-prefixed variable, e.g.
``SMARTLINKS_API_URL=https://api.example.com``.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from smartlinks.duration import parse_duration

DEFAULT_API_URL = "http://localhost:5000"


class ClientSettings(BaseSettings):
    api_url: str = DEFAULT_API_URL
    request_timeout: float = Field(default=30.0, gt=0)

    # Cache and list behavior
    search_debounce: str | int = "300ms"
    keep_unused_for: str | int = "60s"
    page_size: int = Field(default=10, ge=1)
    default_sort: str | None = None

    # Uploads land in a public bucket; this is its base URL
    upload_public_url: str = ""

    session_key_prefix: str = ""

    model_config = SettingsConfigDict(
        env_prefix="SMARTLINKS_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("api_url", "upload_public_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @field_validator("search_debounce", "keep_unused_for")
    @classmethod
    def _valid_duration(cls, value: str | int) -> str | int:
        parse_duration(value)
        return value


@lru_cache
def get_settings() -> ClientSettings:
    return ClientSettings()
