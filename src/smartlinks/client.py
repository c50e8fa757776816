"""SmartLinksClient - typed operations over the cache store.

Provides:
- Reads that go through the cache: list_sites(), get_site(), list_categories()
- Writes that invalidate it: create_site(), update_site(), delete_site()
- Auth transitions wired to the session: login(), signup(), logout()
- Factories for list controllers and the loading aggregator
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from smartlinks.config import ClientSettings, get_settings
from smartlinks.controller import ListController
from smartlinks.delete_policy import DeleteRetryPolicy
from smartlinks.endpoints import EndpointRegistry, default_registry
from smartlinks.loading import LoadingAggregator
from smartlinks.models import Category, SitePage, normalize_categories, site_payload
from smartlinks.notifications import Notifier
from smartlinks.session import SessionStore
from smartlinks.storage.base import SessionStorage
from smartlinks.store import CacheStore
from smartlinks.transport.base import AsyncTransport
from smartlinks.transport.http import HttpTransport
from smartlinks.types import MutationRecord, QueryResult


def extract_generated_text(response: Any) -> str:
    """Pull the generated description out of whatever shape came back."""
    if isinstance(response, str):
        return response
    if isinstance(response, Mapping):
        data = response.get("data")
        if isinstance(data, Mapping) and data.get("description"):
            return str(data["description"])
        for key in ("description", "generatedDescription"):
            if response.get(key):
                return str(response[key])
    return ""


class SmartLinksClient:
    """Entry point for the link directory API.

    Usage:
        async with create_client() as client:
            await client.session.load_from_storage()
            page = await client.list_sites({"q": "git", "page": 1, "limit": 10})
    """

    def __init__(
        self,
        store: CacheStore,
        session: SessionStore,
        *,
        settings: ClientSettings | None = None,
    ) -> None:
        self._store = store
        self._session = session
        self._settings = settings or get_settings()
        self._delete_policy = DeleteRetryPolicy(store)

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def session(self) -> SessionStore:
        return self._session

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def list_sites(
        self, params: Mapping[str, Any] | None = None
    ) -> QueryResult[SitePage]:
        return await self._store.query("list_sites", dict(params or {}))

    async def list_public_sites(
        self, params: Mapping[str, Any] | None = None
    ) -> QueryResult[SitePage]:
        return await self._store.query("list_public_sites", dict(params or {}))

    async def get_site(self, site_id: str) -> QueryResult[Any]:
        return await self._store.query("get_site", site_id)

    async def list_categories(self) -> list[Category]:
        """Categories from the server, or the built-in defaults if that fails."""
        result = await self._store.query("list_categories")
        if result.is_success and result.data:
            return list(result.data)
        return normalize_categories(None)

    async def ai_status(self) -> QueryResult[Any]:
        return await self._store.query("ai_status")

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create_site(self, fields: Mapping[str, Any]) -> MutationRecord[Any]:
        return await self._store.mutate("create_site", site_payload(fields))

    async def update_site(
        self, site_id: str, fields: Mapping[str, Any]
    ) -> MutationRecord[Any]:
        return await self._store.mutate(
            "update_site", {"id": site_id, "data": site_payload(fields)}
        )

    async def delete_site(self, site_id: str) -> MutationRecord[Any]:
        """Delete with the bare-id / object-payload fallback."""
        return await self._delete_policy.delete_resource(site_id)

    async def generate_description(
        self, title: str, category: str, site_url: str = ""
    ) -> str:
        """Ask the AI endpoint for a description. Returns "" if none came back."""
        if not title or not category:
            raise ValueError("title and category are required")
        record = await self._store.mutate(
            "generate_description",
            {"title": title, "category": category, "site_url": site_url},
        )
        return extract_generated_text(record.unwrap())

    async def get_upload_url(self, file_name: str, file_type: str) -> dict[str, Any]:
        record = await self._store.mutate(
            "get_upload_url", {"fileName": file_name, "fileType": file_type}
        )
        return dict(record.unwrap() or {})

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    async def login(self, email: str, password: str) -> MutationRecord[Any]:
        """Log in; on success the session adopts the returned credentials."""
        return await self._store.mutate(
            "login",
            {"email": email, "password": password},
            on_success=self._adopt_credentials,
        )

    async def signup(
        self, username: str, email: str, password: str
    ) -> MutationRecord[Any]:
        return await self._store.mutate(
            "signup",
            {"username": username, "email": email, "password": password},
            on_success=self._adopt_credentials,
        )

    async def logout(self) -> None:
        """Clear the session and every cached read made with it."""
        await self._session.logout()
        self._store.reset()

    async def _adopt_credentials(self, record: MutationRecord[Any]) -> None:
        data = record.data if isinstance(record.data, Mapping) else {}
        await self._session.set_credentials(data)

    # -------------------------------------------------------------------------
    # Consumers and lifecycle
    # -------------------------------------------------------------------------

    def list_controller(
        self,
        *,
        endpoint: str = "list_sites",
        notifier: Notifier | None = None,
        **overrides: Any,
    ) -> ListController:
        options: dict[str, Any] = {
            "page_size": self._settings.page_size,
            "debounce": self._settings.search_debounce,
            "default_sort": self._settings.default_sort,
        }
        options.update(overrides)
        return ListController(
            self._store,
            endpoint=endpoint,
            notifier=notifier,
            delete_policy=self._delete_policy,
            **options,
        )

    def loading_aggregator(self) -> LoadingAggregator:
        return LoadingAggregator(self._store)

    async def aclose(self) -> None:
        await self._store.aclose()

    async def __aenter__(self) -> SmartLinksClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()


def create_client(
    settings: ClientSettings | None = None,
    *,
    transport: AsyncTransport | None = None,
    storage: SessionStorage | None = None,
    registry: EndpointRegistry | None = None,
) -> SmartLinksClient:
    """Create a client wired from settings.

    Args:
        settings: Configuration (default: read from the environment)
        transport: Transport override (default: HTTP to ``settings.api_url``)
        storage: Session persistence (default: none, session lives in memory)
        registry: Endpoint table (default: :func:`default_registry`)

    Returns:
        SmartLinksClient sharing one store and one session
    """
    settings = settings or get_settings()
    session = SessionStore(storage, key_prefix=settings.session_key_prefix)
    if transport is None:
        transport = HttpTransport(
            settings.api_url, session, timeout=settings.request_timeout
        )
    store = CacheStore(
        registry or default_registry(),
        transport,
        keep_unused_for=settings.keep_unused_for,
    )
    return SmartLinksClient(store, session, settings=settings)
