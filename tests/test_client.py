"""Tests for SmartLinksClient and create_client."""

import pytest

from smartlinks import (
    ClientSettings,
    HttpTransport,
    MemorySessionStorage,
    Session,
    SmartLinksClient,
    create_client,
)
from smartlinks.client import extract_generated_text
from smartlinks.errors import ClientError, ServerError
from smartlinks.models import DEFAULT_CATEGORIES


@pytest.fixture
def settings() -> ClientSettings:
    return ClientSettings(api_url="http://api.test", page_size=5, search_debounce="10ms")


@pytest.fixture
def client(settings, transport, session_storage) -> SmartLinksClient:
    return create_client(settings, transport=transport, storage=session_storage)


class TestCreateClient:
    """Tests for the factory."""

    async def test_builds_http_transport(self, settings) -> None:
        client = create_client(settings)
        assert isinstance(client.store.transport, HttpTransport)
        assert client.settings is settings
        await client.aclose()

    async def test_context_manager_closes_transport(self, client, transport) -> None:
        async with client:
            pass
        assert transport.closed


class TestReads:
    """Tests for cached reads."""

    async def test_list_sites(self, client, transport) -> None:
        result = await client.list_sites({"page": 1, "limit": 10})
        assert result.is_success
        assert result.data.total_pages == 1
        assert transport.calls[0].params == {"page": 1, "limit": 10}

    async def test_get_site(self, client, transport) -> None:
        transport.route("GET", "/sites/2", {"_id": "2", "title": "GitLab"})
        result = await client.get_site("2")
        assert result.data.id == "2"

    async def test_categories_from_server(self, client, transport) -> None:
        transport.route(
            "GET", "/sites/categories", {"categories": ["Design", {"_id": "x", "name": "X"}]}
        )
        categories = await client.list_categories()
        assert [(c.id, c.display_name) for c in categories] == [
            ("Design", "Design"),
            ("x", "X"),
        ]

    async def test_categories_fall_back_on_error(self, client, transport) -> None:
        transport.route("GET", "/sites/categories", ServerError(503, None))
        categories = await client.list_categories()
        assert [c.id for c in categories] == list(DEFAULT_CATEGORIES)

    async def test_ai_status(self, client, transport) -> None:
        transport.route("GET", "/ai/status", {"enabled": True})
        result = await client.ai_status()
        assert result.data == {"enabled": True}


class TestWrites:
    """Tests for writes through the client."""

    async def test_create_normalizes_payload(self, client, transport) -> None:
        transport.route("POST", "/sites", {"id": "9"})
        record = await client.create_site(
            {"name": "Docs", "siteUrl": "https://docs.dev", "coverImage": "c.png"}
        )
        assert record.is_success
        assert transport.calls_to("POST", "/sites")[0].body == {
            "title": "Docs",
            "site_url": "https://docs.dev",
            "cover_image": "c.png",
        }

    async def test_update(self, client, transport) -> None:
        transport.route("PATCH", "/sites/9", {"id": "9"})
        record = await client.update_site("9", {"description": "Updated"})
        assert record.is_success
        assert transport.calls_to("PATCH", "/sites/9")[0].body == {"description": "Updated"}

    async def test_delete(self, client, transport) -> None:
        transport.route("DELETE", "/sites/9", None)
        record = await client.delete_site("9")
        assert record.is_success

    async def test_upload_url(self, client, transport) -> None:
        transport.route(
            "POST", "/upload-helper", {"url": "https://s3/put", "fileKey": "k/cover.png"}
        )
        target = await client.get_upload_url("cover.png", "image/png")
        assert target["fileKey"] == "k/cover.png"
        assert transport.calls_to("POST", "/upload-helper")[0].body == {
            "fileName": "cover.png",
            "fileType": "image/png",
        }


class TestGenerateDescription:
    """Tests for AI description generation."""

    async def test_nested_description(self, client, transport) -> None:
        transport.route(
            "POST", "/ai/generate-description", {"data": {"description": "A code forge"}}
        )
        text = await client.generate_description("GitHub", "Technology")
        assert text == "A code forge"

    async def test_requires_title_and_category(self, client) -> None:
        with pytest.raises(ValueError):
            await client.generate_description("GitHub", "")

    async def test_error_propagates(self, client, transport) -> None:
        transport.route(
            "POST", "/ai/generate-description", ClientError(429, {"message": "slow down"})
        )
        with pytest.raises(ClientError):
            await client.generate_description("GitHub", "Technology")

    @pytest.mark.parametrize(
        ("response", "expected"),
        [
            ({"data": {"description": "a"}}, "a"),
            ({"description": "b"}, "b"),
            ({"generatedDescription": "c"}, "c"),
            ("d", "d"),
            ({}, ""),
            (None, ""),
        ],
    )
    def test_extract_generated_text(self, response, expected) -> None:
        assert extract_generated_text(response) == expected


class TestAuth:
    """Tests for login, signup and logout."""

    async def test_login_sets_session(self, client, transport, session_storage) -> None:
        transport.route(
            "POST", "/auth/login", {"user": {"id": 1, "role": "admin"}, "accessToken": "tok"}
        )
        record = await client.login("a@b.c", "pw")

        assert record.is_success
        assert client.session.current.token == "tok"
        assert client.session.current.is_authenticated
        assert session_storage.snapshot()["token"] == "tok"

    async def test_failed_login_leaves_session(self, client, transport) -> None:
        transport.route("POST", "/auth/login", ClientError(401, {"message": "Invalid"}))
        record = await client.login("a@b.c", "wrong")
        assert not record.is_success
        assert client.session.current == Session.anonymous()

    async def test_signup_sets_session(self, client, transport) -> None:
        transport.route("POST", "/auth/signup", {"data": {"id": 2}, "token": "new"})
        await client.signup("neo", "neo@b.c", "pw")
        assert client.session.current.user == {"id": 2}
        assert transport.calls_to("POST", "/auth/signup")[0].body == {
            "username": "neo",
            "email": "neo@b.c",
            "password": "pw",
        }

    async def test_logout_clears_session_and_cache(self, client, transport) -> None:
        transport.route("POST", "/auth/login", {"user": {"id": 1}, "token": "tok"})
        await client.login("a@b.c", "pw")
        await client.list_sites()
        assert client.store.entries()

        await client.logout()
        assert client.store.entries() == []
        assert client.session.current == Session.anonymous()


class TestConsumers:
    """Tests for controller and aggregator factories."""

    async def test_list_controller_uses_settings(self, client) -> None:
        controller = client.list_controller()
        assert controller.params == {"page": 1, "limit": 5}
        controller.close()

    async def test_list_controller_overrides(self, client) -> None:
        controller = client.list_controller(page_size=20, endpoint="list_public_sites")
        assert controller.params["limit"] == 20
        assert controller.query_key.startswith("list_public_sites(")
        controller.close()

    async def test_loading_aggregator(self, client) -> None:
        aggregator = client.loading_aggregator()
        assert aggregator.is_loading is False
        aggregator.close()
