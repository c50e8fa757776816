"""Tests for the list controller."""

import asyncio
from typing import Any

import pytest

from smartlinks import CacheStore, Category, ListController, ListState, Request
from smartlinks.errors import ClientError, ServerError


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))


@pytest.fixture
def paged(transport, sites):
    """Three pages of sites; searching "git" narrows to one."""

    def listing(request: Request) -> dict[str, Any]:
        params = request.params or {}
        if params.get("q") == "git":
            return {"results": sites[:1], "page": 1, "limit": 10, "total": 1, "totalPages": 1}
        return {
            "results": sites,
            "page": params.get("page", 1),
            "limit": 10,
            "total": 25,
            "totalPages": 3,
        }

    transport.route("GET", "/sites", listing)
    return transport


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


class TestParams:
    """Tests for parameter derivation."""

    async def test_defaults_send_only_page_and_limit(self, store: CacheStore) -> None:
        controller = ListController(store)
        assert controller.params == {"page": 1, "limit": 10}
        controller.close()

    async def test_default_sort_is_omitted(self, store: CacheStore) -> None:
        controller = ListController(store, default_sort="-created_at")
        controller.set_sort("-created_at")
        assert "sort" not in controller.params
        controller.set_sort("title")
        assert controller.params["sort"] == "title"
        controller.set_sort(None)
        assert "sort" not in controller.params
        controller.close()

    async def test_blank_search_is_omitted(self, store: CacheStore) -> None:
        controller = ListController(store, debounce="10ms")
        controller.set_search_text("   ")
        await asyncio.sleep(0.03)
        assert "q" not in controller.params
        controller.close()

    async def test_invalid_page_size(self, store: CacheStore) -> None:
        with pytest.raises(ValueError):
            ListController(store, page_size=0)


class TestSearch:
    """Tests for debounced search."""

    async def test_raw_text_is_immediate_committed_text_is_debounced(
        self, store: CacheStore, paged
    ) -> None:
        controller = ListController(store, debounce="20ms")
        await controller.settled()

        controller.set_search_text("g")
        controller.set_search_text("gi")
        controller.set_search_text(" git ")
        assert controller.state.raw_search_text == " git "
        assert "q" not in controller.params

        await asyncio.sleep(0.06)
        assert controller.params == {"page": 1, "limit": 10, "q": "git"}
        queried = [c.params for c in paged.calls_to("GET", "/sites")]
        assert {"page": 1, "limit": 10, "q": "g"} not in queried
        controller.close()

    async def test_search_narrows_to_one_page(self, store: CacheStore, paged) -> None:
        controller = ListController(store, debounce="10ms")
        await controller.settled()
        assert controller.pagination.has_next

        controller.set_search_text("git")
        await asyncio.sleep(0.03)
        result = await controller.settled()

        assert result.is_success
        assert [s.title for s in controller.sites] == ["GitHub"]
        assert controller.pagination.total_pages == 1
        assert not controller.pagination.has_next
        controller.close()

    async def test_committed_search_resets_page(self, store: CacheStore, paged) -> None:
        controller = ListController(store, debounce="10ms")
        await controller.settled()
        controller.set_page(2)
        controller.set_search_text("hub")
        assert controller.state.page == 2
        await asyncio.sleep(0.03)
        assert controller.state.page == 1
        controller.close()


class TestPagination:
    """Tests for paging and filter resets."""

    async def test_set_page_is_clamped(self, store: CacheStore, paged) -> None:
        controller = ListController(store)
        await controller.settled()

        controller.set_page(99)
        assert controller.state.page == 3
        controller.next_page()
        assert controller.state.page == 3
        controller.set_page(0)
        assert controller.state.page == 1
        controller.previous_page()
        assert controller.state.page == 1
        controller.close()

    async def test_page_is_clamped_before_first_response(self, store: CacheStore) -> None:
        controller = ListController(store)
        controller.set_page(5)
        assert controller.state.page == 1
        controller.close()

    async def test_filter_and_page_size_reset_page(self, store: CacheStore, paged) -> None:
        controller = ListController(store)
        await controller.settled()

        controller.set_page(2)
        controller.set_category_filter(Category("design", "Design"))
        assert controller.state.page == 1
        assert controller.params["category"] == "design"

        controller.set_page(2)
        controller.set_page_size(25)
        assert controller.state.page == 1
        assert controller.params["limit"] == 25
        controller.close()

    async def test_pagination_survives_refetch(self, store: CacheStore, paged) -> None:
        controller = ListController(store)
        await controller.settled()
        controller.set_page(2)
        assert controller.is_loading
        pagination = controller.pagination
        assert pagination.page == 2
        assert pagination.total == 25
        assert pagination.has_previous and pagination.has_next
        await controller.settled()
        controller.close()

    async def test_moving_keys_moves_subscription(self, store: CacheStore, paged) -> None:
        controller = ListController(store)
        await controller.settled()
        first = controller.query_key

        controller.set_page(2)
        await controller.settled()
        assert store.get_entry(first).subscriber_count == 0
        assert store.get_entry(controller.query_key).subscriber_count == 1
        controller.close()
        assert store.get_entry(controller.query_key).subscriber_count == 0

    async def test_listeners_hear_changes(self, store: CacheStore, paged) -> None:
        controller = ListController(store)
        calls: list[int] = []
        controller.add_listener(lambda c: calls.append(c.state.page))
        await controller.settled()
        controller.set_page(2)
        assert calls
        assert calls[-1] == 2
        controller.close()


class TestActions:
    """Tests for save and delete."""

    async def test_save_resets_filters_and_refetches(
        self, store: CacheStore, paged, notifier: RecordingNotifier
    ) -> None:
        paged.route("POST", "/sites", {"id": "3", "title": "New"})
        controller = ListController(store, notifier=notifier)
        await controller.settled()
        controller.set_category_filter("design")
        await controller.settled()

        record = await controller.save_site({"name": "New", "url": "https://new.dev"})

        assert record.is_success
        assert paged.calls_to("POST", "/sites")[0].body == {
            "title": "New",
            "site_url": "https://new.dev",
        }
        assert controller.state == ListState()
        assert notifier.messages == [("success", "Link created")]
        result = await controller.settled()
        assert result.is_success
        controller.close()

    async def test_update_uses_id_and_data(
        self, store: CacheStore, paged, notifier: RecordingNotifier
    ) -> None:
        paged.route("PATCH", "/sites/1", {"id": "1"})
        controller = ListController(store, notifier=notifier)
        await controller.settled()

        await controller.save_site({"title": "Renamed"}, site_id="1")
        assert paged.calls_to("PATCH", "/sites/1")[0].body == {"title": "Renamed"}
        assert notifier.messages == [("success", "Link updated")]
        controller.close()

    async def test_failed_save_keeps_state_and_reports(
        self, store: CacheStore, paged, notifier: RecordingNotifier
    ) -> None:
        paged.route("POST", "/sites", ClientError(422, {"errors": ["Title required"]}))
        controller = ListController(store, notifier=notifier)
        controller.set_category_filter("design")
        await controller.settled()

        record = await controller.save_site({"title": ""})
        assert not record.is_success
        assert controller.state.category_filter == "design"
        assert notifier.messages == [("error", "Title required")]
        controller.close()

    async def test_delete(
        self, store: CacheStore, paged, notifier: RecordingNotifier
    ) -> None:
        paged.route("DELETE", "/sites/1", {"ok": True})
        controller = ListController(store, notifier=notifier)
        await controller.settled()

        assert await controller.delete_site("1") is True
        assert notifier.messages == [("success", "Link deleted")]
        await controller.settled()
        assert len(paged.calls_to("GET", "/sites")) == 2
        controller.close()

    async def test_delete_failure_reports(
        self, store: CacheStore, paged, notifier: RecordingNotifier
    ) -> None:
        paged.route("DELETE", "/sites/1", ServerError(500, {"message": "locked"}))
        controller = ListController(store, notifier=notifier)
        await controller.settled()

        assert await controller.delete_site("1") is False
        assert notifier.messages == [("error", "locked")]
        assert len(paged.calls_to("DELETE", "/sites/1")) == 2
        controller.close()


class TestStoreReset:
    """Tests for a controller living through a store reset."""

    async def test_listing_reloads_after_reset(self, store: CacheStore, paged, drain) -> None:
        controller = ListController(store)
        await controller.settled()

        store.reset()
        controller.refetch()
        await drain()

        assert controller.result.is_success
        assert [s.title for s in controller.sites] == ["GitHub", "GitLab"]
        assert len(paged.calls_to("GET", "/sites")) == 2
        controller.close()

    async def test_close_after_reset_releases_entry(
        self, store: CacheStore, paged
    ) -> None:
        controller = ListController(store)
        await controller.settled()
        store.reset()
        await controller.settled()

        other = store.subscribe("list_sites", controller.params)
        controller.close()
        assert store.get_entry(other.key).subscriber_count == 1
        other.unsubscribe()


class TestErrors:
    """Tests for listing failures."""

    async def test_error_message(self, store: CacheStore, transport) -> None:
        transport.route("GET", "/sites", ServerError(500, {"message": "db down"}))
        controller = ListController(store)
        await controller.settled()
        assert controller.error_message == "db down"
        assert controller.sites == []
        controller.close()

    async def test_no_error_message_on_success(self, store: CacheStore) -> None:
        controller = ListController(store)
        await controller.settled()
        assert controller.error_message is None
        controller.close()
