"""List controller - search, filter, sort and paginate a site listing.

State transitions:
- set_search_text(): raw text updates at once; the committed search value
  follows after the quiet period and resets the page to 1
- set_category_filter(), set_sort(), set_page_size(): apply at once, page -> 1
- set_page(): clamped to the last server-reported page count

Whenever the committed inputs change, a new parameter object is derived and
the controller moves its cache subscription to the matching key.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from smartlinks.debounce import Debouncer
from smartlinks.delete_policy import DeleteRetryPolicy
from smartlinks.errors import ApiError, get_error_message
from smartlinks.models import Category, Site, SitePage, site_payload
from smartlinks.notifications import LoggingNotifier, Notifier
from smartlinks.store import CacheStore, Subscription, make_query_key
from smartlinks.types import Duration, MutationRecord, QueryResult, StoreEvent

logger = logging.getLogger(__name__)

ControllerListener = Callable[["ListController"], None]


@dataclass(frozen=True, slots=True)
class ListState:
    raw_search_text: str = ""
    debounced_search_text: str = ""
    category_filter: str = ""
    page: int = 1
    page_size: int = 10
    sort: str | None = None


@dataclass(frozen=True, slots=True)
class Pagination:
    page: int
    limit: int
    total: int
    total_pages: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


class ListController:
    """Drives one paginated, filterable listing through the cache store.

    Create it while an event loop is running; it subscribes immediately.
    """

    def __init__(
        self,
        store: CacheStore,
        *,
        page_size: int = 10,
        debounce: Duration = "300ms",
        default_sort: str | None = None,
        endpoint: str = "list_sites",
        notifier: Notifier | None = None,
        delete_policy: DeleteRetryPolicy | None = None,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._store = store
        self._endpoint = endpoint
        self._default_sort = default_sort
        self._defaults = ListState(page_size=page_size, sort=default_sort)
        self._state = self._defaults
        self._notifier = notifier or LoggingNotifier()
        self._delete_policy = delete_policy or DeleteRetryPolicy(store)
        self._debouncer: Debouncer[str] = Debouncer(debounce, self._commit_search)
        self._listeners: list[ControllerListener] = []
        self._last_page: SitePage | None = None
        self._subscription: Subscription | None = None
        self._detach = store.add_listener(self._on_store_event)
        self._sync()

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ListState:
        return self._state

    @property
    def params(self) -> dict[str, Any]:
        """Query parameters for the current committed state.

        ``page`` and ``limit`` are always sent. Empty search, empty category
        and the default sort are omitted so an unfiltered listing shares its
        key with a fresh page load.
        """
        state = self._state
        params: dict[str, Any] = {"page": state.page, "limit": state.page_size}
        search = state.debounced_search_text.strip()
        if search:
            params["q"] = search
        if state.category_filter:
            params["category"] = state.category_filter
        if state.sort and state.sort != self._default_sort:
            params["sort"] = state.sort
        return params

    @property
    def query_key(self) -> str:
        return make_query_key(self._endpoint, self.params)

    def set_search_text(self, text: str) -> None:
        self._update(raw_search_text=text)
        self._debouncer.push(text)

    def set_category_filter(self, category: Category | str | None) -> None:
        if isinstance(category, Category):
            category = category.id
        self._update(category_filter=category or "", page=1)

    def set_sort(self, sort: str | None) -> None:
        self._update(sort=sort or self._default_sort, page=1)

    def set_page_size(self, page_size: int) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._update(page_size=page_size, page=1)

    def set_page(self, page: int) -> None:
        """Go to ``page``, clamped to ``[1, total_pages]``."""
        total_pages = self._last_page.total_pages if self._last_page else 1
        self._update(page=max(1, min(page, total_pages)))

    def next_page(self) -> None:
        self.set_page(self._state.page + 1)

    def previous_page(self) -> None:
        self.set_page(self._state.page - 1)

    def reset(self) -> None:
        """Back to default filters, sort and page."""
        self._debouncer.cancel()
        self._state = self._defaults
        self._sync()
        self._notify()

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    @property
    def result(self) -> QueryResult[Any]:
        if self._subscription is None:
            return self._store.snapshot(self.query_key)
        return self._subscription.result

    @property
    def is_loading(self) -> bool:
        return self.result.is_loading

    @property
    def sites(self) -> list[Site]:
        data = self.result.data
        if isinstance(data, SitePage):
            return list(data.results)
        return []

    @property
    def pagination(self) -> Pagination:
        data = self.result.data
        page = data if isinstance(data, SitePage) else self._last_page
        if page is None:
            return Pagination(
                page=self._state.page,
                limit=self._state.page_size,
                total=0,
                total_pages=1,
            )
        return Pagination(
            page=self._state.page,
            limit=page.limit or self._state.page_size,
            total=page.total,
            total_pages=page.total_pages,
        )

    @property
    def error_message(self) -> str | None:
        """Inline message for a failed listing, or None."""
        result = self.result
        if not result.is_error:
            return None
        return get_error_message(result.error)

    async def settled(self) -> QueryResult[Any]:
        """Wait for the current listing to settle."""
        if self._subscription is None:
            return self.result
        return await self._subscription.settled()

    def refetch(self) -> None:
        if self._subscription is not None:
            self._subscription.refetch()

    def add_listener(self, listener: ControllerListener) -> Callable[[], None]:
        """Register a change listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    async def save_site(
        self,
        fields: Mapping[str, Any],
        site_id: str | None = None,
    ) -> MutationRecord[Any]:
        """Create a site, or update ``site_id``.

        On success the listing returns to defaults and is refetched so the
        saved record is visible whatever the previous filters were.
        """
        payload = site_payload(fields)
        if site_id is None:
            record = await self._store.mutate("create_site", payload)
        else:
            record = await self._store.mutate(
                "update_site", {"id": site_id, "data": payload}
            )

        if not record.is_success:
            self._notifier.error(get_error_message(record.error))
            return record

        self.reset()
        self.refetch()
        self._notifier.success("Link updated" if site_id else "Link created")
        logger.info("Saved site %s", site_id or "(new)")
        return record

    async def delete_site(self, site_id: str) -> bool:
        """Delete through the retry policy. Returns True on success."""
        try:
            await self._delete_policy.delete_resource(site_id)
        except ApiError as e:
            self._notifier.error(get_error_message(e))
            return False

        self.refetch()
        self._notifier.success("Link deleted")
        logger.info("Deleted site %s", site_id)
        return True

    def close(self) -> None:
        self._debouncer.cancel()
        self._detach()
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._listeners.clear()

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _update(self, **changes: Any) -> None:
        state = replace(self._state, **changes)
        if state == self._state:
            return
        self._state = state
        self._sync()
        self._notify()

    def _commit_search(self, text: str) -> None:
        self._update(debounced_search_text=text, page=1)

    def _sync(self) -> None:
        """Move the subscription to the key of the current parameters."""
        params = self.params
        key = make_query_key(self._endpoint, params)
        if self._subscription is not None and self._subscription.key == key:
            return
        previous = self._subscription
        self._subscription = self._store.subscribe(self._endpoint, params)
        if previous is not None:
            previous.unsubscribe()
        self._remember(self._subscription.result)

    def _remember(self, result: QueryResult[Any]) -> None:
        if result.is_success and isinstance(result.data, SitePage):
            self._last_page = result.data

    def _on_store_event(self, event: StoreEvent) -> None:
        if self._subscription is None or event.key != self._subscription.key:
            return
        self._remember(self._subscription.result)
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
