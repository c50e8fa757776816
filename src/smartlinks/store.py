"""Cache store - one entry per query key, tag-driven invalidation.

This module provides the operations every consumer goes through:
- subscribe(): Start or join a cached read, de-duplicated per key
- query(): One-shot subscribe, wait for settle, unsubscribe
- mutate(): Run a write, then invalidate the tags it declares
- invalidate(): Refetch subscribed entries providing a tag, evict the rest

Everything runs on one event loop. Nothing here raises for API failures:
errors are stored on the entry or mutation record for the caller to read.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import json
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from smartlinks.duration import to_seconds
from smartlinks.endpoints import Endpoint, EndpointRegistry
from smartlinks.errors import PARSING_ERROR, ApiError, TransportError
from smartlinks.tags import serialize_tag, tags_intersect
from smartlinks.transport.base import AsyncTransport
from smartlinks.types import (
    CacheEntry,
    Duration,
    EndpointKind,
    EntryStatus,
    MutationRecord,
    QueryResult,
    StoreEvent,
    Tag,
)

logger = logging.getLogger(__name__)

StoreListener = Callable[[StoreEvent], None]
SuccessCallback = Callable[[MutationRecord[Any]], Awaitable[None] | None]


def make_query_key(endpoint: str, arg: Any = None) -> str:
    """Deterministic key for a read.

    Mapping keys are sorted at every level, so structurally equal arguments
    share a key regardless of insertion order. ``None`` and ``{}`` are the
    same key.
    """
    if isinstance(arg, Mapping) and not arg:
        arg = None
    serialized = json.dumps(arg, sort_keys=True, separators=(",", ":"), default=str)
    return f"{endpoint}({serialized})"


class Subscription:
    """A consumer's hold on one cache entry."""

    __slots__ = ("_active", "_key", "_store")

    def __init__(self, store: CacheStore, key: str) -> None:
        self._store = store
        self._key = key
        self._active = True

    @property
    def key(self) -> str:
        return self._key

    @property
    def active(self) -> bool:
        return self._active

    @property
    def result(self) -> QueryResult[Any]:
        return self._store.snapshot(self._key)

    async def settled(self) -> QueryResult[Any]:
        """Wait until the entry is no longer pending."""
        return await self._store.wait(self._key)

    def refetch(self) -> None:
        self._store.refetch(self._key)

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._store._release(self._key)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: object) -> None:
        self.unsubscribe()

    def __repr__(self) -> str:
        return f"Subscription({self._key!r}, active={self._active})"


class CacheStore:
    """Async cache of endpoint reads with request de-duplication."""

    def __init__(
        self,
        registry: EndpointRegistry,
        transport: AsyncTransport,
        *,
        keep_unused_for: Duration = "60s",
    ) -> None:
        self._registry = registry
        self._transport = transport
        self._keep_unused_for = to_seconds(keep_unused_for)
        self._entries: dict[str, CacheEntry] = {}
        self._in_flight: dict[str, asyncio.Task[None]] = {}
        self._eviction_timers: dict[str, asyncio.TimerHandle] = {}
        self._mutations: dict[int, MutationRecord[Any]] = {}
        self._mutation_ids = itertools.count(1)
        self._listeners: list[StoreListener] = []

    @property
    def registry(self) -> EndpointRegistry:
        return self._registry

    @property
    def transport(self) -> AsyncTransport:
        return self._transport

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def subscribe(self, endpoint: str, arg: Any = None) -> Subscription:
        """Subscribe to a read, creating its entry on first use.

        Must be called with a running event loop. An idle or errored entry
        starts a fetch; a pending one is joined; a fulfilled one is served
        from cache.
        """
        definition = self._definition(endpoint, EndpointKind.QUERY)
        key = make_query_key(endpoint, arg)

        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(
                key=key,
                endpoint=endpoint,
                arg=arg,
                tags=definition.provided_tags(None, None, arg),
            )
            self._entries[key] = entry
            logger.debug("Created cache entry %s", key)

        entry.subscriber_count += 1
        timer = self._eviction_timers.pop(key, None)
        if timer is not None:
            timer.cancel()

        if entry.status in (EntryStatus.IDLE, EntryStatus.ERROR):
            self._start_fetch(entry)
        return Subscription(self, key)

    async def query(self, endpoint: str, arg: Any = None) -> QueryResult[Any]:
        """Read through the cache once and return the settled result."""
        subscription = self.subscribe(endpoint, arg)
        try:
            return await subscription.settled()
        finally:
            subscription.unsubscribe()

    def refetch(self, key: str) -> None:
        """Refetch a live entry. Joins the in-flight call if one exists."""
        entry = self._entries.get(key)
        if entry is not None:
            self._start_fetch(entry)

    async def wait(self, key: str) -> QueryResult[Any]:
        """Wait for any in-flight call on ``key`` and return the snapshot."""
        while (task := self._in_flight.get(key)) is not None:
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                # Abandoned by reset(); only our own cancellation propagates
                if not task.cancelled():
                    raise
        return self.snapshot(key)

    def snapshot(self, key: str) -> QueryResult[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return QueryResult(data=None, status=EntryStatus.IDLE)
        return QueryResult(data=entry.data, status=entry.status, error=entry.error)

    def get_entry(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def entries(self) -> list[CacheEntry]:
        return list(self._entries.values())

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def mutate(
        self,
        endpoint: str,
        arg: Any = None,
        *,
        on_success: SuccessCallback | None = None,
    ) -> MutationRecord[Any]:
        """Run a write.

        On success, ``on_success`` and the store's listeners run first, then
        the endpoint's tags are invalidated. A failed mutation invalidates
        nothing. Never raises for API errors; use ``record.unwrap()``.
        """
        definition = self._definition(endpoint, EndpointKind.MUTATION)
        record: MutationRecord[Any] = MutationRecord(
            id=next(self._mutation_ids), endpoint=endpoint, arg=arg
        )
        event_key = f"{endpoint}#{record.id}"
        self._mutations[record.id] = record
        self._emit(StoreEvent("mutation", event_key, EntryStatus.PENDING))

        try:
            record.data = await self._call(definition, arg)
            record.status = EntryStatus.FULFILLED
        except ApiError as e:
            record.error = e
            record.status = EntryStatus.ERROR
        finally:
            self._mutations.pop(record.id, None)
            self._emit(StoreEvent("mutation", event_key, record.status))

        if record.status is EntryStatus.ERROR:
            logger.debug("Mutation %s failed: %r", event_key, record.error)
            return record

        if on_success is not None:
            outcome = on_success(record)
            if inspect.isawaitable(outcome):
                await outcome

        record.invalidates = definition.invalidated_tags(record.data, None, arg)
        self.invalidate(record.invalidates)
        return record

    def pending_mutations(self) -> list[MutationRecord[Any]]:
        return list(self._mutations.values())

    # -------------------------------------------------------------------------
    # Invalidation
    # -------------------------------------------------------------------------

    def invalidate(self, tags: Iterable[Tag]) -> list[str]:
        """Invalidate every entry providing any of ``tags``.

        Subscribed entries are refetched, unless already pending, in which
        case the pending call satisfies the invalidation. Unsubscribed entries
        are evicted. Returns the keys that were refetched.
        """
        tags = [Tag(t) for t in tags]
        if not tags:
            return []

        logger.debug("Invalidating %s", ", ".join(serialize_tag(t) for t in tags))
        refetched: list[str] = []
        for entry in list(self._entries.values()):
            if not tags_intersect(tags, entry.tags):
                continue
            if entry.subscriber_count > 0:
                if entry.status is EntryStatus.PENDING:
                    continue
                self._start_fetch(entry)
                refetched.append(entry.key)
            else:
                self._evict(entry.key)
        return refetched

    # -------------------------------------------------------------------------
    # Listeners and lifecycle
    # -------------------------------------------------------------------------

    def add_listener(self, listener: StoreListener) -> Callable[[], None]:
        """Register a transition listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def reset(self) -> None:
        """Drop all cached data and abandon in-flight reads.

        Unsubscribed entries are evicted. Subscribed entries stay registered
        with their subscriber counts, lose their data and are refetched, so
        live subscriptions keep working.
        """
        self._abandon_in_flight()
        live: list[CacheEntry] = []
        for key, entry in list(self._entries.items()):
            if entry.subscriber_count > 0:
                definition = self._registry.get(entry.endpoint)
                entry.status = EntryStatus.IDLE
                entry.data = None
                entry.error = None
                entry.tags = definition.provided_tags(None, None, entry.arg)
                live.append(entry)
            else:
                self._evict(key)
        for entry in live:
            self._start_fetch(entry)
        logger.debug("Store reset, refetching %d live entries", len(live))

    async def aclose(self) -> None:
        """Drop every entry, live or not, and close the transport."""
        self._abandon_in_flight()
        for key in list(self._entries):
            self._evict(key)
        await self._transport.aclose()

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _abandon_in_flight(self) -> None:
        for timer in self._eviction_timers.values():
            timer.cancel()
        self._eviction_timers.clear()
        for task in self._in_flight.values():
            task.cancel()
        self._in_flight.clear()

    def _definition(self, name: str, kind: EndpointKind) -> Endpoint:
        definition = self._registry.get(name)
        if definition.kind is not kind:
            raise TypeError(f"{name!r} is a {definition.kind.value}, not a {kind.value}")
        return definition

    def _start_fetch(self, entry: CacheEntry) -> asyncio.Task[None]:
        """Mark the entry pending and ensure exactly one call is in flight."""
        if entry.status is not EntryStatus.PENDING:
            entry.status = EntryStatus.PENDING
            self._emit(StoreEvent("query", entry.key, EntryStatus.PENDING))

        task = self._in_flight.get(entry.key)
        if task is None:
            loop = asyncio.get_running_loop()
            task = loop.create_task(self._run_query(entry.key, entry.endpoint, entry.arg))
            self._in_flight[entry.key] = task
        return task

    async def _run_query(self, key: str, name: str, arg: Any) -> None:
        definition = self._registry.get(name)
        data: Any = None
        error: ApiError | None = None
        try:
            data = await self._call(definition, arg)
        except ApiError as e:
            error = e
        finally:
            if self._in_flight.get(key) is asyncio.current_task():
                del self._in_flight[key]

        # The entry may have been evicted, or replaced by a new subscriber
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Discarding result for evicted entry %s", key)
            return

        if error is None:
            entry.status = EntryStatus.FULFILLED
            entry.data = data
            entry.error = None
        else:
            entry.status = EntryStatus.ERROR
            entry.error = error
        entry.tags = definition.provided_tags(data, error, arg)
        logger.debug("Cache entry %s -> %s", key, entry.status.value)
        self._emit(StoreEvent("query", key, entry.status))

    async def _call(self, definition: Endpoint, arg: Any) -> Any:
        """Send one request; every failure surfaces as :class:`ApiError`."""
        try:
            raw = await self._transport.send(definition.build_request(arg))
        except ApiError:
            raise
        except Exception as e:
            raise TransportError(str(e) or type(e).__name__) from e

        if definition.transform is None:
            return raw
        try:
            return definition.transform(raw)
        except Exception as e:
            raise ApiError(PARSING_ERROR, raw, str(e)) from e

    def _release(self, key: str) -> None:
        entry = self._entries.get(key)
        if entry is None:
            return
        entry.subscriber_count = max(entry.subscriber_count - 1, 0)
        if entry.subscriber_count == 0:
            previous = self._eviction_timers.pop(key, None)
            if previous is not None:
                previous.cancel()
            loop = asyncio.get_running_loop()
            self._eviction_timers[key] = loop.call_later(
                self._keep_unused_for, self._evict_if_unused, key
            )

    def _evict_if_unused(self, key: str) -> None:
        self._eviction_timers.pop(key, None)
        entry = self._entries.get(key)
        if entry is not None and entry.subscriber_count == 0:
            self._evict(key)

    def _evict(self, key: str) -> None:
        timer = self._eviction_timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        if self._entries.pop(key, None) is not None:
            logger.debug("Evicted cache entry %s", key)
            self._emit(StoreEvent("evict", key, None))

    def _emit(self, event: StoreEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Store listener failed on %s", event)
