"""Global busy indicator derived from the cache store."""

from __future__ import annotations

from collections.abc import Callable

from smartlinks.store import CacheStore
from smartlinks.types import EntryStatus, StoreEvent

LoadingListener = Callable[[bool], None]


def is_any_pending(store: CacheStore) -> bool:
    """True iff any cache entry or mutation is pending."""
    if store.pending_mutations():
        return True
    return any(entry.status is EntryStatus.PENDING for entry in store.entries())


class LoadingAggregator:
    """Recomputes :func:`is_any_pending` on every store transition.

    Listeners are told only when the derived value flips.
    """

    def __init__(self, store: CacheStore) -> None:
        self._store = store
        self._listeners: list[LoadingListener] = []
        self._value = is_any_pending(store)
        self._detach: Callable[[], None] | None = store.add_listener(self._on_event)

    @property
    def is_loading(self) -> bool:
        return self._value

    def subscribe(self, listener: LoadingListener) -> Callable[[], None]:
        """Register a listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def close(self) -> None:
        if self._detach is not None:
            self._detach()
            self._detach = None
        self._listeners.clear()

    def _on_event(self, event: StoreEvent) -> None:
        value = is_any_pending(self._store)
        if value == self._value:
            return
        self._value = value
        for listener in list(self._listeners):
            listener(value)
