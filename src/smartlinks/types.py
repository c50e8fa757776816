"""Core types for the smartlinks cache layer."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Generic,
    Literal,
    NewType,
    TypeVar,
)

T = TypeVar("T")

# Branded tag type - compile-time enforcement only
if TYPE_CHECKING:
    Tag = NewType("Tag", tuple[str, ...])
else:
    Tag = tuple

# Duration type alias
Duration = str | int  # "300ms", "30s", "5m" or milliseconds


class EntryStatus(str, Enum):
    """Lifecycle of a cache entry or mutation record."""

    IDLE = "idle"
    PENDING = "pending"
    FULFILLED = "fulfilled"
    ERROR = "error"


class EndpointKind(str, Enum):
    QUERY = "query"
    MUTATION = "mutation"


@dataclass(frozen=True, slots=True)
class Request:
    """An HTTP request described relative to the API base URL."""

    method: str
    url: str
    params: Mapping[str, Any] | None = None
    body: Any = None


@dataclass(slots=True)
class CacheEntry:
    """One cached read, keyed by endpoint name and serialized argument."""

    key: str
    endpoint: str
    arg: Any
    status: EntryStatus = EntryStatus.IDLE
    data: Any = None
    error: Any = None
    tags: list[Tag] = field(default_factory=list)
    subscriber_count: int = 0


@dataclass(frozen=True, slots=True)
class QueryResult(Generic[T]):
    """Snapshot of a cache entry handed to consumers."""

    data: T | None
    status: EntryStatus
    error: Any = None

    @property
    def is_loading(self) -> bool:
        return self.status is EntryStatus.PENDING

    @property
    def is_success(self) -> bool:
        return self.status is EntryStatus.FULFILLED

    @property
    def is_error(self) -> bool:
        return self.status is EntryStatus.ERROR


@dataclass(slots=True)
class MutationRecord(Generic[T]):
    """Result of a single mutation call.

    Exists for the duration of one call. ``error`` holds the
    :class:`~smartlinks.errors.ApiError` verbatim when the call failed.
    """

    id: int
    endpoint: str
    arg: Any
    status: EntryStatus = EntryStatus.PENDING
    data: T | None = None
    error: Any = None
    invalidates: list[Tag] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.status is EntryStatus.FULFILLED

    def unwrap(self) -> T:
        """Return the result data or raise the stored error."""
        if self.status is EntryStatus.ERROR:
            raise self.error
        return self.data  # type: ignore[return-value]


@dataclass(frozen=True, slots=True)
class StoreEvent:
    """A store transition delivered to listeners."""

    kind: Literal["query", "mutation", "evict"]
    key: str
    status: EntryStatus | None
