"""smartlinks - Cached, tag-invalidated client for the Smart Links directory API."""

import logging
from contextlib import suppress

from smartlinks.auth import prepare_headers

# Client API
from smartlinks.client import SmartLinksClient, create_client
from smartlinks.config import ClientSettings, get_settings
from smartlinks.controller import ListController, ListState, Pagination
from smartlinks.debounce import Debouncer
from smartlinks.delete_policy import DeleteRetryPolicy
from smartlinks.duration import parse_duration
from smartlinks.endpoints import Endpoint, EndpointRegistry, default_registry
from smartlinks.errors import (
    ApiError,
    ClientError,
    ServerError,
    TransportError,
    UploadError,
    get_error_message,
)
from smartlinks.loading import LoadingAggregator
from smartlinks.models import (
    Category,
    Site,
    SitePage,
    normalize_categories,
    normalize_category,
    normalize_site,
    normalize_site_page,
)
from smartlinks.notifications import LoggingNotifier, Notifier
from smartlinks.session import Session, SessionStore

# Storage (async only)
from smartlinks.storage import MemorySessionStorage, SessionStorage
from smartlinks.store import CacheStore, Subscription, make_query_key
from smartlinks.transport import AsyncTransport, HttpTransport

# Core types
from smartlinks.types import (
    CacheEntry,
    Duration,
    EntryStatus,
    MutationRecord,
    QueryResult,
    Request,
    StoreEvent,
    Tag,
)
from smartlinks.uploads import Uploader, UploadFile

# Optional storage - only available when redis is installed
with suppress(ImportError):
    from smartlinks.storage import RedisSessionStorage

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "ApiError",
    "AsyncTransport",
    "CacheEntry",
    "CacheStore",
    "Category",
    "ClientError",
    "ClientSettings",
    "Debouncer",
    "DeleteRetryPolicy",
    "Duration",
    "Endpoint",
    "EndpointRegistry",
    "EntryStatus",
    "HttpTransport",
    "ListController",
    "ListState",
    "LoadingAggregator",
    "LoggingNotifier",
    "MemorySessionStorage",
    "MutationRecord",
    "Notifier",
    "Pagination",
    "QueryResult",
    "RedisSessionStorage",
    "Request",
    "ServerError",
    "Session",
    "SessionStorage",
    "SessionStore",
    "Site",
    "SitePage",
    "SmartLinksClient",
    "StoreEvent",
    "Subscription",
    "Tag",
    "TransportError",
    "UploadError",
    "UploadFile",
    "Uploader",
    "create_client",
    "default_registry",
    "get_error_message",
    "get_settings",
    "make_query_key",
    "normalize_categories",
    "normalize_category",
    "normalize_site",
    "normalize_site_page",
    "parse_duration",
    "prepare_headers",
]
