"""Canonical records for sites and categories.

Upstream payloads are inconsistent: ``site_url`` vs ``siteUrl``,
``cover_image`` vs ``coverImage``, ``_id`` vs ``id``, and categories arrive as
objects, bare ids or bare names. Each normalizer here maps every known alias
to one record shape. They run once, as endpoint transforms, so nothing
downstream of the cache has to guess.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

DEFAULT_CATEGORIES = (
    "Technology",
    "Design",
    "News",
    "Education",
    "Entertainment",
    "Business",
    "Health",
    "Other",
)

_CATEGORY_ID_KEYS = ("id", "_id", "value", "slug")
_CATEGORY_NAME_KEYS = ("name", "displayName", "display_name", "label", "title")
_LIST_WRAPPER_KEYS = ("results", "categories", "data", "items")


@dataclass(frozen=True, slots=True)
class Category:
    id: str
    display_name: str


@dataclass(frozen=True, slots=True)
class Site:
    id: str | None
    title: str
    site_url: str
    cover_image: str = ""
    description: str = ""
    category: Category | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True, slots=True)
class SitePage:
    """One page of sites plus the server-reported pagination."""

    results: list[Site] = field(default_factory=list)
    page: int = 1
    limit: int = 0
    total: int = 0
    total_pages: int = 1


def _first(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def normalize_category(raw: Any) -> Category | None:
    """Map an object, bare id or bare name to a :class:`Category`."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Category):
        return raw
    if isinstance(raw, str):
        name = raw.strip()
        return Category(id=name, display_name=name) if name else None
    if isinstance(raw, (int, float)):
        text = str(raw)
        return Category(id=text, display_name=text)
    if isinstance(raw, Mapping):
        cat_id = _first(raw, _CATEGORY_ID_KEYS)
        name = _first(raw, _CATEGORY_NAME_KEYS)
        if cat_id is None and name is None:
            return None
        cat_id = str(cat_id if cat_id is not None else name)
        return Category(id=cat_id, display_name=str(name if name is not None else cat_id))
    return None


def normalize_categories(raw: Any) -> list[Category]:
    """Normalize a category listing, falling back to the defaults when empty."""
    items = raw
    if isinstance(raw, Mapping):
        items = _first(raw, _LIST_WRAPPER_KEYS) or []
    if not isinstance(items, (list, tuple)):
        items = []

    seen: set[str] = set()
    categories: list[Category] = []
    for item in items:
        category = normalize_category(item)
        if category is None or category.id in seen:
            continue
        seen.add(category.id)
        categories.append(category)

    if not categories:
        return [Category(id=name, display_name=name) for name in DEFAULT_CATEGORIES]
    return categories


def normalize_site(raw: Any) -> Site:
    if isinstance(raw, Site):
        return raw
    if not isinstance(raw, Mapping):
        raise TypeError(f"Expected a site mapping, got {type(raw).__name__}")

    site_id = _first(raw, ("id", "_id"))
    return Site(
        id=str(site_id) if site_id is not None else None,
        title=str(_first(raw, ("title", "name")) or ""),
        site_url=str(_first(raw, ("site_url", "siteUrl", "url")) or ""),
        cover_image=str(_first(raw, ("cover_image", "coverImage")) or ""),
        description=str(raw.get("description") or ""),
        category=normalize_category(raw.get("category")),
        created_at=_first(raw, ("created_at", "createdAt")),
        updated_at=_first(raw, ("updated_at", "updatedAt")),
    )


def normalize_site_page(raw: Any) -> SitePage:
    """Accept either a bare array of sites or a paginated envelope.

    A bare array is treated as a single page holding every result.
    """
    if raw is None:
        return SitePage()

    if isinstance(raw, (list, tuple)):
        results = [normalize_site(item) for item in raw]
        return SitePage(
            results=results,
            page=1,
            limit=len(results),
            total=len(results),
            total_pages=1,
        )

    if not isinstance(raw, Mapping):
        raise TypeError(f"Unexpected site listing shape: {type(raw).__name__}")

    results = [normalize_site(item) for item in raw.get("results") or []]
    limit = _as_int(raw.get("limit"), len(results))
    total = _as_int(raw.get("total"), len(results))
    reported = raw.get("totalPages", raw.get("total_pages"))
    if reported is not None:
        total_pages = _as_int(reported, 1)
    else:
        total_pages = math.ceil(total / limit) if limit else 1
    return SitePage(
        results=results,
        page=_as_int(raw.get("page"), 1),
        limit=limit,
        total=total,
        total_pages=max(total_pages, 1),
    )


def site_payload(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Build the outgoing body for create/update in the API's field names.

    Only fields present in ``fields`` are emitted so partial updates stay
    partial.
    """
    aliases = {
        "title": ("title", "name"),
        "site_url": ("site_url", "siteUrl", "url"),
        "cover_image": ("cover_image", "coverImage"),
        "description": ("description",),
        "category": ("category",),
    }
    payload: dict[str, Any] = {}
    for canonical, keys in aliases.items():
        for key in keys:
            if key in fields:
                value = fields[key]
                if canonical == "category" and isinstance(value, Category):
                    value = value.id
                payload[canonical] = value
                break
    return payload
