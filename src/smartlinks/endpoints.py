"""Endpoint registry.

Declares every resource operation once: verb, URL template, tag behavior and
response transform. Read endpoints *provide* tags, write endpoints
*invalidate* them.

    registry = default_registry()
    registry.get("list_sites").build_request({"q": "git", "page": 1})
    # Request(method="GET", url="/sites", params={"q": "git", "page": 1})
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from smartlinks.errors import RegistryFrozenError, UnknownEndpointError
from smartlinks.models import normalize_categories, normalize_site, normalize_site_page
from smartlinks.tags import SITE, USER, resource_tag
from smartlinks.types import EndpointKind, Request, Tag

# Static tags, or computed from (result, error, arg) when the call settles
TagRule = Sequence[Tag] | Callable[[Any, Any, Any], Sequence[Tag]]

_PATH_PARAM = "{id}"


def resolve_id(arg: Any) -> Any:
    """Accept a bare id or an object carrying ``id``."""
    if isinstance(arg, Mapping):
        return arg.get("id")
    return arg


def _drop_empty(params: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None and v != ""}


@dataclass(frozen=True, slots=True)
class Endpoint:
    """A single declared operation."""

    name: str
    kind: EndpointKind
    method: str
    url: str
    provides: TagRule = ()
    invalidates: TagRule = ()
    transform: Callable[[Any], Any] | None = None

    def __post_init__(self) -> None:
        if self.url.count("{") > 1:
            raise ValueError(f"{self.name}: at most one path parameter is supported")
        if self.kind is EndpointKind.QUERY and self.invalidates:
            raise ValueError(f"{self.name}: queries cannot invalidate tags")
        if self.kind is EndpointKind.MUTATION and self.provides:
            raise ValueError(f"{self.name}: mutations cannot provide tags")

    @property
    def has_path_param(self) -> bool:
        return _PATH_PARAM in self.url

    def build_request(self, arg: Any = None) -> Request:
        """Turn a call argument into a concrete request."""
        url = self.url
        if self.has_path_param:
            resource_id = resolve_id(arg)
            if resource_id is None or resource_id == "":
                raise ValueError(f"{self.name}: an id is required")
            url = url.replace(_PATH_PARAM, str(resource_id))

        if self.method == "GET":
            params = None
            if not self.has_path_param and isinstance(arg, Mapping):
                params = _drop_empty(arg) or None
            return Request(method=self.method, url=url, params=params)

        if self.method == "DELETE":
            return Request(method=self.method, url=url)

        body = arg
        if self.has_path_param:
            body = arg.get("data") if isinstance(arg, Mapping) else None
        return Request(method=self.method, url=url, body=body)

    def provided_tags(self, result: Any, error: Any, arg: Any) -> list[Tag]:
        return _evaluate(self.provides, result, error, arg)

    def invalidated_tags(self, result: Any, error: Any, arg: Any) -> list[Tag]:
        return _evaluate(self.invalidates, result, error, arg)


def _evaluate(rule: TagRule, result: Any, error: Any, arg: Any) -> list[Tag]:
    if callable(rule):
        return [Tag(t) for t in rule(result, error, arg)]
    return [Tag(t) for t in rule]


class EndpointRegistry:
    """Name -> endpoint table, immutable once frozen."""

    def __init__(self, endpoints: Sequence[Endpoint] = ()) -> None:
        self._endpoints: dict[str, Endpoint] = {}
        self._frozen = False
        for endpoint in endpoints:
            self.register(endpoint)

    def register(self, endpoint: Endpoint) -> Endpoint:
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register {endpoint.name!r}: registry is frozen"
            )
        if endpoint.name in self._endpoints:
            raise ValueError(f"Endpoint {endpoint.name!r} is already registered")
        self._endpoints[endpoint.name] = endpoint
        return endpoint

    def freeze(self) -> EndpointRegistry:
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def endpoints(self) -> Mapping[str, Endpoint]:
        return MappingProxyType(self._endpoints)

    def get(self, name: str) -> Endpoint:
        try:
            return self._endpoints[name]
        except KeyError:
            raise UnknownEndpointError(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._endpoints

    def __iter__(self) -> Iterator[Endpoint]:
        return iter(self._endpoints.values())

    def __len__(self) -> int:
        return len(self._endpoints)


def _by_id(resource: str) -> Callable[[Any, Any, Any], list[Tag]]:
    """Tag rule for operations on one resource: the id tag, if there is one."""

    def rule(result: Any, error: Any, arg: Any) -> list[Tag]:
        return [resource_tag(resource, resolve_id(arg))]

    return rule


def _type_and_id(resource: str) -> Callable[[Any, Any, Any], list[Tag]]:
    """Tag rule for writes to one resource: the id tag plus the type tag."""

    def rule(result: Any, error: Any, arg: Any) -> list[Tag]:
        tags = [resource_tag(resource)]
        resource_id = resolve_id(arg)
        if resource_id is not None and resource_id != "":
            tags.insert(0, resource_tag(resource, resource_id))
        return tags

    return rule


def default_registry() -> EndpointRegistry:
    """The frozen table of every operation the directory API exposes."""
    query, mutation = EndpointKind.QUERY, EndpointKind.MUTATION
    site_type = [resource_tag(SITE)]
    user_type = [resource_tag(USER)]

    return EndpointRegistry(
        [
            # Sites
            Endpoint(
                "list_sites",
                query,
                "GET",
                "/sites",
                provides=site_type,
                transform=normalize_site_page,
            ),
            Endpoint(
                "list_public_sites",
                query,
                "GET",
                "/sites/public",
                provides=site_type,
                transform=normalize_site_page,
            ),
            Endpoint(
                "get_site",
                query,
                "GET",
                "/sites/{id}",
                provides=_by_id(SITE),
                transform=normalize_site,
            ),
            Endpoint(
                "list_categories",
                query,
                "GET",
                "/sites/categories",
                transform=normalize_categories,
            ),
            Endpoint("create_site", mutation, "POST", "/sites", invalidates=site_type),
            Endpoint(
                "update_site",
                mutation,
                "PATCH",
                "/sites/{id}",
                invalidates=_type_and_id(SITE),
            ),
            Endpoint(
                "delete_site",
                mutation,
                "DELETE",
                "/sites/{id}",
                invalidates=_type_and_id(SITE),
            ),
            # Auth
            Endpoint("login", mutation, "POST", "/auth/login"),
            Endpoint("signup", mutation, "POST", "/auth/signup"),
            # AI
            Endpoint(
                "generate_description", mutation, "POST", "/ai/generate-description"
            ),
            Endpoint("ai_status", query, "GET", "/ai/status"),
            # Uploads
            Endpoint("get_upload_url", mutation, "POST", "/upload-helper"),
            # Users
            Endpoint("list_users", query, "GET", "/users", provides=user_type),
            Endpoint("get_user", query, "GET", "/users/{id}", provides=_by_id(USER)),
            Endpoint("create_user", mutation, "POST", "/users", invalidates=user_type),
            Endpoint(
                "update_user",
                mutation,
                "PATCH",
                "/users/{id}",
                invalidates=_type_and_id(USER),
            ),
            Endpoint(
                "delete_user", mutation, "DELETE", "/users/{id}", invalidates=user_type
            ),
        ]
    ).freeze()
