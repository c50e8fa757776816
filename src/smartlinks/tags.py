"""Tag construction and matching."""

from collections.abc import Iterable

from smartlinks.types import Tag

_ESCAPE_MAP = {"\\": "\\\\", ":": "\\:"}

SITE = "Site"
USER = "User"


def resource_tag(resource: str, id: object | None = None) -> Tag:
    """
    Build a tag for a resource type, optionally narrowed to one id.

    Example:
        resource_tag("Site")        # Tag: ("Site",)
        resource_tag("Site", 42)    # Tag: ("Site", "42")
    """
    if id is None or id == "":
        return Tag((resource,))
    return Tag((resource, str(id)))


def serialize_tag(tag: Tag) -> str:
    """Serialize tag tuple to its display form, e.g. ``Site:42``."""

    def escape(part: str) -> str:
        result = part
        for char, escaped in _ESCAPE_MAP.items():
            result = result.replace(char, escaped)
        return result

    return ":".join(escape(str(p)) for p in tag)


def is_tag_prefix(parent: Tag, child: Tag) -> bool:
    """Check if parent is a prefix of child.

    Invalidating ``("Site",)`` therefore also hits ``("Site", "42")``.
    """
    if len(parent) > len(child):
        return False
    return child[: len(parent)] == parent


def tags_intersect(invalidated: Iterable[Tag], provided: Iterable[Tag]) -> bool:
    """True if any invalidated tag covers any provided tag."""
    provided = list(provided)
    return any(
        is_tag_prefix(parent, child) for parent in invalidated for child in provided
    )
