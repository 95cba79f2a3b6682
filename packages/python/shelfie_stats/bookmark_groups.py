from __future__ import annotations

from typing import Any, Callable, Iterable

from pydantic import BaseModel, Field

from shelfie_core.types import ContentType, to_content_type


class BookmarkGroup(BaseModel):
    type: ContentType
    count: int = 0
    items: list[Any] = Field(default_factory=list)


def group_bookmarks(
    items: Iterable[Any],
    *,
    content_type: Callable[[Any], Any] = lambda b: getattr(b, "content_type"),
) -> list[BookmarkGroup]:
    """
    One group per category, all seven present even when empty, largest first.
    Equal counts keep the ContentType declaration order. Items keep their
    incoming order inside a group.
    """
    buckets: dict[ContentType, list[Any]] = {ct: [] for ct in ContentType}
    for item in items:
        try:
            ct = to_content_type(content_type(item))
        except ValueError:
            continue
        buckets[ct].append(item)
    groups = [BookmarkGroup(type=ct, count=len(v), items=v) for ct, v in buckets.items()]
    return sorted(groups, key=lambda g: g.count, reverse=True)
