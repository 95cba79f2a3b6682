from __future__ import annotations

from typing import Any, Iterable, Mapping

from pydantic import BaseModel

from shelfie_core.config import TRENDING_LIMIT
from shelfie_core.types import ContentType, ContentTypeField, to_content_type

from .rounding import round1, to_score


class FriendTrendingItem(BaseModel):
    rating_id: str
    content_id: str
    content_type: ContentTypeField
    content_title: str
    content_image_url: str | None = None
    score: float
    likes_count: int = 0
    author_username: str = ""
    author_avatar_url: str | None = None


class GlobalTrendingItem(BaseModel):
    content_id: str
    content_type: ContentTypeField
    content_title: str
    content_image_url: str | None = None
    rating_count: int
    average_score: float


def rank_friends_trending(
    items: Iterable[FriendTrendingItem], *, limit: int = TRENDING_LIMIT
) -> list[FriendTrendingItem]:
    """Most liked first; equal counts keep their incoming (newest first) order."""
    return sorted(items, key=lambda it: it.likes_count, reverse=True)[: max(0, limit)]


def likes_by_rating(rating_ids: Iterable[Any]) -> dict[str, int]:
    """One entry per like row -> likes per rating id."""
    counts: dict[str, int] = {}
    for rid in rating_ids:
        counts[str(rid)] = counts.get(str(rid), 0) + 1
    return counts


def global_trending(
    rows: Iterable[Mapping[str, Any]], *, limit: int = TRENDING_LIMIT
) -> list[GlobalTrendingItem]:
    """
    Group recent rating rows by (content_type, content_id): count, one-decimal
    mean score, title and image from the first row seen. Most rated first;
    ties keep first-seen order. Rows with an unknown type or no usable score
    are skipped.
    """
    groups: dict[tuple[ContentType, str], dict[str, Any]] = {}
    for row in rows:
        score = to_score(row.get("score"))
        cid = row.get("content_id")
        if score is None or not cid:
            continue
        try:
            ct = to_content_type(row.get("content_type"))
        except ValueError:
            continue
        g = groups.get((ct, str(cid)))
        if g is None:
            groups[(ct, str(cid))] = {
                "content_id": str(cid),
                "content_type": ct,
                "content_title": row.get("content_title") or "",
                "content_image_url": row.get("content_image_url"),
                "scores": [score],
            }
        else:
            g["scores"].append(score)

    ranked = sorted(groups.values(), key=lambda g: len(g["scores"]), reverse=True)
    return [
        GlobalTrendingItem(
            content_id=g["content_id"],
            content_type=g["content_type"],
            content_title=g["content_title"],
            content_image_url=g["content_image_url"],
            rating_count=len(g["scores"]),
            average_score=round1(sum(g["scores"]) / len(g["scores"])),
        )
        for g in ranked[: max(0, limit)]
    ]
