"""
Which cache families each mutation makes stale.

Every write path in the layer goes through MutationCoordinator, which reads
this table; nothing else calls QueryClient.invalidate() for a mutation.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable

from . import keys
from .keys import QueryKey


class Mutation(str, Enum):
    FOLLOW = "follow"
    UNFOLLOW = "unfollow"
    LIKE_RATING = "like_rating"
    UNLIKE_RATING = "unlike_rating"
    MARK_NOTIFICATIONS_READ = "mark_notifications_read"
    MARK_ALL_NOTIFICATIONS_READ = "mark_all_notifications_read"
    UPSERT_CONTENT_STATUS = "upsert_content_status"
    REORDER_PINNED_ITEMS = "reorder_pinned_items"
    PIN_ITEM = "pin_item"
    UNPIN_ITEM = "unpin_item"
    CREATE_RATING = "create_rating"
    CREATE_CHALLENGE = "create_challenge"
    DELETE_CHALLENGE = "delete_challenge"
    REPORT_ITEM = "report_item"
    TOGGLE_BOOKMARK = "toggle_bookmark"


def _follow_edges(*, self_id: str, target_id: str, **_: Any) -> list[QueryKey]:
    return [
        keys.followers(target_id),
        keys.following(self_id),
        keys.is_following(target_id),
        keys.follow_counts(target_id),
        keys.follow_counts(self_id),
        keys.social_feed(self_id),
    ]


def _like_edges(*, rating_id: str, **_: Any) -> list[QueryKey]:
    return [
        keys.rating_like(rating_id),
        keys.rating_likes_count(rating_id),
        (keys.SOCIAL_FEED,),
    ]


def _notification_edges(**_: Any) -> list[QueryKey]:
    return [(keys.NOTIFICATIONS,), (keys.UNREAD_COUNT,)]


def _status_edges(**_: Any) -> list[QueryKey]:
    return [(keys.CONTENT_STATUS,), (keys.PENDING_RATINGS,)]


def _reorder_edges(**_: Any) -> list[QueryKey]:
    return [(keys.PINNED_ITEMS,)]


def _pin_edges(**_: Any) -> list[QueryKey]:
    return [(keys.PINNED_ITEMS,), (keys.IS_PINNED,)]


def _rating_edges(
    *, self_id: str, content_type: str, content_id: str, **_: Any
) -> list[QueryKey]:
    return [
        (keys.RATINGS,),
        (keys.SOCIAL_FEED,),
        (keys.PROFILE_STATS,),
        (keys.RATING_HISTORY,),
        keys.streak(self_id),
        (keys.DIARY, self_id),
        keys.pending_ratings(self_id),
        keys.score_distribution(self_id),
        keys.community_score(content_type, content_id),
        (keys.CHALLENGE_PROGRESS, self_id),
    ]


def _challenge_created(**_: Any) -> list[QueryKey]:
    return [(keys.CHALLENGES,)]


def _challenge_deleted(**_: Any) -> list[QueryKey]:
    return [(keys.CHALLENGES,), (keys.CHALLENGE_PROGRESS,)]


def _report_edges(*, self_id: str, item_id: str, **_: Any) -> list[QueryKey]:
    return [keys.has_reported(self_id, item_id)]


def _bookmark_edges(**_: Any) -> list[QueryKey]:
    return [(keys.BOOKMARKS,), (keys.IS_BOOKMARKED,)]


INVALIDATION_TABLE: dict[Mutation, Callable[..., list[QueryKey]]] = {
    Mutation.FOLLOW: _follow_edges,
    Mutation.UNFOLLOW: _follow_edges,
    Mutation.LIKE_RATING: _like_edges,
    Mutation.UNLIKE_RATING: _like_edges,
    Mutation.MARK_NOTIFICATIONS_READ: _notification_edges,
    Mutation.MARK_ALL_NOTIFICATIONS_READ: _notification_edges,
    Mutation.UPSERT_CONTENT_STATUS: _status_edges,
    Mutation.REORDER_PINNED_ITEMS: _reorder_edges,
    Mutation.PIN_ITEM: _pin_edges,
    Mutation.UNPIN_ITEM: _pin_edges,
    Mutation.CREATE_RATING: _rating_edges,
    Mutation.CREATE_CHALLENGE: _challenge_created,
    Mutation.DELETE_CHALLENGE: _challenge_deleted,
    Mutation.REPORT_ITEM: _report_edges,
    Mutation.TOGGLE_BOOKMARK: _bookmark_edges,
}


def families_for(mutation: Mutation, **ctx: Any) -> list[QueryKey]:
    return [keys.normalize_key(f) for f in INVALIDATION_TABLE[mutation](**ctx)]
