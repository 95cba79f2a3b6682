"""
Cache key families and their per-query freshness options.

A key is an ordered tuple of scalars, e.g. ("followers", user_id). A family is
any prefix of a key; invalidating ("notifications",) covers every
("notifications", user_id).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Tuple

from shelfie_core import config

QueryKey = Tuple[Any, ...]

_SCALARS = (str, int, float, bool, type(None))

# ---- families ----
STREAK = "streak"
PROFILE_STATS = "profile_stats"
SCORE_DISTRIBUTION = "score_distribution"
DIARY = "diary"
PENDING_RATINGS = "pending_ratings"
RATING_HISTORY = "rating_history"
RATINGS = "ratings"
SOCIAL_FEED = "social_feed"
FOLLOWERS = "followers"
FOLLOWING = "following"
IS_FOLLOWING = "is_following"
FOLLOW_COUNTS = "follow_counts"
RATING_LIKE = "rating_like"
RATING_LIKES_COUNT = "rating_likes_count"
NOTIFICATIONS = "notifications"
UNREAD_COUNT = "unread_count"
CONTENT_STATUS = "content_status"
PINNED_ITEMS = "pinned_items"
IS_PINNED = "is_pinned"
COMMUNITY_SCORE = "community_score"
CHALLENGES = "challenges"
CHALLENGE_PROGRESS = "challenge_progress"
HAS_REPORTED = "has_reported"
SEARCH = "search"
FRIENDS_TRENDING = "friends_trending"
GLOBAL_TRENDING = "global_trending"
BOOKMARKS = "bookmarks"
IS_BOOKMARKED = "is_bookmarked"


def _scalar(part: Any) -> Any:
    if isinstance(part, Enum):
        return part.value
    if not isinstance(part, _SCALARS):
        raise TypeError(f"cache key parts must be scalars, got {type(part).__name__}")
    return part


def normalize_key(key: Iterable[Any]) -> QueryKey:
    if isinstance(key, (str, bytes)):
        raise TypeError("cache key must be a sequence of scalars, not a string")
    out = tuple(_scalar(p) for p in key)
    if not out:
        raise ValueError("cache key must not be empty")
    return out


def matches_family(key: QueryKey, family: QueryKey) -> bool:
    return len(family) <= len(key) and key[: len(family)] == family


@dataclass(frozen=True)
class QueryOptions:
    stale_after: float = 0.0
    refetch_interval: float | None = None


_DEFAULT = QueryOptions()

QUERY_OPTIONS: dict[str, QueryOptions] = {
    COMMUNITY_SCORE: QueryOptions(stale_after=config.STALE_COMMUNITY_SCORE),
    FOLLOW_COUNTS: QueryOptions(stale_after=config.STALE_FOLLOW_COUNTS),
    FOLLOWERS: QueryOptions(stale_after=config.STALE_FOLLOW_LISTS),
    FOLLOWING: QueryOptions(stale_after=config.STALE_FOLLOW_LISTS),
    IS_FOLLOWING: QueryOptions(stale_after=config.STALE_FOLLOW_LISTS),
    NOTIFICATIONS: QueryOptions(
        stale_after=config.STALE_NOTIFICATIONS,
        refetch_interval=config.NOTIFICATIONS_REFETCH_INTERVAL,
    ),
    UNREAD_COUNT: QueryOptions(
        stale_after=config.STALE_UNREAD_COUNT,
        refetch_interval=config.NOTIFICATIONS_REFETCH_INTERVAL,
    ),
    RATING_LIKE: QueryOptions(stale_after=config.STALE_RATING_LIKE),
    RATING_LIKES_COUNT: QueryOptions(stale_after=config.STALE_RATING_LIKES_COUNT),
    SOCIAL_FEED: QueryOptions(stale_after=config.STALE_SOCIAL_FEED),
    STREAK: QueryOptions(stale_after=config.STALE_STREAK),
    PENDING_RATINGS: QueryOptions(stale_after=config.STALE_PENDING),
    SCORE_DISTRIBUTION: QueryOptions(stale_after=config.STALE_SCORE_DISTRIBUTION),
    SEARCH: QueryOptions(stale_after=config.STALE_SEARCH),
    FRIENDS_TRENDING: QueryOptions(stale_after=config.STALE_FRIENDS_TRENDING),
    GLOBAL_TRENDING: QueryOptions(stale_after=config.STALE_GLOBAL_TRENDING),
}


def options_for(key: QueryKey) -> QueryOptions:
    return QUERY_OPTIONS.get(key[0], _DEFAULT)


# ---- key builders ----
def streak(user_id: str) -> QueryKey:
    return (STREAK, user_id)


def profile_stats(user_id: str) -> QueryKey:
    return (PROFILE_STATS, user_id)


def score_distribution(user_id: str) -> QueryKey:
    return (SCORE_DISTRIBUTION, user_id)


def diary(user_id: str, year: int, month: int) -> QueryKey:
    return (DIARY, user_id, year, month)


def pending_ratings(user_id: str) -> QueryKey:
    return (PENDING_RATINGS, user_id)


def rating_history(user_id: str) -> QueryKey:
    return (RATING_HISTORY, user_id)


def social_feed(user_id: str) -> QueryKey:
    return (SOCIAL_FEED, user_id)


def followers(user_id: str) -> QueryKey:
    return (FOLLOWERS, user_id)


def following(user_id: str) -> QueryKey:
    return (FOLLOWING, user_id)


def is_following(target_id: str) -> QueryKey:
    return (IS_FOLLOWING, target_id)


def follow_counts(user_id: str) -> QueryKey:
    return (FOLLOW_COUNTS, user_id)


def rating_like(rating_id: str) -> QueryKey:
    return (RATING_LIKE, rating_id)


def rating_likes_count(rating_id: str) -> QueryKey:
    return (RATING_LIKES_COUNT, rating_id)


def notifications(user_id: str) -> QueryKey:
    return (NOTIFICATIONS, user_id)


def unread_count(user_id: str) -> QueryKey:
    return (UNREAD_COUNT, user_id)


def content_status(user_id: str, content_type: str, content_id: str) -> QueryKey:
    return normalize_key((CONTENT_STATUS, user_id, content_type, content_id))


def pinned_items(user_id: str) -> QueryKey:
    return (PINNED_ITEMS, user_id)


def is_pinned(user_id: str, content_type: str, content_id: str) -> QueryKey:
    return normalize_key((IS_PINNED, user_id, content_type, content_id))


def community_score(content_type: str, content_id: str) -> QueryKey:
    return normalize_key((COMMUNITY_SCORE, content_type, content_id))


def challenges(user_id: str, year: int) -> QueryKey:
    return (CHALLENGES, user_id, year)


def challenge_progress(user_id: str, year: int, category: str) -> QueryKey:
    return normalize_key((CHALLENGE_PROGRESS, user_id, year, category))


def has_reported(user_id: str, item_id: str) -> QueryKey:
    return (HAS_REPORTED, user_id, item_id)


def user_search(query: str) -> QueryKey:
    return (SEARCH, "users", query)


def friends_trending(user_id: str) -> QueryKey:
    return (FRIENDS_TRENDING, user_id)


def global_trending() -> QueryKey:
    return (GLOBAL_TRENDING,)


def bookmarks(user_id: str) -> QueryKey:
    return (BOOKMARKS, user_id)


def is_bookmarked(user_id: str, content_type: str, content_id: str) -> QueryKey:
    return normalize_key((IS_BOOKMARKED, user_id, content_type, content_id))
