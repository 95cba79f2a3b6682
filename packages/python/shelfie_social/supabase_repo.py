from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Iterable

from postgrest.exceptions import APIError as PostgrestAPIError

from shelfie_cache.pagination import Page, offset_range, page_from_rows
from shelfie_core.config import FEED_PAGE_SIZE, FRIENDS_TRENDING_CANDIDATES, MAX_IN, USER_SEARCH_LIMIT
from shelfie_core.errors import RuleViolation
from shelfie_core.supabase_repo import SupabaseRepo, map_valid, rows_of
from shelfie_core.timeutils import ensure_ts, to_iso
from shelfie_stats.trending import FriendTrendingItem, likes_by_rating

from .schemas import FeedItem, FollowCounts, ProfileSummary

log = logging.getLogger(__name__)

FOLLOWS = "follows"
LIKES = "review_likes"
RATINGS = "ratings"
PROFILES = "profiles"

FEED_COLS = (
    "id,user_id,content_type,content_id,content_title,content_image_url,"
    "score,review_text,has_spoiler,created_at"
)
PROFILE_COLS = "id,username,display_name,avatar_url,created_at"


def _row_to_profile(row: dict) -> ProfileSummary:
    # null columns fall back to the model defaults
    return ProfileSummary(**{k: v for k, v in row.items() if v is not None})


def _row_to_feed_item(row: dict, profile: ProfileSummary | None, likes: int) -> FeedItem:
    return FeedItem(
        **row,
        username=profile.username if profile else "",
        user_display_name=profile.display_name if profile else None,
        user_avatar_url=profile.avatar_url if profile else None,
        likes_count=likes,
    )


def _row_to_trending(row: dict, profile: ProfileSummary | None, likes: int) -> FriendTrendingItem:
    return FriendTrendingItem(
        rating_id=str(row["id"]),
        content_id=row.get("content_id"),
        content_type=row.get("content_type"),
        content_title=row.get("content_title"),
        content_image_url=row.get("content_image_url"),
        score=row.get("score"),
        likes_count=likes,
        author_username=profile.username if profile else "",
        author_avatar_url=profile.avatar_url if profile else None,
    )


def _chunks(ids: list[str]) -> Iterable[list[str]]:
    for i in range(0, len(ids), MAX_IN):
        yield ids[i : i + MAX_IN]


def _newest_first(row: dict) -> tuple[float, str]:
    ts = ensure_ts(row.get("created_at"))
    return (-ts.timestamp() if ts else float("inf"), str(row.get("id", "")))


# PostgREST reserves these inside an or=(...) filter; % and * are wildcards
_SEARCH_RESERVED = re.compile(r"[,()%*\\]")


def _search_term(query: str) -> str:
    return _SEARCH_RESERVED.sub("", query or "").strip()


class SupabaseSocialRepo(SupabaseRepo):
    """Follow graph, review likes and the followed-users feed."""

    # ---------- Async facade ----------
    async def followers(self, user_id: str) -> list[ProfileSummary]:
        return await self._run(self._edge_profiles_sync, "following_id", user_id, "follower_id")

    async def following(self, user_id: str) -> list[ProfileSummary]:
        return await self._run(self._edge_profiles_sync, "follower_id", user_id, "following_id")

    async def is_following(self, follower_id: str, target_id: str) -> bool:
        return await self._run(self._is_following_sync, follower_id, target_id)

    async def follow_counts(self, user_id: str) -> FollowCounts:
        return await self._run(self._follow_counts_sync, user_id)

    async def follow(self, follower_id: str, target_id: str) -> bool:
        return await self._run(self._follow_sync, follower_id, target_id)

    async def unfollow(self, follower_id: str, target_id: str) -> bool:
        return await self._run(self._unfollow_sync, follower_id, target_id)

    async def has_liked(self, user_id: str, rating_id: str) -> bool:
        return await self._run(self._has_liked_sync, user_id, rating_id)

    async def likes_count(self, rating_id: str) -> int:
        return await self._run(self._likes_count_sync, rating_id)

    async def like(self, user_id: str, rating_id: str) -> bool:
        return await self._run(self._like_sync, user_id, rating_id)

    async def unlike(self, user_id: str, rating_id: str) -> bool:
        return await self._run(self._unlike_sync, user_id, rating_id)

    async def feed_page(
        self, user_id: str, offset: int, page_size: int = FEED_PAGE_SIZE
    ) -> Page[FeedItem]:
        return await self._run(self._feed_page_sync, user_id, offset, page_size)

    async def profiles(self, ids: Iterable[str]) -> dict[str, ProfileSummary]:
        return await self._run(self._profiles_sync, list(dict.fromkeys(ids)))

    async def friends_trending(
        self, user_id: str, since: datetime, candidates: int = FRIENDS_TRENDING_CANDIDATES
    ) -> list[FriendTrendingItem]:
        return await self._run(self._friends_trending_sync, user_id, since, candidates)

    async def search_profiles(self, query: str, limit: int = USER_SEARCH_LIMIT) -> list[ProfileSummary]:
        return await self._run(self._search_sync, query, limit)

    # ---------- Private sync implementations ----------
    def _profiles_sync(self, ids: list[str]) -> dict[str, ProfileSummary]:
        out: dict[str, ProfileSummary] = {}
        for chunk in _chunks(ids):
            res = self.client.table(PROFILES).select(PROFILE_COLS).in_("id", chunk).execute()
            for r in rows_of(res):
                out[str(r["id"])] = _row_to_profile(r)
        return out

    def _edge_ids_sync(self, match_col: str, user_id: str, other_col: str) -> list[str]:
        res = (
            self.client.table(FOLLOWS)
            .select(other_col)
            .eq(match_col, user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [str(r[other_col]) for r in rows_of(res)]

    def _edge_profiles_sync(self, match_col: str, user_id: str, other_col: str) -> list[ProfileSummary]:
        # two reads instead of an embedded join; order follows the edge rows
        ids = self._edge_ids_sync(match_col, user_id, other_col)
        if not ids:
            return []
        profiles = self._profiles_sync(ids)
        return [profiles[i] for i in ids if i in profiles]

    def _is_following_sync(self, follower_id: str, target_id: str) -> bool:
        res = (
            self.client.table(FOLLOWS)
            .select("follower_id")
            .eq("follower_id", follower_id)
            .eq("following_id", target_id)
            .limit(1)
            .execute()
        )
        return bool(rows_of(res))

    def _count_sync(self, table: str, col: str, value: str) -> int:
        res = self.client.table(table).select(col, count="exact").eq(col, value).execute()
        return int(res.count or 0)

    def _follow_counts_sync(self, user_id: str) -> FollowCounts:
        return FollowCounts(
            followers=self._count_sync(FOLLOWS, "following_id", user_id),
            following=self._count_sync(FOLLOWS, "follower_id", user_id),
        )

    def _follow_sync(self, follower_id: str, target_id: str) -> bool:
        if follower_id == target_id:
            raise RuleViolation("cannot follow yourself", code="self_follow")
        if self._is_following_sync(follower_id, target_id):
            return False
        try:
            self.client.table(FOLLOWS).insert(
                {"follower_id": follower_id, "following_id": target_id}
            ).execute()
        except PostgrestAPIError as e:
            if _is_unique_violation(e):
                log.debug("follow %s -> %s raced an existing edge", follower_id, target_id)
                return False
            raise
        return True

    def _unfollow_sync(self, follower_id: str, target_id: str) -> bool:
        res = (
            self.client.table(FOLLOWS)
            .delete(returning="representation")
            .eq("follower_id", follower_id)
            .eq("following_id", target_id)
            .execute()
        )
        return bool(rows_of(res))

    def _has_liked_sync(self, user_id: str, rating_id: str) -> bool:
        res = (
            self.client.table(LIKES)
            .select("id")
            .eq("user_id", user_id)
            .eq("rating_id", rating_id)
            .limit(1)
            .execute()
        )
        return bool(rows_of(res))

    def _likes_count_sync(self, rating_id: str) -> int:
        return self._count_sync(LIKES, "rating_id", rating_id)

    def _like_sync(self, user_id: str, rating_id: str) -> bool:
        if self._has_liked_sync(user_id, rating_id):
            return False
        try:
            self.client.table(LIKES).insert({"user_id": user_id, "rating_id": rating_id}).execute()
        except PostgrestAPIError as e:
            if _is_unique_violation(e):
                return False
            raise
        return True

    def _unlike_sync(self, user_id: str, rating_id: str) -> bool:
        res = (
            self.client.table(LIKES)
            .delete(returning="representation")
            .eq("user_id", user_id)
            .eq("rating_id", rating_id)
            .execute()
        )
        return bool(rows_of(res))

    def _followed_ratings_sync(
        self, followed: list[str], start: int, end: int, since: datetime | None = None
    ) -> list[dict]:
        """Newest-first ratings written by any of `followed`, rows start..end.

        Authors go out in MAX_IN chunks. Each chunk returns its own first end+1
        rows; the global first end+1 rows are among them, so the merged slice
        is exact for any offset.
        """

        def _query(authors: list[str]):
            q = self.client.table(RATINGS).select(FEED_COLS).in_("user_id", authors)
            if since is not None:
                q = q.gte("created_at", to_iso(since))
            return q.order("created_at", desc=True).order("id", desc=False)

        chunks = list(_chunks(followed))
        if len(chunks) == 1:
            return rows_of(_query(chunks[0]).range(start, end).execute())
        merged: list[dict] = []
        for chunk in chunks:
            merged.extend(rows_of(_query(chunk).range(0, end).execute()))
        merged.sort(key=_newest_first)
        return merged[start : end + 1]

    def _likes_sync(self, rating_ids: list[str]) -> dict[str, int]:
        liked: list[str] = []
        for chunk in _chunks(rating_ids):
            res = self.client.table(LIKES).select("rating_id").in_("rating_id", chunk).execute()
            liked.extend(str(r["rating_id"]) for r in rows_of(res))
        return likes_by_rating(liked)

    def _feed_page_sync(self, user_id: str, offset: int, page_size: int) -> Page[FeedItem]:
        start, end = offset_range(offset, page_size)
        followed = self._edge_ids_sync("follower_id", user_id, "following_id")
        if not followed:
            return Page(items=[], next_cursor=None)

        rows = self._followed_ratings_sync(followed, start, end)
        page = page_from_rows(rows, offset=start, page_size=page_size)
        if not rows:
            return page

        likes = self._likes_sync([str(r["id"]) for r in rows])
        profiles = self._profiles_sync(list(dict.fromkeys(str(r["user_id"]) for r in rows)))
        items = map_valid(
            rows,
            lambda r: _row_to_feed_item(r, profiles.get(str(r["user_id"])), likes.get(str(r["id"]), 0)),
        )
        return Page(items=items, next_cursor=page.next_cursor)

    def _friends_trending_sync(
        self, user_id: str, since: datetime, candidates: int
    ) -> list[FriendTrendingItem]:
        followed = self._edge_ids_sync("follower_id", user_id, "following_id")
        if not followed:
            return []
        rows = self._followed_ratings_sync(followed, 0, candidates - 1, since=since)
        if not rows:
            return []
        likes = self._likes_sync([str(r["id"]) for r in rows])
        profiles = self._profiles_sync(list(dict.fromkeys(str(r["user_id"]) for r in rows)))
        return map_valid(
            rows,
            lambda r: _row_to_trending(r, profiles.get(str(r["user_id"])), likes.get(str(r["id"]), 0)),
        )

    def _search_sync(self, query: str, limit: int) -> list[ProfileSummary]:
        term = _search_term(query)
        if not term:
            return []
        res = (
            self.client.table(PROFILES)
            .select(PROFILE_COLS + ",is_private")
            .or_(f"username.ilike.%{term}%,display_name.ilike.%{term}%")
            .limit(limit)
            .execute()
        )
        return map_valid(rows_of(res), _row_to_profile)


def _is_unique_violation(e: PostgrestAPIError) -> bool:
    return getattr(e, "code", None) == "23505"
