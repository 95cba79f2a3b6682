from __future__ import annotations

from datetime import datetime, timedelta, timezone

from shelfie_cache import keys
from shelfie_cache.invalidation import Mutation
from shelfie_cache.mutations import MutationCoordinator
from shelfie_cache.pagination import InfiniteData
from shelfie_cache.query_client import QueryClient, QueryResult
from shelfie_core.config import FRIENDS_TRENDING_DAYS, USER_SEARCH_MIN_CHARS
from shelfie_stats.trending import FriendTrendingItem, rank_friends_trending

from .schemas import FollowCounts, ProfileSummary
from .supabase_repo import SupabaseSocialRepo


class SocialService:
    """
    Feed, follow graph and likes for one session.

    follow/like are idempotent: the repo checks the current state before
    inserting and a duplicate insert counts as success. The toggles read the
    live state from the store, not the cache.
    """

    def __init__(self, queries: QueryClient, repo: SupabaseSocialRepo, user_id: str | None):
        self.queries = queries
        self.repo = repo
        self.user_id = user_id
        self.mutations = MutationCoordinator(queries, user_id)

    # ---------- feed ----------
    async def feed(self, *, next_page: bool = False) -> QueryResult[InfiniteData]:
        uid = self.user_id
        if not uid:
            return QueryResult(data=InfiniteData())

        async def _page(offset: int):
            return await self.repo.feed_page(uid, offset)

        return await self.queries.read_infinite(keys.social_feed(uid), _page, next_page=next_page)

    # ---------- follow graph ----------
    async def followers(self, user_id: str | None = None) -> QueryResult[list[ProfileSummary]]:
        uid = user_id or self.user_id
        if not uid:
            return QueryResult(data=[])

        async def _fetch():
            return await self.repo.followers(uid)

        return await self.queries.read(keys.followers(uid), _fetch, default=[])

    async def following(self, user_id: str | None = None) -> QueryResult[list[ProfileSummary]]:
        uid = user_id or self.user_id
        if not uid:
            return QueryResult(data=[])

        async def _fetch():
            return await self.repo.following(uid)

        return await self.queries.read(keys.following(uid), _fetch, default=[])

    async def is_following(self, target_id: str) -> QueryResult[bool]:
        uid = self.user_id
        if not uid or uid == target_id:
            return QueryResult(data=False)

        async def _fetch():
            return await self.repo.is_following(uid, target_id)

        return await self.queries.read(keys.is_following(target_id), _fetch, default=False)

    async def follow_counts(self, user_id: str | None = None) -> QueryResult[FollowCounts]:
        uid = user_id or self.user_id
        if not uid:
            return QueryResult(data=FollowCounts())

        async def _fetch():
            return await self.repo.follow_counts(uid)

        return await self.queries.read(keys.follow_counts(uid), _fetch, default=FollowCounts())

    async def follow(self, target_id: str) -> bool:
        uid = self.mutations.require_user()
        return await self.mutations.run(
            Mutation.FOLLOW, lambda: self.repo.follow(uid, target_id), target_id=target_id
        )

    async def unfollow(self, target_id: str) -> bool:
        uid = self.mutations.require_user()
        return await self.mutations.run(
            Mutation.UNFOLLOW, lambda: self.repo.unfollow(uid, target_id), target_id=target_id
        )

    async def toggle_follow(self, target_id: str) -> bool:
        """Flip the edge; returns whether the user follows the target afterwards."""
        uid = self.mutations.require_user()
        if await self.repo.is_following(uid, target_id):
            await self.unfollow(target_id)
            return False
        await self.follow(target_id)
        return True

    # ---------- likes ----------
    async def rating_like(self, rating_id: str) -> QueryResult[bool]:
        uid = self.user_id
        if not uid:
            return QueryResult(data=False)

        async def _fetch():
            return await self.repo.has_liked(uid, rating_id)

        return await self.queries.read(keys.rating_like(rating_id), _fetch, default=False)

    async def rating_likes_count(self, rating_id: str) -> QueryResult[int]:
        async def _fetch():
            return await self.repo.likes_count(rating_id)

        return await self.queries.read(keys.rating_likes_count(rating_id), _fetch, default=0)

    async def like(self, rating_id: str) -> bool:
        uid = self.mutations.require_user()
        return await self.mutations.run(
            Mutation.LIKE_RATING, lambda: self.repo.like(uid, rating_id), rating_id=rating_id
        )

    async def unlike(self, rating_id: str) -> bool:
        uid = self.mutations.require_user()
        return await self.mutations.run(
            Mutation.UNLIKE_RATING, lambda: self.repo.unlike(uid, rating_id), rating_id=rating_id
        )

    async def toggle_like(self, rating_id: str) -> bool:
        uid = self.mutations.require_user()
        if await self.repo.has_liked(uid, rating_id):
            await self.unlike(rating_id)
            return False
        await self.like(rating_id)
        return True

    # ---------- discovery ----------
    async def friends_trending(
        self, *, now: datetime | None = None
    ) -> QueryResult[list[FriendTrendingItem]]:
        """Last week's ratings by followed users, most liked first."""
        uid = self.user_id
        if not uid:
            return QueryResult(data=[])
        since = (now or datetime.now(timezone.utc)) - timedelta(days=FRIENDS_TRENDING_DAYS)

        async def _fetch():
            return rank_friends_trending(await self.repo.friends_trending(uid, since))

        return await self.queries.read(keys.friends_trending(uid), _fetch, default=[])

    async def search_users(self, query: str) -> QueryResult[list[ProfileSummary]]:
        q = (query or "").strip()
        if len(q) < USER_SEARCH_MIN_CHARS:
            return QueryResult(data=[])

        async def _fetch():
            return await self.repo.search_profiles(q)

        return await self.queries.read(keys.user_search(q), _fetch, default=[])
