from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Sequence

from shelfie_cache import keys
from shelfie_cache.invalidation import Mutation
from shelfie_cache.mutations import MutationCoordinator
from shelfie_cache.query_client import QueryClient, QueryResult
from shelfie_core.config import GLOBAL_TRENDING_DAYS, GLOBAL_TRENDING_SAMPLE
from shelfie_core.types import to_content_type
from shelfie_stats.community_score import CommunityScore, CommunityScoreProvider
from shelfie_stats.trending import GlobalTrendingItem, global_trending

from .content_repo import SupabaseContentRepo
from .ratings_repo import SupabaseRatingsRepo
from .schemas import (
    ContentStatusRecord,
    ContentStatusUpsert,
    PinItemCreate,
    PinnedItem,
    PinPosition,
    RatingCreate,
    RatingRecord,
    ReportCreate,
)


class ContentService:
    def __init__(
        self,
        queries: QueryClient,
        ratings: SupabaseRatingsRepo,
        content: SupabaseContentRepo,
        scores: CommunityScoreProvider,
        user_id: str | None,
    ):
        self.queries = queries
        self.ratings = ratings
        self.content = content
        self.scores = scores
        self.user_id = user_id
        self.mutations = MutationCoordinator(queries, user_id)

    # ---------- reads ----------
    async def community_score(self, content_type: str, content_id: str) -> QueryResult[CommunityScore]:
        ct = to_content_type(content_type).value

        async def _fetch() -> CommunityScore:
            return await self.scores.score(ct, content_id)

        return await self.queries.read(
            keys.community_score(ct, content_id), _fetch, default=CommunityScore()
        )

    async def global_trending(
        self, *, now: datetime | None = None
    ) -> QueryResult[list[GlobalTrendingItem]]:
        """Most rated content over the last month, across all users."""
        since = (now or datetime.now(timezone.utc)) - timedelta(days=GLOBAL_TRENDING_DAYS)

        async def _fetch() -> list[GlobalTrendingItem]:
            return global_trending(await self.ratings.recent(since, GLOBAL_TRENDING_SAMPLE))

        return await self.queries.read(keys.global_trending(), _fetch, default=[])

    async def status(
        self, content_type: str, content_id: str
    ) -> QueryResult[ContentStatusRecord | None]:
        uid = self.user_id
        if not uid:
            return QueryResult(data=None)
        ct = to_content_type(content_type).value

        async def _fetch() -> ContentStatusRecord | None:
            return await self.content.get_status(uid, ct, content_id)

        return await self.queries.read(keys.content_status(uid, ct, content_id), _fetch)

    async def pinned_items(self, user_id: str | None = None) -> QueryResult[list[PinnedItem]]:
        uid = user_id or self.user_id
        if not uid:
            return QueryResult(data=[])

        async def _fetch() -> list[PinnedItem]:
            return await self.content.list_pins(uid)

        return await self.queries.read(keys.pinned_items(uid), _fetch, default=[])

    async def pinned_item(self, content_type: str, content_id: str) -> QueryResult[PinnedItem | None]:
        uid = self.user_id
        if not uid:
            return QueryResult(data=None)
        ct = to_content_type(content_type).value

        async def _fetch() -> PinnedItem | None:
            return await self.content.get_pin(uid, ct, content_id)

        return await self.queries.read(keys.is_pinned(uid, ct, content_id), _fetch)

    async def has_reported(self, item_id: str) -> QueryResult[bool]:
        uid = self.user_id
        if not uid:
            return QueryResult(data=False)

        async def _fetch() -> bool:
            return await self.content.has_reported(uid, item_id)

        return await self.queries.read(keys.has_reported(uid, item_id), _fetch, default=False)

    # ---------- mutations ----------
    async def rate(self, dto: RatingCreate) -> RatingRecord:
        uid = self.mutations.require_user()
        return await self.mutations.run(
            Mutation.CREATE_RATING,
            lambda: self.ratings.create(uid, dto),
            content_type=dto.content_type.value,
            content_id=dto.content_id,
        )

    async def set_status(self, dto: ContentStatusUpsert) -> ContentStatusRecord:
        uid = self.mutations.require_user()
        return await self.mutations.run(
            Mutation.UPSERT_CONTENT_STATUS, lambda: self.content.upsert_status(uid, dto)
        )

    async def pin(self, dto: PinItemCreate) -> PinnedItem:
        uid = self.mutations.require_user()
        return await self.mutations.run(Mutation.PIN_ITEM, lambda: self.content.pin(uid, dto))

    async def unpin(self, pinned_id: str) -> None:
        uid = self.mutations.require_user()
        await self.mutations.run(Mutation.UNPIN_ITEM, lambda: self.content.unpin(uid, pinned_id))

    async def reorder_pins(self, updates: Sequence[PinPosition]) -> None:
        uid = self.mutations.require_user()
        await self.mutations.run(
            Mutation.REORDER_PINNED_ITEMS, lambda: self.content.update_positions(uid, updates)
        )

    async def report(self, dto: ReportCreate) -> str:
        uid = self.mutations.require_user()
        return await self.mutations.run(
            Mutation.REPORT_ITEM, lambda: self.content.report(uid, dto), item_id=dto.item_id
        )
