from __future__ import annotations

from datetime import date, tzinfo

from shelfie_cache import keys
from shelfie_cache.pagination import InfiniteData
from shelfie_cache.query_client import QueryClient, QueryResult
from shelfie_core.timeutils import resolve_tz
from shelfie_stats.category_stats import ProfileStats, category_stats
from shelfie_stats.diary import DiaryMonth, group_diary, month_window
from shelfie_stats.pending import resolve_pending
from shelfie_stats.score_distribution import ScoreDistribution, empty_distribution, score_distribution
from shelfie_stats.streak import calc_streak

from .content_repo import SupabaseContentRepo
from .ratings_repo import SupabaseRatingsRepo
from .schemas import PendingItem


def _diary_view(user_id: str) -> tuple[str, str]:
    return (keys.DIARY, user_id)


class ProfileService:
    """
    Derived profile views for one session: streak, stats, score distribution,
    diary, pending list and rating history.

    Every read goes through the session's QueryClient and resolves to a
    QueryResult. With no signed-in user (and no explicit subject) reads
    return their default without touching the store.
    """

    def __init__(
        self,
        queries: QueryClient,
        ratings: SupabaseRatingsRepo,
        content: SupabaseContentRepo,
        user_id: str | None,
        *,
        tz: tzinfo | None = None,
    ):
        self.queries = queries
        self.ratings = ratings
        self.content = content
        self.user_id = user_id
        self.tz = tz or resolve_tz()

    def _subject(self, user_id: str | None) -> str | None:
        return user_id or self.user_id

    # ---------- streak ----------
    def _streak_fetcher(self, uid: str, today: date | None = None):
        async def _fetch() -> int:
            stamps = await self.ratings.created_at_for_user(uid)
            return calc_streak(stamps, today=today, tz=self.tz)

        return _fetch

    async def streak(self, user_id: str | None = None, *, today: date | None = None) -> QueryResult[int]:
        uid = self._subject(user_id)
        if not uid:
            return QueryResult(data=0)
        return await self.queries.read(keys.streak(uid), self._streak_fetcher(uid, today), default=0)

    def streak_snapshot(self, user_id: str | None = None) -> QueryResult[int]:
        """Cached streak (0 before the first load); schedules a refresh when not fresh."""
        uid = self._subject(user_id)
        if not uid:
            return QueryResult(data=0)
        key = keys.streak(uid)
        snap = self.queries.snapshot(key, default=0)
        if snap.is_loading:
            self.queries.prefetch(key, self._streak_fetcher(uid))
        return snap

    # ---------- stats ----------
    async def stats(self, user_id: str | None = None) -> QueryResult[ProfileStats]:
        uid = self._subject(user_id)
        if not uid:
            return QueryResult(data=ProfileStats())

        async def _fetch() -> ProfileStats:
            return category_stats(await self.ratings.score_pairs(uid))

        return await self.queries.read(keys.profile_stats(uid), _fetch, default=ProfileStats())

    async def score_distribution(self, user_id: str | None = None) -> QueryResult[ScoreDistribution]:
        uid = self._subject(user_id)
        if not uid:
            return QueryResult(data=empty_distribution())

        async def _fetch() -> ScoreDistribution:
            return score_distribution(await self.ratings.score_pairs(uid))

        return await self.queries.read(
            keys.score_distribution(uid), _fetch, default=empty_distribution()
        )

    # ---------- diary ----------
    def _diary_fetcher(self, uid: str, year: int, month: int):
        start, end = month_window(year, month, self.tz)

        async def _fetch() -> DiaryMonth:
            entries = await self.ratings.diary_entries(uid, start, end)
            return group_diary(entries, self.tz)

        return _fetch

    async def diary(self, year: int, month: int, user_id: str | None = None) -> QueryResult[DiaryMonth]:
        uid = self._subject(user_id)
        if not uid:
            return QueryResult(data={})
        key = keys.diary(uid, year, month)
        res = await self.queries.read(key, self._diary_fetcher(uid, year, month), default={})
        self.queries.mark_shown(_diary_view(uid), key)
        return res

    def diary_snapshot(
        self, year: int, month: int, user_id: str | None = None
    ) -> QueryResult[DiaryMonth]:
        """Month view without waiting.

        While the month loads, the month this session last displayed stays
        visible, whichever direction the user paged.
        """
        uid = self._subject(user_id)
        if not uid:
            return QueryResult(data={})
        key = keys.diary(uid, year, month)
        view = _diary_view(uid)
        shown = self.queries.last_shown(view)
        snap = self.queries.snapshot(
            key, default={}, previous_key=shown if shown != key else None
        )
        if self.queries.cache.get_entry(key) is not None:
            self.queries.mark_shown(view, key)
        if snap.is_loading:
            self.queries.prefetch(key, self._diary_fetcher(uid, year, month))
        return snap

    # ---------- pending ----------
    async def pending(self) -> QueryResult[list[PendingItem]]:
        uid = self.user_id
        if not uid:
            return QueryResult(data=[])

        async def _fetch() -> list[PendingItem]:
            candidates = await self.content.pending_candidates(uid)
            if not candidates:
                return []
            rated = await self.ratings.rated_content_ids(uid, [c.content_id for c in candidates])
            return resolve_pending(candidates, rated)

        return await self.queries.read(keys.pending_ratings(uid), _fetch, default=[])

    # ---------- history ----------
    async def history(
        self, user_id: str | None = None, *, next_page: bool = False
    ) -> QueryResult[InfiniteData]:
        """Newest-first rating history; next_page=True appends one more page."""
        uid = self._subject(user_id)
        if not uid:
            return QueryResult(data=InfiniteData())

        async def _page(offset: int):
            return await self.ratings.history_page(uid, offset)

        return await self.queries.read_infinite(keys.rating_history(uid), _page, next_page=next_page)
