from __future__ import annotations

import asyncio
from datetime import datetime, tzinfo
from decimal import ROUND_HALF_UP, Decimal

from shelfie_cache import keys
from shelfie_cache.invalidation import Mutation
from shelfie_cache.mutations import MutationCoordinator
from shelfie_cache.query_client import QueryClient, QueryError, QueryResult
from shelfie_core.errors import DomainError
from shelfie_core.timeutils import resolve_tz

from .flag_store import CelebrationGate
from .schemas import Challenge, ChallengeCreate, ChallengeProgress
from .supabase_repo import SupabaseChallengesRepo


def percentage(progress: int, target: int) -> int:
    """Whole percent, halves up, capped at 100."""
    if target <= 0:
        return 0
    pct = (Decimal(progress) * 100 / Decimal(target)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return min(100, int(pct))


def year_window(year: int, tz: tzinfo) -> tuple[datetime, datetime]:
    return datetime(year, 1, 1, tzinfo=tz), datetime(year + 1, 1, 1, tzinfo=tz)


class ChallengesService:
    def __init__(
        self,
        queries: QueryClient,
        repo: SupabaseChallengesRepo,
        gate: CelebrationGate,
        user_id: str | None,
        *,
        tz: tzinfo | None = None,
    ):
        self.queries = queries
        self.repo = repo
        self.gate = gate
        self.user_id = user_id
        self.tz = tz or resolve_tz()
        self.mutations = MutationCoordinator(queries, user_id)

    def _year(self, year: int | None) -> int:
        return year or datetime.now(self.tz).year

    async def _challenges(self, uid: str, year: int) -> list[Challenge]:
        async def _fetch():
            return await self.repo.list(uid, year)

        return await self.queries.fetch(keys.challenges(uid, year), _fetch)

    async def _progress(self, uid: str, year: int, category: str) -> int:
        start, end = year_window(year, self.tz)

        async def _fetch():
            return await self.repo.count_progress(uid, start, end, category)

        return await self.queries.fetch(keys.challenge_progress(uid, year, category), _fetch)

    async def challenges(self, year: int | None = None) -> QueryResult[list[Challenge]]:
        uid = self.user_id
        if not uid:
            return QueryResult(data=[])
        y = self._year(year)

        async def _fetch():
            return await self.repo.list(uid, y)

        return await self.queries.read(keys.challenges(uid, y), _fetch, default=[])

    async def overview(self, year: int | None = None) -> QueryResult[list[ChallengeProgress]]:
        """Every challenge of the year with its progress; one count per distinct category."""
        uid = self.user_id
        if not uid:
            return QueryResult(data=[])
        y = self._year(year)
        try:
            items = await self._challenges(uid, y)
            categories = list(dict.fromkeys(c.category_filter for c in items))
            counts = await asyncio.gather(*(self._progress(uid, y, cat) for cat in categories))
        except DomainError as exc:
            return QueryResult(data=[], error=QueryError.from_exc(exc))
        by_category = dict(zip(categories, counts))

        out: list[ChallengeProgress] = []
        for c in items:
            progress = by_category.get(c.category_filter, 0)
            completed = progress >= c.target_count
            out.append(
                ChallengeProgress(
                    challenge=c,
                    progress=progress,
                    percentage=percentage(progress, c.target_count),
                    completed=completed,
                    should_celebrate=await self.gate.should_celebrate(c.id, completed),
                )
            )
        return QueryResult(data=out)

    async def create(self, dto: ChallengeCreate) -> Challenge:
        uid = self.mutations.require_user()
        y = self._year(dto.year)
        return await self.mutations.run(
            Mutation.CREATE_CHALLENGE,
            lambda: self.repo.create(uid, y, dto.target_count, dto.category_filter),
        )

    async def delete(self, challenge_id: str) -> None:
        uid = self.mutations.require_user()
        await self.mutations.run(
            Mutation.DELETE_CHALLENGE, lambda: self.repo.delete(uid, challenge_id)
        )

    async def mark_celebrated(self, challenge_id: str) -> None:
        self.mutations.require_user()
        await self.gate.mark_celebrated(challenge_id)
