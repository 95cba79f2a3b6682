from __future__ import annotations

from datetime import datetime

from shelfie_core.errors import NotFound
from shelfie_core.supabase_repo import SupabaseRepo, rows_of
from shelfie_core.timeutils import to_iso

from .schemas import ALL_CATEGORIES, Challenge

TABLE = "annual_challenges"
RATINGS = "ratings"


def _row_to_challenge(row: dict) -> Challenge:
    return Challenge(**row)


class SupabaseChallengesRepo(SupabaseRepo):
    async def list(self, user_id: str, year: int) -> list[Challenge]:
        return await self._run(self._list_sync, user_id, year)

    async def create(
        self, user_id: str, year: int, target_count: int, category_filter: str
    ) -> Challenge:
        return await self._run(self._create_sync, user_id, year, target_count, category_filter)

    async def delete(self, user_id: str, challenge_id: str) -> None:
        await self._run(self._delete_sync, user_id, challenge_id)

    async def count_progress(
        self, user_id: str, start: datetime, end: datetime, category_filter: str
    ) -> int:
        return await self._run(self._count_sync, user_id, start, end, category_filter)

    def _list_sync(self, user_id: str, year: int) -> list[Challenge]:
        res = (
            self.client.table(TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("year", year)
            .order("created_at", desc=False)
            .execute()
        )
        return [_row_to_challenge(r) for r in rows_of(res)]

    def _create_sync(
        self, user_id: str, year: int, target_count: int, category_filter: str
    ) -> Challenge:
        res = (
            self.client.table(TABLE)
            .insert(
                {
                    "user_id": user_id,
                    "year": year,
                    "target_count": target_count,
                    "category_filter": category_filter,
                },
                returning="representation",
            )
            .execute()
        )
        return _row_to_challenge(rows_of(res)[0])

    def _delete_sync(self, user_id: str, challenge_id: str) -> None:
        res = (
            self.client.table(TABLE)
            .delete(returning="representation")
            .eq("id", challenge_id)
            .eq("user_id", user_id)
            .execute()
        )
        if not rows_of(res):
            raise NotFound("challenge not found")

    def _count_sync(
        self, user_id: str, start: datetime, end: datetime, category_filter: str
    ) -> int:
        qb = (
            self.client.table(RATINGS)
            .select("id", count="exact")
            .eq("user_id", user_id)
            .gte("created_at", to_iso(start))
            .lt("created_at", to_iso(end))
        )
        if category_filter != ALL_CATEGORIES:
            qb = qb.eq("content_type", category_filter)
        res = qb.execute()
        return int(res.count or 0)
