from __future__ import annotations

from datetime import datetime
from typing import Any, Sequence

from shelfie_cache.pagination import Page, offset_range, page_from_rows
from shelfie_core.config import HISTORY_PAGE_SIZE, MAX_IN, SCORE_FETCH_BATCH
from shelfie_core.supabase_repo import SupabaseRepo, map_valid, rows_of
from shelfie_core.timeutils import ensure_ts, to_iso
from shelfie_core.types import ContentType, to_content_type
from shelfie_stats.diary import DiaryEntry

from .schemas import RatingCreate, RatingHistoryItem, RatingRecord

TABLE = "ratings"
SUMMARY_COLS = "id,content_type,content_id,content_title,content_image_url,score,created_at"


def _row_to_rating(row: dict) -> RatingRecord:
    return RatingRecord(**row)


def _row_to_diary(row: dict) -> DiaryEntry:
    return DiaryEntry(**row)


def _row_to_history(row: dict) -> RatingHistoryItem:
    return RatingHistoryItem(**row)


def _type_value(content_type: str | ContentType) -> str:
    return to_content_type(content_type).value


class SupabaseRatingsRepo(SupabaseRepo):
    """Reads and writes on `ratings`. Also the score source for live community scores."""

    batch_size = SCORE_FETCH_BATCH

    # ---------- Async facade ----------
    async def created_at_for_user(self, user_id: str) -> list[datetime | str]:
        return await self._run(self._created_at_sync, user_id)

    async def score_pairs(self, user_id: str) -> list[tuple[str, float]]:
        return await self._run(self._score_pairs_sync, user_id)

    async def diary_entries(self, user_id: str, start: datetime, end: datetime) -> list[DiaryEntry]:
        return await self._run(self._diary_sync, user_id, start, end)

    async def history_page(
        self, user_id: str, offset: int, page_size: int = HISTORY_PAGE_SIZE
    ) -> Page[RatingHistoryItem]:
        return await self._run(self._history_sync, user_id, offset, page_size)

    async def rated_content_ids(self, user_id: str, content_ids: Sequence[str]) -> set[str]:
        return await self._run(self._rated_ids_sync, user_id, list(content_ids))

    async def score_batch(
        self, content_type: str, content_id: str, *, offset: int, limit: int
    ) -> list[float]:
        return await self._run(self._score_batch_sync, content_type, content_id, offset, limit)

    async def recent(self, since: datetime, limit: int) -> list[dict[str, Any]]:
        return await self._run(self._recent_sync, since, limit)

    async def create(self, user_id: str, dto: RatingCreate) -> RatingRecord:
        return await self._run(self._create_sync, user_id, dto)

    # ---------- Private sync implementations ----------
    def _all_rows_sync(self, user_id: str, cols: str) -> list[dict]:
        # PostgREST caps a response at max-rows, so whole-history reads go in batches
        out: list[dict] = []
        offset = 0
        while True:
            start, end = offset_range(offset, self.batch_size)
            res = (
                self.client.table(TABLE)
                .select(cols)
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .order("id", desc=False)
                .range(start, end)
                .execute()
            )
            rows = rows_of(res)
            out.extend(rows)
            if len(rows) < self.batch_size:
                return out
            offset += self.batch_size

    def _created_at_sync(self, user_id: str) -> list[datetime | str]:
        return [r["created_at"] for r in self._all_rows_sync(user_id, "id,created_at") if r.get("created_at")]

    def _score_pairs_sync(self, user_id: str) -> list[tuple[str, float]]:
        pairs: list[tuple[str, float]] = []
        for r in self._all_rows_sync(user_id, "id,content_type,score"):
            try:
                ct = _type_value(r.get("content_type"))
            except ValueError:
                continue
            pairs.append((ct, r.get("score")))
        return pairs

    def _diary_sync(self, user_id: str, start: datetime, end: datetime) -> list[DiaryEntry]:
        res = (
            self.client.table(TABLE)
            .select(SUMMARY_COLS)
            .eq("user_id", user_id)
            .gte("created_at", to_iso(start))
            .lt("created_at", to_iso(end))
            .order("created_at", desc=False)
            .execute()
        )
        rows = [r for r in rows_of(res) if ensure_ts(r.get("created_at")) is not None]
        return map_valid(rows, _row_to_diary)

    def _history_sync(self, user_id: str, offset: int, page_size: int) -> Page[RatingHistoryItem]:
        start, end = offset_range(offset, page_size)
        res = (
            self.client.table(TABLE)
            .select(SUMMARY_COLS)
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .range(start, end)
            .execute()
        )
        rows = rows_of(res)
        # page length decides the cursor, so a dropped row does not end the stream early
        page = page_from_rows(rows, offset=start, page_size=page_size)
        return Page(items=map_valid(rows, _row_to_history), next_cursor=page.next_cursor)

    def _rated_ids_sync(self, user_id: str, content_ids: list[str]) -> set[str]:
        rated: set[str] = set()
        ids = list(dict.fromkeys(content_ids))
        for i in range(0, len(ids), MAX_IN):
            chunk = ids[i : i + MAX_IN]
            res = (
                self.client.table(TABLE)
                .select("content_id")
                .eq("user_id", user_id)
                .in_("content_id", chunk)
                .execute()
            )
            rated.update(str(r["content_id"]) for r in rows_of(res))
        return rated

    def _score_batch_sync(
        self, content_type: str, content_id: str, offset: int, limit: int
    ) -> list[float]:
        start, end = offset_range(offset, limit)
        res = (
            self.client.table(TABLE)
            .select("score")
            .eq("content_type", _type_value(content_type))
            .eq("content_id", content_id)
            .order("created_at", desc=False)
            .range(start, end)
            .execute()
        )
        return [r.get("score") for r in rows_of(res)]

    def _recent_sync(self, since: datetime, limit: int) -> list[dict[str, Any]]:
        res = (
            self.client.table(TABLE)
            .select("content_id,content_type,content_title,content_image_url,score")
            .gte("created_at", to_iso(since))
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return rows_of(res)

    def _create_sync(self, user_id: str, dto: RatingCreate) -> RatingRecord:
        payload = dto.model_dump(mode="json")
        payload["user_id"] = user_id
        res = self.client.table(TABLE).insert(payload, returning="representation").execute()
        return _row_to_rating(rows_of(res)[0])
