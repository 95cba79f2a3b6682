from __future__ import annotations

from typing import Sequence

from postgrest.exceptions import APIError as PostgrestAPIError

from shelfie_core.config import MAX_PINNED, PENDING_CANDIDATE_WINDOW
from shelfie_core.errors import DuplicateReport, NotFound, RuleViolation
from shelfie_core.supabase_repo import SupabaseRepo, map_valid, rows_of
from shelfie_core.types import PENDING_STATUSES, ContentType, to_content_type

from .schemas import (
    ContentStatusRecord,
    ContentStatusUpsert,
    PendingItem,
    PinItemCreate,
    PinnedItem,
    PinPosition,
    ReportCreate,
)

STATUS_TABLE = "user_content_status"
PINS_TABLE = "pinned_items"
REPORTS_TABLE = "reports"


def _row_to_status(row: dict) -> ContentStatusRecord:
    return ContentStatusRecord(**row)


def _row_to_pending(row: dict) -> PendingItem:
    return PendingItem(**row)


def _row_to_pin(row: dict) -> PinnedItem:
    return PinnedItem(**row)


def first_free_position(occupied: Sequence[int], max_pinned: int = MAX_PINNED) -> int | None:
    taken = set(occupied)
    for pos in range(1, max_pinned + 1):
        if pos not in taken:
            return pos
    return None


class SupabaseContentRepo(SupabaseRepo):
    """Per-user shelf state: statuses, pinned items and reports."""

    # ---------- Async facade ----------
    async def get_status(
        self, user_id: str, content_type: str | ContentType, content_id: str
    ) -> ContentStatusRecord | None:
        return await self._run(self._get_status_sync, user_id, content_type, content_id)

    async def upsert_status(self, user_id: str, dto: ContentStatusUpsert) -> ContentStatusRecord:
        return await self._run(self._upsert_status_sync, user_id, dto)

    async def pending_candidates(
        self, user_id: str, window: int = PENDING_CANDIDATE_WINDOW
    ) -> list[PendingItem]:
        return await self._run(self._pending_sync, user_id, window)

    async def list_pins(self, user_id: str) -> list[PinnedItem]:
        return await self._run(self._list_pins_sync, user_id)

    async def get_pin(
        self, user_id: str, content_type: str | ContentType, content_id: str
    ) -> PinnedItem | None:
        return await self._run(self._get_pin_sync, user_id, content_type, content_id)

    async def pin(self, user_id: str, dto: PinItemCreate) -> PinnedItem:
        return await self._run(self._pin_sync, user_id, dto)

    async def unpin(self, user_id: str, pinned_id: str) -> None:
        await self._run(self._unpin_sync, user_id, pinned_id)

    async def update_positions(self, user_id: str, updates: Sequence[PinPosition]) -> None:
        await self._run(self._update_positions_sync, user_id, list(updates))

    async def report(self, user_id: str, dto: ReportCreate) -> str:
        return await self._run(self._report_sync, user_id, dto)

    async def has_reported(self, user_id: str, item_id: str) -> bool:
        return await self._run(self._has_reported_sync, user_id, item_id)

    # ---------- Private sync implementations ----------
    def _get_status_sync(self, user_id, content_type, content_id) -> ContentStatusRecord | None:
        res = (
            self.client.table(STATUS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("content_type", to_content_type(content_type).value)
            .eq("content_id", content_id)
            .limit(1)
            .execute()
        )
        rows = rows_of(res)
        return _row_to_status(rows[0]) if rows else None

    def _upsert_status_sync(self, user_id: str, dto: ContentStatusUpsert) -> ContentStatusRecord:
        payload = dto.model_dump(mode="json")
        payload["user_id"] = user_id
        res = (
            self.client.table(STATUS_TABLE)
            .upsert(payload, on_conflict="user_id,content_type,content_id", returning="representation")
            .execute()
        )
        return _row_to_status(rows_of(res)[0])

    def _pending_sync(self, user_id: str, window: int) -> list[PendingItem]:
        res = (
            self.client.table(STATUS_TABLE)
            .select("id,content_type,content_id,content_title,content_image_url,status")
            .eq("user_id", user_id)
            .in_("status", [s.value for s in PENDING_STATUSES])
            .order("created_at", desc=True)
            .limit(window)
            .execute()
        )
        return map_valid(rows_of(res), _row_to_pending)

    def _list_pins_sync(self, user_id: str) -> list[PinnedItem]:
        res = (
            self.client.table(PINS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("position", desc=False)
            .execute()
        )
        return [_row_to_pin(r) for r in rows_of(res)]

    def _get_pin_sync(self, user_id, content_type, content_id) -> PinnedItem | None:
        res = (
            self.client.table(PINS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("content_type", to_content_type(content_type).value)
            .eq("content_id", content_id)
            .limit(1)
            .execute()
        )
        rows = rows_of(res)
        return _row_to_pin(rows[0]) if rows else None

    def _pin_sync(self, user_id: str, dto: PinItemCreate) -> PinnedItem:
        existing = self._get_pin_sync(user_id, dto.content_type, dto.content_id)
        if existing is not None:
            return existing

        occupied = (
            self.client.table(PINS_TABLE)
            .select("position")
            .eq("user_id", user_id)
            .execute()
        )
        position = first_free_position([int(r["position"]) for r in rows_of(occupied)])
        if position is None:
            raise RuleViolation(f"at most {MAX_PINNED} pinned items", code="max_pinned")

        payload = dto.model_dump(mode="json")
        payload.update(user_id=user_id, position=position)
        res = self.client.table(PINS_TABLE).insert(payload, returning="representation").execute()
        return _row_to_pin(rows_of(res)[0])

    def _unpin_sync(self, user_id: str, pinned_id: str) -> None:
        res = (
            self.client.table(PINS_TABLE)
            .delete(returning="representation")
            .eq("id", pinned_id)
            .eq("user_id", user_id)
            .execute()
        )
        if not rows_of(res):
            raise NotFound("pinned item not found")

    def _update_positions_sync(self, user_id: str, updates: list[PinPosition]) -> None:
        positions = [u.position for u in updates]
        if len(set(positions)) != len(positions):
            raise RuleViolation("pin positions must be distinct")
        for u in updates:
            (
                self.client.table(PINS_TABLE)
                .update({"position": u.position})
                .eq("id", u.id)
                .eq("user_id", user_id)
                .execute()
            )

    def _report_sync(self, user_id: str, dto: ReportCreate) -> str:
        try:
            res = (
                self.client.table(REPORTS_TABLE)
                .insert(
                    {
                        "reporter_id": user_id,
                        "anything_item_id": dto.item_id,
                        "reason": dto.reason,
                    },
                    returning="representation",
                )
                .execute()
            )
        except PostgrestAPIError as e:
            if getattr(e, "code", None) == "23505":
                raise DuplicateReport("item already reported") from e
            raise
        return str(rows_of(res)[0]["id"])

    def _has_reported_sync(self, user_id: str, item_id: str) -> bool:
        res = (
            self.client.table(REPORTS_TABLE)
            .select("id")
            .eq("reporter_id", user_id)
            .eq("anything_item_id", item_id)
            .limit(1)
            .execute()
        )
        return bool(rows_of(res))

