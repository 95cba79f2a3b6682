from __future__ import annotations

from typing import Sequence

from shelfie_core.config import MAX_IN, NOTIFICATIONS_LIMIT
from shelfie_core.supabase_repo import SupabaseRepo, rows_of
from shelfie_core.types import NotificationType

from .schemas import Notification

TABLE = "notifications"
PROFILES = "profiles"
RATINGS = "ratings"


def _row_to_notification(row: dict, sender: dict | None, rating: dict | None) -> Notification:
    kind = NotificationType(row["type"])
    is_like = kind is NotificationType.LIKE
    return Notification(
        id=str(row["id"]),
        type=kind,
        actor_id=str(row.get("sender_id") or ""),
        actor_username=(sender or {}).get("username") or "User",
        actor_avatar_url=(sender or {}).get("avatar_url"),
        rating_id=row.get("reference_id") if is_like else None,
        rating_title=rating.get("content_title") if (is_like and rating) else None,
        rating_type=rating.get("content_type") if (is_like and rating) else None,
        rec_content_type=row.get("rec_content_type"),
        rec_content_id=row.get("rec_content_id"),
        rec_content_title=row.get("rec_content_title"),
        rec_content_image=row.get("rec_content_image"),
        is_read=bool(row.get("is_read")),
        created_at=row["created_at"],
    )


class SupabaseNotificationsRepo(SupabaseRepo):
    async def list(self, user_id: str, limit: int = NOTIFICATIONS_LIMIT) -> list[Notification]:
        return await self._run(self._list_sync, user_id, limit)

    async def unread_count(self, user_id: str) -> int:
        return await self._run(self._unread_sync, user_id)

    async def mark_read(self, user_id: str, ids: Sequence[str]) -> None:
        await self._run(self._mark_read_sync, user_id, list(ids))

    async def mark_all_read(self, user_id: str) -> None:
        await self._run(self._mark_all_sync, user_id)

    def _lookup(self, table: str, cols: str, ids: list[str]) -> dict[str, dict]:
        out: dict[str, dict] = {}
        for i in range(0, len(ids), MAX_IN):
            res = self.client.table(table).select(cols).in_("id", ids[i : i + MAX_IN]).execute()
            for r in rows_of(res):
                out[str(r["id"])] = r
        return out

    def _list_sync(self, user_id: str, limit: int) -> list[Notification]:
        res = (
            self.client.table(TABLE)
            .select("*")
            .eq("recipient_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        rows = rows_of(res)
        if not rows:
            return []

        sender_ids = list(dict.fromkeys(str(r["sender_id"]) for r in rows if r.get("sender_id")))
        senders = self._lookup(PROFILES, "id,username,avatar_url", sender_ids) if sender_ids else {}

        liked = list(
            dict.fromkeys(
                str(r["reference_id"])
                for r in rows
                if r.get("type") == NotificationType.LIKE.value and r.get("reference_id")
            )
        )
        ratings = self._lookup(RATINGS, "id,content_title,content_type", liked) if liked else {}

        out: list[Notification] = []
        for r in rows:
            try:
                NotificationType(r.get("type"))
            except ValueError:
                continue
            out.append(
                _row_to_notification(
                    r,
                    senders.get(str(r.get("sender_id"))),
                    ratings.get(str(r.get("reference_id"))),
                )
            )
        return out

    def _unread_sync(self, user_id: str) -> int:
        res = (
            self.client.table(TABLE)
            .select("id", count="exact")
            .eq("recipient_id", user_id)
            .eq("is_read", False)
            .in_("type", [t.value for t in NotificationType])
            .execute()
        )
        return int(res.count or 0)

    def _mark_read_sync(self, user_id: str, ids: list[str]) -> None:
        for i in range(0, len(ids), MAX_IN):
            (
                self.client.table(TABLE)
                .update({"is_read": True})
                .eq("recipient_id", user_id)
                .in_("id", ids[i : i + MAX_IN])
                .execute()
            )

    def _mark_all_sync(self, user_id: str) -> None:
        (
            self.client.table(TABLE)
            .update({"is_read": True})
            .eq("recipient_id", user_id)
            .eq("is_read", False)
            .execute()
        )
