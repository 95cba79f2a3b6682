from __future__ import annotations

import logging

from postgrest.exceptions import APIError as PostgrestAPIError

from shelfie_cache.pagination import Page, offset_range, page_from_rows
from shelfie_core.config import BOOKMARKS_PAGE_SIZE
from shelfie_core.supabase_repo import SupabaseRepo, map_valid, rows_of
from shelfie_core.types import ContentType, to_content_type

from .schemas import Bookmark, BookmarkToggle

log = logging.getLogger(__name__)

TABLE = "bookmarks"


def _row_to_bookmark(row: dict) -> Bookmark:
    return Bookmark(**row)


class SupabaseBookmarksRepo(SupabaseRepo):
    # ---------- Async facade ----------
    async def is_bookmarked(
        self, user_id: str, content_type: str | ContentType, content_id: str
    ) -> bool:
        return await self._run(self._is_bookmarked_sync, user_id, content_type, content_id)

    async def toggle(self, user_id: str, dto: BookmarkToggle) -> bool:
        """Add the bookmark if absent, remove it if present. Returns whether it is now set."""
        return await self._run(self._toggle_sync, user_id, dto)

    async def page(
        self, user_id: str, offset: int, page_size: int = BOOKMARKS_PAGE_SIZE
    ) -> Page[Bookmark]:
        return await self._run(self._page_sync, user_id, offset, page_size)

    # ---------- Private sync implementations ----------
    def _is_bookmarked_sync(self, user_id, content_type, content_id) -> bool:
        res = (
            self.client.table(TABLE)
            .select("id", count="exact")
            .eq("user_id", user_id)
            .eq("content_type", to_content_type(content_type).value)
            .eq("content_id", content_id)
            .execute()
        )
        return int(res.count or 0) > 0

    def _toggle_sync(self, user_id: str, dto: BookmarkToggle) -> bool:
        ct = dto.content_type.value
        if self._is_bookmarked_sync(user_id, ct, dto.content_id):
            (
                self.client.table(TABLE)
                .delete()
                .eq("user_id", user_id)
                .eq("content_type", ct)
                .eq("content_id", dto.content_id)
                .execute()
            )
            return False

        payload = dto.model_dump(mode="json")
        payload["user_id"] = user_id
        try:
            self.client.table(TABLE).insert(payload).execute()
        except PostgrestAPIError as e:
            if getattr(e, "code", None) == "23505":
                log.debug("bookmark %s/%s already set by a concurrent toggle", ct, dto.content_id)
                return True
            raise
        return True

    def _page_sync(self, user_id: str, offset: int, page_size: int) -> Page[Bookmark]:
        start, end = offset_range(offset, page_size)
        res = (
            self.client.table(TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .range(start, end)
            .execute()
        )
        rows = rows_of(res)
        page = page_from_rows(rows, offset=start, page_size=page_size)
        return Page(items=map_valid(rows, _row_to_bookmark), next_cursor=page.next_cursor)
