from __future__ import annotations

from pydantic import BaseModel, Field

from shelfie_cache import keys
from shelfie_cache.invalidation import Mutation
from shelfie_cache.mutations import MutationCoordinator
from shelfie_cache.pagination import InfiniteData
from shelfie_cache.query_client import QueryClient, QueryResult
from shelfie_core.types import to_content_type
from shelfie_stats.bookmark_groups import BookmarkGroup, group_bookmarks

from .bookmarks_repo import SupabaseBookmarksRepo
from .schemas import BookmarkToggle


class GroupedBookmarks(BaseModel):
    groups: list[BookmarkGroup] = Field(default_factory=list)
    total_count: int = 0


class BookmarksService:
    """Saved-for-later items: flag per content, paged list and per-category grouping."""

    def __init__(self, queries: QueryClient, bookmarks: SupabaseBookmarksRepo, user_id: str | None):
        self.queries = queries
        self.bookmarks = bookmarks
        self.user_id = user_id
        self.mutations = MutationCoordinator(queries, user_id)

    async def is_bookmarked(self, content_type: str, content_id: str) -> QueryResult[bool]:
        uid = self.user_id
        if not uid:
            return QueryResult(data=False)
        ct = to_content_type(content_type).value

        async def _fetch() -> bool:
            return await self.bookmarks.is_bookmarked(uid, ct, content_id)

        return await self.queries.read(keys.is_bookmarked(uid, ct, content_id), _fetch, default=False)

    async def bookmarks_page(
        self, user_id: str | None = None, *, next_page: bool = False
    ) -> QueryResult[InfiniteData]:
        uid = user_id or self.user_id
        if not uid:
            return QueryResult(data=InfiniteData())

        async def _page(offset: int):
            return await self.bookmarks.page(uid, offset)

        return await self.queries.read_infinite(keys.bookmarks(uid), _page, next_page=next_page)

    async def grouped(
        self, user_id: str | None = None, *, next_page: bool = False
    ) -> QueryResult[GroupedBookmarks]:
        """Groups the bookmarks loaded so far; every category is present, largest first."""
        res = await self.bookmarks_page(user_id, next_page=next_page)
        items = res.data.items if res.data is not None else []
        return QueryResult(
            data=GroupedBookmarks(groups=group_bookmarks(items), total_count=len(items)),
            is_loading=res.is_loading,
            error=res.error,
        )

    async def toggle(self, dto: BookmarkToggle) -> bool:
        uid = self.mutations.require_user()
        return await self.mutations.run(
            Mutation.TOGGLE_BOOKMARK, lambda: self.bookmarks.toggle(uid, dto)
        )
