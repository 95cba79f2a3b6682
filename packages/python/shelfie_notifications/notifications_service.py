from __future__ import annotations

from typing import Sequence

from shelfie_cache import keys
from shelfie_cache.invalidation import Mutation
from shelfie_cache.mutations import MutationCoordinator
from shelfie_cache.query_client import QueryClient, QueryResult

from .schemas import Notification
from .supabase_repo import SupabaseNotificationsRepo


class NotificationsService:
    """Notification list and unread badge. Both keys re-check on a fixed
    interval for as long as the session's QueryClient stays open."""

    def __init__(self, queries: QueryClient, repo: SupabaseNotificationsRepo, user_id: str | None):
        self.queries = queries
        self.repo = repo
        self.user_id = user_id
        self.mutations = MutationCoordinator(queries, user_id)

    async def notifications(self) -> QueryResult[list[Notification]]:
        uid = self.user_id
        if not uid:
            return QueryResult(data=[])

        async def _fetch():
            return await self.repo.list(uid)

        return await self.queries.read(keys.notifications(uid), _fetch, default=[])

    async def unread_count(self) -> QueryResult[int]:
        uid = self.user_id
        if not uid:
            return QueryResult(data=0)

        async def _fetch():
            return await self.repo.unread_count(uid)

        return await self.queries.read(keys.unread_count(uid), _fetch, default=0)

    async def mark_read(self, ids: Sequence[str]) -> None:
        uid = self.mutations.require_user()
        if not ids:
            return
        await self.mutations.run(
            Mutation.MARK_NOTIFICATIONS_READ, lambda: self.repo.mark_read(uid, ids)
        )

    async def mark_all_read(self) -> None:
        uid = self.mutations.require_user()
        await self.mutations.run(
            Mutation.MARK_ALL_NOTIFICATIONS_READ, lambda: self.repo.mark_all_read(uid)
        )
