from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, TypeVar

from shelfie_core.errors import NotAuthenticated

from .invalidation import Mutation, families_for
from .query_client import QueryClient

log = logging.getLogger(__name__)

T = TypeVar("T")


class MutationCoordinator:
    """Write through the gateway, then mark the mutation's families stale.

    There is no await between the write completing and the invalidation, so
    from the caller's side both happen together. A failed write invalidates
    nothing.
    """

    def __init__(self, queries: QueryClient, user_id: str | None):
        self.queries = queries
        self.user_id = user_id

    def require_user(self) -> str:
        if not self.user_id:
            raise NotAuthenticated("sign in required")
        return self.user_id

    async def run(
        self,
        mutation: Mutation,
        write: Callable[[], Awaitable[T]],
        **ctx: Any,
    ) -> T:
        self_id = self.require_user()
        result = await write()
        families = families_for(mutation, self_id=self_id, **ctx)
        hit = self.queries.invalidate(*families)
        log.debug("%s invalidated %d cached keys", mutation.value, len(hit))
        return result
