from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from shelfie_cache.query_client import QueryClient

log = logging.getLogger(__name__)


@dataclass
class _Session:
    queries: QueryClient
    last_seen: float


class SessionRegistry:
    """
    One QueryClient per signed-in user, created on first use and closed on
    logout, on idle expiry or at shutdown. Anonymous reads share a client
    that never polls.
    """

    def __init__(
        self,
        *,
        ttl_sec: int = 3600,
        enable_polling: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_sec = int(ttl_sec)
        self.enable_polling = enable_polling
        self._clock = clock
        self._sessions: dict[str, _Session] = {}
        self.anonymous = QueryClient(enable_polling=False)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._sessions

    async def acquire(self, user_id: str) -> QueryClient:
        await self._sweep()
        now = self._clock()
        sess = self._sessions.get(user_id)
        if sess is None or sess.queries.closed:
            sess = _Session(QueryClient(enable_polling=self.enable_polling), now)
            self._sessions[user_id] = sess
            log.info("session opened for %s", user_id)
        sess.last_seen = now
        return sess.queries

    async def release(self, user_id: str) -> bool:
        sess = self._sessions.pop(user_id, None)
        if sess is None:
            return False
        await sess.queries.aclose()
        log.info("session closed for %s", user_id)
        return True

    async def _sweep(self) -> None:
        if self.ttl_sec <= 0:
            return
        cutoff = self._clock() - self.ttl_sec
        for uid in [u for u, s in self._sessions.items() if s.last_seen < cutoff]:
            log.info("session for %s idle past %ss", uid, self.ttl_sec)
            await self.release(uid)

    async def aclose(self) -> None:
        for uid in list(self._sessions):
            await self.release(uid)
        await self.anonymous.aclose()
