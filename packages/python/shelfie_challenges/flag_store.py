from __future__ import annotations

import logging
from typing import Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError

log = logging.getLogger(__name__)


class FlagStoreError(Exception):
    """The flag backend could not be read or written."""


class FlagStore(Protocol):
    async def get(self, name: str) -> str | None: ...

    async def set(self, name: str, value: str) -> None: ...


class RedisFlagStore:
    """
    One-time flags in Redis: shelfie:flag:{name}

    Expects a decode_responses=True client. Backend failures surface as
    FlagStoreError so callers can pick their own safe default.
    """

    def __init__(self, *, client: Redis, namespace: str = "shelfie:flag:") -> None:
        self._r = client
        self._ns = namespace

    def _key(self, name: str) -> str:
        return f"{self._ns}{name}"

    async def get(self, name: str) -> str | None:
        try:
            value = await self._r.get(self._key(name))
        except (RedisError, RuntimeError, OSError) as e:
            raise FlagStoreError(str(e)) from e
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, name: str, value: str) -> None:
        try:
            await self._r.set(self._key(name), value)
        except (RedisError, RuntimeError, OSError) as e:
            raise FlagStoreError(str(e)) from e


class MemoryFlagStore:
    """Process-local flags, for tests and deployments without Redis."""

    def __init__(self) -> None:
        self._flags: dict[str, str] = {}

    async def get(self, name: str) -> str | None:
        return self._flags.get(name)

    async def set(self, name: str, value: str) -> None:
        self._flags[name] = value


class CelebrationGate:
    """Lets a completed challenge be celebrated once."""

    def __init__(self, store: FlagStore):
        self.store = store

    @staticmethod
    def flag_name(challenge_id: str) -> str:
        return f"challenge_celebrated:{challenge_id}"

    async def should_celebrate(self, challenge_id: str, completed: bool) -> bool:
        if not completed:
            return False
        try:
            value = await self.store.get(self.flag_name(challenge_id))
        except FlagStoreError as e:
            # unreadable flag counts as already celebrated
            log.warning("celebration flag read failed for %s: %s", challenge_id, e)
            return False
        return value != "true"

    async def mark_celebrated(self, challenge_id: str) -> None:
        try:
            await self.store.set(self.flag_name(challenge_id), "true")
        except FlagStoreError as e:
            log.warning("celebration flag write failed for %s: %s", challenge_id, e)
