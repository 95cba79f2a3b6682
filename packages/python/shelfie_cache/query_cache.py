from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable

from .keys import QueryKey, matches_family, normalize_key

log = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]


@dataclass
class CacheEntry:
    key: QueryKey
    value: Any
    fetched_at: float
    stale_after: float
    invalidated: bool = False

    def is_fresh(self, now: float) -> bool:
        return not self.invalidated and (now - self.fetched_at) < self.stale_after


@dataclass
class _Flight:
    task: asyncio.Task
    generation: int
    waiters: int = 0


class QueryCache:
    """
    Keyed store of fetch results with per-key staleness.

    - Fresh entries are served without calling the fetcher.
    - Concurrent reads of one key share a single in-flight fetch.
    - invalidate() marks matching entries stale and voids in-flight fetches
      for matching keys: their waiters still get the value, the cache does not.
    - A waiter that is cancelled never writes; when the last waiter goes away
      the fetch itself is cancelled.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._now = clock
        self._entries: dict[QueryKey, CacheEntry] = {}
        self._inflight: dict[QueryKey, _Flight] = {}
        self._generations: dict[QueryKey, int] = {}

    # ----- inspection -----

    def get_entry(self, key: Iterable[Any]) -> CacheEntry | None:
        return self._entries.get(normalize_key(key))

    def is_fresh(self, key: Iterable[Any]) -> bool:
        entry = self.get_entry(key)
        return entry is not None and entry.is_fresh(self._now())

    def is_fetching(self, key: Iterable[Any]) -> bool:
        return normalize_key(key) in self._inflight

    def keys(self) -> list[QueryKey]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    # ----- reads -----

    async def fetch(
        self,
        key: Iterable[Any],
        fetcher: Fetcher,
        *,
        stale_after: float,
        force: bool = False,
    ) -> Any:
        k = normalize_key(key)
        entry = self._entries.get(k)
        if not force and entry is not None and entry.is_fresh(self._now()):
            log.debug("cache hit %s", k)
            return entry.value

        generation = self._generations.get(k, 0)
        flight = self._inflight.get(k)
        # a flight started before the last invalidation can't serve new readers
        if flight is None or flight.generation != generation:
            log.debug("cache miss %s", k)
            task = asyncio.ensure_future(self._run(k, fetcher, stale_after, generation))
            flight = _Flight(task=task, generation=generation)
            self._inflight[k] = flight
            task.add_done_callback(lambda _t, k=k, f=flight: self._drop_flight(k, f))

        flight.waiters += 1
        try:
            return await asyncio.shield(flight.task)
        except asyncio.CancelledError:
            if flight.waiters <= 1 and not flight.task.done():
                flight.task.cancel()
                self._drop_flight(k, flight)
            raise
        finally:
            flight.waiters -= 1

    async def _run(
        self, key: QueryKey, fetcher: Fetcher, stale_after: float, generation: int
    ) -> Any:
        value = await fetcher()
        if self._generations.get(key, 0) == generation:
            self.set(key, value, stale_after=stale_after)
        else:
            log.debug("discarding result for %s invalidated mid-flight", key)
        return value

    def _drop_flight(self, key: QueryKey, flight: _Flight) -> None:
        if self._inflight.get(key) is flight:
            del self._inflight[key]

    # ----- writes -----

    def set(self, key: Iterable[Any], value: Any, *, stale_after: float) -> CacheEntry:
        k = normalize_key(key)
        entry = CacheEntry(
            key=k, value=value, fetched_at=self._now(), stale_after=float(stale_after)
        )
        self._entries[k] = entry
        return entry

    def invalidate(self, *families: Iterable[Any]) -> list[QueryKey]:
        """Mark every key under any of the given prefixes stale."""
        prefixes = [normalize_key(f) for f in families]
        hit: list[QueryKey] = []
        for k in set(self._entries) | set(self._inflight):
            if any(matches_family(k, p) for p in prefixes):
                entry = self._entries.get(k)
                if entry is not None:
                    entry.invalidated = True
                self._generations[k] = self._generations.get(k, 0) + 1
                hit.append(k)
        if hit:
            log.debug("invalidated %d keys for %s", len(hit), prefixes)
        return hit

    def remove(self, key: Iterable[Any]) -> None:
        k = normalize_key(key)
        self._entries.pop(k, None)
        self._generations[k] = self._generations.get(k, 0) + 1

    async def aclose(self) -> None:
        flights = list(self._inflight.values())
        for flight in flights:
            flight.task.cancel()
        for flight in flights:
            try:
                await flight.task
            except (asyncio.CancelledError, Exception):
                pass
        self._inflight.clear()
        self._entries.clear()
        self._generations.clear()
