from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Generic, Iterable, TypeVar

from pydantic import BaseModel

from shelfie_core.errors import DomainError

from .keys import QueryKey, QueryOptions, normalize_key, options_for
from .pagination import InfiniteData, Page
from .query_cache import QueryCache

log = logging.getLogger(__name__)

T = TypeVar("T")
PageFetcher = Callable[[int], Awaitable[Page[Any]]]


class QueryError(BaseModel):
    code: str
    message: str

    @classmethod
    def from_exc(cls, exc: DomainError) -> "QueryError":
        return cls(code=exc.code, message=exc.message)


class QueryResult(BaseModel, Generic[T]):
    data: T | None = None
    is_loading: bool = False
    error: QueryError | None = None


class QueryClient:
    """
    Session-scoped front door to the cache: one instance per signed-in user,
    closed on logout. Reads go through the key's QueryOptions unless overridden.
    """

    def __init__(self, cache: QueryCache | None = None, *, enable_polling: bool = True):
        self.cache = cache or QueryCache()
        self._enable_polling = enable_polling
        self._pollers: dict[QueryKey, asyncio.Task] = {}
        # latest fetcher per polled key; it carries the newest request credentials
        self._poll_fetchers: dict[QueryKey, Callable[[], Awaitable[Any]]] = {}
        self._shown: dict[QueryKey, QueryKey] = {}
        self._background: set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _opts(self, key: QueryKey, opts: QueryOptions | None) -> QueryOptions:
        return opts or options_for(key)

    # ---------- reads ----------
    async def fetch(
        self,
        key: Iterable[Any],
        fetcher: Callable[[], Awaitable[T]],
        opts: QueryOptions | None = None,
    ) -> T:
        k = normalize_key(key)
        o = self._opts(k, opts)
        value = await self.cache.fetch(k, fetcher, stale_after=o.stale_after)
        if o.refetch_interval:
            self._ensure_poller(k, fetcher, o)
        return value

    async def read(
        self,
        key: Iterable[Any],
        fetcher: Callable[[], Awaitable[T]],
        opts: QueryOptions | None = None,
        *,
        default: T | None = None,
    ) -> QueryResult[T]:
        """Like fetch(), but failures come back in the result instead of raising."""
        k = normalize_key(key)
        try:
            value = await self.fetch(k, fetcher, opts)
        except DomainError as exc:
            log.debug("query %s failed: %s", k, exc)
            entry = self.cache.get_entry(k)
            return QueryResult(
                data=entry.value if entry is not None else default,
                is_loading=False,
                error=QueryError.from_exc(exc),
            )
        return QueryResult(data=value, is_loading=False)

    def snapshot(
        self,
        key: Iterable[Any],
        *,
        default: T | None = None,
        previous_key: Iterable[Any] | None = None,
    ) -> QueryResult[T]:
        """Non-blocking view: cached value (possibly stale), else the previous
        key's value, else the default. is_loading flags anything not fresh."""
        k = normalize_key(key)
        entry = self.cache.get_entry(k)
        if entry is not None:
            return QueryResult(data=entry.value, is_loading=not self.cache.is_fresh(k))
        if previous_key is not None:
            prev = self.cache.get_entry(previous_key)
            if prev is not None:
                return QueryResult(data=prev.value, is_loading=True)
        return QueryResult(data=default, is_loading=True)

    def mark_shown(self, view: Iterable[Any], key: Iterable[Any]) -> None:
        """Record which key a view last displayed; snapshots of the view use it as placeholder."""
        self._shown[normalize_key(view)] = normalize_key(key)

    def last_shown(self, view: Iterable[Any]) -> QueryKey | None:
        return self._shown.get(normalize_key(view))

    def prefetch(
        self,
        key: Iterable[Any],
        fetcher: Callable[[], Awaitable[T]],
        opts: QueryOptions | None = None,
    ) -> asyncio.Task | None:
        """Schedule a background fetch if the key is not fresh."""
        k = normalize_key(key)
        if self.cache.is_fresh(k):
            return None
        task = asyncio.ensure_future(self._quiet_fetch(k, fetcher, opts))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _quiet_fetch(self, key: QueryKey, fetcher, opts) -> None:
        try:
            await self.fetch(key, fetcher, opts)
        except DomainError as exc:
            log.warning("background fetch %s failed: %s", key, exc)

    async def refetch(
        self,
        key: Iterable[Any],
        fetcher: Callable[[], Awaitable[T]],
        opts: QueryOptions | None = None,
    ) -> T:
        k = normalize_key(key)
        self.cache.invalidate(k)
        return await self.fetch(k, fetcher, opts)

    # ---------- infinite queries ----------
    async def fetch_infinite(
        self,
        key: Iterable[Any],
        page_fetcher: PageFetcher,
        opts: QueryOptions | None = None,
    ) -> InfiniteData[Any]:
        k = normalize_key(key)

        async def _first() -> InfiniteData[Any]:
            return InfiniteData().append(await page_fetcher(0))

        return await self.fetch(k, _first, opts)

    async def fetch_next_page(
        self,
        key: Iterable[Any],
        page_fetcher: PageFetcher,
        opts: QueryOptions | None = None,
    ) -> InfiniteData[Any]:
        k = normalize_key(key)
        o = self._opts(k, opts)
        entry = self.cache.get_entry(k)
        if entry is not None and not entry.invalidated:
            # extend the pages already loaded, even if they are past their window
            data = entry.value
        else:
            data = await self.fetch_infinite(k, page_fetcher, o)
        if not data.has_next_page:
            return data
        cursor = data.next_cursor

        async def _more() -> InfiniteData[Any]:
            return data.append(await page_fetcher(cursor))

        return await self.cache.fetch(k, _more, stale_after=o.stale_after, force=True)

    async def read_infinite(
        self,
        key: Iterable[Any],
        page_fetcher: PageFetcher,
        opts: QueryOptions | None = None,
        *,
        next_page: bool = False,
    ) -> QueryResult[InfiniteData[Any]]:
        """fetch_infinite()/fetch_next_page() with failures folded into the result."""
        k = normalize_key(key)
        try:
            if next_page:
                data = await self.fetch_next_page(k, page_fetcher, opts)
            else:
                data = await self.fetch_infinite(k, page_fetcher, opts)
        except DomainError as exc:
            log.debug("paged query %s failed: %s", k, exc)
            entry = self.cache.get_entry(k)
            return QueryResult(
                data=entry.value if entry is not None else InfiniteData(),
                error=QueryError.from_exc(exc),
            )
        return QueryResult(data=data)

    # ---------- invalidation ----------
    def invalidate(self, *families: Iterable[Any]) -> list[QueryKey]:
        return self.cache.invalidate(*families)

    # ---------- forced re-check ----------
    def _ensure_poller(self, key: QueryKey, fetcher, opts: QueryOptions) -> None:
        if not self._enable_polling or self._closed:
            return
        self._poll_fetchers[key] = fetcher
        task = self._pollers.get(key)
        if task is not None and not task.done():
            return
        self._pollers[key] = asyncio.ensure_future(self._poll(key, opts))

    async def _poll(self, key: QueryKey, opts: QueryOptions) -> None:
        interval = float(opts.refetch_interval or 0)
        while True:
            await asyncio.sleep(interval)
            fetcher = self._poll_fetchers[key]
            try:
                await self.cache.fetch(key, fetcher, stale_after=opts.stale_after, force=True)
            except DomainError as exc:
                log.warning("periodic refetch %s failed: %s", key, exc)

    def polling_keys(self) -> list[QueryKey]:
        return [k for k, t in self._pollers.items() if not t.done()]

    # ---------- lifecycle ----------
    async def aclose(self) -> None:
        self._closed = True
        tasks = list(self._pollers.values()) + list(self._background)
        for t in tasks:
            t.cancel()
        for t in tasks:
            try:
                await t
            except (asyncio.CancelledError, Exception):
                pass
        self._pollers.clear()
        self._poll_fetchers.clear()
        self._shown.clear()
        self._background.clear()
        await self.cache.aclose()
