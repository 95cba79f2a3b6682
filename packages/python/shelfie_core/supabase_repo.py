from __future__ import annotations

import logging
from typing import Any, Callable, Sequence, TypeVar

import httpx
from anyio import to_thread
from postgrest.exceptions import APIError as PostgrestAPIError
from pydantic import ValidationError

from .errors import map_pgrest, map_transport

log = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M")


def rows_of(res) -> list[dict[str, Any]]:
    data = getattr(res, "data", None)
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return list(data)


def map_valid(rows: Sequence[dict[str, Any]], mapper: Callable[[dict[str, Any]], M]) -> list[M]:
    """Map rows to models, dropping the ones that do not validate (unknown type, bad score)."""
    out: list[M] = []
    for r in rows:
        try:
            out.append(mapper(r))
        except ValidationError as e:
            log.debug("skipping malformed row %s (%d errors)", r.get("id"), e.error_count())
    return out


class SupabaseRepo:
    """Base for table repositories: sync query builders run in a worker thread,
    store/transport failures surface as typed domain errors."""

    def __init__(self, client):
        self.client = client

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await to_thread.run_sync(fn, *args)
        except PostgrestAPIError as e:
            raise map_pgrest(e) from e
        except httpx.HTTPError as e:
            raise map_transport(e) from e
