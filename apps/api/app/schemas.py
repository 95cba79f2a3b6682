from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, Field

from shelfie_cache.pagination import InfiniteData
from shelfie_cache.query_client import QueryError, QueryResult
from shelfie_library.schemas import PinPosition


class ResultOut(BaseModel):
    """Wire shape of every derived view."""

    data: Any = None
    is_loading: bool = False
    error: QueryError | None = None


class PagedData(BaseModel):
    items: List[Any] = Field(default_factory=list)
    next_cursor: int | None = None
    has_next_page: bool = False


def result_out(res: QueryResult) -> ResultOut:
    return ResultOut(data=res.data, is_loading=res.is_loading, error=res.error)


def paged_out(res: QueryResult) -> ResultOut:
    data: InfiniteData = res.data if res.data is not None else InfiniteData()
    return ResultOut(
        data=PagedData(
            items=data.items,
            next_cursor=data.next_cursor,
            has_next_page=data.has_next_page,
        ),
        is_loading=res.is_loading,
        error=res.error,
    )


class PinOrderRequest(BaseModel):
    positions: List[PinPosition] = Field(min_length=1, max_length=5)


class ToggleOut(BaseModel):
    active: bool


class ChangedOut(BaseModel):
    changed: bool
