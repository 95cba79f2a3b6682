from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    next_cursor: int | None = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


def offset_range(offset: int, page_size: int) -> tuple[int, int]:
    """Inclusive row range for PostgREST .range()."""
    start = max(0, int(offset))
    return start, start + page_size - 1


def page_from_rows(items: Sequence[T], *, offset: int, page_size: int) -> Page[T]:
    # A short page (including an empty one) is the last page.
    if len(items) < page_size:
        return Page(items=list(items), next_cursor=None)
    return Page(items=list(items), next_cursor=offset + page_size)


@dataclass(frozen=True)
class InfiniteData(Generic[T]):
    pages: tuple[Page[T], ...] = field(default_factory=tuple)

    @property
    def items(self) -> list[T]:
        return [it for p in self.pages for it in p.items]

    @property
    def next_cursor(self) -> int | None:
        # Page N+1 exists only if page N came back full.
        if not self.pages:
            return 0
        return self.pages[-1].next_cursor

    @property
    def has_next_page(self) -> bool:
        return self.next_cursor is not None

    def append(self, page: Page[T]) -> "InfiniteData[T]":
        return InfiniteData(pages=self.pages + (page,))
