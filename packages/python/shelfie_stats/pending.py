from __future__ import annotations

from typing import Callable, Iterable, Sequence, TypeVar

from shelfie_core.config import PENDING_LIMIT

T = TypeVar("T")


def resolve_pending(
    candidates: Sequence[T],
    rated_ids: Iterable[str],
    *,
    limit: int = PENDING_LIMIT,
    content_id: Callable[[T], str] = lambda c: getattr(c, "content_id"),
) -> list[T]:
    """Drop candidates already rated, then cut to `limit`, order preserved.

    Exclusion happens before truncation, so a short result only means the
    candidate window ran out.
    """
    rated = set(rated_ids)
    kept = [c for c in candidates if content_id(c) not in rated]
    return kept[: max(0, limit)]
