from __future__ import annotations

from typing import Iterable

from pydantic import BaseModel, Field

from .rounding import round1, to_score


class CategoryStat(BaseModel):
    type: str
    count: int
    avg_score: float


class ProfileStats(BaseModel):
    total_ratings: int = 0
    average_score: float = 0
    by_category: list[CategoryStat] = Field(default_factory=list)


def category_stats(pairs: Iterable[tuple[str, float]]) -> ProfileStats:
    """
    Totals, global average and per-category averages (one decimal, half up).
    Categories come back by count descending; equal counts keep the order in
    which each category first appeared.
    """
    totals: dict[str, list[float]] = {}  # type -> [sum, count]
    global_sum = 0.0
    n = 0
    for content_type, raw in pairs:
        score = to_score(raw)
        if score is None or not content_type:
            continue
        agg = totals.setdefault(str(content_type), [0.0, 0])
        agg[0] += score
        agg[1] += 1
        global_sum += score
        n += 1

    if n == 0:
        return ProfileStats(total_ratings=0, average_score=0, by_category=[])

    by_category = sorted(
        (
            CategoryStat(type=t, count=int(c), avg_score=round1(s / c))
            for t, (s, c) in totals.items()
        ),
        key=lambda stat: stat.count,
        reverse=True,
    )
    return ProfileStats(
        total_ratings=n,
        average_score=round1(global_sum / n),
        by_category=by_category,
    )
