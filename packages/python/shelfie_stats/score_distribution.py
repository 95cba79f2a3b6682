from __future__ import annotations

from typing import Iterable

from pydantic import BaseModel, Field

from .rounding import to_score

# 21 buckets with step 0.5 from 0 to 10
ALL_BUCKETS = [i / 2 for i in range(21)]


class CategorySegment(BaseModel):
    content_type: str
    count: int


class ScoreBucket(BaseModel):
    score: float
    total_count: int = 0
    segments: list[CategorySegment] = Field(default_factory=list)


class ScoreDistribution(BaseModel):
    buckets: list[ScoreBucket]
    max_count: int = 1
    total_ratings: int = 0


def empty_distribution() -> ScoreDistribution:
    return ScoreDistribution(
        buckets=[ScoreBucket(score=s) for s in ALL_BUCKETS], max_count=1, total_ratings=0
    )


def _snap(score: float) -> float:
    # half-point buckets, halves rounded up, clamped to the 0..10 scale
    snapped = int(score * 2 + 0.5) / 2 if score >= 0 else 0.0
    return max(0.0, min(10.0, snapped))


def score_distribution(pairs: Iterable[tuple[str, float]]) -> ScoreDistribution:
    """Histogram of (content_type, score) over half-point buckets, with a
    per-category breakdown (largest segment first) in each bucket."""
    by_bucket: dict[float, dict[str, int]] = {}
    total = 0
    for content_type, raw in pairs:
        score = to_score(raw)
        if score is None:
            continue
        cats = by_bucket.setdefault(_snap(score), {})
        cats[str(content_type)] = cats.get(str(content_type), 0) + 1
        total += 1

    buckets: list[ScoreBucket] = []
    for s in ALL_BUCKETS:
        cats = by_bucket.get(s)
        if not cats:
            buckets.append(ScoreBucket(score=s))
            continue
        segments = sorted(
            (CategorySegment(content_type=t, count=c) for t, c in cats.items()),
            key=lambda seg: seg.count,
            reverse=True,
        )
        buckets.append(
            ScoreBucket(score=s, total_count=sum(seg.count for seg in segments), segments=segments)
        )

    max_count = max([b.total_count for b in buckets] + [1])
    return ScoreDistribution(buckets=buckets, max_count=max_count, total_ratings=total)
