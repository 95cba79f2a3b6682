from __future__ import annotations

import hashlib
from typing import Protocol

from pydantic import BaseModel

from shelfie_core.config import SCORE_FETCH_BATCH

from .rounding import round1, to_score


class CommunityScore(BaseModel):
    average_score: float = 0
    total_ratings: int = 0


class CommunityScoreProvider(Protocol):
    async def score(self, content_type: str, content_id: str) -> CommunityScore: ...


class ScoreSource(Protocol):
    async def score_batch(
        self, content_type: str, content_id: str, *, offset: int, limit: int
    ) -> list[float]: ...


# score in [4.0, 9.5] at 0.1 steps -> 56 values; users in [10, 500] -> 491 values
_SCORE_STEPS = 56
_USER_SPAN = 491


class PlaceholderCommunityScore:
    """Stand-in numbers seeded by a stable hash of the content id. No I/O."""

    async def score(self, content_type: str, content_id: str) -> CommunityScore:
        return self.compute(content_id)

    @staticmethod
    def compute(content_id: str) -> CommunityScore:
        seed = int.from_bytes(
            hashlib.sha256(str(content_id).encode("utf-8")).digest()[:8], "big"
        )
        score = (40 + seed % _SCORE_STEPS) / 10
        users = 10 + (seed // _SCORE_STEPS) % _USER_SPAN
        return CommunityScore(average_score=score, total_ratings=users)


class LiveCommunityScore:
    """Mean of every stored score for the content, read in bounded batches."""

    def __init__(self, source: ScoreSource, *, batch_size: int = SCORE_FETCH_BATCH):
        self.source = source
        self.batch_size = batch_size

    async def score(self, content_type: str, content_id: str) -> CommunityScore:
        total = 0.0
        n = 0
        offset = 0
        while True:
            batch = await self.source.score_batch(
                content_type, content_id, offset=offset, limit=self.batch_size
            )
            for raw in batch:
                s = to_score(raw)
                if s is None:
                    continue
                total += s
                n += 1
            if len(batch) < self.batch_size:
                break
            offset += self.batch_size
        if n == 0:
            return CommunityScore(average_score=0, total_ratings=0)
        return CommunityScore(average_score=round1(total / n), total_ratings=n)


def make_provider(mode: str, source: ScoreSource | None = None) -> CommunityScoreProvider:
    if mode == "live":
        if source is None:
            raise ValueError("live community score needs a score source")
        return LiveCommunityScore(source)
    if mode == "placeholder":
        return PlaceholderCommunityScore()
    raise ValueError(f"unknown community score mode: {mode}")
