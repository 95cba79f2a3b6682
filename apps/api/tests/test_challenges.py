import logging
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError
from redis.exceptions import ConnectionError as RedisConnectionError

from shelfie_cache import keys
from shelfie_challenges.challenges_service import ChallengesService, percentage, year_window
from shelfie_challenges.flag_store import (
    CelebrationGate,
    FlagStoreError,
    MemoryFlagStore,
    RedisFlagStore,
)
from shelfie_challenges.schemas import ChallengeCreate
from shelfie_challenges.supabase_repo import SupabaseChallengesRepo
from shelfie_core.errors import NotFound

ME = "me"
UTC = timezone.utc


class DictRedis:
    """Just enough of redis.asyncio.Redis for flag reads and writes."""

    def __init__(self):
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value


class DownRedis:
    async def get(self, key):
        raise RedisConnectionError("connection refused")

    async def set(self, key, value):
        raise RedisConnectionError("connection refused")


class BrokenStore:
    async def get(self, name):
        raise FlagStoreError("unreachable")

    async def set(self, name, value):
        raise FlagStoreError("unreachable")


def _svc(fake_db, queries, store=None, user_id=ME) -> ChallengesService:
    return ChallengesService(
        queries,
        SupabaseChallengesRepo(fake_db),
        CelebrationGate(store or MemoryFlagStore()),
        user_id,
        tz=UTC,
    )


def _rating(n: int, created_at: str, content_type: str = "movie", user_id: str = ME):
    return {
        "user_id": user_id,
        "content_type": content_type,
        "content_id": str(n),
        "content_title": f"T{n}",
        "score": 7,
        "created_at": created_at,
    }


# ---- pure helpers ----
@pytest.mark.parametrize(
    "progress,target,expected",
    [(3, 10, 30), (1, 3, 33), (2, 3, 67), (1, 8, 13), (5, 4, 100), (0, 5, 0), (3, 0, 0)],
)
def test_percentage(progress, target, expected):
    assert percentage(progress, target) == expected


def test_year_window():
    start, end = year_window(2024, UTC)
    assert start == datetime(2024, 1, 1, tzinfo=UTC)
    assert end == datetime(2025, 1, 1, tzinfo=UTC)


def test_category_filter_normalises():
    assert ChallengeCreate(target_count=5).category_filter == "all"
    assert ChallengeCreate(target_count=5, category_filter="anything").category_filter == "custom"
    assert ChallengeCreate(target_count=5, category_filter="TV").category_filter == "series"
    with pytest.raises(ValidationError):
        ChallengeCreate(target_count=5, category_filter="vinyl")
    with pytest.raises(ValidationError):
        ChallengeCreate(target_count=0)


# ---- flag store ----
@pytest.mark.anyio
async def test_redis_flag_store_namespaces_keys():
    client = DictRedis()
    store = RedisFlagStore(client=client, namespace="test:flag:")
    await store.set("challenge_celebrated:c1", "true")
    assert client.data == {"test:flag:challenge_celebrated:c1": "true"}
    assert await store.get("challenge_celebrated:c1") == "true"
    assert await store.get("missing") is None


@pytest.mark.anyio
async def test_redis_flag_store_wraps_backend_errors():
    store = RedisFlagStore(client=DownRedis())
    with pytest.raises(FlagStoreError):
        await store.get("x")
    with pytest.raises(FlagStoreError):
        await store.set("x", "true")


@pytest.mark.anyio
async def test_gate_celebrates_once():
    gate = CelebrationGate(MemoryFlagStore())
    assert await gate.should_celebrate("c1", completed=False) is False
    assert await gate.should_celebrate("c1", completed=True) is True
    await gate.mark_celebrated("c1")
    assert await gate.should_celebrate("c1", completed=True) is False
    assert await gate.should_celebrate("c2", completed=True) is True


@pytest.mark.anyio
async def test_gate_read_failure_means_no_celebration(caplog):
    gate = CelebrationGate(BrokenStore())
    with caplog.at_level(logging.WARNING):
        assert await gate.should_celebrate("c1", completed=True) is False
    assert "celebration flag read failed" in caplog.text


@pytest.mark.anyio
async def test_gate_write_failure_is_swallowed(caplog):
    gate = CelebrationGate(RedisFlagStore(client=DownRedis()))
    with caplog.at_level(logging.WARNING):
        await gate.mark_celebrated("c1")
    assert "celebration flag write failed" in caplog.text


# ---- service ----
@pytest.mark.anyio
async def test_overview_counts_progress_per_category(fake_db, queries):
    fake_db.seed(
        "annual_challenges",
        {"user_id": ME, "year": 2024, "target_count": 3, "category_filter": "all"},
        {"user_id": ME, "year": 2024, "target_count": 2, "category_filter": "book"},
        {"user_id": ME, "year": 2023, "target_count": 1, "category_filter": "all"},
    )
    fake_db.seed(
        "ratings",
        _rating(1, "2024-01-01T00:00:00Z"),
        _rating(2, "2024-06-01T00:00:00Z", "book"),
        _rating(3, "2024-12-31T23:59:59Z"),
        _rating(4, "2025-01-01T00:00:00Z"),
        _rating(5, "2023-12-31T23:59:59Z", "book"),
        _rating(6, "2024-06-01T00:00:00Z", user_id="other"),
    )
    svc = _svc(fake_db, queries)

    rows = (await svc.overview(2024)).data
    assert [(r.challenge.category_filter, r.progress, r.percentage) for r in rows] == [
        ("all", 3, 100),
        ("book", 1, 50),
    ]
    assert rows[0].completed and rows[0].should_celebrate
    assert not rows[1].completed and not rows[1].should_celebrate

    await svc.mark_celebrated(rows[0].challenge.id)
    again = (await svc.overview(2024)).data
    assert again[0].completed and not again[0].should_celebrate


@pytest.mark.anyio
async def test_overview_survives_a_broken_flag_store(fake_db, queries):
    fake_db.seed(
        "annual_challenges",
        {"user_id": ME, "year": 2024, "target_count": 1, "category_filter": "all"},
    )
    fake_db.seed("ratings", _rating(1, "2024-03-01T00:00:00Z"))
    res = await _svc(fake_db, queries, store=BrokenStore()).overview(2024)
    assert res.error is None
    assert res.data[0].completed
    assert res.data[0].should_celebrate is False


@pytest.mark.anyio
async def test_create_and_delete(fake_db, queries):
    svc = _svc(fake_db, queries)
    created = await svc.create(ChallengeCreate(year=2024, target_count=12, category_filter="book"))
    assert created.user_id == ME
    assert [c.id for c in (await svc.challenges(2024)).data] == [created.id]

    queries.cache.set(keys.challenge_progress(ME, 2024, "book"), 4, stale_after=60)
    await svc.delete(created.id)
    assert (await svc.challenges(2024)).data == []
    assert not queries.cache.is_fresh(keys.challenge_progress(ME, 2024, "book"))

    with pytest.raises(NotFound):
        await svc.delete(created.id)


@pytest.mark.anyio
async def test_create_defaults_to_current_year(fake_db, queries):
    created = await _svc(fake_db, queries).create(ChallengeCreate(target_count=1))
    assert created.year == datetime.now(UTC).year


@pytest.mark.anyio
async def test_anonymous_overview_is_empty(fake_db, queries):
    assert (await _svc(fake_db, queries, user_id=None).overview(2024)).data == []
    assert fake_db.calls == []
