from datetime import timezone

import pytest
from fastapi.testclient import TestClient

from fakes import FakeSupabaseClient
from shelfie_cache.query_client import QueryClient

TEST_USER = "00000000-0000-0000-0000-000000000001"


@pytest.fixture()
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def fake_db():
    return FakeSupabaseClient()


@pytest.fixture()
def utc():
    return timezone.utc


@pytest.fixture()
async def queries():
    qc = QueryClient(enable_polling=False)
    try:
        yield qc
    finally:
        await qc.aclose()


@pytest.fixture()
def test_client(fake_db, monkeypatch):
    # Settings read from the environment; keep the app off Redis and timers
    monkeypatch.setenv("ENABLE_POLLING", "false")
    monkeypatch.setenv("TIMEZONE", "UTC")
    monkeypatch.setenv("COMMUNITY_SCORE_MODE", "placeholder")
    monkeypatch.delenv("REDIS_URL", raising=False)

    # Settings are built in the lifespan, so the env above is what they see
    from app.main import app  # type: ignore
    from app.deps.supabase_client import (  # type: ignore
        get_current_user_id,
        get_supabase_client,
    )
    from app.deps.supabase_optional import (  # type: ignore
        get_optional_user_id,
        get_supabase_client_optional,
    )

    # Every repo talks to the in-memory store
    def _fake_client():
        return fake_db

    def _fake_user_id():
        return TEST_USER

    app.dependency_overrides[get_supabase_client] = _fake_client
    app.dependency_overrides[get_current_user_id] = _fake_user_id
    app.dependency_overrides[get_supabase_client_optional] = _fake_client
    app.dependency_overrides[get_optional_user_id] = _fake_user_id

    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
