from __future__ import annotations

from typing import Sequence, Type

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.retry import Retry

from shelfie_challenges.flag_store import FlagStore, MemoryFlagStore, RedisFlagStore

# Broken or dropped connections; safe to retry a flag read/write.
_RETRY_ERRORS: Sequence[Type[Exception]] = (
    RedisConnectionError,
    RedisTimeoutError,
    ConnectionResetError,
    OSError,
)


def make_redis_client(redis_url: str) -> Redis:
    """Text client (decode_responses=True); flags are short strings."""
    return redis.from_url(
        redis_url,
        decode_responses=True,
        health_check_interval=10,
        socket_keepalive=True,
        socket_connect_timeout=2,
        socket_timeout=5,
        retry=Retry(ExponentialBackoff(cap=0.5, base=0.05), retries=3),
        retry_on_error=list(_RETRY_ERRORS),
    )


def make_flag_store(redis_url: str | None, namespace: str) -> tuple[FlagStore, Redis | None]:
    """Redis-backed flags when a URL is configured, process memory otherwise.

    The caller owns the returned client and closes it on shutdown.
    """
    if not redis_url:
        return MemoryFlagStore(), None
    client = make_redis_client(redis_url)
    return RedisFlagStore(client=client, namespace=namespace), client
