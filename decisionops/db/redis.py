"""Redis client backing the domain event channel."""

import redis.asyncio as redis

from decisionops.core.config import get_settings

_redis: redis.Redis | None = None


async def init_redis(url: str | None = None) -> None:
    """Connect the shared client once; later calls are no-ops.

    Socket timeouts follow the event publish timeout so a stalled broker
    cannot hold a request longer than a publish is allowed to take.
    """
    global _redis

    if _redis is not None:
        return

    settings = get_settings()
    client = redis.from_url(
        url or settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=settings.event_publish_timeout_seconds,
        socket_timeout=settings.event_publish_timeout_seconds,
    )
    try:
        await client.ping()
    except Exception:
        await client.aclose()
        raise
    _redis = client


async def close_redis() -> None:
    global _redis

    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis() -> redis.Redis:
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis
