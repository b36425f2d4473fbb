"""
Redis caching service for session listings.

CACHING STRATEGY
================

What we cache:
  - Session listing responses (paginated, filtered, JSON-serialized)
  - Cache key pattern:
    "sessions:list:page={page}&size={size}&type={type}&date={date}&difficulty={d}&trainer={t}"

Invalidation:
  - Any reservation or cancellation changes available_slots, so every
    listing key is dropped.
  - Session create/update/delete drops them too.
  - TTL (REDIS_CACHE_TTL) as safety net.

  All listing keys share the "sessions:list:" prefix, so invalidation is a
  SCAN + DELETE over that prefix.

Single session reads and the booking engine never go through the cache:
they need the live current_bookings counter.

The cache fails open. With Redis disabled or unreachable every call is a
miss and writes are skipped.
"""

import json
from typing import Optional

import redis.asyncio as redis
from gym_booking.core.config import get_settings
from gym_booking.core.logging import get_logger
from gym_booking.core.metrics import record_cache_operation, redis_available, redis_connection_errors

logger = get_logger(__name__)
settings = get_settings()

LIST_KEY_PREFIX = "sessions:list:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            redis_available.set(1)
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            redis_connection_errors.inc()
            redis_available.set(0)
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def make_session_list_key(
    page: int,
    page_size: int,
    session_type: Optional[str] = None,
    day: Optional[str] = None,
    difficulty: Optional[str] = None,
    trainer_id: Optional[int] = None,
) -> str:
    return (
        f"{LIST_KEY_PREFIX}page={page}&size={page_size}"
        f"&type={session_type or ''}&date={day or ''}"
        f"&difficulty={difficulty or ''}&trainer={trainer_id or ''}"
    )


async def get_cached_sessions(key: str) -> Optional[dict]:
    """Retrieve a cached session listing."""
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(key)
        if data:
            record_cache_operation("get", hit=True)
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        record_cache_operation("get", hit=False)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        redis_connection_errors.inc()
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_sessions(key: str, data: dict) -> None:
    """Cache a session listing with TTL."""
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        redis_connection_errors.inc()
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_session_cache() -> None:
    """Drop every cached session listing."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{LIST_KEY_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        redis_connection_errors.inc()
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for the health endpoint."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
