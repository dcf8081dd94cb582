"""
Redis caching for daily seat statistics.

CACHING STRATEGY
================

What we cache:
  - GetDailyStats responses, one key per date: "seats:stats:{YYYY-MM-DD}"

Why:
  - Dashboards poll the stats endpoint far more often than seats change hands
  - Stats need only single-query consistency; a few seconds of staleness is fine

Invalidation strategy:
  - reserve / cancel / release: delete the key for the affected date
  - housekeeping: SCAN and delete every stats key
  - TTL as a safety net (REDIS_CACHE_TTL)

Availability is never cached: the booking screen must show current occupancy.

Redis is optional. When disabled or unreachable every call here degrades to a
no-op and the request is served from the database.
"""

import json
from datetime import date
from typing import Optional

import redis.asyncio as redis
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

STATS_KEY_PREFIX = "seats:stats:"

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
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except (redis.RedisError, OSError) as e:
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


def _stats_key(target: date) -> str:
    return f"{STATS_KEY_PREFIX}{target.isoformat()}"


async def get_cached_stats(target: date) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _stats_key(target)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=bool(data))
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_stats(target: date, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    key = _stats_key(target)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        record_cache_operation("set", hit=False)
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except redis.RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_stats_cache(target: Optional[date] = None) -> None:
    """Drop the stats for one date, or every cached date when `target` is None."""
    client = await get_redis()
    if not client:
        return

    try:
        if target is not None:
            await client.delete(_stats_key(target))
            logger.info("cache_invalidated", date=target.isoformat())
            return

        deleted = 0
        async for key in client.scan_iter(match=f"{STATS_KEY_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except redis.RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
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
    except redis.RedisError as e:
        return {"status": "error", "error": str(e)}
