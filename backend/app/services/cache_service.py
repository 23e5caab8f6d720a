"""
Redis caching service for movie listings.

CACHING STRATEGY
================

What we cache:
  - Movie listing responses (paginated, JSON-serialized, showtimes included)
  - Cache key pattern: "movies:list:page={page}&size={size}"

What we never cache:
  - Seat availability. It changes with every reservation and a stale answer
    only sends clients into avoidable conflicts. It is always read from the DB.

Invalidation strategy:
  - On movie create/update/delete and seat map changes: delete every
    "movies:list:*" key (SCAN + DELETE)
  - TTL-based expiry as safety net (REDIS_CACHE_TTL)

Redis is optional. When it is disabled or unreachable every function here
degrades to a no-op / cache miss and the API serves straight from the DB.
"""

import json
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation

logger = get_logger(__name__)

MOVIE_LIST_PREFIX = "movies:list:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client
    settings = get_settings()

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            logger.error("redis_connection_failed", error=str(e))
            await client.aclose()
            return None
        _redis_client = client
        logger.info("redis_connected", url=settings.REDIS_URL)

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_movie_list_key(page: int, page_size: int) -> str:
    return f"{MOVIE_LIST_PREFIX}page={page}&size={page_size}"


async def get_cached_movies(page: int, page_size: int) -> Optional[dict]:
    """Retrieve cached movie list response."""
    client = await get_redis()
    if not client:
        return None

    key = _make_movie_list_key(page, page_size)
    try:
        data = await client.get(key)
    except RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    if data:
        logger.debug("cache_hit", key=key)
        return json.loads(data)
    logger.debug("cache_miss", key=key)
    return None


async def set_cached_movies(page: int, page_size: int, data: dict) -> None:
    """Cache movie list response with TTL."""
    client = await get_redis()
    if not client:
        return

    ttl = get_settings().REDIS_CACHE_TTL
    key = _make_movie_list_key(page, page_size)
    try:
        await client.setex(key, ttl, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=ttl)
    except RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_movie_cache() -> None:
    """
    Invalidate all cached movie listings.
    Uses SCAN to find and delete all keys matching the prefix.
    """
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{MOVIE_LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except RedisError as e:
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
    except RedisError as e:
        return {"status": "error", "error": str(e)}
