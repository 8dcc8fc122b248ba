"""
Redis caching service for trip seat maps.

CACHING STRATEGY
================

What we cache:
  - Seat map responses (total, available, unavailable seat numbers) per trip
  - Cache key pattern: "trips:seatmap:{trip_id}:v{version}"

Why:
  - The seat picker polls the seat map far more often than anyone books
  - Serving from Redis avoids a scan of booking_seats per poll

Invalidation strategy:
  - Every ledger write bumps trips.version, so the key a reader computes
    after a booking or cancellation commits is always a fresh one
  - A slow reader that built its map before the commit can only write
    under the old version, which nobody asks for again
  - Old versions simply age out with the TTL

The cache is advisory only. The ledger never reads it: seat checks always
hit the database inside the booking transaction. Redis being down just
means every seat map request goes to the database.
"""

import json
from typing import Optional

import redis.asyncio as redis
from bus_booking.core.config import get_settings
from bus_booking.core.logging import get_logger
from bus_booking.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

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


def _make_seat_map_key(trip_id: int, version: int) -> str:
    return f"trips:seatmap:{trip_id}:v{version}"


async def get_cached_seat_map(trip_id: int, version: int) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _make_seat_map_key(trip_id, version)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            return json.loads(data)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_seat_map(trip_id: int, version: int, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_seat_map_key(trip_id, version)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except redis.RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


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
