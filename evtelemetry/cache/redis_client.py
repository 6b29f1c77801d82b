"""
Redis client for the latest-state cache.

Provides helpers for creating Redis connections and building/invalidating
per-device status keys. Cache operations are best-effort: connection
failures are logged but do not propagate exceptions.

CHANGELOG:
- 2026-10-20: Shared best-effort JSON get/set for the status read path
- 2026-10-19: Key status entries by device class (STORY-011)
- 2026-10-19: Read REDIS_URL through Settings (STORY-002)
"""

import json
import logging
from typing import Any

import redis.asyncio as redis

from evtelemetry.config import get_settings

logger = logging.getLogger(__name__)


def status_cache_key(kind: str, device_id: str) -> str:
    """Return the cache key for a device's status row.

    Args:
        kind: Device class, "meter" or "vehicle".
        device_id: The meter_id or vehicle_id.
    """
    return f"status:{kind}:{device_id}"


async def get_redis() -> redis.Redis:
    """Create and return an async Redis client from settings.

    Returns:
        redis.Redis: Async Redis client.
    """
    return redis.from_url(get_settings().redis_url)


async def invalidate_status_cache(kind: str, device_id: str) -> None:
    """Delete the cached status entry for a device.

    Best-effort operation: if Redis is unavailable or the delete fails,
    the error is logged but not raised. Ingestion has already committed
    when this runs and must not be reported as failed because of the cache.

    Args:
        kind: Device class, "meter" or "vehicle".
        device_id: The device identifier whose cache should be cleared.
    """
    key = status_cache_key(kind, device_id)
    try:
        client = await get_redis()
        try:
            await client.delete(key)
        finally:
            await client.aclose()
    except Exception:
        logger.warning(
            "Failed to invalidate cache key %s",
            key,
            exc_info=True,
        )


async def cache_get_json(key: str) -> Any | None:
    """Return the decoded JSON value cached under key, or None.

    A miss, an unreachable Redis and an undecodable entry all read as None;
    failures are logged as warnings.
    """
    try:
        client = await get_redis()
        try:
            cached = await client.get(key)
        finally:
            await client.aclose()
        return None if cached is None else json.loads(cached)
    except Exception:
        logger.warning("Redis read failed for key %s", key, exc_info=True)
        return None


async def cache_set_json(key: str, value: Any, ttl_s: int) -> None:
    """Cache value as JSON under key for ttl_s seconds. Best-effort."""
    try:
        client = await get_redis()
        try:
            await client.set(key, json.dumps(value), ex=ttl_s)
        finally:
            await client.aclose()
    except Exception:
        logger.warning("Redis write failed for key %s", key, exc_info=True)
