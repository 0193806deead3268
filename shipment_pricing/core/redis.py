"""Redis connection and the advisory JSON caches built on it"""
import json
import logging
from typing import Any, Optional
from redis.asyncio import Redis
from shipment_pricing.core.config import settings
from shipment_pricing.core.metrics import cache_hits, cache_misses

logger = logging.getLogger(__name__)

redis: Optional[Redis] = None


async def init_redis() -> Redis:
    global redis
    try:
        client = Redis.from_url(settings.REDIS_URL, decode_responses=False)
        await client.ping()
        redis = client
        logger.info("Connected to Redis")
        return redis
    except Exception as e:
        logger.error(f"Failed to connect to Redis: {e}")
        raise


async def close_redis():
    global redis
    if redis:
        await redis.close()
        redis = None


def get_redis() -> Optional[Redis]:
    """Caches are advisory: callers skip caching when this returns None."""
    return redis


async def cache_get_json(key: str, namespace: str) -> Optional[Any]:
    client = get_redis()
    if client is None:
        return None
    try:
        cached = await client.get(key)
    except Exception as e:
        logger.warning(f"Cache retrieval failed for {namespace}: {e}")
        return None
    if not cached:
        cache_misses.labels(cache_key=namespace).inc()
        return None
    cache_hits.labels(cache_key=namespace).inc()
    try:
        return json.loads(cached)
    except ValueError:
        logger.warning(f"Dropping malformed cache entry for {namespace}")
        return None


async def cache_set_json(key: str, value: Any, ttl: int, namespace: str) -> None:
    client = get_redis()
    if client is None:
        return
    try:
        await client.set(key, json.dumps(value, default=str), ex=ttl)
    except Exception as e:
        logger.warning(f"Cache write failed for {namespace}: {e}")


async def cache_delete_prefix(prefix: str, namespace: str) -> int:
    client = get_redis()
    if client is None:
        return 0
    deleted = 0
    try:
        async for key in client.scan_iter(match=f"{prefix}*"):
            deleted += await client.delete(key)
    except Exception as e:
        logger.warning(f"Cache invalidation failed for {namespace}: {e}")
    else:
        logger.info(f"Invalidated {deleted} {namespace} cache entries")
    return deleted
