"""
Redis response cache

JSON get/set helpers for read-mostly API responses (community knowledge
base). Redis being down is never an error here: reads miss, writes and
invalidations report nothing done.

The per-user insight snapshot does NOT live here; it is a database row
(see services.insight_cache).
"""
import json
import logging
from typing import Any, Optional

import redis
from redis.exceptions import RedisError

from core.config import settings

logger = logging.getLogger(__name__)

COMMUNITY_PREFIX = "community_patterns"

_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """Shared client, created on first use. None while Redis is unreachable."""
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    try:
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            health_check_interval=30,
        )
        client.ping()
    except RedisError as e:
        logger.warning(f"Redis unavailable ({e}); response cache disabled")
        return None

    _redis_client = client
    logger.info("Redis response cache connected")
    return _redis_client


def cache_key(prefix: str, *parts) -> str:
    """'prefix:part1:part2', skipping None parts."""
    return ":".join([prefix, *(str(p) for p in parts if p is not None)])


def get_cache(key: str) -> Optional[Any]:
    client = get_redis_client()
    if client is None:
        return None

    try:
        raw = client.get(key)
    except RedisError as e:
        logger.warning(f"Cache read failed for {key}: {e}")
        return None
    return json.loads(raw) if raw else None


def set_cache(key: str, value: Any, ttl: Optional[int] = None) -> bool:
    client = get_redis_client()
    if client is None:
        return False

    try:
        client.setex(key, ttl or settings.CACHE_TTL_DEFAULT, json.dumps(value, default=str))
    except RedisError as e:
        logger.warning(f"Cache write failed for {key}: {e}")
        return False
    return True


def invalidate_pattern(pattern: str) -> int:
    """Delete every key matching a glob pattern. Returns the number deleted."""
    client = get_redis_client()
    if client is None:
        return 0

    try:
        keys = list(client.scan_iter(match=pattern))
        return client.delete(*keys) if keys else 0
    except RedisError as e:
        logger.warning(f"Cache invalidation failed for {pattern}: {e}")
        return 0


def invalidate_community_cache() -> int:
    """Drop every cached community knowledge-base response."""
    deleted = invalidate_pattern(f"{COMMUNITY_PREFIX}:*")
    logger.info(f"Invalidated {deleted} community cache entries")
    return deleted
