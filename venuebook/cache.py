"""
Redis caching utilities for calendar views
Month grids are expensive to compose (pattern expansion + conflict scan),
so they are cached per (month, venue set) and dropped on every write.
"""
import json
import logging
from typing import Any, Iterable, Optional

import redis

from .config import (
    CACHE_ENABLED,
    REDIS_DB,
    REDIS_HOST,
    REDIS_PASSWORD,
    REDIS_PORT,
    REDIS_SSL,
    REDIS_URL,
)

logger = logging.getLogger(__name__)


def get_redis_client() -> redis.Redis:
    """
    Create a Redis client
    Supports both a REDIS_URL (managed Redis) and individual host settings
    """
    if REDIS_URL:
        # Mask password in URL for logging
        if "@" in REDIS_URL:
            url_parts = REDIS_URL.split("@")
            protocol = url_parts[0].split(":")[0]
            masked_url = f"{protocol}:****@{url_parts[1]}"
        else:
            masked_url = "****"
        logger.info(f"📡 Using Redis URL connection: {masked_url}")
        client = redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            health_check_interval=30,
        )
    else:
        logger.info(f"📡 Using Redis at {REDIS_HOST}:{REDIS_PORT} (db {REDIS_DB})")
        client = redis.Redis(
            host=REDIS_HOST,
            port=REDIS_PORT,
            password=REDIS_PASSWORD,
            db=REDIS_DB,
            ssl=REDIS_SSL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
    # Test connection
    client.ping()
    logger.info("Redis connected successfully")
    return client


class Cache:
    """Redis cache wrapper with automatic serialization"""

    def __init__(self):
        self.redis_client = None

    def _get_client(self):
        """Lazy load Redis client; returns None when the cache is unavailable"""
        if self.redis_client is not None:
            return self.redis_client
        if not CACHE_ENABLED:
            return None
        try:
            self.redis_client = get_redis_client()
        except Exception as e:
            logger.warning(f"⚠️ Redis cache unavailable: {e}")
            return None
        return self.redis_client

    def is_available(self) -> bool:
        return self._get_client() is not None

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Set value in cache with TTL (default 5 minutes)"""
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern (e.g., 'calendar:2025-03:*')"""
        client = self._get_client()
        if not client:
            return 0

        try:
            keys = client.keys(pattern)
            if keys:
                deleted = client.delete(*keys)
                logger.debug(f"✅ Cache DELETE pattern: {pattern} ({deleted} keys)")
                return deleted
            return 0
        except Exception as e:
            logger.error(f"❌ Cache delete pattern error for {pattern}: {e}")
            return 0


# Global cache instance
cache = Cache()


# Calendar view keys: calendar:{YYYY-MM}:{venue set}:{today}

def build_calendar_key(year: int, month: int, venue_ids: Optional[Iterable[int]], today_key: str) -> str:
    """Build cache key for a month calendar view"""
    venue_str = ",".join(str(v) for v in sorted(set(venue_ids))) if venue_ids else "all"
    return f"calendar:{year:04d}-{month:02d}:{venue_str}:{today_key}"


def invalidate_calendar_month(year: int, month: int) -> int:
    """Drop every cached view of a month, whatever its venue set"""
    return cache.delete_pattern(f"calendar:{year:04d}-{month:02d}:*")


def invalidate_all_calendars() -> int:
    """Drop all cached calendar views (pattern edits can touch any month)"""
    return cache.delete_pattern("calendar:*")
