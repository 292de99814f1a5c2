"""
Cache Utility Module

Redis-backed key/value cache with TTL. Every operation is fail-open: when
Redis is unreachable reads behave as misses and writes/deletes report
``False``, so callers fall back to the database instead of failing.
"""

import json
import logging
import time
from typing import Any

import redis.asyncio as redis

from translation_api.config import settings
from translation_api.utils.metrics import REDIS_CONNECTED, record_cache_hit, record_cache_miss

logger = logging.getLogger(__name__)


class CacheManager:
    """
    Manages the Redis connection used for export snapshots.

    Provides:
    - Key-value caching with TTL (JSON serialized)
    - Delete by key
    - Self-healing reconnect after a 30 second cooldown
    """

    TTL_MEDIUM = 300  # 5 minutes
    RECONNECT_COOLDOWN = 30

    def __init__(self, url: str | None = None, enabled: bool = True, client: redis.Redis | None = None):
        self._url = url or settings.redis_url
        self._redis: redis.Redis | None = client
        self._pool: redis.ConnectionPool | None = None
        self._enabled = enabled
        self._configured = enabled
        self._last_connect_attempt: float = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def configured(self) -> bool:
        return self._configured

    async def connect(self) -> None:
        """Establish connection to Redis; disables caching on failure."""
        if self._redis is not None or not self._configured:
            return

        self._last_connect_attempt = time.time()
        try:
            self._pool = redis.ConnectionPool.from_url(self._url, decode_responses=True)
            self._redis = redis.Redis(connection_pool=self._pool)
            await self._redis.ping()
            REDIS_CONNECTED.set(1)
            logger.info("Cache: Successfully connected to Redis")
        except Exception as e:
            REDIS_CONNECTED.set(0)
            logger.warning(f"Cache: Failed to connect to Redis: {e}. Caching disabled.")
            self._redis = None
            self._pool = None
            self._enabled = False

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None
        if self._pool:
            await self._pool.aclose()
            self._pool = None
        REDIS_CONNECTED.set(0)
        logger.info("Cache: Disconnected from Redis")

    async def _client(self) -> redis.Redis | None:
        """Return a live client, retrying the connection after the cooldown."""
        if not self._configured:
            return None
        if not self._enabled and time.time() - self._last_connect_attempt >= self.RECONNECT_COOLDOWN:
            logger.info("Cache: retrying Redis connection after cooldown...")
            self._enabled = True
        if not self._enabled:
            return None
        if self._redis is None:
            await self.connect()
        return self._redis

    async def ping(self) -> bool:
        client = await self._client()
        if client is None:
            return False
        try:
            await client.ping()
            return True
        except Exception as e:
            logger.warning(f"Cache ping failed: {e}")
            return False

    async def get(self, key: str) -> Any | None:
        """
        Get a cached value by key.

        Returns:
            Decoded value, or None on a miss or any Redis error
        """
        client = await self._client()
        if client is None:
            return None

        try:
            data = await client.get(key)
        except Exception as e:
            logger.warning(f"Cache get error for {key}: {e}")
            return None

        if data is None:
            logger.debug(f"Cache MISS: {key}")
            record_cache_miss("redis")
            return None

        try:
            value = json.loads(data)
        except ValueError as e:
            logger.warning(f"Cache entry {key} is not valid JSON, treating as a miss: {e}")
            record_cache_miss("redis")
            return None

        logger.debug(f"Cache HIT: {key}")
        record_cache_hit("redis")
        return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """
        Set a cached value with a TTL in seconds (default: TTL_MEDIUM).

        Returns:
            True if stored, False otherwise
        """
        client = await self._client()
        if client is None:
            return False

        ttl = ttl or self.TTL_MEDIUM
        try:
            await client.setex(key, ttl, json.dumps(value, default=str))
            logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.warning(f"Cache set error for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """Delete a key. True when Redis acknowledged the delete."""
        client = await self._client()
        if client is None:
            return False

        try:
            await client.delete(key)
            logger.debug(f"Cache DELETE: {key}")
            return True
        except Exception as e:
            logger.warning(f"Cache delete error for {key}: {e}")
            return False


# Global cache manager instance
cache_manager = CacheManager(url=settings.redis_url, enabled=settings.cache_enabled)
