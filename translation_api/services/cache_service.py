"""
Export Cache Service

Read-through caching on top of ``CacheManager``. Population and invalidation
are separate named operations so repositories never inline cache branches:

    value = await cache.remember(key, ttl, loader)   # hit, or load + store
    await cache.forget(key)                          # invalidate
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from translation_api.config import settings
from translation_api.utils.cache import CacheManager, cache_manager
from translation_api.utils.metrics import record_cache_invalidation

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheService:
    """Cache-aside helper shared by every cached accessor."""

    PREFIX_EXPORT = "translations_export_"

    def __init__(self, cache: CacheManager | None = None, export_ttl: int | None = None):
        self._cache = cache or cache_manager
        self.export_ttl = export_ttl or settings.export_cache_ttl

    @property
    def backend(self) -> CacheManager:
        return self._cache

    @classmethod
    def export_key(cls, locale_code: str) -> str:
        """Cache key of a locale's export snapshot; depends on the code only."""
        return f"{cls.PREFIX_EXPORT}{locale_code}"

    async def remember(self, key: str, ttl: int, loader: Callable[[], Awaitable[T]]) -> T | Any:
        """
        Return the cached value for ``key`` or compute, store and return it.

        The loader runs on every miss, including when the backend is down.
        A failed store is logged by the backend and does not affect the result.
        """
        cached = await self._cache.get(key)
        if cached is not None:
            return cached

        value = await loader()
        await self._cache.set(key, value, ttl)
        return value

    async def forget(self, key: str) -> bool:
        """Invalidate ``key``. Backend failures are logged, never raised."""
        deleted = await self._cache.delete(key)
        record_cache_invalidation(deleted)
        if not deleted and self._cache.configured:
            logger.warning(f"Cache invalidation failed for {key}; entry may be stale until TTL expiry")
        return deleted


# Global cache service instance
cache_service = CacheService()


async def get_cache_service() -> CacheService:
    """FastAPI dependency for CacheService."""
    return cache_service
