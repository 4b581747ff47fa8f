# backend/clinicbook/infrastructure/cache/catalog_cache.py
"""
Cache infrastructure for clinicbook catalog reads.

Providers, services and schedule rules are read on every availability query
and change rarely, so they are cached with an explicit TTL. Writes to the
catalog invalidate the affected keys synchronously. Appointment data is
never cached here.

Two interchangeable backends:
- InMemoryCache: process local, used in development and tests
- RedisCache: shared across API workers via redis
"""

from datetime import datetime, timedelta
import json
import logging
from typing import Any, Callable, Dict, Optional, Protocol

import redis
from redis import Redis

from ...core.config import Settings

logger = logging.getLogger(__name__)


class CatalogCache(Protocol):
    """Interface the schedule catalog depends on."""

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any, ttl: int) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryCache:
    """
    Simple in-memory cache implementation.

    Mimics the subset of the Redis interface the catalog needs. `clock` is
    injectable so expiry can be exercised without sleeping.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._cache: Dict[str, Any] = {}
        self._expiry: Dict[str, datetime] = {}
        self._clock = clock or datetime.now
        logger.info("InMemoryCache initialized")

    def get(self, key: str) -> Optional[Any]:
        if key in self._cache:
            if key in self._expiry and self._clock() > self._expiry[key]:
                del self._cache[key]
                del self._expiry[key]
                return None
            return self._cache[key]
        return None

    def set(self, key: str, value: Any, ttl: int = 300) -> None:
        """
        Set value in cache with TTL.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds (0 disables expiry)
        """
        self._cache[key] = value
        if ttl > 0:
            self._expiry[key] = self._clock() + timedelta(seconds=ttl)
        else:
            self._expiry.pop(key, None)
        logger.debug(f"Cached {key} with TTL {ttl}s")

    def delete(self, key: str) -> None:
        self._cache.pop(key, None)
        self._expiry.pop(key, None)
        logger.debug(f"Deleted cache key: {key}")


class RedisCache:
    """
    Redis-backed catalog cache shared by every API worker.

    Values are stored as JSON. Redis errors propagate; the catalog treats
    them as a miss and reads the database.
    """

    def __init__(self, redis_url: str, client: Optional[Redis] = None, prefix: str = "clinicbook:"):
        self.client: Redis = client or redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Optional[Any]:
        value = self.client.get(self._key(key))
        if value is None:
            return None
        return json.loads(value)

    def set(self, key: str, value: Any, ttl: int = 300) -> None:
        serialized = json.dumps(value, default=str)
        if ttl > 0:
            self.client.setex(self._key(key), ttl, serialized)
        else:
            self.client.set(self._key(key), serialized)

    def delete(self, key: str) -> None:
        self.client.delete(self._key(key))


def build_catalog_cache(config: Settings) -> Optional[CatalogCache]:
    """Create the configured cache backend, or None when caching is disabled."""
    if config.catalog_cache_backend == "redis":
        logger.info("Catalog cache backed by redis")
        return RedisCache(config.redis_url)
    if config.catalog_cache_backend == "memory":
        return InMemoryCache()
    return None
