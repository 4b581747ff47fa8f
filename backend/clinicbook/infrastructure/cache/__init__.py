"""Cache backends for catalog reads."""

from .catalog_cache import CatalogCache, InMemoryCache, RedisCache, build_catalog_cache

__all__ = ["CatalogCache", "InMemoryCache", "RedisCache", "build_catalog_cache"]
