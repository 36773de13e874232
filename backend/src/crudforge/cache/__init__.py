"""Resource caching: adaptors and the cache manager."""

from crudforge.cache.adaptors import CacheAdaptor, CacheNothing, MemoryCache, RedisCache
from crudforge.cache.manager import CacheManager, consistent_stringify_deep

__all__ = [
    "CacheAdaptor",
    "CacheManager",
    "CacheNothing",
    "MemoryCache",
    "RedisCache",
    "consistent_stringify_deep",
]
