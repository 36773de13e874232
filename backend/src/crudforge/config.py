"""Application settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from crudforge.cache.adaptors import CacheNothing, MemoryCache, RedisCache
from crudforge.cache.manager import CacheManager


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass
class Settings:
    """Runtime settings.

    Attributes:
        cache_item_age: Seconds items stay cached, negative disables
        cache_list_age: Seconds list pages stay cached, negative disables
        redis_url: Redis URL; when set the cache lives in Redis
        log_level: Logging level name
        cors_origins: Origins allowed by the CORS middleware
    """

    cache_item_age: int = -1
    cache_list_age: int = -1
    redis_url: str | None = None
    log_level: str = "info"
    cors_origins: list[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> Settings:
        origins = os.environ.get("CRUDFORGE_CORS_ORIGINS", "")
        return cls(
            cache_item_age=_int_env("CRUDFORGE_CACHE_ITEM_AGE", -1),
            cache_list_age=_int_env("CRUDFORGE_CACHE_LIST_AGE", -1),
            redis_url=os.environ.get("CRUDFORGE_REDIS_URL") or None,
            log_level=(os.environ.get("CRUDFORGE_LOG_LEVEL") or "info").lower(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )

    @property
    def cache_enabled(self) -> bool:
        return self.cache_item_age >= 0 or self.cache_list_age >= 0


def create_cache(settings: Settings) -> CacheManager:
    """Build the cache manager the settings describe.

    Redis when a URL is configured, process memory when any age is
    non-negative, otherwise a cache that stores nothing.
    """
    if settings.redis_url:
        adaptor = RedisCache.from_url(settings.redis_url)
    elif settings.cache_enabled:
        adaptor = MemoryCache()
    else:
        adaptor = CacheNothing()

    return CacheManager(adaptor, settings.cache_item_age, settings.cache_list_age)
