"""Cache adaptors.

An adaptor stores JSON-compatible values under string keys:
- get(key) returns the value or None on a miss
- put(key, value, age_seconds) stores a value for age_seconds
- delete(key) removes a key, or every key matching a ``*`` wildcard pattern
"""

import copy
import fnmatch
import json
import logging
import time
from typing import Any, Protocol

from redis.asyncio import Redis, from_url

logger = logging.getLogger(__name__)


class CacheAdaptor(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def put(self, key: str, value: Any, age_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...


class CacheNothing:
    """Always misses and discards writes."""

    async def get(self, key: str) -> Any | None:
        return None

    async def put(self, key: str, value: Any, age_seconds: int) -> None:
        return None

    async def delete(self, key: str) -> None:
        return None


class MemoryCache:
    """Process-local cache with per-key expiry.

    Values are deep-copied on the way in and out so callers can mutate what
    they get back.
    """

    def __init__(self) -> None:
        self._store: dict[str, tuple[float, Any]] = {}

    async def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None

        expires_at, value = entry
        if expires_at <= time.monotonic():
            del self._store[key]
            return None

        return copy.deepcopy(value)

    async def put(self, key: str, value: Any, age_seconds: int) -> None:
        self._store[key] = (time.monotonic() + age_seconds, copy.deepcopy(value))

    async def delete(self, key: str) -> None:
        if "*" not in key:
            self._store.pop(key, None)
            return

        for stored in [k for k in self._store if fnmatch.fnmatchcase(k, key)]:
            del self._store[stored]

    def __len__(self) -> int:
        return len(self._store)


class RedisCache:
    """Redis-backed cache storing JSON-encoded values.

    Args:
        client: An async Redis client created with ``decode_responses=True``
        prefix: Namespace prepended to every key
    """

    def __init__(self, client: Redis, prefix: str = "crudforge:"):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "crudforge:") -> "RedisCache":
        client = from_url(url, encoding="utf-8", decode_responses=True)
        return cls(client, prefix)

    async def get(self, key: str) -> Any | None:
        raw = await self.client.get(self.prefix + key)
        if raw is None:
            return None
        return json.loads(raw)

    async def put(self, key: str, value: Any, age_seconds: int) -> None:
        payload = json.dumps(value, default=str)
        if age_seconds > 0:
            await self.client.set(self.prefix + key, payload, ex=age_seconds)
        else:
            await self.client.set(self.prefix + key, payload)

    async def delete(self, key: str) -> None:
        if "*" not in key:
            await self.client.delete(self.prefix + key)
            return

        keys = [k async for k in self.client.scan_iter(match=self.prefix + key)]
        if keys:
            logger.debug("Deleting %d cache keys matching %s", len(keys), key)
            await self.client.delete(*keys)

    async def close(self) -> None:
        await self.client.aclose()
