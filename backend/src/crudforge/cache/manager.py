"""Item and list caching for resources.

Keys are ``{resource}:get:{id}`` for items and
``{resource}:list:{canonical query}`` for list pages. A negative age
disables the corresponding cache.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict, is_dataclass
from typing import Any, TypeVar

from crudforge.cache.adaptors import CacheAdaptor, CacheNothing
from crudforge.core.types import TypeID

logger = logging.getLogger(__name__)

T = TypeVar("T")


def consistent_stringify_deep(value: Any) -> str:
    """Serialize a value so that key insertion order never matters."""
    if is_dataclass(value) and not isinstance(value, type):
        value = asdict(value)
    return json.dumps(value, sort_keys=True, default=str, separators=(",", ":"))


def item_key(resource_name: str, id: TypeID) -> str:
    return f"{resource_name}:get:{id}"


def list_key(resource_name: str, query: Any) -> str:
    return f"{resource_name}:list:{consistent_stringify_deep(query)}"


class CacheManager:
    """Wraps a CacheAdaptor with resource-aware keys and ages.

    Reads go through ``fetch``: a hit is returned as is, a miss calls the
    loader and stores its result in the background. Background writes that
    fail are logged and never reach the caller.
    """

    def __init__(
        self,
        cache: CacheAdaptor | None = None,
        item_age_seconds: int = -1,
        list_age_seconds: int = -1,
    ):
        self.cache = cache or CacheNothing()
        self.item_age_seconds = item_age_seconds
        self.list_age_seconds = list_age_seconds
        self._pending: set[asyncio.Task] = set()

    async def fetch(
        self, key: str, age_seconds: int, fn: Callable[[], Awaitable[T | None]]
    ) -> T | None:
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        fresh = await fn()
        if fresh is not None:
            self._put_later(key, fresh, age_seconds)
        return fresh

    async def get(
        self, resource_name: str, id: TypeID, fn: Callable[[], Awaitable[T | None]]
    ) -> T | None:
        if self.item_age_seconds < 0:
            return await fn()
        return await self.fetch(item_key(resource_name, id), self.item_age_seconds, fn)

    async def list(
        self, resource_name: str, query: Any, fn: Callable[[], Awaitable[T | None]]
    ) -> T | None:
        if self.list_age_seconds < 0:
            return await fn()
        return await self.fetch(list_key(resource_name, query), self.list_age_seconds, fn)

    async def invalidate(self, resource_name: str, id: TypeID | None = None) -> None:
        """Drop the cached item (when id is given) and every cached list page."""
        if id is not None:
            await self.cache.delete(item_key(resource_name, id))
        await self.cache.delete(f"{resource_name}:list:*")

    async def flush(self) -> None:
        """Wait for background writes started by ``fetch``."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    def _put_later(self, key: str, value: Any, age_seconds: int) -> None:
        task = asyncio.create_task(self.cache.put(key, value, age_seconds))
        self._pending.add(task)
        task.add_done_callback(self._on_put_done)

    def _on_put_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Cache put failed: %s", error)
