"""Tests for cache keys, the cache manager and the memory adaptor."""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from crudforge.cache import CacheManager, CacheNothing, MemoryCache
from crudforge.cache.manager import consistent_stringify_deep, item_key, list_key
from crudforge.core.types import QueryFilter, QueryListParam, QueryRange, QuerySort


class TestKeys:
    def test_key_order_does_not_matter(self):
        left = {"b": 1, "a": {"y": [1, 2], "x": None}}
        right = {"a": {"x": None, "y": [1, 2]}, "b": 1}
        assert consistent_stringify_deep(left) == consistent_stringify_deep(right)

    def test_array_order_matters(self):
        assert consistent_stringify_deep([1, 2]) != consistent_stringify_deep([2, 1])

    def test_query_params_are_serializable(self):
        params = QueryListParam(
            "products",
            (QueryFilter("status", "=", "ACTIVE"),),
            QueryRange(0, 5),
            (QuerySort("name"),),
        )
        key = list_key("products", params)
        assert key.startswith("products:list:")
        assert key == list_key("products", params.to_dict())

    def test_item_key(self):
        assert item_key("products", 7) == "products:get:7"


# =============================================================================
# MemoryCache
# =============================================================================


class TestMemoryCache:
    @pytest.mark.asyncio
    async def test_put_get(self):
        cache = MemoryCache()
        await cache.put("k", {"a": 1}, 60)
        assert await cache.get("k") == {"a": 1}

    @pytest.mark.asyncio
    async def test_expired_entries_miss(self):
        cache = MemoryCache()
        await cache.put("k", 1, 0)
        assert await cache.get("k") is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_values_are_copied(self):
        cache = MemoryCache()
        value = {"tags": ["a"]}
        await cache.put("k", value, 60)
        value["tags"].append("b")
        assert await cache.get("k") == {"tags": ["a"]}

    @pytest.mark.asyncio
    async def test_wildcard_delete(self):
        cache = MemoryCache()
        await cache.put("products:list:a", 1, 60)
        await cache.put("products:list:b", 2, 60)
        await cache.put("products:get:1", 3, 60)
        await cache.delete("products:list:*")
        assert len(cache) == 1
        assert await cache.get("products:get:1") == 3


# =============================================================================
# CacheManager
# =============================================================================


class TestCacheManager:
    @pytest.mark.asyncio
    async def test_invalidate_with_id(self):
        adaptor = AsyncMock()
        manager = CacheManager(adaptor, 60, 60)
        await manager.invalidate("products", 5)
        assert [c.args for c in adaptor.delete.await_args_list] == [
            ("products:get:5",),
            ("products:list:*",),
        ]

    @pytest.mark.asyncio
    async def test_invalidate_without_id(self):
        adaptor = AsyncMock()
        manager = CacheManager(adaptor, 60, 60)
        await manager.invalidate("products", None)
        adaptor.delete.assert_awaited_once_with("products:list:*")

    @pytest.mark.asyncio
    async def test_miss_loads_and_stores(self):
        cache = MemoryCache()
        manager = CacheManager(cache, 60, 60)
        loader = AsyncMock(return_value={"id": 1})

        assert await manager.get("products", 1, loader) == {"id": 1}
        await manager.flush()
        assert await manager.get("products", 1, loader) == {"id": 1}
        loader.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_none_is_not_cached(self):
        cache = MemoryCache()
        manager = CacheManager(cache, 60, 60)
        await manager.get("products", 1, AsyncMock(return_value=None))
        await manager.flush()
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_negative_age_bypasses_cache(self):
        adaptor = AsyncMock()
        manager = CacheManager(adaptor, -1, -1)
        loader = AsyncMock(return_value={"data": [], "total": 0})
        await manager.list("products", {"q": 1}, loader)
        adaptor.get.assert_not_awaited()
        loader.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_put_is_logged_not_raised(self, caplog):
        adaptor = AsyncMock()
        adaptor.get.return_value = None
        adaptor.put.side_effect = ConnectionError("cache down")
        manager = CacheManager(adaptor, 60, 60)

        with caplog.at_level(logging.ERROR, logger="crudforge.cache.manager"):
            assert await manager.get("products", 1, AsyncMock(return_value={"id": 1})) == {
                "id": 1
            }
            await manager.flush()
            await asyncio.sleep(0)

        assert "Cache put failed: cache down" in caplog.text

    def test_default_adaptor_caches_nothing(self):
        assert isinstance(CacheManager().cache, CacheNothing)
