"""Tests for the two-tier shop cache."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis

from autoquote.cache.shop_cache import (
    LocalShopCache,
    RemoteShopCache,
    TwoTierShopCache,
    cache_key,
)
from autoquote.models.shops import CacheEntry, RepairShop


@pytest.fixture
def mock_redis():
    """Mock Redis client."""
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def local_cache(tmp_path):
    return LocalShopCache(tmp_path / "repair_shops_cache.json")


@pytest.fixture
def shops():
    return [RepairShop(shop_name="Alpha Auto", address="1 First St", phone_number="408")]


class TestCacheKey:
    def test_normalization(self):
        assert cache_key("San Jose, CA") == "san_jose__ca"

    def test_equivalent_locations_share_key(self):
        assert cache_key("San Jose, CA") == cache_key("san jose  ca")
        assert cache_key("94107") == "94107"


class TestLocalShopCache:
    def test_miss_on_missing_file(self, local_cache):
        assert local_cache.get("anything") is None

    def test_put_then_get(self, local_cache, shops):
        local_cache.put("san_jose", CacheEntry(location="San Jose", shops=shops, timestamp=1))
        entry = local_cache.get("san_jose")
        assert entry.location == "San Jose"
        assert entry.shops[0].shop_name == "Alpha Auto"

    def test_file_layout(self, local_cache, shops):
        local_cache.put("a", CacheEntry(location="A", shops=shops, timestamp=1))
        local_cache.put("b", CacheEntry(location="B", shops=[], timestamp=2))
        data = json.loads(local_cache.path.read_text())
        assert set(data["entries"]) == {"a", "b"}

    def test_corrupt_file_is_a_miss(self, local_cache):
        local_cache.path.write_text("{not json")
        assert local_cache.get("a") is None


class TestTwoTierShopCache:
    @pytest.mark.asyncio
    async def test_locations_with_same_key_share_entry(self, local_cache, shops):
        cache = TwoTierShopCache(local_cache)
        await cache.put("San Jose, CA", shops, "dent")

        entry = await cache.get("san jose  ca")
        assert entry is not None
        assert entry.location == "San Jose, CA"
        assert entry.damage_description == "dent"

    @pytest.mark.asyncio
    async def test_put_overwrites(self, local_cache, shops):
        cache = TwoTierShopCache(local_cache)
        await cache.put("Fremont", shops)
        await cache.put("Fremont", [])
        entry = await cache.get("Fremont")
        assert entry.shops == []

    @pytest.mark.asyncio
    async def test_put_writes_remote_with_ttl(self, local_cache, mock_redis, shops):
        cache = TwoTierShopCache(local_cache, RemoteShopCache(mock_redis, ttl_seconds=604800))
        await cache.put("Fremont", shops)
        await cache.drain()

        mock_redis.set.assert_awaited_once()
        args, kwargs = mock_redis.set.call_args
        assert args[0] == "shops:fremont"
        assert kwargs["ex"] == 604800
        assert json.loads(args[1])["shops"][0]["shop_name"] == "Alpha Auto"

    @pytest.mark.asyncio
    async def test_remote_hit_backfills_local(self, local_cache, mock_redis, shops):
        entry = CacheEntry(location="Fremont", shops=shops, timestamp=42)
        mock_redis.get.return_value = entry.model_dump_json().encode()
        cache = TwoTierShopCache(local_cache, RemoteShopCache(mock_redis))

        found = await cache.get("Fremont")

        assert found.timestamp == 42
        assert local_cache.get("fremont").timestamp == 42

    @pytest.mark.asyncio
    async def test_local_hit_skips_remote(self, local_cache, mock_redis, shops):
        cache = TwoTierShopCache(local_cache, RemoteShopCache(mock_redis))
        local_cache.put("fremont", CacheEntry(location="Fremont", shops=shops, timestamp=1))

        assert await cache.get("Fremont") is not None
        mock_redis.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remote_errors_are_misses(self, local_cache, mock_redis, shops):
        mock_redis.get.side_effect = redis.ConnectionError("down")
        mock_redis.set.side_effect = redis.ConnectionError("down")
        cache = TwoTierShopCache(local_cache, RemoteShopCache(mock_redis))

        assert await cache.get("Fremont") is None
        await cache.put("Fremont", shops)
        await cache.drain()
        assert local_cache.get("fremont") is not None

    @pytest.mark.asyncio
    async def test_aclose_closes_redis(self, local_cache, mock_redis):
        cache = TwoTierShopCache(local_cache, RemoteShopCache(mock_redis))
        await cache.aclose()
        mock_redis.aclose.assert_awaited_once()
