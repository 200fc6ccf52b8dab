"""Tests for the Redis-backed company name cache."""
import pytest
from unittest.mock import AsyncMock

from app.services.company_cache import CompanyCache, cache_key


class TestCompanyCache:
    @pytest.mark.asyncio
    async def test_miss_then_hit(self, db, sample_form, fake_redis):
        cache = CompanyCache(redis_client=fake_redis)

        first = await cache.get_by_name("Acme Retail", db)
        assert first.id == sample_form.client.id
        assert fake_redis.store[cache_key("Acme Retail")] == str(first.id)

        second = await cache.get_by_name("Acme Retail", db)
        assert second is first

    @pytest.mark.asyncio
    async def test_unknown_name_not_cached(self, db, sample_form, fake_redis):
        cache = CompanyCache(redis_client=fake_redis)
        assert await cache.get_by_name("Ghost Ltd", db) is None
        assert cache_key("Ghost Ltd") not in fake_redis.store

    @pytest.mark.asyncio
    async def test_stale_entry_after_rename(self, db, sample_form, fake_redis):
        """A cached id pointing at a renamed company is discarded."""
        cache = CompanyCache(redis_client=fake_redis)
        await cache.get_by_name("Acme Retail", db)

        sample_form.client.name = "Acme Renamed"
        await db.flush()

        assert await cache.get_by_name("Acme Retail", db) is None
        assert cache_key("Acme Retail") not in fake_redis.store

    @pytest.mark.asyncio
    async def test_invalidate_drops_keys(self, fake_redis):
        fake_redis.store[cache_key("A")] = "1"
        fake_redis.store[cache_key("B")] = "2"
        await CompanyCache(redis_client=fake_redis).invalidate("A", None, "B")
        assert fake_redis.store == {}

    @pytest.mark.asyncio
    async def test_redis_failure_falls_back_to_db(self, db, sample_form):
        broken = AsyncMock()
        broken.get.side_effect = ConnectionError("redis down")
        broken.setex.side_effect = ConnectionError("redis down")
        cache = CompanyCache(redis_client=broken)

        company = await cache.get_by_name("Partner Agency", db)
        assert company.id == sample_form.partner.id

    @pytest.mark.asyncio
    async def test_corrupt_entry_ignored(self, db, sample_form, fake_redis):
        fake_redis.store[cache_key("Acme Retail")] = "not-an-int"
        company = await CompanyCache(redis_client=fake_redis).get_by_name("Acme Retail", db)
        assert company.id == sample_form.client.id
