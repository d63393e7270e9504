"""
Unit tests for the query cache store.
"""

import asyncio

import pytest

from service_dashboard.app.caching.query_cache import QueryCache
from service_dashboard.app.caching.query_keys import keys_for
from shared.metrics import CacheMetrics
from shared.test_helpers import ManualClock


class TestQueryCache:
    """Test cases for QueryCache."""

    @pytest.fixture
    def clock(self):
        return ManualClock()

    @pytest.fixture
    def metrics(self):
        return CacheMetrics("test")

    @pytest.fixture
    def cache(self, clock, metrics):
        """Create QueryCache instance."""
        return QueryCache(clock, metrics=metrics)

    @pytest.fixture
    def keys(self):
        return keys_for("employees")

    def test_build_creates_entry_once(self, cache, keys):
        """Test that entries are created on first use."""
        entry = cache.build(keys.lists())

        assert cache.build(keys.lists()) is entry
        assert keys.lists() in cache
        assert len(cache) == 1
        assert not entry.has_data

    def test_set_query_data(self, cache, keys, clock):
        """Test replacing data marks the entry fresh."""
        clock.advance(5)
        cache.set_query_data(keys.lists(), [{"id": 1}])
        entry = cache.get(keys.lists())

        assert entry.data == [{"id": 1}]
        assert entry.data_updated_at == 5
        assert not entry.is_invalidated

    def test_set_query_data_with_updater(self, cache, keys):
        """Test functional updates, including the no-op None result."""
        cache.set_query_data(keys.lists(), [1, 2])
        cache.set_query_data(keys.lists(), lambda old: old + [3])

        assert cache.get_query_data(keys.lists()) == [1, 2, 3]

        cache.set_query_data(keys.lists(), lambda old: None)
        assert cache.get_query_data(keys.lists()) == [1, 2, 3]

    def test_get_query_data_missing(self, cache, keys):
        """Test reading a key that was never populated."""
        assert cache.get_query_data(keys.lists()) is None

    def test_staleness_window(self, cache, keys, clock):
        """Test that entries go stale after their window."""
        entry = cache.build(keys.lists())
        entry.stale_time = 120
        cache.store_result(entry, [])

        assert not entry.is_stale(clock.advance(60))
        assert entry.is_stale(clock.advance(60))

    def test_store_error_keeps_data(self, cache, keys):
        """Test that a failed fetch does not drop cached data."""
        entry = cache.build(keys.lists())
        cache.store_result(entry, [{"id": 1}])
        cache.store_error(entry, RuntimeError("boom"))

        assert entry.data == [{"id": 1}]
        assert isinstance(entry.error, RuntimeError)

    def test_mark_invalidated_by_prefix(self, cache, keys, metrics):
        """Test that invalidation reaches every filtered list and nothing else."""
        for key in (keys.lists(), keys.list({"status": "active"}), keys.stats(), keys.detail(1)):
            cache.set_query_data(key, [])

        invalidated = cache.mark_invalidated(keys.lists())

        assert {entry.key for entry in invalidated} == {keys.lists(), keys.list({"status": "active"})}
        assert cache.get(keys.lists()).is_invalidated
        assert not cache.get(keys.stats()).is_invalidated
        assert cache.get(keys.lists()).is_stale(0)
        assert metrics.sample("invalidations_total", entity="employees") == 2

    def test_remove_queries(self, cache, keys):
        """Test removing entries by prefix."""
        cache.set_query_data(keys.lists(), [])
        cache.set_query_data(keys.stats(), {})

        assert cache.remove_queries(keys.all()) == 2
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_cancel_queries(self, cache, keys):
        """Test that in-flight fetches are cancelled and data is kept."""
        entry = cache.build(keys.lists())
        cache.store_result(entry, [{"id": 1}])
        entry.task = asyncio.ensure_future(asyncio.sleep(10))

        cancelled = await cache.cancel_queries(keys.lists())

        assert cancelled == 1
        assert entry.task.cancelled()
        assert entry.data == [{"id": 1}]
        assert not entry.is_fetching

    @pytest.mark.asyncio
    async def test_cancel_queries_without_fetches(self, cache, keys):
        """Test cancelling when nothing is running."""
        cache.set_query_data(keys.lists(), [])

        assert await cache.cancel_queries(keys.lists()) == 0

    @pytest.mark.asyncio
    async def test_clear(self, cache, keys, metrics):
        """Test that clearing cancels fetches and forgets entries."""
        entry = cache.build(keys.detail(3))
        entry.task = asyncio.ensure_future(asyncio.sleep(10))
        cache.set_query_data(keys.lists(), [])

        await cache.clear()

        assert len(cache) == 0
        assert entry.task.cancelled()
        assert metrics.sample("cached_queries") == 0

    @pytest.mark.asyncio
    async def test_wait_until_idle(self, cache, keys):
        """Test waiting for running fetches."""
        entry = cache.build(keys.lists())
        entry.task = asyncio.ensure_future(asyncio.sleep(0.01))

        await cache.wait_until_idle()

        assert entry.task.done()
