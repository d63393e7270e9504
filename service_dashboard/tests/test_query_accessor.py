"""
Unit tests for the query accessor and query observers.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from service_dashboard.app.caching.query_accessor import QueryAccessor, QueryObserver, QueryResult
from service_dashboard.app.caching.query_cache import QueryCache
from service_dashboard.app.caching.query_keys import keys_for
from shared.errors import NetworkError, RequestTimeoutError, ServerError, ValidationError
from shared.metrics import CacheMetrics
from shared.test_helpers import ManualClock, test_environment


class TestQueryAccessor:
    """Test cases for QueryAccessor."""

    @pytest.fixture
    def clock(self):
        return ManualClock()

    @pytest.fixture
    def metrics(self):
        return CacheMetrics("test")

    @pytest.fixture
    def cache(self, clock, metrics):
        return QueryCache(clock, metrics=metrics)

    @pytest.fixture
    def accessor(self, cache):
        """Create QueryAccessor instance with no retry backoff."""
        return QueryAccessor(cache, retry_config=test_environment.get_retry_config())

    @pytest.fixture
    def keys(self):
        return keys_for("invoices")

    @pytest.mark.asyncio
    async def test_first_read_waits_for_fetch(self, accessor, keys):
        """Test that an empty entry is fetched before returning."""
        fetcher = AsyncMock(return_value=[{"id": 1}])

        result = await accessor.fetch(keys.lists(), fetcher, stale_time=120)

        assert result.data == [{"id": 1}]
        assert result.status == "success"
        assert result.is_success
        assert not result.is_loading
        fetcher.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fresh_entry_is_served_from_cache(self, accessor, keys, clock, metrics):
        """Test that reads inside the staleness window skip the network."""
        fetcher = AsyncMock(return_value=[{"id": 1}])
        await accessor.fetch(keys.lists(), fetcher, stale_time=120)

        clock.advance(60)
        result = await accessor.fetch(keys.lists(), fetcher, stale_time=120)

        assert result.data == [{"id": 1}]
        assert not result.is_stale
        assert fetcher.await_count == 1
        assert metrics.sample("query_cache_hits_total", entity="invoices") == 1

    @pytest.mark.asyncio
    async def test_stale_entry_is_served_while_revalidating(self, accessor, cache, keys, clock):
        """Test stale-while-revalidate."""
        fetcher = AsyncMock(side_effect=[[{"id": 1}], [{"id": 1}, {"id": 2}]])
        await accessor.fetch(keys.lists(), fetcher, stale_time=120)

        clock.advance(150)
        result = await accessor.fetch(keys.lists(), fetcher, stale_time=120)

        assert result.data == [{"id": 1}]
        assert result.is_fetching
        assert result.is_stale

        await cache.wait_until_idle()
        assert cache.get_query_data(keys.lists()) == [{"id": 1}, {"id": 2}]
        assert fetcher.await_count == 2

    @pytest.mark.asyncio
    async def test_invalidated_entry_refetches(self, accessor, cache, keys):
        """Test that an invalidated entry is refetched on next read."""
        fetcher = AsyncMock(return_value=[])
        await accessor.fetch(keys.lists(), fetcher, stale_time=600)

        accessor.invalidate(keys.lists())
        await accessor.fetch(keys.lists(), fetcher, stale_time=600)
        await cache.wait_until_idle()

        assert fetcher.await_count == 2
        assert not cache.get(keys.lists()).is_invalidated

    @pytest.mark.asyncio
    async def test_concurrent_reads_share_one_fetch(self, accessor, keys):
        """Test that in-flight fetches are deduplicated per key."""
        fetcher = AsyncMock(return_value=[{"id": 1}])

        first, second = await asyncio.gather(
            accessor.fetch(keys.lists(), fetcher, stale_time=120),
            accessor.fetch(keys.lists(), fetcher, stale_time=120),
        )

        assert first.data == second.data == [{"id": 1}]
        fetcher.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_read_keeps_previous_data(self, accessor, cache, keys, clock, metrics):
        """Test that read failures surface on the result without raising."""
        fetcher = AsyncMock(side_effect=[[{"id": 1}], ValidationError("Bad filter")])
        await accessor.fetch(keys.lists(), fetcher, stale_time=120)

        clock.advance(150)
        await accessor.fetch(keys.lists(), fetcher, stale_time=120)
        await cache.wait_until_idle()
        result = QueryResult.from_entry(cache.get(keys.lists()), clock())

        assert result.data == [{"id": 1}]
        assert result.is_error
        assert result.status == "error"
        assert result.error.message == "Bad filter"
        assert metrics.sample("query_fetches_total", entity="invoices", result="error") == 1

    @pytest.mark.asyncio
    async def test_retryable_failure_is_retried_once(self, accessor, keys):
        """Test a single retry after a network failure."""
        fetcher = AsyncMock(side_effect=[NetworkError("offline"), [{"id": 1}]])

        result = await accessor.fetch(keys.lists(), fetcher, stale_time=120)

        assert result.data == [{"id": 1}]
        assert result.error is None
        assert fetcher.await_count == 2

    @pytest.mark.asyncio
    async def test_retry_is_bounded(self, accessor, keys):
        """Test that a read is attempted at most twice."""
        fetcher = AsyncMock(side_effect=[ServerError("down"), ServerError("still down"), [{"id": 1}]])

        result = await accessor.fetch(keys.lists(), fetcher, stale_time=120)

        assert fetcher.await_count == 2
        assert result.data is None
        assert isinstance(result.error, ServerError)
        assert result.error.message == "still down"

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self, accessor, keys):
        """Test that validation failures fail on the first attempt."""
        fetcher = AsyncMock(side_effect=ValidationError("Bad request"))

        result = await accessor.fetch(keys.lists(), fetcher, stale_time=120)

        fetcher.assert_awaited_once()
        assert isinstance(result.error, ValidationError)

    @pytest.mark.asyncio
    async def test_timeout_is_reported(self, cache, keys):
        """Test that slow fetches fail with a timeout error."""
        accessor = QueryAccessor(cache, timeout=0.01, retry_config=test_environment.get_retry_config())
        calls = []

        async def slow_fetch():
            calls.append(1)
            await asyncio.sleep(1)
            return []

        result = await accessor.fetch(keys.lists(), slow_fetch, stale_time=120)

        assert isinstance(result.error, RequestTimeoutError)
        assert result.error.message == "Request timeout - please try again"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_refetch_requires_fetcher(self, accessor, keys):
        """Test refetching a key nobody registered."""
        with pytest.raises(ValueError):
            await accessor.refetch(keys.detail(1))

    @pytest.mark.asyncio
    async def test_refetch_active_skips_unobserved(self, accessor, cache, keys):
        """Test that only observed entries are refetched."""
        observed = AsyncMock(return_value=["observed"])
        unobserved = AsyncMock(return_value=["unobserved"])
        await accessor.fetch(keys.lists(), unobserved, stale_time=120)
        observer = QueryObserver(accessor, keys.stats(), observed, stale_time=120)
        await observer.fetch()

        entries = accessor.invalidate(keys.all())
        await accessor.refetch_active(entries)

        assert observed.await_count == 2
        assert unobserved.await_count == 1
        assert cache.get(keys.lists()).is_invalidated
        assert not cache.get(keys.stats()).is_invalidated


class TestQueryObserver:
    """Test cases for QueryObserver."""

    @pytest.fixture
    def accessor(self):
        cache = QueryCache(ManualClock())
        return QueryAccessor(cache, retry_config=test_environment.get_retry_config())

    @pytest.fixture
    def keys(self):
        return keys_for("invoices")

    @pytest.mark.asyncio
    async def test_observer_marks_entry_active(self, accessor, keys):
        """Test subscription bookkeeping."""
        observer = QueryObserver(accessor, keys.lists(), AsyncMock(return_value=[]))
        entry = accessor.cache.get(keys.lists())

        assert entry.is_active
        observer.close()
        observer.close()
        assert entry.observers == 0

    @pytest.mark.asyncio
    async def test_keep_previous_data_while_refiltering(self, accessor, keys):
        """Test that the last data is kept as placeholder for a new key."""
        all_invoices = AsyncMock(return_value=[{"id": 1}, {"id": 2}])
        paid_invoices = AsyncMock(return_value=[{"id": 2}])

        with QueryObserver(accessor, keys.list(), all_invoices, stale_time=120,
                           keep_previous_data=True) as observer:
            await observer.fetch()
            observer.set_query(keys.list({"status": "paid"}), paid_invoices)

            placeholder = observer.get_current_result()
            assert placeholder.data == [{"id": 1}, {"id": 2}]
            assert placeholder.is_placeholder_data
            assert not placeholder.is_loading

            result = await observer.fetch()
            assert result.data == [{"id": 2}]
            assert not result.is_placeholder_data

        assert not accessor.cache.get(keys.list({"status": "paid"})).is_active

    @pytest.mark.asyncio
    async def test_without_keep_previous_data(self, accessor, keys):
        """Test that a new key starts empty by default."""
        observer = QueryObserver(accessor, keys.list(), AsyncMock(return_value=[{"id": 1}]))
        await observer.fetch()

        observer.set_query(keys.list({"status": "paid"}), AsyncMock(return_value=[]))

        assert observer.get_current_result().data is None

    @pytest.mark.asyncio
    async def test_disabled_observer_is_idle(self, accessor, keys):
        """Test that a disabled observer never fetches."""
        fetcher = AsyncMock(return_value=[])
        observer = QueryObserver(accessor, keys.detail(0), fetcher, enabled=False)

        result = await observer.fetch()

        assert result.status == "idle"
        fetcher.assert_not_awaited()
