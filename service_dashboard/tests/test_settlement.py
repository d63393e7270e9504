"""
Unit tests for the settlement reconciler.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from service_dashboard.app.caching.policies import policy_for
from service_dashboard.app.caching.query_accessor import QueryAccessor, QueryObserver
from service_dashboard.app.caching.query_cache import QueryCache
from service_dashboard.app.caching.query_keys import keys_for
from service_dashboard.app.caching.settlement import SettlementReconciler
from shared.test_helpers import ManualClock, test_environment


class TestSettlementReconciler:
    """Test cases for SettlementReconciler."""

    @pytest.fixture
    def accessor(self):
        cache = QueryCache(ManualClock())
        return QueryAccessor(cache, retry_config=test_environment.get_retry_config())

    @pytest.fixture
    def reconciler(self, accessor):
        """Create SettlementReconciler instance."""
        return SettlementReconciler(accessor)

    def test_targets_for_create(self):
        """Test that creates settle the list prefix and the stats."""
        keys = keys_for("employees")

        assert SettlementReconciler.targets(keys) == [keys.lists(), keys.stats()]

    def test_targets_for_update(self):
        """Test that updates and deletes add the detail key."""
        keys = keys_for("employees")
        extra = keys_for("projects").lists()

        assert SettlementReconciler.targets(keys, 5, [extra]) == [
            keys.lists(), keys.detail(5), keys.stats(), extra,
        ]

    @pytest.mark.asyncio
    async def test_settle_marks_entity_scoped_keys(self, reconciler, accessor):
        """Test that every list of the entity is invalidated, other entities untouched."""
        keys = keys_for("employees")
        cache = accessor.cache
        for key in (keys.list(), keys.list({"status": "active"}), keys.stats(), keys.detail(1), keys.detail(2)):
            cache.set_query_data(key, [])
        cache.set_query_data(keys_for("projects").lists(), [])

        await reconciler.settle(keys, policy_for("employees"), 1)

        assert cache.get(keys.list()).is_invalidated
        assert cache.get(keys.list({"status": "active"})).is_invalidated
        assert cache.get(keys.stats()).is_invalidated
        assert cache.get(keys.detail(1)).is_invalidated
        assert not cache.get(keys.detail(2)).is_invalidated
        assert not cache.get(keys_for("projects").lists()).is_invalidated

    @pytest.mark.asyncio
    async def test_awaited_policy_refetches_before_returning(self, reconciler, accessor):
        """Test that awaited settlement leaves observed lists fresh."""
        keys = keys_for("employees")
        fetcher = AsyncMock(side_effect=[["old"], ["new"]])
        observer = QueryObserver(accessor, keys.lists(), fetcher, stale_time=300)
        await observer.fetch()

        await reconciler.settle(keys, policy_for("employees"))

        assert observer.get_current_result().data == ["new"]
        assert not accessor.cache.get(keys.lists()).is_invalidated
        assert reconciler.pending == 0

    @pytest.mark.asyncio
    async def test_background_policy_returns_immediately(self, reconciler, accessor):
        """Test fire-and-forget settlement for invoices."""
        keys = keys_for("invoices")
        release = asyncio.Event()
        responses = iter([["old"], ["new"]])

        async def fetch_invoices():
            value = next(responses)
            if value == ["new"]:
                await release.wait()
            return value

        observer = QueryObserver(accessor, keys.lists(), fetch_invoices, stale_time=120)
        await observer.fetch()

        await reconciler.settle(keys, policy_for("invoices"))

        assert accessor.cache.get(keys.lists()).is_invalidated
        assert observer.get_current_result().data == ["old"]
        assert reconciler.pending == 1

        release.set()
        await reconciler.wait_for_background()

        assert observer.get_current_result().data == ["new"]
        assert reconciler.pending == 0

    @pytest.mark.asyncio
    async def test_unobserved_entries_are_left_for_next_read(self, reconciler, accessor):
        """Test that nothing is fetched when no one is watching."""
        keys = keys_for("invoices")
        fetcher = AsyncMock(return_value=[])
        await accessor.fetch(keys.lists(), fetcher, stale_time=120)

        await reconciler.settle(keys, policy_for("invoices"))

        assert reconciler.pending == 0
        fetcher.assert_awaited_once()
        assert accessor.cache.get(keys.lists()).is_invalidated

    @pytest.mark.asyncio
    async def test_background_failures_are_logged(self, reconciler, accessor):
        """Test that a failing background refetch does not escape."""
        keys = keys_for("invoices")
        QueryObserver(accessor, keys.lists(), AsyncMock(return_value=[]))
        accessor.cache.set_query_data(keys.lists(), [])

        with patch.object(accessor, "refetch_active", new_callable=AsyncMock) as refetch_active:
            refetch_active.side_effect = RuntimeError("boom")
            reconciler.logger = MagicMock()
            await reconciler.settle(keys, policy_for("invoices"))
            await reconciler.wait_for_background()

        reconciler.logger.error.assert_called_once()
        assert reconciler.pending == 0
