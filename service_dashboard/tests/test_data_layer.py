"""
Unit tests for the data layer composition root.
"""

import pytest

from service_dashboard.app.hooks import DashboardHooks, ExpenseHooks, InvoiceHooks, ProjectHooks
from service_dashboard.app.main import DashboardDataLayer, create_data_layer
from shared.logging import user_id_var
from shared.test_helpers import FakeEntityApi, ManualClock, test_data_factory, test_environment


class TestDashboardDataLayer:
    """Test cases for DashboardDataLayer."""

    @pytest.fixture
    def clock(self):
        return ManualClock()

    @pytest.fixture
    def data_layer(self, clock):
        """Create a data layer with test settings."""
        return DashboardDataLayer(test_environment.get_settings(), clock=clock, configure_logs=False)

    def test_hooks_are_wired(self, data_layer):
        """Test that every entity shares one cache and reconciler."""
        hooks = data_layer.hooks

        assert set(hooks) == {"employees", "projects", "invoices", "departments", "contract_types", "users",
                             "expenses"}
        assert isinstance(data_layer.projects, ProjectHooks)
        assert isinstance(data_layer.invoices, InvoiceHooks)
        assert isinstance(data_layer.expenses, ExpenseHooks)
        for entity_hooks in hooks.values():
            assert entity_hooks.accessor is data_layer.accessor
            assert entity_hooks.reconciler is data_layer.reconciler
            assert entity_hooks.notifier is data_layer.notifier
        assert data_layer.contract_types.api.resource == "/contract-types"

    def test_dashboard_is_wired(self, data_layer):
        """Test that the dashboard summary shares the cache and polls every five minutes."""
        assert isinstance(data_layer.dashboard, DashboardHooks)
        assert data_layer.dashboard.accessor is data_layer.accessor
        assert data_layer.dashboard.policy.refetch_interval == 300

    def test_retry_and_timeout_from_settings(self, data_layer):
        """Test accessor configuration."""
        assert data_layer.accessor.timeout == 30.0
        assert data_layer.accessor.retry_config.max_attempts == 2
        assert data_layer.accessor.retry_config.base_delay == 0.0

    def test_policies_from_settings(self, clock):
        """Test that settings overrides reach the hooks."""
        settings = test_environment.get_settings(invoices_await_invalidation=True, locale="en")

        data_layer = create_data_layer(settings, clock=clock, configure_logs=False)

        assert data_layer.invoices.policy.await_invalidation
        assert data_layer.invoices.locale == "en"

    def test_separate_metric_registries(self, clock):
        """Test that two data layers can coexist in one process."""
        first = DashboardDataLayer(test_environment.get_settings(), clock=clock, configure_logs=False)
        second = DashboardDataLayer(test_environment.get_settings(), clock=clock, configure_logs=False)

        assert first.metrics.registry is not second.metrics.registry

    def test_login_binds_user(self, data_layer):
        """Test that the signed-in user is bound to the log context."""
        token = user_id_var.set(None)
        try:
            data_layer.login("user-7")
            assert user_id_var.get() == "user-7"
        finally:
            user_id_var.reset(token)

    @pytest.mark.asyncio
    async def test_logout_clears_cache(self, data_layer):
        """Test that logout drops cached queries, notifications and the session user."""
        data_layer.employees.api = FakeEntityApi(test_data_factory.create_test_employees())
        await data_layer.employees.use_list()
        data_layer.login("user-7")
        data_layer.notifier.success("Succès", "ok")

        await data_layer.logout()

        assert len(data_layer.cache) == 0
        assert data_layer.notifier.history == []
        assert user_id_var.get() is None

    @pytest.mark.asyncio
    async def test_aclose_drains_background_work(self, data_layer):
        """Test that closing waits for background refetches."""
        data_layer.invoices.api = FakeEntityApi(test_data_factory.create_test_invoices(), camel_case_records=True)
        observer = data_layer.invoices.observe_list()
        await observer.fetch()

        await data_layer.invoices.use_delete().mutate_async(100)
        await data_layer.aclose()

        assert data_layer.reconciler.pending == 0
        assert observer.get_current_result().data == []

    @pytest.mark.asyncio
    async def test_logout_stops_dashboard_polling(self, data_layer):
        """Test that an open dashboard stops polling on logout."""
        data_layer.dashboard.api = FakeEntityApi(stats={"employees": 2})
        observer = data_layer.dashboard.observe_stats()
        await observer.fetch()
        assert observer.is_polling

        await data_layer.logout()

        assert not observer.is_polling
