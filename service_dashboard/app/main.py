"""
Dashboard data layer: the composition root.

One ``DashboardDataLayer`` per signed-in session owns the query cache and
exposes one hooks object per entity type.
"""

import time
from typing import Callable, Dict, Optional

from prometheus_client import CollectorRegistry

from shared.config import DashboardConfig, get_settings
from shared.logging import clear_context, configure_logging, get_logger, set_user_context
from shared.metrics import CacheMetrics
from shared.retry import RetryConfig
from shared.errors import is_retryable
from .adapters.api_client import ApiClient, TokenProvider
from .caching.policies import policy_for
from .caching.query_accessor import QueryAccessor
from .caching.query_cache import QueryCache
from .caching.settlement import SettlementReconciler
from .hooks import (
    HOOK_CLASSES,
    ContractTypeHooks,
    DashboardHooks,
    DepartmentHooks,
    EmployeeHooks,
    EntityHooks,
    ExpenseHooks,
    InvoiceHooks,
    ProjectHooks,
    UserHooks,
)
from .notifications import NotificationSink, Notifier


class DashboardDataLayer:
    """Cache, accessor, reconciler and entity hooks wired from settings."""

    def __init__(
        self,
        settings: Optional[DashboardConfig] = None,
        *,
        api_client: Optional[ApiClient] = None,
        token_provider: Optional[TokenProvider] = None,
        notifier: Optional[Notifier] = None,
        notification_sink: Optional[NotificationSink] = None,
        clock: Callable[[], float] = time.monotonic,
        metrics_registry: Optional[CollectorRegistry] = None,
        configure_logs: bool = True,
    ):
        self.settings = settings or get_settings()
        if configure_logs:
            configure_logging(self.settings.app_name, self.settings.log_level, self.settings.json_logs)
        self.logger = get_logger("dashboard.main")

        self.metrics = CacheMetrics(self.settings.app_name, registry=metrics_registry)
        self.api_client = api_client or ApiClient(
            self.settings.api_base_url,
            timeout=self.settings.request_timeout_seconds,
            token_provider=token_provider,
        )
        self.notifier = notifier or Notifier(notification_sink, max_history=self.settings.notification_history)

        self.cache = QueryCache(clock, metrics=self.metrics)
        self.accessor = QueryAccessor(
            self.cache,
            timeout=self.settings.request_timeout_seconds,
            retry_config=RetryConfig(
                max_attempts=self.settings.query_retry_attempts + 1,
                base_delay=self.settings.query_retry_delay_seconds,
                max_delay=self.settings.query_retry_delay_seconds * 4,
                retry_if=is_retryable,
            ),
        )
        self.reconciler = SettlementReconciler(self.accessor)

        self.hooks: Dict[str, EntityHooks] = {
            hooks_class.entity: self._hooks(hooks_class) for hooks_class in HOOK_CLASSES
        }
        self.employees: EmployeeHooks = self.hooks["employees"]
        self.projects: ProjectHooks = self.hooks["projects"]
        self.invoices: InvoiceHooks = self.hooks["invoices"]
        self.departments: DepartmentHooks = self.hooks["departments"]
        self.contract_types: ContractTypeHooks = self.hooks["contract_types"]
        self.users: UserHooks = self.hooks["users"]
        self.expenses: ExpenseHooks = self.hooks["expenses"]
        self.dashboard = DashboardHooks(
            DashboardHooks.api_for(self.api_client),
            accessor=self.accessor,
            policy=policy_for(DashboardHooks.entity, self.settings),
        )

        self.logger.info("Data layer ready", env=self.settings.env, api_base_url=self.settings.api_base_url,
                         locale=self.settings.locale)

    def _hooks(self, hooks_class):
        return hooks_class(
            hooks_class.api_for(self.api_client),
            accessor=self.accessor,
            reconciler=self.reconciler,
            notifier=self.notifier,
            policy=policy_for(hooks_class.entity, self.settings),
            locale=self.settings.locale,
        )

    def login(self, user_id: str) -> None:
        """Bind the signed-in user to every log event of this session."""
        set_user_context(user_id)
        self.logger.info("Session started")

    async def logout(self) -> None:
        """Cancel fetches and drop cached queries, notifications and the session user."""
        self.dashboard.close()
        await self.cache.clear()
        await self.reconciler.wait_for_background()
        self.notifier.clear()
        self.logger.info("Session cleared")
        clear_context()

    async def aclose(self) -> None:
        """Stop polling and wait for background refetches and in-flight fetches."""
        self.dashboard.close()
        await self.reconciler.wait_for_background()
        await self.cache.wait_until_idle()


def create_data_layer(settings: Optional[DashboardConfig] = None, **kwargs) -> DashboardDataLayer:
    """Build a data layer from settings (environment by default)."""
    return DashboardDataLayer(settings, **kwargs)
