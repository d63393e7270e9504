"""
Shared configuration management for the dashboard data layer.
"""

from functools import lru_cache
from typing import Dict

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Settings for the data layer, read from ``DASHBOARD_*`` variables and ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DASHBOARD_",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")
    json_logs: bool = Field(default=True)
    locale: str = Field(default="fr")

    # REST backend
    api_base_url: str = Field(default="http://localhost:8080/api")
    request_timeout_seconds: float = Field(default=30.0, gt=0)

    # Reads retry at most once
    query_retry_attempts: int = Field(default=1, ge=0, le=1)
    query_retry_delay_seconds: float = Field(default=1.0, ge=0)

    # Staleness windows, seconds
    employees_stale_seconds: float = Field(default=300.0, ge=0)
    employees_stats_stale_seconds: float = Field(default=300.0, ge=0)
    projects_stale_seconds: float = Field(default=180.0, ge=0)
    projects_stats_stale_seconds: float = Field(default=300.0, ge=0)
    invoices_stale_seconds: float = Field(default=120.0, ge=0)
    invoices_stats_stale_seconds: float = Field(default=180.0, ge=0)
    departments_stale_seconds: float = Field(default=600.0, ge=0)
    contract_types_stale_seconds: float = Field(default=600.0, ge=0)
    users_stale_seconds: float = Field(default=300.0, ge=0)
    expenses_stale_seconds: float = Field(default=120.0, ge=0)
    expenses_stats_stale_seconds: float = Field(default=300.0, ge=0)
    dashboard_stats_stale_seconds: float = Field(default=120.0, ge=0)

    # Dashboard summary polling, seconds; 0 turns it off
    dashboard_refetch_interval_seconds: float = Field(default=300.0, ge=0)

    # Settlement: await refetch of active queries, or let it run in background
    employees_await_invalidation: bool = Field(default=True)
    projects_await_invalidation: bool = Field(default=True)
    invoices_await_invalidation: bool = Field(default=False)
    departments_await_invalidation: bool = Field(default=True)
    contract_types_await_invalidation: bool = Field(default=True)
    users_await_invalidation: bool = Field(default=True)
    expenses_await_invalidation: bool = Field(default=False)

    # Notification history kept for dismissal
    notification_history: int = Field(default=50, ge=1)

    def stale_times(self) -> Dict[str, float]:
        """Stale time per entity list, keyed by entity name."""
        return {
            "employees": self.employees_stale_seconds,
            "projects": self.projects_stale_seconds,
            "invoices": self.invoices_stale_seconds,
            "departments": self.departments_stale_seconds,
            "contract_types": self.contract_types_stale_seconds,
            "users": self.users_stale_seconds,
            "expenses": self.expenses_stale_seconds,
        }

    def await_invalidation(self) -> Dict[str, bool]:
        """Invalidation policy flag per entity, keyed by entity name."""
        return {
            "employees": self.employees_await_invalidation,
            "projects": self.projects_await_invalidation,
            "invoices": self.invoices_await_invalidation,
            "departments": self.departments_await_invalidation,
            "contract_types": self.contract_types_await_invalidation,
            "users": self.users_await_invalidation,
            "expenses": self.expenses_await_invalidation,
        }


class DashboardConfig(BaseConfig):
    """Configuration of one data layer instance."""

    app_name: str = "dashboard"


@lru_cache(maxsize=1)
def get_settings() -> DashboardConfig:
    """Get the process-wide configuration."""
    return DashboardConfig()
