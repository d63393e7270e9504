"""
Per-entity caching policy.

The trade-off between latency and guaranteed freshness before a dialog
closes is configuration, not something each hook decides on its own.
"""

from dataclasses import dataclass, replace
from typing import Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.config import BaseConfig

MINUTE = 60.0


@dataclass(frozen=True)
class EntityPolicy:
    """How one entity type is read and reconciled."""

    entity: str
    stale_time: float
    stats_stale_time: float
    keep_previous_data: bool = False
    await_invalidation: bool = True
    optimistic: bool = True
    refetch_interval: Optional[float] = None


DEFAULT_POLICIES: Dict[str, EntityPolicy] = {
    "employees": EntityPolicy("employees", stale_time=5 * MINUTE, stats_stale_time=5 * MINUTE),
    "projects": EntityPolicy("projects", stale_time=3 * MINUTE, stats_stale_time=5 * MINUTE),
    # Invoices change often: short window, no flicker while refiltering, and
    # settlement refetches in the background so dialogs close immediately.
    "invoices": EntityPolicy(
        "invoices",
        stale_time=2 * MINUTE,
        stats_stale_time=3 * MINUTE,
        keep_previous_data=True,
        await_invalidation=False,
    ),
    "departments": EntityPolicy("departments", stale_time=10 * MINUTE, stats_stale_time=10 * MINUTE),
    "contract_types": EntityPolicy("contract_types", stale_time=10 * MINUTE, stats_stale_time=10 * MINUTE),
    "users": EntityPolicy("users", stale_time=5 * MINUTE, stats_stale_time=5 * MINUTE),
    "expenses": EntityPolicy(
        "expenses",
        stale_time=2 * MINUTE,
        stats_stale_time=5 * MINUTE,
        keep_previous_data=True,
        await_invalidation=False,
    ),
    # Read-only; the summary polls while a dashboard is open.
    "dashboard": EntityPolicy(
        "dashboard",
        stale_time=2 * MINUTE,
        stats_stale_time=2 * MINUTE,
        refetch_interval=5 * MINUTE,
    ),
}


def policy_for(entity: str, config: Optional["BaseConfig"] = None) -> EntityPolicy:
    """Default policy for ``entity``, overridden by settings when given."""
    try:
        policy = DEFAULT_POLICIES[entity]
    except KeyError:
        raise ValueError(f"No caching policy for entity type: {entity!r}") from None

    if config is None:
        return policy

    overrides = {
        "stale_time": config.stale_times().get(entity, policy.stale_time),
        "await_invalidation": config.await_invalidation().get(entity, policy.await_invalidation),
    }
    stats_stale = getattr(config, f"{entity}_stats_stale_seconds", None)
    if stats_stale is not None:
        overrides["stats_stale_time"] = stats_stale
    interval = getattr(config, f"{entity}_refetch_interval_seconds", None)
    if interval is not None:
        overrides["refetch_interval"] = interval or None
    return replace(policy, **overrides)
