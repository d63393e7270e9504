"""
Dashboard caching package.

Keyed query cache with stale-while-revalidate reads, optimistic mutations
with snapshot rollback, and entity-scoped invalidation at settlement.
"""

from .query_keys import QueryKey, QueryKeys, keys_for, matches_prefix
from .query_cache import CacheEntry, QueryCache
from .query_accessor import QueryAccessor, QueryObserver, QueryResult
from .policies import EntityPolicy, policy_for
from .settlement import SettlementReconciler
from .optimistic_mutator import MutationStatus, OptimisticMutation

__all__ = [
    "QueryKey",
    "QueryKeys",
    "keys_for",
    "matches_prefix",
    "CacheEntry",
    "QueryCache",
    "QueryAccessor",
    "QueryObserver",
    "QueryResult",
    "EntityPolicy",
    "policy_for",
    "SettlementReconciler",
    "MutationStatus",
    "OptimisticMutation",
]
