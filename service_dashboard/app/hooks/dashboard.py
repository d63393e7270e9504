"""
Dashboard summary hooks.

The summary is read-only. An open dashboard polls it on the policy's refetch
interval; entity mutations do not invalidate it.
"""

from typing import Any, List, Optional

from ..adapters.api_client import ApiClient, DashboardApi
from ..caching.policies import EntityPolicy, policy_for
from ..caching.query_accessor import QueryAccessor, QueryObserver, QueryResult
from ..caching.query_keys import QueryKeys, keys_for


class DashboardHooks:
    entity = "dashboard"

    def __init__(self, api: DashboardApi, *, accessor: QueryAccessor, policy: Optional[EntityPolicy] = None):
        self.api = api
        self.accessor = accessor
        self.keys: QueryKeys = keys_for(self.entity)
        self.policy = policy or policy_for(self.entity)
        self._observers: List[QueryObserver] = []

    @classmethod
    def api_for(cls, client: ApiClient) -> DashboardApi:
        return DashboardApi(client)

    async def _fetch_stats(self) -> Any:
        envelope = await self.api.get_stats()
        return envelope.get("data")

    async def use_stats(self) -> QueryResult:
        return await self.accessor.fetch(
            self.keys.stats(),
            self._fetch_stats,
            stale_time=self.policy.stats_stale_time,
        )

    def observe_stats(self) -> QueryObserver:
        """Summary handle that refetches on the policy interval once fetched."""
        observer = QueryObserver(
            self.accessor,
            self.keys.stats(),
            self._fetch_stats,
            stale_time=self.policy.stats_stale_time,
            refetch_interval=self.policy.refetch_interval,
        )
        self._observers.append(observer)
        return observer

    def close(self) -> None:
        """Stop polling and release every summary observer."""
        for observer in self._observers:
            observer.close()
        self._observers.clear()
