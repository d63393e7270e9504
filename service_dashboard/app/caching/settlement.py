"""
Post-mutation reconciliation.

Whatever a mutation's outcome, the list, detail and stats views of its
entity type are marked invalid before ``settle`` returns. Targets are scoped
to the entity type rather than the mutation, so unrelated reads of the same
type refresh too.
"""

import asyncio
from typing import Any, List, Optional, Sequence, Set

from shared.logging import get_logger
from .policies import EntityPolicy
from .query_accessor import QueryAccessor
from .query_cache import CacheEntry
from .query_keys import QueryKey, QueryKeys


class SettlementReconciler:
    """Invalidates entity caches once a mutation has settled."""

    def __init__(self, accessor: QueryAccessor):
        self.accessor = accessor
        self.logger = get_logger("dashboard.settlement")
        self._background: Set["asyncio.Task[None]"] = set()

    @staticmethod
    def targets(keys: QueryKeys, entity_id: Optional[Any] = None,
                extra: Sequence[QueryKey] = ()) -> List[QueryKey]:
        """Keys to invalidate for a mutation on ``keys.entity``."""
        targets = [keys.lists()]
        if entity_id is not None:
            targets.append(keys.detail(entity_id))
        targets.append(keys.stats())
        targets.extend(extra)
        return targets

    async def settle(
        self,
        keys: QueryKeys,
        policy: EntityPolicy,
        entity_id: Optional[Any] = None,
        *,
        extra: Sequence[QueryKey] = (),
    ) -> None:
        """Invalidate, then refetch active entries awaited or in background."""
        invalidated = {}
        for target in self.targets(keys, entity_id, extra):
            for entry in self.accessor.invalidate(target):
                invalidated[entry.key] = entry
        entries: List[CacheEntry] = list(invalidated.values())

        self.logger.debug(
            "Mutation settled, caches invalidated",
            entity=keys.entity,
            entity_id=entity_id,
            invalidated=len(entries),
            awaited=policy.await_invalidation,
        )

        if not any(entry.is_active for entry in entries):
            return

        if policy.await_invalidation:
            await self.accessor.refetch_active(entries)
            return

        task = asyncio.ensure_future(self.accessor.refetch_active(entries))
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: "asyncio.Task[None]") -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error("Background refetch failed", error=str(exc))

    @property
    def pending(self) -> int:
        return len(self._background)

    async def wait_for_background(self) -> None:
        """Wait for fire-and-forget refetches started by ``settle``."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
