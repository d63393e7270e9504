"""
Process-wide keyed store behind every read and mutation.

The store is an explicit object handed to the accessor, the mutator and the
reconciler; nothing else writes to it. Entries are created on first read,
marked invalid when a mutation settles and only cleared on logout.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, TYPE_CHECKING

from shared.logging import get_logger
from .query_keys import QueryKey, entity_of, matches_prefix

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import CacheMetrics


Fetcher = Callable[[], Awaitable[Any]]


@dataclass
class CacheEntry:
    """State held for one cache key."""

    key: QueryKey
    data: Any = None
    data_updated_at: Optional[float] = None
    error: Optional[BaseException] = None
    error_updated_at: Optional[float] = None
    is_invalidated: bool = False
    stale_time: float = 0.0
    fetcher: Optional[Fetcher] = None
    task: Optional["asyncio.Task[Any]"] = field(default=None, repr=False)
    observers: int = 0
    fetch_count: int = 0

    @property
    def has_data(self) -> bool:
        return self.data_updated_at is not None

    @property
    def is_fetching(self) -> bool:
        return self.task is not None and not self.task.done()

    @property
    def is_active(self) -> bool:
        return self.observers > 0

    def is_stale(self, now: float) -> bool:
        """Outdated when never loaded, invalidated, or older than its window."""
        if not self.has_data or self.is_invalidated:
            return True
        return now - self.data_updated_at >= self.stale_time


class QueryCache:
    """In-memory query store keyed by hierarchical tuples."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        *,
        metrics: Optional["CacheMetrics"] = None,
    ):
        self.clock = clock
        self.metrics = metrics
        self.logger = get_logger("dashboard.cache")
        self._entries: Dict[QueryKey, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: QueryKey) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[CacheEntry]:
        return iter(list(self._entries.values()))

    def get(self, key: QueryKey) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def build(self, key: QueryKey) -> CacheEntry:
        """Get the entry for ``key``, creating an empty one on first use."""
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key)
            self._entries[key] = entry
            self._record_size()
            self.logger.debug("Cache entry created", key=key)
        return entry

    def find_all(self, prefix: QueryKey) -> List[CacheEntry]:
        """All entries whose key equals or extends ``prefix``."""
        return [entry for key, entry in self._entries.items() if matches_prefix(prefix, key)]

    def get_query_data(self, key: QueryKey) -> Any:
        entry = self._entries.get(key)
        return entry.data if entry is not None else None

    def set_query_data(self, key: QueryKey, value: Any) -> Any:
        """Replace the data held for ``key``.

        ``value`` may be a callable receiving the current data; returning
        ``None`` from it leaves the entry untouched. The stored value is
        whatever was passed in; callers hand over new objects rather than
        mutating the cached one.
        """
        entry = self.build(key)
        new_value = value(entry.data) if callable(value) else value
        if new_value is None:
            return entry.data

        entry.data = new_value
        entry.data_updated_at = self.clock()
        entry.error = None
        entry.is_invalidated = False
        return new_value

    def store_result(self, entry: CacheEntry, data: Any) -> None:
        """Record a successful fetch."""
        entry.data = data
        entry.data_updated_at = self.clock()
        entry.error = None
        entry.error_updated_at = None
        entry.is_invalidated = False

    def store_error(self, entry: CacheEntry, error: BaseException) -> None:
        """Record a failed fetch, keeping the last good data."""
        entry.error = error
        entry.error_updated_at = self.clock()

    async def cancel_queries(self, prefix: QueryKey) -> int:
        """Cancel in-flight fetches under ``prefix``; cached data is kept."""
        tasks = [entry.task for entry in self.find_all(prefix) if entry.is_fetching]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            self.logger.debug("Cancelled in-flight fetches", prefix=prefix, count=len(tasks))
        return len(tasks)

    def mark_invalidated(self, prefix: QueryKey) -> List[CacheEntry]:
        """Flag every entry under ``prefix`` as outdated."""
        entries = self.find_all(prefix)
        for entry in entries:
            entry.is_invalidated = True
        if entries and self.metrics:
            self.metrics.increment_counter(
                "invalidations_total", len(entries), entity=entity_of(prefix) or "unknown"
            )
        return entries

    def remove_queries(self, prefix: QueryKey) -> int:
        """Drop entries under ``prefix``, cancelling their fetches."""
        entries = self.find_all(prefix)
        for entry in entries:
            if entry.is_fetching:
                entry.task.cancel()
            del self._entries[entry.key]
        self._record_size()
        return len(entries)

    async def clear(self) -> None:
        """Cancel everything and forget all entries. Used on logout."""
        await self.cancel_queries(())
        count = len(self._entries)
        self._entries.clear()
        self._record_size()
        self.logger.info("Query cache cleared", entries=count)

    async def wait_until_idle(self) -> None:
        """Wait for every running fetch to finish."""
        while True:
            tasks = [entry.task for entry in self._entries.values() if entry.is_fetching]
            if not tasks:
                return
            await asyncio.wait(tasks)

    def _record_size(self) -> None:
        if self.metrics:
            self.metrics.set_gauge("cached_queries", len(self._entries))
