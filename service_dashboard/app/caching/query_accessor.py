"""
Read path over the query cache.

Reads follow stale-while-revalidate: a fresh entry is served without touching
the network, a stale entry is served immediately while a background refetch
runs, and only an empty entry makes the caller wait. Every network attempt is
bounded by the request timeout and a failed read is retried at most once.
Reads never raise; failures are reported on the returned ``QueryResult`` and
the last good data stays in place.
"""

import asyncio
import time
from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Optional

from shared.errors import RequestTimeoutError, is_retryable
from shared.logging import get_logger
from shared.retry import RetryConfig, RetryError, retry_on_exception
from .query_cache import CacheEntry, Fetcher, QueryCache
from .query_keys import QueryKey, entity_of

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class QueryResult:
    """What a read hands back to the UI."""

    data: Any = None
    error: Optional[BaseException] = None
    status: str = "pending"
    is_loading: bool = False
    is_fetching: bool = False
    is_stale: bool = True
    is_placeholder_data: bool = False
    data_updated_at: Optional[float] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    @classmethod
    def idle(cls) -> "QueryResult":
        """Result of a disabled query."""
        return cls(status="idle", is_stale=False)

    @classmethod
    def from_entry(cls, entry: CacheEntry, now: float) -> "QueryResult":
        if entry.error is not None:
            status = "error"
        elif entry.has_data:
            status = "success"
        else:
            status = "pending"
        return cls(
            data=entry.data,
            error=entry.error,
            status=status,
            is_loading=not entry.has_data and entry.is_fetching,
            is_fetching=entry.is_fetching,
            is_stale=entry.is_stale(now),
            data_updated_at=entry.data_updated_at,
        )


class QueryAccessor:
    """Fetches through the cache with a per-query staleness window."""

    def __init__(
        self,
        cache: QueryCache,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.cache = cache
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig(
            max_attempts=2,
            base_delay=1.0,
            max_delay=5.0,
            retry_if=is_retryable,
        )
        self.logger = get_logger("dashboard.accessor")

    async def fetch(self, key: QueryKey, fetcher: Fetcher, *, stale_time: float = 0.0) -> QueryResult:
        """Read ``key``, fetching only when the cached value is missing or stale."""
        entry = self.cache.build(key)
        entry.fetcher = fetcher
        entry.stale_time = stale_time
        now = self.cache.clock()

        if entry.has_data and not entry.is_stale(now):
            if self.cache.metrics:
                self.cache.metrics.increment_counter("query_cache_hits_total", entity=entity_of(key))
            return QueryResult.from_entry(entry, now)

        task = self._start_fetch(entry)
        if entry.has_data:
            self.logger.debug("Serving stale data while revalidating", key=key)
            return QueryResult.from_entry(entry, now)

        await asyncio.wait({task})
        return QueryResult.from_entry(entry, self.cache.clock())

    async def refetch(self, key: QueryKey, fetcher: Optional[Fetcher] = None) -> QueryResult:
        """Fetch ``key`` now, regardless of staleness, and wait for it."""
        entry = self.cache.build(key)
        if fetcher is not None:
            entry.fetcher = fetcher
        if entry.fetcher is None:
            raise ValueError(f"No fetcher registered for {key!r}")
        await asyncio.wait({self._start_fetch(entry)})
        return QueryResult.from_entry(entry, self.cache.clock())

    def invalidate(self, prefix: QueryKey) -> List[CacheEntry]:
        """Mark entries under ``prefix`` invalid so their next read refetches."""
        return self.cache.mark_invalidated(prefix)

    async def refetch_active(self, entries: Iterable[CacheEntry]) -> None:
        """Refetch entries that have live observers, replacing in-flight fetches."""
        tasks = []
        for entry in entries:
            if not entry.is_active or entry.fetcher is None:
                continue
            if entry.is_fetching:
                stale_task = entry.task
                stale_task.cancel()
                await asyncio.gather(stale_task, return_exceptions=True)
            tasks.append(self._start_fetch(entry))
        if tasks:
            await asyncio.wait(tasks)

    def _start_fetch(self, entry: CacheEntry) -> "asyncio.Task[Any]":
        if entry.is_fetching:
            return entry.task
        entry.task = asyncio.ensure_future(self._run_fetch(entry, entry.fetcher))
        return entry.task

    async def _run_fetch(self, entry: CacheEntry, fetcher: Fetcher) -> None:
        entity = entity_of(entry.key) or "unknown"
        timeout = self.timeout

        async def fetch_query():
            try:
                return await asyncio.wait_for(fetcher(), timeout=timeout)
            except asyncio.TimeoutError:
                raise RequestTimeoutError(details={"key": repr(entry.key), "timeout": timeout}) from None

        fetch_query.__name__ = f"fetch_{entity}"
        entry.fetch_count += 1
        started = time.perf_counter()
        result = "success"

        try:
            data = await retry_on_exception((Exception,), self.retry_config)(fetch_query)()
        except asyncio.CancelledError:
            result = "cancelled"
            self.logger.debug("Fetch cancelled", key=entry.key)
            raise
        except RetryError as exc:
            result = "error"
            self._record_failure(entry, exc.last_exception)
        except Exception as exc:
            result = "error"
            self._record_failure(entry, exc)
        else:
            self.cache.store_result(entry, data)
            self.logger.debug("Query fetched", key=entry.key)
        finally:
            if self.cache.metrics:
                self.cache.metrics.increment_counter("query_fetches_total", entity=entity, result=result)
                self.cache.metrics.observe_histogram(
                    "query_fetch_duration_seconds", time.perf_counter() - started, entity=entity
                )

    def _record_failure(self, entry: CacheEntry, error: BaseException) -> None:
        self.cache.store_error(entry, error)
        self.logger.warning(
            "Query fetch failed, keeping last known data",
            key=entry.key,
            has_data=entry.has_data,
            error=str(error),
        )


class QueryObserver:
    """Long-lived read handle, the equivalent of a mounted query hook.

    While open it keeps its entry *active*, so settlement refetches it. With
    ``keep_previous_data`` the last loaded data keeps being shown, flagged as
    placeholder, while a newly selected key (filters, page) loads. With
    ``refetch_interval`` the first ``fetch()`` starts polling the current key
    every that many seconds until the observer is closed.
    """

    def __init__(
        self,
        accessor: QueryAccessor,
        key: QueryKey,
        fetcher: Fetcher,
        *,
        stale_time: float = 0.0,
        keep_previous_data: bool = False,
        enabled: bool = True,
        refetch_interval: Optional[float] = None,
    ):
        self.accessor = accessor
        self.stale_time = stale_time
        self.keep_previous_data = keep_previous_data
        self.enabled = enabled
        self.refetch_interval = refetch_interval
        self._poller: Optional["asyncio.Task[None]"] = None
        self._previous: Optional[QueryResult] = None
        self._closed = False
        self._key = key
        self._fetcher = fetcher
        self._subscribe()

    @property
    def key(self) -> QueryKey:
        return self._key

    def _subscribe(self) -> None:
        entry = self.accessor.cache.build(self._key)
        entry.fetcher = self._fetcher
        entry.stale_time = self.stale_time
        entry.observers += 1

    def _unsubscribe(self) -> None:
        entry = self.accessor.cache.get(self._key)
        if entry is not None and entry.observers > 0:
            entry.observers -= 1

    def get_current_result(self) -> QueryResult:
        if not self.enabled:
            return QueryResult.idle()
        cache = self.accessor.cache
        entry = cache.build(self._key)
        result = QueryResult.from_entry(entry, cache.clock())
        if entry.has_data:
            self._previous = result
        elif self.keep_previous_data and self._previous is not None:
            result = replace(
                self._previous,
                error=entry.error,
                is_loading=False,
                is_fetching=entry.is_fetching,
                is_placeholder_data=True,
            )
        return result

    async def fetch(self) -> QueryResult:
        if not self.enabled:
            return QueryResult.idle()
        await self.accessor.fetch(self._key, self._fetcher, stale_time=self.stale_time)
        self._start_polling()
        return self.get_current_result()

    async def refetch(self) -> QueryResult:
        if not self.enabled:
            return QueryResult.idle()
        await self.accessor.refetch(self._key, self._fetcher)
        return self.get_current_result()

    def set_query(self, key: QueryKey, fetcher: Fetcher) -> None:
        """Point the observer at another key (new filters or page)."""
        if key == self._key:
            self._fetcher = fetcher
            return
        self.get_current_result()
        self._unsubscribe()
        self._key = key
        self._fetcher = fetcher
        self._subscribe()

    @property
    def is_polling(self) -> bool:
        return self._poller is not None and not self._poller.done()

    def _start_polling(self) -> None:
        if self.refetch_interval and not self._closed and not self.is_polling:
            self._poller = asyncio.ensure_future(self._poll())

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self.refetch_interval)
            self.accessor.logger.debug("Interval refetch", key=self._key)
            await self.accessor.refetch(self._key, self._fetcher)

    def close(self) -> None:
        if self._poller is not None:
            self._poller.cancel()
            self._poller = None
        if not self._closed:
            self._unsubscribe()
            self._closed = True

    def __enter__(self) -> "QueryObserver":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
