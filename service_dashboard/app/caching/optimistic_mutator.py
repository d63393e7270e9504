"""
Write path with optimistic updates.

A mutation speculatively rewrites the cached list before its request is sent,
restores the exact pre-mutation snapshot if the request fails, and always
hands over to the settlement reconciler so the next read re-fetches
authoritative data. The optimistic value is never trusted as final.
"""

import copy
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

from shared.logging import get_logger, mutation_context
from .policies import EntityPolicy
from .query_cache import QueryCache
from .query_keys import QueryKey, QueryKeys
from .settlement import SettlementReconciler
from ..notifications import Notifier

MutationFn = Callable[[Any], Awaitable[Any]]
OptimisticUpdate = Callable[[List[Any], Any], List[Any]]
SuccessMessage = Callable[[Any, Any], Tuple[str, str]]


class MutationStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class OptimisticMutation:
    """One mutation hook: an invocable plus its pending/error state.

    Per call, in order: validate the variables, cancel in-flight fetches of
    the affected keys, snapshot the cached list, splice the provisional
    change, send the request, roll back and notify on failure or notify on
    success, then settle. Calls are neither cancellable nor serialized
    against each other; the last settlement wins.
    """

    def __init__(
        self,
        name: str,
        mutation_fn: MutationFn,
        *,
        keys: QueryKeys,
        policy: EntityPolicy,
        cache: QueryCache,
        reconciler: SettlementReconciler,
        notifier: Notifier,
        success_message: SuccessMessage,
        error_title: str,
        error_fallback: str,
        optimistic_update: Optional[OptimisticUpdate] = None,
        validate: Optional[Callable[[Any], Any]] = None,
        entity_id_of: Optional[Callable[[Any], Any]] = None,
        extra_invalidations: Optional[Callable[[Any], Sequence[QueryKey]]] = None,
    ):
        self.name = name
        self.operation = name.rsplit(".", 1)[-1]
        self.keys = keys
        self.policy = policy
        self.cache = cache
        self.reconciler = reconciler
        self.notifier = notifier
        self.logger = get_logger("dashboard.mutations")
        self._mutation_fn = mutation_fn
        self._success_message = success_message
        self._error_title = error_title
        self._error_fallback = error_fallback
        self._optimistic_update = optimistic_update
        self._validate = validate
        self._entity_id_of = entity_id_of
        self._extra_invalidations = extra_invalidations
        self.reset()

    def reset(self) -> None:
        self.status = MutationStatus.IDLE
        self.data: Any = None
        self.error: Optional[BaseException] = None
        self.variables: Any = None

    @property
    def is_pending(self) -> bool:
        return self.status is MutationStatus.PENDING

    @property
    def is_error(self) -> bool:
        return self.status is MutationStatus.ERROR

    @property
    def is_success(self) -> bool:
        return self.status is MutationStatus.SUCCESS

    async def __call__(self, variables: Any) -> Any:
        return await self.mutate_async(variables)

    async def mutate(self, variables: Any) -> Any:
        """Run the mutation; failures are reported through state and notification."""
        try:
            return await self.mutate_async(variables)
        except Exception:
            return None

    async def mutate_async(self, variables: Any) -> Any:
        """Run the mutation and return the server data, re-raising failures."""
        with mutation_context() as mutation_id:
            return await self._run(variables, mutation_id)

    async def _run(self, variables: Any, mutation_id: str) -> Any:
        self.status = MutationStatus.PENDING
        self.error = None
        self.data = None
        self.variables = variables

        try:
            if self._validate is not None:
                variables = self._validate(variables)
        except Exception as exc:
            self._report_failure(exc)
            raise

        entity_id = self._entity_id_of(variables) if self._entity_id_of else None
        list_key = self.keys.lists()

        await self.cache.cancel_queries(list_key)
        if entity_id is not None:
            await self.cache.cancel_queries(self.keys.detail(entity_id))

        snapshot = self._apply_optimistic(list_key, variables)

        self.logger.debug("Mutation dispatched", mutation=self.name, mutation_id=mutation_id,
                          entity_id=entity_id, optimistic=snapshot is not None)
        try:
            try:
                data = await self._mutation_fn(variables)
            except Exception as exc:
                if snapshot is not None:
                    self.cache.set_query_data(list_key, snapshot)
                    self._count("optimistic_rollbacks_total", entity=self.keys.entity)
                    self.logger.info("Optimistic update rolled back", mutation=self.name,
                                     mutation_id=mutation_id)
                self._report_failure(exc)
                raise

            self.status = MutationStatus.SUCCESS
            self.data = data
            self._count("mutations_total", entity=self.keys.entity, operation=self.operation, result="success")
            title, description = self._success_message(variables, data)
            self.notifier.success(title, description)
            return data
        finally:
            await self._settle(variables, entity_id)

    def _apply_optimistic(self, list_key: QueryKey, variables: Any) -> Optional[List[Any]]:
        """Splice the provisional change into the cached list; return the snapshot."""
        if self._optimistic_update is None or not self.policy.optimistic:
            return None
        previous = self.cache.get_query_data(list_key)
        if not isinstance(previous, list):
            return None
        snapshot = copy.deepcopy(previous)
        self.cache.set_query_data(list_key, self._optimistic_update(list(previous), variables))
        return snapshot

    def _report_failure(self, exc: BaseException) -> None:
        self.status = MutationStatus.ERROR
        self.error = exc
        self._count("mutations_total", entity=self.keys.entity, operation=self.operation, result="error")
        message = getattr(exc, "message", None) or str(exc) or self._error_fallback
        self.notifier.error(self._error_title, message)
        self.logger.warning("Mutation failed", mutation=self.name, error=message,
                            error_type=type(exc).__name__)

    async def _settle(self, variables: Any, entity_id: Any) -> None:
        extra = self._extra_invalidations(variables) if self._extra_invalidations else ()
        await self.reconciler.settle(self.keys, self.policy, entity_id, extra=extra)

    def _count(self, metric_name: str, **labels) -> None:
        if self.cache.metrics:
            self.cache.metrics.increment_counter(metric_name, **labels)
