"""
Shared shape of every entity's read and mutation hooks.
"""

import time
from dataclasses import dataclass
from functools import partial
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, Union

import pydantic

from shared.errors import ValidationError
from ..adapters.api_client import ApiClient, EntityApi
from ..caching.optimistic_mutator import OptimisticMutation
from ..caching.policies import EntityPolicy, policy_for
from ..caching.query_accessor import QueryAccessor, QueryObserver, QueryResult
from ..caching.query_keys import QueryKeys, keys_for
from ..caching.settlement import SettlementReconciler
from ..domain.models import RequestModel, utc_now_iso
from ..messages import lookup, translate
from ..notifications import Notifier

Filters = Union[str, Mapping[str, Any], None]


@dataclass(frozen=True)
class UpdateVariables:
    """Variables of an update mutation: the target id and the changed fields."""

    entity_id: int
    changes: RequestModel


def temporary_id() -> int:
    """Provisional identifier for optimistic records (epoch milliseconds)."""
    return int(time.time() * 1000)


class EntityHooks:
    """Read hooks and mutation hooks for one entity type.

    Subclasses name their entity, request models and the provisional record
    they splice into the cached list when a create is optimistic.
    """

    entity: str = ""
    create_request: Type[RequestModel] = RequestModel
    update_request: Type[RequestModel] = RequestModel
    insert_at_start: bool = False
    resource: str = ""

    def __init__(
        self,
        api: EntityApi,
        *,
        accessor: QueryAccessor,
        reconciler: SettlementReconciler,
        notifier: Notifier,
        policy: Optional[EntityPolicy] = None,
        locale: str = "fr",
    ):
        self.api = api
        self.accessor = accessor
        self.reconciler = reconciler
        self.notifier = notifier
        self.keys: QueryKeys = keys_for(self.entity)
        self.policy = policy or policy_for(self.entity)
        self.locale = locale

    @classmethod
    def api_for(cls, client: ApiClient) -> EntityApi:
        """REST endpoints backing this entity."""
        return EntityApi(client, cls.resource or cls.entity)

    # Reads

    async def _fetch_list(self, filters: Filters = None) -> List[Any]:
        params = {"filters": filters} if isinstance(filters, str) else filters
        envelope = await self.api.get_all(params or None)
        data = envelope.get("data")
        return data if isinstance(data, list) else []

    async def _fetch_detail(self, entity_id: int) -> Any:
        envelope = await self.api.get_by_id(entity_id)
        return envelope.get("data")

    async def _fetch_stats(self) -> Any:
        envelope = await self.api.get_stats()
        return envelope.get("data")

    async def use_list(self, filters: Filters = None) -> QueryResult:
        return await self.accessor.fetch(
            self.keys.list(filters),
            partial(self._fetch_list, filters),
            stale_time=self.policy.stale_time,
        )

    async def use_detail(self, entity_id: Optional[int]) -> QueryResult:
        if not entity_id:
            return QueryResult.idle()
        return await self.accessor.fetch(
            self.keys.detail(entity_id),
            partial(self._fetch_detail, entity_id),
            stale_time=self.policy.stale_time,
        )

    async def use_stats(self) -> QueryResult:
        return await self.accessor.fetch(
            self.keys.stats(),
            self._fetch_stats,
            stale_time=self.policy.stats_stale_time,
        )

    def observe_list(self, filters: Filters = None) -> QueryObserver:
        """Long-lived list handle; its entry is refetched when mutations settle."""
        return QueryObserver(
            self.accessor,
            self.keys.list(filters),
            partial(self._fetch_list, filters),
            stale_time=self.policy.stale_time,
            keep_previous_data=self.policy.keep_previous_data,
        )

    def refilter(self, observer: QueryObserver, filters: Filters = None) -> None:
        """Switch a list observer to other filters."""
        observer.set_query(self.keys.list(filters), partial(self._fetch_list, filters))

    # Provisional records

    def build_optimistic(self, request: RequestModel) -> Dict[str, Any]:
        """Record shown until the server answers; override per entity."""
        now = utc_now_iso()
        fields = request.model_dump(mode="json", exclude_none=True)
        return {"id": temporary_id(), **fields, "created_at": now, "updated_at": now}

    def record_changes(self, changes: RequestModel) -> Dict[str, Any]:
        """Record fields touched by an update, in the record's own naming."""
        return changes.model_dump(mode="json", exclude_unset=True, exclude_none=True)

    def merge_update(self, record: Dict[str, Any], changes: RequestModel) -> Dict[str, Any]:
        return {**record, **self.record_changes(changes), "updated_at": utc_now_iso()}

    def _insert(self, records: List[Any], request: RequestModel) -> List[Any]:
        provisional = self.build_optimistic(request)
        return [provisional, *records] if self.insert_at_start else [*records, provisional]

    def _replace(self, records: List[Any], variables: UpdateVariables) -> List[Any]:
        return [
            self.merge_update(record, variables.changes)
            if isinstance(record, dict) and record.get("id") == variables.entity_id else record
            for record in records
        ]

    @staticmethod
    def _remove(records: List[Any], entity_id: int) -> List[Any]:
        return [record for record in records
                if not (isinstance(record, dict) and record.get("id") == entity_id)]

    # Validation

    def _parse(self, model: Type[RequestModel], payload: Any) -> RequestModel:
        if isinstance(payload, model):
            return payload
        try:
            return model.model_validate(payload)
        except pydantic.ValidationError as exc:
            first = exc.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ())) or "payload"
            message = f"{translate('error.validation', self.locale)}: {location} - {first.get('msg')}"
            raise ValidationError(message, details={"errors": exc.errors(include_url=False)}) from exc

    def _parse_create(self, payload: Any) -> RequestModel:
        return self._parse(self.create_request, payload)

    def _parse_update(self, payload: Any) -> UpdateVariables:
        if isinstance(payload, UpdateVariables):
            return UpdateVariables(self._parse_id(payload.entity_id),
                                   self._parse(self.update_request, payload.changes))
        if isinstance(payload, Mapping) and "id" in payload:
            return UpdateVariables(self._parse_id(payload["id"]),
                                   self._parse(self.update_request, payload.get("data") or {}))
        raise ValidationError("Update variables need an 'id' and a 'data' mapping")

    @staticmethod
    def _parse_id(payload: Any) -> int:
        try:
            return int(payload)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid identifier: {payload!r}") from None

    # Messages

    def _message(self, operation: str, **params) -> Tuple[str, str]:
        base = f"{self.entity}.{operation}.success"
        title = lookup(f"{base}.title", self.locale) or translate("success.title", self.locale)
        return title, translate(base, self.locale, **params)

    def create_success_message(self, request: RequestModel, data: Any) -> Tuple[str, str]:
        return self._message("create", **request.model_dump())

    # Mutations

    def _mutation(self, operation: str, mutation_fn, **options) -> OptimisticMutation:
        return OptimisticMutation(
            f"{self.entity}.{operation}",
            mutation_fn,
            keys=self.keys,
            policy=self.policy,
            cache=self.accessor.cache,
            reconciler=self.reconciler,
            notifier=self.notifier,
            error_title=translate("error.title", self.locale),
            **options,
        )

    async def _create(self, request: RequestModel) -> Any:
        envelope = await self.api.create(request.to_payload())
        return envelope.get("data")

    async def _update(self, variables: UpdateVariables) -> Any:
        envelope = await self.api.update(variables.entity_id, variables.changes.to_payload(partial=True))
        return envelope.get("data")

    async def _delete(self, entity_id: int) -> int:
        await self.api.delete(entity_id)
        return entity_id

    def use_create(self) -> OptimisticMutation:
        return self._mutation(
            "create",
            self._create,
            validate=self._parse_create,
            optimistic_update=self._insert,
            success_message=self.create_success_message,
            error_fallback=translate(f"{self.entity}.create.error", self.locale),
        )

    def use_update(self) -> OptimisticMutation:
        return self._mutation(
            "update",
            self._update,
            validate=self._parse_update,
            entity_id_of=lambda variables: variables.entity_id,
            optimistic_update=self._replace,
            success_message=lambda variables, data: self._message("update"),
            error_fallback=translate("update.error", self.locale),
        )

    def use_delete(self) -> OptimisticMutation:
        return self._mutation(
            "delete",
            self._delete,
            validate=self._parse_id,
            entity_id_of=lambda entity_id: entity_id,
            optimistic_update=self._remove,
            success_message=lambda entity_id, data: self._message("delete"),
            error_fallback=translate("delete.error", self.locale),
        )
