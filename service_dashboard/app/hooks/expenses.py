"""
Expense hooks, including the approval workflow.

Approving, rejecting and bulk deleting settle the same keys as the CRUD
mutations: every expense list, the stats and, for a single expense, its
detail. Categories change rarely and are never invalidated by mutations.
"""

from typing import Any, Dict, List, Mapping

from ..adapters.api_client import ApiClient, ExpenseApi
from ..caching.optimistic_mutator import OptimisticMutation
from ..caching.policies import MINUTE
from ..caching.query_accessor import QueryResult
from ..caching.query_keys import ExpenseKeys
from ..domain.models import (
    BulkDeleteExpensesRequest,
    CreateExpenseRequest,
    ExpenseStatus,
    RejectExpenseRequest,
    UpdateExpenseRequest,
    utc_now_iso,
)
from ..messages import translate
from .base import EntityHooks, temporary_id

CATEGORIES_STALE_TIME = 10 * MINUTE


class ExpenseHooks(EntityHooks):
    entity = "expenses"
    create_request = CreateExpenseRequest
    update_request = UpdateExpenseRequest

    api: ExpenseApi
    keys: ExpenseKeys

    @classmethod
    def api_for(cls, client: ApiClient) -> ExpenseApi:
        return ExpenseApi(client)

    def build_optimistic(self, request: CreateExpenseRequest) -> Dict[str, Any]:
        now = utc_now_iso()
        return {
            "id": temporary_id(),
            **request.model_dump(mode="json", exclude_none=True),
            "status": ExpenseStatus.PENDING.value,
            "approved_by": None,
            "approved_at": None,
            "rejection_reason": None,
            "employee_name": "",
            "project_name": None,
            "approved_by_name": None,
            "created_at": now,
            "updated_at": now,
        }

    # Categories

    async def _fetch_categories(self) -> List[Any]:
        envelope = await self.api.get_categories()
        data = envelope.get("data")
        return data if isinstance(data, list) else []

    async def use_categories(self) -> QueryResult:
        return await self.accessor.fetch(
            self.keys.categories(),
            self._fetch_categories,
            stale_time=CATEGORIES_STALE_TIME,
        )

    # Approval workflow

    @staticmethod
    def _with_status(records: List[Any], expense_id: int, **fields) -> List[Any]:
        now = utc_now_iso()
        return [
            {**record, **fields, "updated_at": now}
            if isinstance(record, dict) and record.get("id") == expense_id else record
            for record in records
        ]

    def _mark_approved(self, records: List[Any], expense_id: int) -> List[Any]:
        return self._with_status(records, expense_id, status=ExpenseStatus.APPROVED.value)

    def _mark_rejected(self, records: List[Any], request: RejectExpenseRequest) -> List[Any]:
        return self._with_status(records, request.id, status=ExpenseStatus.REJECTED.value,
                                 rejection_reason=request.reason)

    async def _approve(self, expense_id: int) -> Any:
        envelope = await self.api.approve(expense_id)
        return envelope.get("data")

    async def _reject(self, request: RejectExpenseRequest) -> Any:
        envelope = await self.api.reject(request.id, request.reason)
        return envelope.get("data")

    def _parse_reject(self, payload: Any) -> RejectExpenseRequest:
        if not isinstance(payload, (Mapping, RejectExpenseRequest)):
            payload = {"id": self._parse_id(payload)}
        return self._parse(RejectExpenseRequest, payload)

    def use_approve(self) -> OptimisticMutation:
        return self._mutation(
            "approve",
            self._approve,
            validate=self._parse_id,
            entity_id_of=lambda expense_id: expense_id,
            optimistic_update=self._mark_approved,
            success_message=lambda expense_id, data: self._message("approve"),
            error_fallback=translate("expenses.approve.error", self.locale),
        )

    def use_reject(self) -> OptimisticMutation:
        """Reject one expense; variables are an id or ``{"id", "reason"}``."""
        return self._mutation(
            "reject",
            self._reject,
            validate=self._parse_reject,
            entity_id_of=lambda request: request.id,
            optimistic_update=self._mark_rejected,
            success_message=lambda request, data: self._message("reject"),
            error_fallback=translate("expenses.reject.error", self.locale),
        )

    # Bulk delete

    def _parse_bulk(self, payload: Any) -> BulkDeleteExpensesRequest:
        if isinstance(payload, (list, tuple, set)):
            payload = {"expense_ids": [self._parse_id(expense_id) for expense_id in payload]}
        return self._parse(BulkDeleteExpensesRequest, payload)

    @staticmethod
    def _remove_selected(records: List[Any], request: BulkDeleteExpensesRequest) -> List[Any]:
        # Invoice selections are resolved by the server; settlement catches up.
        selected = set(request.expense_ids)

        def is_selected(record: Any) -> bool:
            if not isinstance(record, dict):
                return False
            if record.get("id") in selected:
                return True
            return request.project_id is not None and record.get("project_id") == request.project_id

        return [record for record in records if not is_selected(record)]

    async def _bulk_delete(self, request: BulkDeleteExpensesRequest) -> Any:
        envelope = await self.api.bulk_delete(request.to_payload())
        return envelope.get("data") or {}

    def _bulk_delete_message(self, request: BulkDeleteExpensesRequest, data: Any):
        count = len(request.expense_ids)
        if isinstance(data, Mapping):
            count = data.get("deletedCount", count)
        return self._message("bulk_delete", count=count)

    def use_bulk_delete(self) -> OptimisticMutation:
        """Delete several expenses at once; variables are a list of ids or a selection."""
        return self._mutation(
            "bulk_delete",
            self._bulk_delete,
            validate=self._parse_bulk,
            optimistic_update=self._remove_selected,
            success_message=self._bulk_delete_message,
            error_fallback=translate("expenses.bulk_delete.error", self.locale),
        )
