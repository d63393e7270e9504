"""
Invoice hooks.

Invoice records are served in camelCase, so provisional records and merged
updates use the wire aliases. Totals are computed by the server and stay at
zero until the list is refetched.
"""

from typing import Any, Dict

from ..domain.models import CreateInvoiceRequest, InvoiceStatus, UpdateInvoiceRequest, utc_now_iso
from .base import EntityHooks, temporary_id


class InvoiceHooks(EntityHooks):
    entity = "invoices"
    create_request = CreateInvoiceRequest
    update_request = UpdateInvoiceRequest
    # Lists are sorted newest first.
    insert_at_start = True

    def build_optimistic(self, request: CreateInvoiceRequest) -> Dict[str, Any]:
        now = utc_now_iso()
        fields = request.model_dump(mode="json", by_alias=True, exclude_none=True)
        return {
            "id": temporary_id(),
            **fields,
            "amount": 0,
            "taxAmount": 0,
            "totalAmount": 0,
            "status": InvoiceStatus.DRAFT.value,
            "created_at": now,
            "updated_at": now,
        }

    def record_changes(self, changes: UpdateInvoiceRequest) -> Dict[str, Any]:
        return changes.model_dump(mode="json", by_alias=True, exclude_unset=True, exclude_none=True)
