"""
Employee hooks.
"""

from typing import Any, Dict

from ..domain.models import CreateEmployeeRequest, EmployeeStatus, UpdateEmployeeRequest, utc_now_iso
from .base import EntityHooks, temporary_id


class EmployeeHooks(EntityHooks):
    entity = "employees"
    create_request = CreateEmployeeRequest
    update_request = UpdateEmployeeRequest

    def build_optimistic(self, request: CreateEmployeeRequest) -> Dict[str, Any]:
        now = utc_now_iso()
        return {
            "id": temporary_id(),
            "first_name": request.first_name,
            "last_name": request.last_name,
            "email": request.email,
            "phone": request.phone,
            "address": request.address,
            "position": request.position,
            "department_id": request.department_id,
            "department_name": "",
            "salary": request.salary,
            "hire_date": request.hire_date,
            "status": EmployeeStatus.ACTIVE.value,
            "contract_type": request.contract_type,
            "contract_start_date": request.contract_start_date,
            "contract_end_date": request.contract_end_date,
            "contract_status": "active",
            "active_projects": 0,
            "created_at": now,
            "updated_at": now,
        }
