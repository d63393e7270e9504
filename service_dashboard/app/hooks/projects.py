"""
Project hooks, including team assignment mutations.

Assigning or removing an employee changes both the project (team and counts)
and the employee (active projects), so those mutations settle the employee
lists as well.
"""

from typing import Any, Dict, Optional

from ..adapters.api_client import ApiClient, ProjectApi
from ..domain.models import (
    AssignEmployeeRequest,
    ClientContact,
    CreateProjectRequest,
    ProjectPriority,
    ProjectStatus,
    UnassignEmployeeRequest,
    UpdateProjectRequest,
    utc_now_iso,
)
from ..caching.optimistic_mutator import OptimisticMutation
from ..caching.query_keys import keys_for
from ..messages import translate
from .base import EntityHooks, temporary_id


def _contact_fields(contact: Optional[ClientContact]) -> Dict[str, str]:
    if contact is None:
        return {}
    return {
        "client_contact_name": contact.name,
        "client_contact_email": contact.email,
        "client_contact_phone": contact.phone,
    }


class ProjectHooks(EntityHooks):
    entity = "projects"
    create_request = CreateProjectRequest
    update_request = UpdateProjectRequest

    api: ProjectApi

    @classmethod
    def api_for(cls, client: ApiClient) -> ProjectApi:
        return ProjectApi(client)

    def build_optimistic(self, request: CreateProjectRequest) -> Dict[str, Any]:
        now = utc_now_iso()
        record = {
            "id": temporary_id(),
            "name": request.name,
            "client_name": request.client,
            "description": request.description,
            "status": request.status or ProjectStatus.PRE_PRODUCTION.value,
            "priority": request.priority or ProjectPriority.MEDIUM.value,
            "budget": request.budget,
            "spent": 0,
            "progress": 0,
            "start_date": request.start_date,
            "deadline": request.deadline,
            "project_type": request.project_type or "production",
            "deliverables": list(request.deliverables),
            "notes": request.notes or "",
            "client_contact_name": "",
            "client_contact_email": "",
            "client_contact_phone": "",
            "team_member_count": len(request.team_members),
            "contracts_compliance": 0,
            "team_members": [],
            "created_at": now,
            "updated_at": now,
        }
        record.update(_contact_fields(request.client_contact))
        return record

    def record_changes(self, changes: UpdateProjectRequest) -> Dict[str, Any]:
        fields = super().record_changes(changes)
        fields.pop("client_contact", None)
        if "client" in fields:
            fields["client_name"] = fields.pop("client")
        fields.update(_contact_fields(changes.client_contact))
        return fields

    # Team assignments

    def _assignment_invalidations(self, variables) -> tuple:
        return (keys_for("employees").lists(),)

    async def _assign(self, request: AssignEmployeeRequest) -> Any:
        payload = request.model_dump(mode="json", by_alias=True, exclude_none=True,
                                     exclude={"project_id", "employee_id"})
        envelope = await self.api.assign_employee(request.project_id, request.employee_id, payload)
        return envelope.get("data")

    async def _unassign(self, request: UnassignEmployeeRequest) -> Any:
        envelope = await self.api.remove_employee(request.project_id, request.employee_id)
        return envelope.get("data")

    def use_assign_employee(self) -> OptimisticMutation:
        return self._mutation(
            "assign",
            self._assign,
            validate=lambda payload: self._parse(AssignEmployeeRequest, payload),
            entity_id_of=lambda request: request.project_id,
            extra_invalidations=self._assignment_invalidations,
            success_message=lambda request, data: (
                translate("success.title", self.locale),
                translate("projects.assign.success", self.locale),
            ),
            error_fallback=translate("projects.assign.error", self.locale),
        )

    def use_remove_employee(self) -> OptimisticMutation:
        return self._mutation(
            "unassign",
            self._unassign,
            validate=lambda payload: self._parse(UnassignEmployeeRequest, payload),
            entity_id_of=lambda request: request.project_id,
            extra_invalidations=self._assignment_invalidations,
            success_message=lambda request, data: (
                translate("success.title", self.locale),
                translate("projects.unassign.success", self.locale),
            ),
            error_fallback=translate("update.error", self.locale),
        )
