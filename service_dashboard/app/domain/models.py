"""
Business records and request payloads exchanged with the REST backend.

Request payloads are written in snake_case and serialized with camelCase
aliases, as most endpoints expect. Expense endpoints take snake_case bodies.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    """Timestamp in the format the backend uses for audit fields."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on_leave"


class ProjectStatus(str, Enum):
    PRE_PRODUCTION = "pre_production"
    PRODUCTION = "production"
    POST_PRODUCTION = "post_production"
    COMPLETED = "completed"


class ProjectPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"
    GUEST = "guest"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Request payloads

class RequestModel(BaseModel):
    """Payload validated locally before a mutation is sent."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        use_enum_values=True,
    )

    def to_payload(self, *, partial: bool = False) -> Dict[str, Any]:
        """Body sent to the API; partial updates carry only the given fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=partial, exclude_none=True)


class CreateEmployeeRequest(RequestModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: str = ""
    address: str = ""
    position: str = ""
    department_id: Optional[int] = None
    salary: float = Field(default=0, ge=0)
    hire_date: Optional[str] = None
    contract_type: Optional[str] = None
    contract_start_date: Optional[str] = None
    contract_end_date: Optional[str] = None
    contract_file_name: Optional[str] = None


class UpdateEmployeeRequest(RequestModel):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = Field(default=None, min_length=3)
    phone: Optional[str] = None
    address: Optional[str] = None
    position: Optional[str] = None
    department_id: Optional[int] = None
    salary: Optional[float] = Field(default=None, ge=0)
    hire_date: Optional[str] = None
    status: Optional[EmployeeStatus] = None
    contract_type: Optional[str] = None
    contract_start_date: Optional[str] = None
    contract_end_date: Optional[str] = None


class ClientContact(RequestModel):
    name: str = ""
    email: str = ""
    phone: str = ""


class TeamMemberInput(RequestModel):
    employee_id: int
    role: str
    start_date: str
    end_date: Optional[str] = None
    hourly_rate: Optional[float] = None


class CreateProjectRequest(RequestModel):
    name: str = Field(min_length=1)
    client: str = ""
    description: str = ""
    budget: float = Field(default=0, ge=0)
    start_date: Optional[str] = None
    deadline: Optional[str] = None
    status: Optional[ProjectStatus] = None
    priority: Optional[ProjectPriority] = None
    project_type: Optional[str] = None
    deliverables: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    client_contact: Optional[ClientContact] = None
    team_members: List[TeamMemberInput] = Field(default_factory=list)


class UpdateProjectRequest(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1)
    client: Optional[str] = None
    description: Optional[str] = None
    budget: Optional[float] = Field(default=None, ge=0)
    spent: Optional[float] = Field(default=None, ge=0)
    progress: Optional[float] = Field(default=None, ge=0, le=100)
    start_date: Optional[str] = None
    deadline: Optional[str] = None
    status: Optional[ProjectStatus] = None
    priority: Optional[ProjectPriority] = None
    project_type: Optional[str] = None
    deliverables: Optional[List[str]] = None
    notes: Optional[str] = None
    client_contact: Optional[ClientContact] = None


class AssignEmployeeRequest(RequestModel):
    project_id: int
    employee_id: int
    role: str = Field(min_length=1)
    start_date: str
    end_date: Optional[str] = None
    hourly_rate: Optional[float] = Field(default=None, ge=0)


class UnassignEmployeeRequest(RequestModel):
    project_id: int
    employee_id: int


class InvoiceItemInput(RequestModel):
    description: str = Field(min_length=1)
    unit_price: float = Field(ge=0)
    quantity: float = Field(gt=0)
    total: float = Field(ge=0)


class CreateInvoiceRequest(RequestModel):
    invoice_number: str = Field(min_length=1)
    client: str = Field(min_length=1)
    client_ice: str = ""
    project: str = ""
    project_id: Optional[int] = None
    issue_date: str
    due_date: str
    items: List[InvoiceItemInput] = Field(min_length=1)
    team_members: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    profit_margin: Optional[float] = None


class UpdateInvoiceRequest(RequestModel):
    invoice_number: Optional[str] = Field(default=None, min_length=1)
    client: Optional[str] = Field(default=None, min_length=1)
    client_ice: Optional[str] = None
    project: Optional[str] = None
    project_id: Optional[int] = None
    issue_date: Optional[str] = None
    due_date: Optional[str] = None
    status: Optional[InvoiceStatus] = None
    items: Optional[List[InvoiceItemInput]] = None
    team_members: Optional[List[str]] = None
    notes: Optional[str] = None
    profit_margin: Optional[float] = None


class DepartmentRequest(RequestModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class UpdateDepartmentRequest(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None


class ContractTypeRequest(RequestModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    # The contract-types endpoint takes this one field in snake_case.
    is_permanent: bool = Field(default=False, alias="is_permanent")


class UpdateContractTypeRequest(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    is_permanent: Optional[bool] = Field(default=None, alias="is_permanent")


class CreateUserRequest(RequestModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    role: UserRole = UserRole.USER
    phone: Optional[str] = None
    password: Optional[str] = None
    send_welcome_email: bool = False


class UpdateUserRequest(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = Field(default=None, min_length=3)
    role: Optional[UserRole] = None
    phone: Optional[str] = None
    status: Optional[UserStatus] = None


class SnakeCaseRequest(RequestModel):
    """Payload for endpoints that read snake_case bodies."""

    model_config = ConfigDict(alias_generator=None)


class CreateExpenseRequest(SnakeCaseRequest):
    employee_id: Optional[int] = None
    project_id: Optional[int] = None
    category: str = Field(min_length=1)
    description: str = Field(min_length=1)
    amount: float = Field(gt=0)
    expense_date: str = Field(min_length=1)
    receipt_file: Optional[str] = None


class UpdateExpenseRequest(SnakeCaseRequest):
    employee_id: Optional[int] = None
    project_id: Optional[int] = None
    category: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    amount: Optional[float] = Field(default=None, gt=0)
    expense_date: Optional[str] = None
    receipt_file: Optional[str] = None
    reimbursement_date: Optional[str] = None
    reimbursement_method: Optional[str] = None


class RejectExpenseRequest(SnakeCaseRequest):
    id: int
    reason: Optional[str] = None


class BulkDeleteExpensesRequest(RequestModel):
    """Selection of expenses to delete in one call: ids, a project or an invoice."""

    expense_ids: List[int] = Field(default_factory=list)
    project_id: Optional[int] = None
    invoice_id: Optional[int] = None

    @model_validator(mode="after")
    def check_selection(self) -> "BulkDeleteExpensesRequest":
        if not self.expense_ids and self.project_id is None and self.invoice_id is None:
            raise ValueError("select expenses by id, project or invoice")
        return self
