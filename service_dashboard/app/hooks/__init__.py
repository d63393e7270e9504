"""
Per-entity data hooks: cached reads and optimistic mutations.
"""

from .base import EntityHooks, UpdateVariables, temporary_id
from .contract_types import ContractTypeHooks
from .dashboard import DashboardHooks
from .departments import DepartmentHooks
from .employees import EmployeeHooks
from .expenses import ExpenseHooks
from .invoices import InvoiceHooks
from .projects import ProjectHooks
from .users import UserHooks

# Entity types with list, detail, stats and CRUD mutations.
HOOK_CLASSES = (
    EmployeeHooks,
    ProjectHooks,
    InvoiceHooks,
    DepartmentHooks,
    ContractTypeHooks,
    UserHooks,
    ExpenseHooks,
)

__all__ = [
    "EntityHooks",
    "UpdateVariables",
    "temporary_id",
    "EmployeeHooks",
    "ProjectHooks",
    "InvoiceHooks",
    "DepartmentHooks",
    "ContractTypeHooks",
    "UserHooks",
    "ExpenseHooks",
    "DashboardHooks",
    "HOOK_CLASSES",
]
