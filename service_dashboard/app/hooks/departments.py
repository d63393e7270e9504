"""
Department hooks.
"""

from ..domain.models import DepartmentRequest, UpdateDepartmentRequest
from .base import EntityHooks


class DepartmentHooks(EntityHooks):
    entity = "departments"
    create_request = DepartmentRequest
    update_request = UpdateDepartmentRequest
