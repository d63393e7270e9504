"""
User account hooks.
"""

from typing import Any, Dict

from ..domain.models import CreateUserRequest, UpdateUserRequest, UserStatus, utc_now_iso
from .base import EntityHooks, temporary_id


class UserHooks(EntityHooks):
    entity = "users"
    create_request = CreateUserRequest
    update_request = UpdateUserRequest

    def build_optimistic(self, request: CreateUserRequest) -> Dict[str, Any]:
        # Credentials never enter the cache.
        now = utc_now_iso()
        return {
            "id": temporary_id(),
            "name": request.name,
            "email": request.email,
            "role": request.role,
            "status": UserStatus.ACTIVE.value,
            "phone": request.phone,
            "last_login": None,
            "permissions": [],
            "created_at": now,
            "updated_at": now,
        }
