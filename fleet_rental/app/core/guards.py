"""
Role and ownership checks layered on ``get_current_user``.

``require_role`` and ``require_admin`` are route dependencies. Services that
already hold the caller's payload use ``is_admin`` and ``ownership_guard``.
"""

from typing import List, Optional

from fastapi import Depends

from fleet_rental.app.core.dependencies import get_current_user
from fleet_rental.app.core.exceptions import InsufficientPermissionsError
from fleet_rental.app.models.enums import UserRole


def require_role(allowed_roles: List[UserRole]):
    """
    Build a dependency admitting only ``allowed_roles``::

        current_user: dict = Depends(require_role([UserRole.OWNER, UserRole.ADMIN]))
    """
    allowed = {role.value for role in allowed_roles}

    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        role = current_user.get("role")
        if role not in allowed:
            raise InsufficientPermissionsError(
                f"This action requires role: {', '.join(sorted(allowed))}",
                details={"role": role},
            )
        return current_user

    return role_checker


def is_admin(current_user: dict) -> bool:
    return current_user.get("role") == UserRole.ADMIN.value


def require_admin(current_user: dict = Depends(get_current_user)) -> dict:
    if not is_admin(current_user):
        raise InsufficientPermissionsError("Admin access required")
    return current_user


def verify_ownership(resource_owner_id: int, current_user: dict) -> bool:
    """Admins pass for every resource; everyone else only for their own."""
    return is_admin(current_user) or current_user.get("user_id") == resource_owner_id


class OwnershipGuard:

    def enforce(self, resource_owner_id: int, current_user: dict, resource_name: str = "resource"):
        if not verify_ownership(resource_owner_id, current_user):
            raise InsufficientPermissionsError(f"You do not have access to this {resource_name}")

    def filter_by_ownership(self, current_user: dict) -> Optional[int]:
        """Owner id to scope a listing by; None for admins, who see everything."""
        return None if is_admin(current_user) else current_user.get("user_id")


ownership_guard = OwnershipGuard()
