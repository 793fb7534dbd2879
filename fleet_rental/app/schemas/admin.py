"""
Bodies for the admin user-management and audit endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from fleet_rental.app.models.enums import UserRole
from fleet_rental.app.schemas.auth import UserResponse


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int
    page: int
    page_size: int


class RoleUpdateRequest(BaseModel):
    role: UserRole


class AdminActionResponse(BaseModel):
    """Outcome of a destructive admin action, e.g. deleting a user."""
    success: bool
    message: str
    resource_id: int
    action: str


class AuditLogResponse(BaseModel):
    id: int
    action: str
    actor_id: Optional[int]
    actor_email: Optional[str]
    target_user_id: Optional[int]
    meta_data: Optional[dict]
    ip_address: Optional[str]
    timestamp: datetime

    class Config:
        from_attributes = True


class AuditTrailResponse(BaseModel):
    logs: List[AuditLogResponse]
    total: int
