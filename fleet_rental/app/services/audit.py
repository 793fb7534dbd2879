"""
Audit trail for authentication and lifecycle changes.

Two ways in: ``record_event`` stages an entry inside a transaction the caller
commits, so it lands or rolls back with the change it describes;
``log_event`` is for standalone events (login attempts, logout) and commits
immediately.
"""

from typing import Any, Dict, Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.models.audit_log import AuditLog


class AuditAction:
    USER_CREATED = "USER_CREATED"
    USER_DELETED = "USER_DELETED"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    TOKEN_REVOKED = "TOKEN_REVOKED"
    ROLE_CHANGED = "ROLE_CHANGED"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"
    PROFILE_UPDATED = "PROFILE_UPDATED"

    VEHICLE_CREATED = "VEHICLE_CREATED"
    VEHICLE_UPDATED = "VEHICLE_UPDATED"
    VEHICLE_AVAILABILITY_CHANGED = "VEHICLE_AVAILABILITY_CHANGED"
    VEHICLE_DELETED = "VEHICLE_DELETED"

    BOOKING_CREATED = "BOOKING_CREATED"
    BOOKING_STATUS_CHANGED = "BOOKING_STATUS_CHANGED"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    BOOKING_DELETED = "BOOKING_DELETED"

    TRIP_STATUS_CHANGED = "TRIP_STATUS_CHANGED"
    TRIP_DELETED = "TRIP_DELETED"
    DRIVER_ASSIGNED = "DRIVER_ASSIGNED"

    DRIVER_ASSIGNMENT_REQUESTED = "DRIVER_ASSIGNMENT_REQUESTED"
    DRIVER_ASSIGNMENT_REVIEWED = "DRIVER_ASSIGNMENT_REVIEWED"
    DRIVER_ASSIGNMENT_STATUS_CHANGED = "DRIVER_ASSIGNMENT_STATUS_CHANGED"


def record_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_email: Optional[str] = None,
    target_user_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
) -> AuditLog:
    entry = AuditLog(
        action=action,
        actor_id=actor_id,
        actor_email=actor_email,
        target_user_id=target_user_id,
        meta_data=metadata,
        ip_address=ip_address,
    )
    db.add(entry)
    return entry


async def log_event(db: AsyncSession, action: str, **fields: Any) -> AuditLog:
    """Record ``action`` and commit right away. Accepts the same fields as record_event."""
    entry = record_event(db, action, **fields)
    await db.commit()
    await db.refresh(entry)
    return entry


async def get_audit_trail(
    db: AsyncSession,
    target_user_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100,
) -> list[AuditLog]:
    """Newest entries first, optionally narrowed to one target user and/or action."""
    filters = []
    if target_user_id:
        filters.append(AuditLog.target_user_id == target_user_id)
    if action:
        filters.append(AuditLog.action == action)

    result = await db.execute(
        select(AuditLog)
        .where(*filters)
        .order_by(desc(AuditLog.timestamp), desc(AuditLog.id))
        .limit(limit)
    )
    return list(result.scalars().all())
