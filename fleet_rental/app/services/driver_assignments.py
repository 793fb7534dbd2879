"""
Driver assignment registry.

Drivers apply to operate a vehicle; the vehicle's owner (or an admin)
approves or rejects, and may later toggle an approved assignment between
active and inactive.
"""

import logging
from typing import Optional, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.core.exceptions import (
    ResourceNotFoundError,
    ConflictError,
    InvalidArgumentError,
    InvalidStateError,
)
from fleet_rental.app.core.guards import ownership_guard
from fleet_rental.app.core.timeutils import utc_now
from fleet_rental.app.models.driver_assignment import DriverAssignment
from fleet_rental.app.models.driver_assignment_enums import (
    DriverAssignmentStatus,
    OPEN_ASSIGNMENT_STATUSES,
    DRIVABLE_ASSIGNMENT_STATUSES,
)
from fleet_rental.app.models.mixins import not_deleted
from fleet_rental.app.models.vehicle import Vehicle
from fleet_rental.app.services.audit import record_event, AuditAction
from fleet_rental.app.services.fleet_registry import FleetRegistry
from fleet_rental.app.services.notification_service import NotificationService

logger = logging.getLogger("fleet_rental.drivers")

REVIEW_OUTCOMES = (DriverAssignmentStatus.APPROVED, DriverAssignmentStatus.REJECTED)
TOGGLE_STATUSES = (DriverAssignmentStatus.ACTIVE, DriverAssignmentStatus.INACTIVE)
TOGGLEABLE_FROM = (
    DriverAssignmentStatus.APPROVED,
    DriverAssignmentStatus.ACTIVE,
    DriverAssignmentStatus.INACTIVE,
)


async def register_driver(
    db: AsyncSession,
    vehicle_id: int,
    current_user: dict,
    notes: Optional[str] = None,
) -> DriverAssignment:
    """
    Create a PENDING assignment for the acting driver.

    Raises:
        ResourceNotFoundError: If the vehicle does not exist
        ConflictError: If the driver already has an open assignment for it
    """
    driver_id = current_user["user_id"]
    vehicle = await FleetRegistry.get_vehicle(db, vehicle_id)

    existing = await db.execute(
        select(DriverAssignment.id).where(
            DriverAssignment.driver_id == driver_id,
            DriverAssignment.vehicle_id == vehicle.id,
            DriverAssignment.status.in_(OPEN_ASSIGNMENT_STATUSES),
            not_deleted(DriverAssignment),
        ).limit(1)
    )
    if existing.scalar_one_or_none() is not None:
        raise ConflictError(
            "You already have an open assignment for this vehicle",
            details={"vehicle_id": vehicle.id},
        )

    assignment = DriverAssignment(driver_id=driver_id, vehicle_id=vehicle.id, notes=notes)
    db.add(assignment)
    await db.flush()

    record_event(
        db,
        AuditAction.DRIVER_ASSIGNMENT_REQUESTED,
        actor_id=driver_id,
        actor_email=current_user.get("sub"),
        metadata={"assignment_id": assignment.id, "vehicle_id": vehicle.id},
    )
    await db.commit()
    await db.refresh(assignment)

    logger.info("Driver %s requested assignment to vehicle %s", driver_id, vehicle.id)
    return assignment


async def _load_for_owner(db: AsyncSession, assignment_id: int, current_user: dict) -> DriverAssignment:
    result = await db.execute(
        select(DriverAssignment).where(
            DriverAssignment.id == assignment_id,
            not_deleted(DriverAssignment),
        )
    )
    assignment = result.scalar_one_or_none()
    if not assignment:
        raise ResourceNotFoundError("Driver assignment", assignment_id)

    vehicle = await FleetRegistry.get_vehicle(db, assignment.vehicle_id, include_deleted=True)
    ownership_guard.enforce(vehicle.owner_id, current_user, "driver assignment")
    return assignment


async def review_assignment(
    db: AsyncSession,
    assignment_id: int,
    status: DriverAssignmentStatus,
    current_user: dict,
    notes: Optional[str] = None,
) -> DriverAssignment:
    """
    Approve or reject a PENDING assignment.

    Raises:
        InvalidArgumentError: If status is not APPROVED or REJECTED
        InvalidStateError: If the assignment is no longer pending
    """
    assignment = await _load_for_owner(db, assignment_id, current_user)

    if status not in REVIEW_OUTCOMES:
        raise InvalidArgumentError(
            "Review status must be approved or rejected",
            details={"allowed": [s.value for s in REVIEW_OUTCOMES]},
        )

    if assignment.status != DriverAssignmentStatus.PENDING:
        raise InvalidStateError(
            "Only pending assignments can be reviewed",
            current_status=assignment.status.value,
        )

    assignment.status = status
    assignment.reviewed_by_id = current_user["user_id"]
    assignment.reviewed_at = utc_now()
    if notes:
        assignment.notes = notes

    record_event(
        db,
        AuditAction.DRIVER_ASSIGNMENT_REVIEWED,
        actor_id=current_user["user_id"],
        actor_email=current_user.get("sub"),
        target_user_id=assignment.driver_id,
        metadata={"assignment_id": assignment.id, "status": status.value},
    )
    await db.commit()

    logger.info("Assignment %s %s by user %s", assignment.id, status.value, current_user["user_id"])
    await NotificationService.send_assignment_review(db, assignment)
    await db.refresh(assignment)
    return assignment


async def set_assignment_status(
    db: AsyncSession,
    assignment_id: int,
    status: DriverAssignmentStatus,
    current_user: dict,
) -> DriverAssignment:
    """Toggle an approved assignment between ACTIVE and INACTIVE."""
    assignment = await _load_for_owner(db, assignment_id, current_user)

    if status not in TOGGLE_STATUSES:
        raise InvalidArgumentError(
            "Status must be active or inactive",
            details={"allowed": [s.value for s in TOGGLE_STATUSES]},
        )

    if assignment.status not in TOGGLEABLE_FROM:
        raise InvalidStateError(
            f"Cannot change a {assignment.status.value} assignment to {status.value}",
            current_status=assignment.status.value,
        )

    previous = assignment.status
    assignment.status = status

    record_event(
        db,
        AuditAction.DRIVER_ASSIGNMENT_STATUS_CHANGED,
        actor_id=current_user["user_id"],
        actor_email=current_user.get("sub"),
        target_user_id=assignment.driver_id,
        metadata={"assignment_id": assignment.id, "from": previous.value, "to": status.value},
    )
    await db.commit()
    await db.refresh(assignment)
    return assignment


async def list_driver_assignments(db: AsyncSession, driver_id: int) -> List[DriverAssignment]:
    result = await db.execute(
        select(DriverAssignment)
        .where(DriverAssignment.driver_id == driver_id, not_deleted(DriverAssignment))
        .order_by(DriverAssignment.created_at.desc(), DriverAssignment.id.desc())
    )
    return list(result.scalars().all())


async def list_assigned_vehicles(db: AsyncSession, driver_id: int) -> List[Vehicle]:
    """Vehicles the driver is approved (or active) to operate."""
    result = await db.execute(
        select(Vehicle)
        .join(DriverAssignment, DriverAssignment.vehicle_id == Vehicle.id)
        .where(
            DriverAssignment.driver_id == driver_id,
            DriverAssignment.status.in_(DRIVABLE_ASSIGNMENT_STATUSES),
            not_deleted(DriverAssignment),
            not_deleted(Vehicle),
        )
        .order_by(Vehicle.id)
        .distinct()
    )
    return list(result.scalars().all())


async def list_assignments(
    db: AsyncSession,
    current_user: dict,
    status: Optional[DriverAssignmentStatus] = None,
    vehicle_id: Optional[int] = None,
) -> List[DriverAssignment]:
    """Assignments on the owner's vehicles, or every assignment for admins."""
    query = select(DriverAssignment).where(not_deleted(DriverAssignment))

    owner_id = ownership_guard.filter_by_ownership(current_user)
    if owner_id is not None:
        query = query.where(
            DriverAssignment.vehicle_id.in_(select(Vehicle.id).where(Vehicle.owner_id == owner_id))
        )
    if status:
        query = query.where(DriverAssignment.status == status)
    if vehicle_id is not None:
        query = query.where(DriverAssignment.vehicle_id == vehicle_id)

    query = query.order_by(DriverAssignment.created_at.desc(), DriverAssignment.id.desc())
    result = await db.execute(query)
    return list(result.scalars().all())
