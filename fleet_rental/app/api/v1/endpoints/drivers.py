"""
Driver Assignment API Endpoints.

Drivers apply to vehicles; owners and admins review and toggle assignments.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.core.guards import require_role
from fleet_rental.app.db.session import get_db
from fleet_rental.app.models.driver_assignment_enums import DriverAssignmentStatus
from fleet_rental.app.models.enums import UserRole
from fleet_rental.app.schemas.driver_assignment import (
    DriverAssignmentCreate,
    DriverAssignmentReview,
    DriverAssignmentStatusUpdate,
    DriverAssignmentResponse,
    DriverAssignmentListResponse,
)
from fleet_rental.app.schemas.admin import UserListResponse
from fleet_rental.app.schemas.auth import UserResponse
from fleet_rental.app.schemas.vehicle import VehicleResponse
from fleet_rental.app.services import driver_assignments
from fleet_rental.app.services.users import UserService

router = APIRouter(prefix="/drivers", tags=["Drivers"])

MANAGERS = [UserRole.OWNER, UserRole.ADMIN]


@router.post("/register", response_model=DriverAssignmentResponse, status_code=status.HTTP_201_CREATED)
async def register_for_vehicle(
    body: DriverAssignmentCreate,
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    """Apply to drive a vehicle. The assignment starts PENDING."""
    assignment = await driver_assignments.register_driver(
        db, body.vehicle_id, current_user, notes=body.notes
    )
    return DriverAssignmentResponse.model_validate(assignment)


@router.get("/my-assignments", response_model=DriverAssignmentListResponse)
async def my_assignments(
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    assignments = await driver_assignments.list_driver_assignments(db, current_user["user_id"])
    return DriverAssignmentListResponse(
        assignments=[DriverAssignmentResponse.model_validate(a) for a in assignments],
        total=len(assignments)
    )


@router.get("/assigned-vehicles", response_model=List[VehicleResponse])
async def assigned_vehicles(
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    """Vehicles the driver is approved to operate."""
    vehicles = await driver_assignments.list_assigned_vehicles(db, current_user["user_id"])
    return [VehicleResponse.model_validate(v) for v in vehicles]


@router.get("", response_model=UserListResponse)
async def list_drivers(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    current_user: dict = Depends(require_role(MANAGERS)),
    db: AsyncSession = Depends(get_db)
):
    """Driver accounts, for owners choosing who to approve or assign."""
    drivers, total = await UserService.list_users(db, role=UserRole.DRIVER, page=page, page_size=page_size)
    return UserListResponse(
        users=[UserResponse.model_validate(d) for d in drivers],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/assignments", response_model=DriverAssignmentListResponse)
async def list_assignments(
    status_filter: Optional[DriverAssignmentStatus] = Query(None, alias="status"),
    vehicle_id: Optional[int] = Query(None),
    current_user: dict = Depends(require_role(MANAGERS)),
    db: AsyncSession = Depends(get_db)
):
    """Assignments on the caller's vehicles (all assignments for admins)."""
    assignments = await driver_assignments.list_assignments(
        db, current_user, status=status_filter, vehicle_id=vehicle_id
    )
    return DriverAssignmentListResponse(
        assignments=[DriverAssignmentResponse.model_validate(a) for a in assignments],
        total=len(assignments)
    )


@router.patch("/assignments/{assignment_id}/review", response_model=DriverAssignmentResponse)
async def review_assignment(
    body: DriverAssignmentReview,
    assignment_id: int = Path(..., description="Assignment ID"),
    current_user: dict = Depends(require_role(MANAGERS)),
    db: AsyncSession = Depends(get_db)
):
    assignment = await driver_assignments.review_assignment(
        db, assignment_id, body.status, current_user, notes=body.notes
    )
    return DriverAssignmentResponse.model_validate(assignment)


@router.patch("/assignments/{assignment_id}/status", response_model=DriverAssignmentResponse)
async def update_assignment_status(
    body: DriverAssignmentStatusUpdate,
    assignment_id: int = Path(..., description="Assignment ID"),
    current_user: dict = Depends(require_role(MANAGERS)),
    db: AsyncSession = Depends(get_db)
):
    assignment = await driver_assignments.set_assignment_status(
        db, assignment_id, body.status, current_user
    )
    return DriverAssignmentResponse.model_validate(assignment)
