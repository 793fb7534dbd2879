"""
Admin API Endpoints.

Dashboard, user management and oversight of vehicles, bookings and trips.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.core.exceptions import InvalidArgumentError
from fleet_rental.app.core.guards import require_admin
from fleet_rental.app.core.token_revocation import revoke_all_user_tokens
from fleet_rental.app.db.session import get_db
from fleet_rental.app.models.booking_enums import BookingStatus
from fleet_rental.app.models.enums import UserRole
from fleet_rental.app.models.trip_enums import TripStatus
from fleet_rental.app.models.vehicle_enums import VehicleAvailability
from fleet_rental.app.schemas.admin import (
    UserListResponse,
    RoleUpdateRequest,
    AdminActionResponse,
    AuditLogResponse,
    AuditTrailResponse,
)
from fleet_rental.app.schemas.analytics import AdminDashboardStats
from fleet_rental.app.schemas.auth import UserResponse
from fleet_rental.app.schemas.booking import BookingListResponse, BookingResponse
from fleet_rental.app.schemas.trip import TripListResponse, TripResponse
from fleet_rental.app.schemas.vehicle import VehicleListResponse, VehicleResponse
from fleet_rental.app.services.analytics import AnalyticsService
from fleet_rental.app.services.audit import record_event, get_audit_trail, AuditAction
from fleet_rental.app.services.booking_service import BookingService
from fleet_rental.app.services.fleet_registry import FleetRegistry
from fleet_rental.app.services.trip_ledger import TripLedger
from fleet_rental.app.services.users import UserService

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/dashboard", response_model=AdminDashboardStats)
async def dashboard(
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    return await AnalyticsService.get_admin_dashboard(db)


# Users

@router.get("/users", response_model=UserListResponse)
async def list_users(
    role: Optional[UserRole] = Query(None),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    users, total = await UserService.list_users(db, role=role, page=page, page_size=page_size)
    return UserListResponse(
        users=[UserResponse.model_validate(user) for user in users],
        total=total,
        page=page,
        page_size=page_size
    )


@router.patch("/users/{user_id}/role", response_model=UserResponse)
async def change_user_role(
    user_id: int,
    body: RoleUpdateRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Change a user's role. Takes effect on the user's next request."""
    if user_id == admin["user_id"]:
        raise InvalidArgumentError("Cannot change your own role")

    user = await UserService.get_user(db, user_id)
    previous = user.role
    user.role = body.role

    record_event(
        db,
        AuditAction.ROLE_CHANGED,
        actor_id=admin["user_id"],
        actor_email=admin.get("sub"),
        target_user_id=user.id,
        metadata={"from": previous.value, "to": body.role.value},
    )
    await db.commit()
    await db.refresh(user)

    return UserResponse.model_validate(user)


@router.delete("/users/{user_id}", response_model=AdminActionResponse)
async def delete_user(
    user_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete a user and revoke every token they hold."""
    if user_id == admin["user_id"]:
        raise InvalidArgumentError("Cannot delete yourself")

    user = await UserService.get_user(db, user_id)
    user.mark_deleted()
    user.is_active = False

    record_event(
        db,
        AuditAction.USER_DELETED,
        actor_id=admin["user_id"],
        actor_email=admin.get("sub"),
        target_user_id=user.id,
    )
    await db.commit()

    await revoke_all_user_tokens(user.id)

    return AdminActionResponse(
        success=True,
        message="User deleted successfully",
        resource_id=user.id,
        action=AuditAction.USER_DELETED,
    )


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    user_id: Optional[int] = Query(None, description="Filter by target user ID"),
    action: Optional[str] = Query(None, description="Filter by action type"),
    limit: int = Query(100, ge=1, le=500, description="Maximum records to return"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Recent audit entries, newest first (admin-only)."""
    logs = await get_audit_trail(db=db, target_user_id=user_id, action=action, limit=limit)

    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )


# Vehicles

@router.get("/vehicles", response_model=VehicleListResponse)
async def list_all_vehicles(
    availability: Optional[VehicleAvailability] = Query(None),
    include_deleted: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    vehicles, total = await FleetRegistry.list_vehicles(
        db, page=page, page_size=page_size, availability=availability, include_deleted=include_deleted
    )
    return VehicleListResponse(
        vehicles=[VehicleResponse.model_validate(v) for v in vehicles],
        total=total,
        page=page,
        page_size=page_size
    )


@router.delete("/vehicles/{vehicle_id}", response_model=AdminActionResponse)
async def delete_vehicle(
    vehicle_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    vehicle = await FleetRegistry.delete_vehicle(db, vehicle_id, admin)
    return AdminActionResponse(
        success=True,
        message="Vehicle deleted successfully",
        resource_id=vehicle.id,
        action=AuditAction.VEHICLE_DELETED,
    )


# Bookings

@router.get("/bookings", response_model=BookingListResponse)
async def list_all_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    include_deleted: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    bookings, total = await BookingService.list_bookings(
        db, admin, status=status_filter, page=page, page_size=page_size, include_deleted=include_deleted
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=total,
        page=page,
        page_size=page_size
    )


@router.delete("/bookings/{booking_id}", response_model=AdminActionResponse)
async def delete_booking(
    booking_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete a booking; an open booking is cancelled and its vehicle released."""
    booking = await BookingService.delete_booking(db, booking_id, admin)
    return AdminActionResponse(
        success=True,
        message="Booking deleted successfully",
        resource_id=booking.id,
        action=AuditAction.BOOKING_DELETED,
    )


# Trips

@router.get("/trips", response_model=TripListResponse)
async def list_all_trips(
    status_filter: Optional[TripStatus] = Query(None, alias="status"),
    include_deleted: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    trips, total = await TripLedger.list_trips(
        db, admin, status=status_filter, page=page, page_size=page_size, include_deleted=include_deleted
    )
    return TripListResponse(
        trips=[TripResponse.model_validate(t) for t in trips],
        total=total,
        page=page,
        page_size=page_size
    )


@router.delete("/trips/{trip_id}", response_model=AdminActionResponse)
async def delete_trip(
    trip_id: int,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    trip = await TripLedger.delete_trip(db, trip_id, admin)
    return AdminActionResponse(
        success=True,
        message="Trip deleted successfully",
        resource_id=trip.id,
        action=AuditAction.TRIP_DELETED,
    )
