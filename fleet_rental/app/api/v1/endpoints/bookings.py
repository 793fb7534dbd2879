"""
Booking API Endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.core.dependencies import get_current_user
from fleet_rental.app.core.guards import require_role
from fleet_rental.app.db.session import get_db
from fleet_rental.app.models.booking_enums import BookingStatus
from fleet_rental.app.models.enums import UserRole
from fleet_rental.app.schemas.booking import (
    BookingCreate,
    BookingStatusUpdate,
    BookingCancel,
    BookingResponse,
    BookingListResponse,
    BookingHistoryItem,
    BookingHistoryResponse,
    BookedVehicle,
)
from fleet_rental.app.services.booking_service import BookingService

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    current_user: dict = Depends(require_role([UserRole.CUSTOMER])),
    db: AsyncSession = Depends(get_db)
):
    """
    Book a vehicle (customers only).

    The vehicle becomes BOOKED and a SCHEDULED trip is created with the booking.
    """
    booking = await BookingService.create_booking(db, booking_data, current_user)
    return BookingResponse.model_validate(booking)


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Bookings visible to the caller's role."""
    bookings, total = await BookingService.list_bookings(
        db, current_user, status=status_filter, page=page, page_size=page_size
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/my/history", response_model=BookingHistoryResponse)
async def my_booking_history(
    current_user: dict = Depends(require_role([UserRole.CUSTOMER])),
    db: AsyncSession = Depends(get_db)
):
    history = await BookingService.booking_history(db, current_user["user_id"])
    return BookingHistoryResponse(
        bookings=[
            BookingHistoryItem(
                **BookingResponse.model_validate(booking).model_dump(),
                vehicle=BookedVehicle.model_validate(vehicle),
            )
            for booking, vehicle in history
        ],
        total=len(history)
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int = Path(..., description="Booking ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    booking = await BookingService.get_booking(db, booking_id, current_user)
    return BookingResponse.model_validate(booking)


@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    body: BookingStatusUpdate,
    booking_id: int = Path(..., description="Booking ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    booking = await BookingService.update_status(
        db, booking_id, body.status, current_user, reason=body.cancellation_reason
    )
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    body: Optional[BookingCancel] = None,
    booking_id: int = Path(..., description="Booking ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    booking = await BookingService.cancel_booking(
        db, booking_id, current_user, reason=body.reason if body else None
    )
    return BookingResponse.model_validate(booking)
