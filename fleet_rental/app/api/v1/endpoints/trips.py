"""
Trip API Endpoints.

Execution (status + telemetry), driver assignment, reviews and issue reports.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.core.dependencies import get_current_user
from fleet_rental.app.core.guards import require_role
from fleet_rental.app.db.session import get_db
from fleet_rental.app.models.enums import UserRole
from fleet_rental.app.models.trip_enums import TripStatus
from fleet_rental.app.schemas.trip import (
    TripStatusUpdate,
    DriverAssign,
    TripReview,
    TripIssueCreate,
    TripIssueResponse,
    TripResponse,
    TripListResponse,
)
from fleet_rental.app.services.trip_ledger import TripLedger

router = APIRouter(prefix="/trips", tags=["Trips"])


@router.get("", response_model=TripListResponse)
async def list_trips(
    status_filter: Optional[TripStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    trips, total = await TripLedger.list_trips(
        db, current_user, status=status_filter, page=page, page_size=page_size
    )
    return TripListResponse(
        trips=[TripResponse.model_validate(t) for t in trips],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    trip = await TripLedger.get_trip_for_user(db, trip_id, current_user)
    return TripResponse.model_validate(trip)


@router.patch("/{trip_id}/status", response_model=TripResponse)
async def update_trip_status(
    body: TripStatusUpdate,
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_role([UserRole.ADMIN, UserRole.DRIVER, UserRole.OWNER])),
    db: AsyncSession = Depends(get_db)
):
    """
    Start, complete or cancel a trip.

    Completing a trip completes its booking and frees the vehicle.
    """
    trip = await TripLedger.update_status(db, trip_id, body, current_user)
    return TripResponse.model_validate(trip)


@router.patch("/{trip_id}/assign-driver", response_model=TripResponse)
async def assign_driver(
    body: DriverAssign,
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_role([UserRole.ADMIN, UserRole.OWNER])),
    db: AsyncSession = Depends(get_db)
):
    trip = await TripLedger.assign_driver(db, trip_id, body.driver_id, current_user)
    return TripResponse.model_validate(trip)


@router.post("/{trip_id}/review", response_model=TripResponse)
async def review_trip(
    body: TripReview,
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_role([UserRole.CUSTOMER, UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    trip = await TripLedger.add_review(db, trip_id, body, current_user)
    return TripResponse.model_validate(trip)


@router.post("/{trip_id}/issues", response_model=TripIssueResponse, status_code=status.HTTP_201_CREATED)
async def report_issue(
    body: TripIssueCreate,
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_role([UserRole.CUSTOMER, UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    issue = await TripLedger.report_issue(db, trip_id, body.description, current_user)
    return TripIssueResponse.model_validate(issue)
