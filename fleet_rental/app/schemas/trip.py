"""
Trip schemas.

Schemas for trip execution, driver assignment, reviews and issue reports.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from fleet_rental.app.models.trip_enums import TripStatus, TripIssueStatus
from fleet_rental.app.schemas.booking import Location


class TripStatusUpdate(BaseModel):
    """
    Schema for moving a trip through its lifecycle.

    Start fields apply to scheduled -> in_progress, end fields to
    in_progress -> completed. Unrelated fields are ignored.
    """
    status: TripStatus
    start_location: Optional[Location] = None
    end_location: Optional[Location] = None
    odometer_start: Optional[float] = Field(None, ge=0)
    odometer_end: Optional[float] = Field(None, ge=0)
    fuel_level_start: Optional[float] = Field(None, ge=0, le=100)
    fuel_level_end: Optional[float] = Field(None, ge=0, le=100)
    notes: Optional[str] = Field(None, max_length=1000)


class DriverAssign(BaseModel):
    """Schema for assigning a driver to a trip."""
    driver_id: int


class TripReview(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=1000)


class TripIssueCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=1000)


class TripIssueResponse(BaseModel):
    id: int
    trip_id: int
    reported_by_id: int
    description: str
    status: TripIssueStatus
    reported_at: datetime
    resolved_at: Optional[datetime]

    class Config:
        from_attributes = True


class TripResponse(BaseModel):
    """Schema for trip response."""
    id: int
    booking_id: int
    vehicle_id: int
    customer_id: int
    driver_id: Optional[int]
    status: TripStatus
    start_location: Optional[Location]
    end_location: Optional[Location]
    odometer_start: Optional[float]
    odometer_end: Optional[float]
    fuel_level_start: Optional[float]
    fuel_level_end: Optional[float]
    planned_distance_km: float
    actual_distance_km: float
    revenue: float
    customer_rating: Optional[int]
    customer_review: Optional[str]
    driver_rating: Optional[int]
    driver_review: Optional[str]
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime]
    completed_at: Optional[datetime]

    class Config:
        from_attributes = True


class TripListResponse(BaseModel):
    """Schema for paginated trip list."""
    trips: List[TripResponse]
    total: int
    page: int
    page_size: int
