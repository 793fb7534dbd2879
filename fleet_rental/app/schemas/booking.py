"""
Booking Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from fleet_rental.app.models.booking_enums import BookingStatus, BookingType
from fleet_rental.app.models.vehicle_enums import VehicleType


class Location(BaseModel):
    """Pickup / dropoff location. Only the address is required."""
    address: str = Field(..., min_length=1, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class BookingCreate(BaseModel):
    """
    Schema for creating a booking.

    Date ordering and overlap are checked by the booking service so that
    they surface as domain errors rather than request validation errors.
    """
    vehicle_id: int
    start_date: datetime
    end_date: datetime
    pickup_location: Location
    dropoff_location: Optional[Location] = None
    booking_type: BookingType = BookingType.DAILY
    special_requests: Optional[str] = Field(None, max_length=500)


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    cancellation_reason: Optional[str] = Field(None, max_length=500)


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class BookingResponse(BaseModel):
    """Schema for booking response."""
    id: int
    customer_id: int
    vehicle_id: int
    booking_type: BookingType
    start_date: datetime
    end_date: datetime
    pickup_location: Location
    dropoff_location: Optional[Location]
    duration_days: int
    duration_hours: int
    base_price: float
    taxes: float
    discount: float
    total_price: float
    status: BookingStatus
    special_requests: Optional[str]
    confirmed_at: Optional[datetime]
    cancellation_reason: Optional[str]
    cancelled_by_id: Optional[int]
    cancelled_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BookingListResponse(BaseModel):
    """Schema for paginated booking list."""
    bookings: List[BookingResponse]
    total: int
    page: int
    page_size: int


class BookedVehicle(BaseModel):
    id: int
    make: str
    model: str
    year: int
    registration_number: str
    vehicle_type: VehicleType

    class Config:
        from_attributes = True


class BookingHistoryItem(BookingResponse):
    vehicle: BookedVehicle


class BookingHistoryResponse(BaseModel):
    """A customer's own bookings with the vehicle each one is for, newest first."""
    bookings: List[BookingHistoryItem]
    total: int
