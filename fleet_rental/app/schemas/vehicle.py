"""
Vehicle Pydantic schemas.

Defines request and response models for the fleet registry.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List
from fleet_rental.app.models.vehicle_enums import VehicleAvailability, VehicleType, FuelType


class VehicleCreate(BaseModel):
    """Schema for registering a new vehicle."""
    make: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    year: int = Field(..., ge=1900, description="Model year")
    registration_number: str = Field(..., min_length=1, max_length=50, description="Unique registration number")
    vehicle_type: VehicleType
    fuel_type: FuelType
    passenger_capacity: int = Field(..., ge=1)
    luggage_capacity: int = Field(default=2, ge=0)
    color: Optional[str] = Field(None, max_length=50)
    mileage: float = Field(default=0, ge=0)
    features: List[str] = Field(default_factory=list)
    city: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=255)
    price_per_day: float = Field(..., ge=0, description="Daily rate")
    price_per_hour: Optional[float] = Field(None, ge=0, description="Hourly rate")

    @field_validator("registration_number")
    @classmethod
    def normalize_registration(cls, value: str) -> str:
        return value.strip().upper()


class VehicleUpdate(BaseModel):
    """Schema for updating an existing vehicle. Availability has its own endpoint."""
    make: Optional[str] = Field(None, min_length=1, max_length=100)
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    year: Optional[int] = Field(None, ge=1900)
    vehicle_type: Optional[VehicleType] = None
    fuel_type: Optional[FuelType] = None
    passenger_capacity: Optional[int] = Field(None, ge=1)
    luggage_capacity: Optional[int] = Field(None, ge=0)
    color: Optional[str] = Field(None, max_length=50)
    mileage: Optional[float] = Field(None, ge=0)
    features: Optional[List[str]] = None
    city: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=255)
    price_per_day: Optional[float] = Field(None, ge=0)
    price_per_hour: Optional[float] = Field(None, ge=0)


class VehicleAvailabilityUpdate(BaseModel):
    availability: VehicleAvailability
    reason: Optional[str] = Field(None, max_length=500)


class VehicleResponse(BaseModel):
    """Schema for vehicle response."""
    id: int
    owner_id: int
    make: str
    model: str
    year: int
    registration_number: str
    vehicle_type: VehicleType
    fuel_type: FuelType
    passenger_capacity: int
    luggage_capacity: int
    color: Optional[str]
    mileage: float
    features: Optional[List[str]]
    city: Optional[str]
    address: Optional[str]
    price_per_day: float
    price_per_hour: Optional[float]
    availability: VehicleAvailability
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class VehicleListResponse(BaseModel):
    """Schema for paginated vehicle list."""
    vehicles: List[VehicleResponse]
    total: int
    page: int
    page_size: int
