"""
Analytics schemas.
"""

from pydantic import BaseModel
from typing import List, Optional


class MetricTuple(BaseModel):
    """Generic label/value pair used for distributions and time series."""
    label: str
    value: float | int


class VehiclePerformance(BaseModel):
    """Per-vehicle trip count and revenue."""
    vehicle_id: int
    registration_number: str
    total_trips: int
    total_revenue: float
    availability: str


class OwnerStats(BaseModel):
    """Dashboard stats for owners over a trailing day window."""
    period_days: int
    total_vehicles: int
    total_revenue: float
    total_bookings: int
    cancelled_bookings: int
    completed_trips: int
    vehicles: List[VehiclePerformance]


class DriverStats(BaseModel):
    total_trips: int
    completed_trips: int
    total_earnings: float
    average_rating: Optional[float]
    total_distance_km: float


class CustomerStats(BaseModel):
    total_bookings: int
    completed_bookings: int
    cancelled_bookings: int
    total_spent: float
    favorite_vehicle_type: Optional[str]


class AdminDashboardStats(BaseModel):
    """System-wide stats for admins."""
    total_vehicles: int
    total_drivers: int
    total_customers: int
    total_trips: int
    completed_trips: int
    cancelled_bookings: int
    active_bookings: int
    total_revenue: float
    monthly_revenue: List[MetricTuple]
    vehicle_type_distribution: List[MetricTuple]
