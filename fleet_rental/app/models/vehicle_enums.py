"""
Vehicle-related enumerations.
"""

import enum


class VehicleAvailability(str, enum.Enum):
    """Vehicle availability flag."""
    AVAILABLE = "available"
    BOOKED = "booked"  # Set by the booking flow only
    MAINTENANCE = "maintenance"
    UNAVAILABLE = "unavailable"  # Also set on soft delete


class VehicleType(str, enum.Enum):
    SEDAN = "sedan"
    SUV = "suv"
    VAN = "van"
    TRUCK = "truck"
    LUXURY = "luxury"
    ELECTRIC = "electric"
    HYBRID = "hybrid"


class FuelType(str, enum.Enum):
    PETROL = "petrol"
    DIESEL = "diesel"
    ELECTRIC = "electric"
    HYBRID = "hybrid"
    CNG = "cng"
