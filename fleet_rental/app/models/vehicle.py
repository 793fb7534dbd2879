"""
Vehicle database model.

Owners register vehicles with pricing; availability is toggled by the booking flow.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum, JSON
from sqlalchemy.sql import func
from fleet_rental.app.db.session import Base
from fleet_rental.app.models.mixins import SoftDeleteMixin
from fleet_rental.app.models.vehicle_enums import VehicleAvailability, VehicleType, FuelType


class Vehicle(SoftDeleteMixin, Base):
    """
    Vehicle model.

    Availability is a flag, not a view over bookings: it flips to BOOKED when a
    booking is created and back to AVAILABLE on cancellation or trip completion.
    """
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Ownership - Vehicle belongs to an owner
    owner_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    # Identification
    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    registration_number = Column(String(50), unique=True, nullable=False, index=True)
    vehicle_type = Column(Enum(VehicleType), nullable=False, index=True)
    fuel_type = Column(Enum(FuelType), nullable=False)
    color = Column(String(50), nullable=True)
    mileage = Column(Float, default=0, nullable=False)

    # Capacity
    passenger_capacity = Column(Integer, nullable=False)
    luggage_capacity = Column(Integer, default=2, nullable=False)
    features = Column(JSON, nullable=True)

    # Location
    city = Column(String(100), nullable=True, index=True)
    address = Column(String(255), nullable=True)

    # Pricing
    price_per_day = Column(Float, nullable=False, index=True)
    price_per_hour = Column(Float, nullable=True)

    # Status
    availability = Column(
        Enum(VehicleAvailability),
        default=VehicleAvailability.AVAILABLE,
        nullable=False,
        index=True
    )

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Vehicle(id={self.id}, registration='{self.registration_number}', owner_id={self.owner_id})>"
