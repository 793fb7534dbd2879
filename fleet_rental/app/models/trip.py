"""
Trip database model.

Every booking gets exactly one trip, created in the same transaction.
"""

from sqlalchemy import Column, Integer, String, Float, Text, ForeignKey, DateTime, Enum, JSON
from sqlalchemy.sql import func
from fleet_rental.app.db.session import Base
from fleet_rental.app.models.mixins import SoftDeleteMixin
from fleet_rental.app.models.trip_enums import TripStatus


class Trip(SoftDeleteMixin, Base):
    """
    Trip model.

    The operational record of a booking: driver, telemetry and revenue.
    Revenue stays 0 until completion, when it is copied from the booking total.
    """
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # References (booking is 1:1)
    booking_id = Column(Integer, ForeignKey('bookings.id'), nullable=False, unique=True, index=True)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    # Driver assignment (optional initially, can be assigned later)
    driver_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)

    # Status
    status = Column(Enum(TripStatus), default=TripStatus.SCHEDULED, nullable=False, index=True)

    # Telemetry
    start_location = Column(JSON, nullable=True)
    end_location = Column(JSON, nullable=True)
    odometer_start = Column(Float, nullable=True)
    odometer_end = Column(Float, nullable=True)
    fuel_level_start = Column(Float, nullable=True)  # percentage
    fuel_level_end = Column(Float, nullable=True)  # percentage
    planned_distance_km = Column(Float, default=0, nullable=False)
    actual_distance_km = Column(Float, default=0, nullable=False)

    # Financials
    revenue = Column(Float, default=0, nullable=False)

    # Ratings
    customer_rating = Column(Integer, nullable=True)
    customer_review = Column(String(1000), nullable=True)
    driver_rating = Column(Integer, nullable=True)
    driver_review = Column(String(1000), nullable=True)

    notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Trip(id={self.id}, booking_id={self.booking_id}, status='{self.status.value}')>"
