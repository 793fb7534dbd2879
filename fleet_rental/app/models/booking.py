"""
Booking database model.

A booking reserves one vehicle for one interval and carries an immutable pricing snapshot.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum, JSON, Index
from sqlalchemy.sql import func
from fleet_rental.app.db.session import Base
from fleet_rental.app.models.mixins import SoftDeleteMixin
from fleet_rental.app.models.booking_enums import BookingStatus, BookingType


class Booking(SoftDeleteMixin, Base):
    """
    Booking model.

    Pricing columns are written once at creation and never recomputed from the
    vehicle's live rate. Cancellation columns are set only when status is CANCELLED.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # References
    customer_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=False, index=True)

    # Interval
    booking_type = Column(Enum(BookingType), default=BookingType.DAILY, nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    duration_days = Column(Integer, default=0, nullable=False)
    duration_hours = Column(Integer, default=0, nullable=False)

    # Locations ({"address", "city", "state", "zip_code", "latitude", "longitude"})
    pickup_location = Column(JSON, nullable=False)
    dropoff_location = Column(JSON, nullable=True)

    # Pricing snapshot
    base_price = Column(Float, nullable=False)
    taxes = Column(Float, default=0, nullable=False)
    discount = Column(Float, default=0, nullable=False)
    total_price = Column(Float, nullable=False)

    # Status
    status = Column(Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False, index=True)
    special_requests = Column(String(500), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)

    # Cancellation
    cancellation_reason = Column(String(500), nullable=True)
    cancelled_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index('ix_bookings_vehicle_interval', 'vehicle_id', 'start_date', 'end_date'),
    )

    def __repr__(self):
        return f"<Booking(id={self.id}, vehicle_id={self.vehicle_id}, status='{self.status.value}')>"
