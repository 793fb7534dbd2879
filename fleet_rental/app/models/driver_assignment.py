"""
Driver Assignment database model.

Approval relationship letting a driver operate a specific vehicle.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, Index
from sqlalchemy.sql import func
from fleet_rental.app.db.session import Base
from fleet_rental.app.models.mixins import SoftDeleteMixin
from fleet_rental.app.models.driver_assignment_enums import DriverAssignmentStatus


class DriverAssignment(SoftDeleteMixin, Base):
    """
    Driver Assignment model.

    Created by the driver (PENDING), reviewed by the vehicle owner or an admin.
    """
    __tablename__ = "driver_assignments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    driver_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=False, index=True)

    status = Column(
        Enum(DriverAssignmentStatus),
        default=DriverAssignmentStatus.PENDING,
        nullable=False,
        index=True
    )
    notes = Column(String(500), nullable=True)

    # Review
    reviewed_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index('ix_driver_assignments_driver_vehicle_status', 'driver_id', 'vehicle_id', 'status'),
    )

    def __repr__(self):
        return f"<DriverAssignment(id={self.id}, driver_id={self.driver_id}, vehicle_id={self.vehicle_id}, status='{self.status.value}')>"
