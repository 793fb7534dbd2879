"""
In-app messages for booking and trip lifecycle events.
"""

import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.sql import func

from fleet_rental.app.db.session import Base


class NotificationType(str, enum.Enum):
    INFO = "INFO"
    BOOKING_CONFIRMATION = "BOOKING_CONFIRMATION"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    TRIP_COMPLETED = "TRIP_COMPLETED"
    DRIVER_ASSIGNMENT = "DRIVER_ASSIGNMENT"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    type = Column(Enum(NotificationType), default=NotificationType.INFO, nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    # booking_id / trip_id / vehicle_id of the event
    metadata_payload = Column(JSON, nullable=True)

    is_read = Column(Boolean, default=False, nullable=False, index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Notification id={self.id} user_id={self.user_id} type={self.type}>"
