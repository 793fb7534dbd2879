"""
Audit Log Database Model.

Tracks security events and lifecycle changes on bookings, vehicles and trips.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from fleet_rental.app.db.session import Base


class AuditLog(Base):
    """
    Audit log entry.

    actor_id is None for system actions. target_user_id is set for
    user management actions only; other targets go into meta_data.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    actor_id = Column(Integer, index=True, nullable=True)
    actor_email = Column(String(255), nullable=True)

    action = Column(String(100), nullable=False, index=True)

    target_user_id = Column(Integer, index=True, nullable=True)

    meta_data = Column(JSON, nullable=True)

    ip_address = Column(String(50), nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_email})>"
