"""
Trip issue database model.

Problems reported on a trip by its customer or driver.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from fleet_rental.app.db.session import Base
from fleet_rental.app.models.trip_enums import TripIssueStatus


class TripIssue(Base):
    __tablename__ = "trip_issues"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    trip_id = Column(Integer, ForeignKey('trips.id'), nullable=False, index=True)
    reported_by_id = Column(Integer, ForeignKey('users.id'), nullable=False)

    description = Column(String(1000), nullable=False)
    status = Column(Enum(TripIssueStatus), default=TripIssueStatus.OPEN, nullable=False)

    reported_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<TripIssue(id={self.id}, trip_id={self.trip_id}, status='{self.status.value}')>"
