"""
Soft delete support shared by users, vehicles, bookings, trips and driver assignments.
"""

from sqlalchemy import Column, Boolean, DateTime
from sqlalchemy.sql import false

from fleet_rental.app.core.timeutils import utc_now


class SoftDeleteMixin:
    """Tombstone columns. Rows are hidden from default reads, never removed."""

    is_deleted = Column(Boolean, default=False, server_default=false(), nullable=False, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    def mark_deleted(self) -> None:
        self.is_deleted = True
        self.deleted_at = utc_now()


def not_deleted(model):
    """Filter clause excluding soft-deleted rows of ``model``."""
    return model.is_deleted.is_(False)
