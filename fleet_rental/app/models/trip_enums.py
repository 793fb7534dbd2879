"""
Trip-related enumerations.
"""

import enum


class TripStatus(str, enum.Enum):
    """Trip status enumeration."""
    SCHEDULED = "scheduled"  # Created with the booking, driver optional
    IN_PROGRESS = "in_progress"  # Vehicle picked up
    COMPLETED = "completed"  # Revenue recorded, booking completed
    CANCELLED = "cancelled"


class TripIssueStatus(str, enum.Enum):
    """Trip issue status enumeration."""
    OPEN = "open"
    RESOLVED = "resolved"
    CLOSED = "closed"


TERMINAL_TRIP_STATUSES = (TripStatus.COMPLETED, TripStatus.CANCELLED)
