"""
Booking-related enumerations.
"""

import enum


class BookingStatus(str, enum.Enum):
    """Booking status enumeration."""
    PENDING = "pending"  # Created, awaiting confirmation
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BookingType(str, enum.Enum):
    """Pricing basis requested by the customer."""
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


# Statuses that hold the vehicle and take part in the overlap check
ACTIVE_BOOKING_STATUSES = (
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.IN_PROGRESS,
)

TERMINAL_BOOKING_STATUSES = (
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
)
