"""
Driver assignment enumerations.
"""

import enum


class DriverAssignmentStatus(str, enum.Enum):
    """Driver-to-vehicle assignment status."""
    PENDING = "pending"  # Submitted by the driver
    APPROVED = "approved"
    REJECTED = "rejected"
    ACTIVE = "active"
    INACTIVE = "inactive"


# A driver may hold at most one of these per vehicle
OPEN_ASSIGNMENT_STATUSES = (
    DriverAssignmentStatus.PENDING,
    DriverAssignmentStatus.APPROVED,
    DriverAssignmentStatus.ACTIVE,
)

# Statuses that let a driver be put on a trip for the vehicle
DRIVABLE_ASSIGNMENT_STATUSES = (
    DriverAssignmentStatus.APPROVED,
    DriverAssignmentStatus.ACTIVE,
)
