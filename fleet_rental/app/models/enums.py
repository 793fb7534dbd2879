"""
User roles enumeration.

Defines the role types for the fleet rental platform.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        CUSTOMER: Books vehicles (default role)
        DRIVER: Registers for vehicles and executes trips
        OWNER: Owns vehicles and reviews driver registrations
        ADMIN: Supreme user with system-level access
    """
    CUSTOMER = "customer"
    DRIVER = "driver"
    OWNER = "owner"
    ADMIN = "admin"
