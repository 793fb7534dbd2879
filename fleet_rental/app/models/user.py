"""
User database model.

This module defines the User SQLAlchemy model for authentication.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from sqlalchemy.sql import func
from fleet_rental.app.db.session import Base
from fleet_rental.app.models.enums import UserRole
from fleet_rental.app.models.mixins import SoftDeleteMixin


class User(SoftDeleteMixin, Base):
    """
    User model for authentication and user management.

    Drivers carry licence details, owners carry business details.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    role = Column(Enum(UserRole), default=UserRole.CUSTOMER, nullable=False, index=True)

    # Drivers
    license_number = Column(String(50), unique=True, nullable=True)

    # Owners
    business_name = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}')>"
