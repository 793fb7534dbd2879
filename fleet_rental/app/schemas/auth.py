"""
Request and response bodies for /auth and user listings.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from fleet_rental.app.models.enums import UserRole


class UserRegister(BaseModel):
    """
    Self-registration. ``admin`` is rejected by the endpoint, and a driver
    must supply ``license_number``.
    """
    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.CUSTOMER
    phone: Optional[str] = Field(None, pattern=r"^[0-9]{10}$", description="10 digits")
    license_number: Optional[str] = Field(None, max_length=50)
    business_name: Optional[str] = Field(None, max_length=255)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user_id: int
    name: str
    email: str
    role: UserRole


class RefreshRequest(BaseModel):
    refresh_token: str


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserDetailsUpdate(BaseModel):
    """Contact details a user may change on their own account. Omitted fields stay as they are."""
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, pattern=r"^[0-9]{10}$")


class ProfileUpdate(BaseModel):
    """
    Profile edit via /users/{id}. Licence and business fields are applied
    only for drivers and owners respectively.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    phone: Optional[str] = Field(None, pattern=r"^[0-9]{10}$")
    license_number: Optional[str] = Field(None, min_length=1, max_length=50)
    business_name: Optional[str] = Field(None, max_length=255)


class PasswordUpdate(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    phone: Optional[str] = None
    license_number: Optional[str] = None
    business_name: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
