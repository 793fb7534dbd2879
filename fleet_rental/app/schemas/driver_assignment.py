"""
Driver Assignment schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from fleet_rental.app.models.driver_assignment_enums import DriverAssignmentStatus


class DriverAssignmentCreate(BaseModel):
    """Schema for a driver applying to operate a vehicle."""
    vehicle_id: int
    notes: Optional[str] = Field(None, max_length=500)


class DriverAssignmentReview(BaseModel):
    """Owner/admin decision. Only APPROVED or REJECTED are accepted."""
    status: DriverAssignmentStatus
    notes: Optional[str] = Field(None, max_length=500)


class DriverAssignmentStatusUpdate(BaseModel):
    """Activate or deactivate an approved assignment."""
    status: DriverAssignmentStatus


class DriverAssignmentResponse(BaseModel):
    id: int
    driver_id: int
    vehicle_id: int
    status: DriverAssignmentStatus
    notes: Optional[str]
    reviewed_by_id: Optional[int]
    reviewed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DriverAssignmentListResponse(BaseModel):
    assignments: List[DriverAssignmentResponse]
    total: int
