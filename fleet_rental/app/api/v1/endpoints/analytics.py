"""
Analytics API Endpoints.

Role-specific dashboards. The admin dashboard lives under /admin.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.core.guards import require_role
from fleet_rental.app.db.session import get_db
from fleet_rental.app.models.enums import UserRole
from fleet_rental.app.schemas.analytics import OwnerStats, DriverStats, CustomerStats
from fleet_rental.app.services.analytics import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.get("/owner", response_model=OwnerStats)
async def owner_analytics(
    days: int = Query(30, ge=1, le=3650, description="Revenue window in days"),
    current_user: dict = Depends(require_role([UserRole.OWNER])),
    db: AsyncSession = Depends(get_db)
):
    return await AnalyticsService.get_owner_stats(db, current_user["user_id"], days=days)


@router.get("/driver", response_model=DriverStats)
async def driver_analytics(
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    return await AnalyticsService.get_driver_stats(db, current_user["user_id"])


@router.get("/customer", response_model=CustomerStats)
async def customer_analytics(
    current_user: dict = Depends(require_role([UserRole.CUSTOMER])),
    db: AsyncSession = Depends(get_db)
):
    return await AnalyticsService.get_customer_stats(db, current_user["user_id"])
