"""
The caller's own notification inbox.
"""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.core.dependencies import get_current_user
from fleet_rental.app.core.exceptions import ResourceNotFoundError
from fleet_rental.app.db.session import get_db
from fleet_rental.app.schemas.notification import NotificationResponse
from fleet_rental.app.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await NotificationService.list_for_user(
        db, current_user["user_id"], unread_only=unread_only, limit=limit
    )


@router.patch("/read-all")
async def mark_all_notifications_read(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    updated = await NotificationService.mark_all_read(db, current_user["user_id"])
    await db.commit()
    return {"success": True, "updated": updated}


@router.patch("/{notification_id}/read")
async def mark_notification_read(
    notification_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    if not await NotificationService.mark_read(db, notification_id, current_user["user_id"]):
        raise ResourceNotFoundError("Notification", notification_id)
    await db.commit()
    return {"success": True}
