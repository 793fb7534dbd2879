"""
In-app notifications for booking and trip events.

Lifecycle messages are sent after the triggering change has been committed.
Delivery failures are logged and rolled back; they never undo that change.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.core.timeutils import utc_now
from fleet_rental.app.models.notification import Notification, NotificationType

logger = logging.getLogger("fleet_rental.notifications")


class NotificationService:

    @staticmethod
    async def send(
        db: AsyncSession,
        user_id: int,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[Notification]:
        """
        Store and commit one notification. Returns None if it could not be stored.

        A failed delivery rolls the session back, which expires everything
        loaded in it: callers refresh what they return after calling this.
        """
        notification = Notification(
            user_id=user_id, type=type, title=title, message=message, metadata_payload=metadata
        )
        try:
            db.add(notification)
            await db.commit()
        except Exception:
            logger.exception("Could not deliver %s to user %s", type.value, user_id)
            await db.rollback()
            return None
        return notification

    @staticmethod
    async def send_booking_confirmation(db: AsyncSession, booking, vehicle) -> Optional[Notification]:
        message = (
            f"Your booking #{booking.id} for {vehicle.make} {vehicle.model} "
            f"({vehicle.registration_number}) from {booking.start_date:%Y-%m-%d %H:%M} "
            f"to {booking.end_date:%Y-%m-%d %H:%M} is pending confirmation. "
            f"Total: {booking.total_price:.2f}"
        )
        return await NotificationService.send(
            db, booking.customer_id, "Booking received", message,
            type=NotificationType.BOOKING_CONFIRMATION,
            metadata={"booking_id": booking.id, "vehicle_id": vehicle.id},
        )

    @staticmethod
    async def send_booking_cancellation(db: AsyncSession, booking) -> Optional[Notification]:
        message = (
            f"Your booking #{booking.id} has been cancelled. "
            f"Reason: {booking.cancellation_reason or 'No reason given'}"
        )
        return await NotificationService.send(
            db, booking.customer_id, "Booking cancelled", message,
            type=NotificationType.BOOKING_CANCELLED,
            metadata={"booking_id": booking.id},
        )

    @staticmethod
    async def send_trip_completion(db: AsyncSession, trip) -> Optional[Notification]:
        message = (
            f"Your trip #{trip.id} is complete. Distance: {trip.actual_distance_km:.1f} km, "
            f"amount: {trip.revenue:.2f}"
        )
        return await NotificationService.send(
            db, trip.customer_id, "Trip completed", message,
            type=NotificationType.TRIP_COMPLETED,
            metadata={"trip_id": trip.id, "booking_id": trip.booking_id},
        )

    @staticmethod
    async def send_assignment_review(db: AsyncSession, assignment) -> Optional[Notification]:
        outcome = assignment.status.value
        message = f"Your request to drive vehicle #{assignment.vehicle_id} was {outcome}."
        if assignment.notes:
            message += f" Note: {assignment.notes}"
        return await NotificationService.send(
            db, assignment.driver_id, f"Driver request {outcome}", message,
            type=NotificationType.DRIVER_ASSIGNMENT,
            metadata={"assignment_id": assignment.id, "vehicle_id": assignment.vehicle_id},
        )

    @staticmethod
    async def list_for_user(
        db: AsyncSession,
        user_id: int,
        unread_only: bool = False,
        limit: int = 50
    ) -> List[Notification]:
        """Newest first."""
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))

        result = await db.execute(
            query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def _mark_read(db: AsyncSession, user_id: int, *conditions) -> int:
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, *conditions)
            .values(is_read=True, read_at=utc_now())
        )
        return result.rowcount

    @staticmethod
    async def mark_read(db: AsyncSession, notification_id: int, user_id: int) -> bool:
        """False when the notification does not exist or belongs to someone else."""
        return await NotificationService._mark_read(db, user_id, Notification.id == notification_id) > 0

    @staticmethod
    async def mark_all_read(db: AsyncSession, user_id: int) -> int:
        return await NotificationService._mark_read(db, user_id, Notification.is_read.is_(False))
