"""
Booking lifecycle manager.

Owns the booking state machine and its side effects on the fleet registry
and trip ledger:

    PENDING -> CONFIRMED -> IN_PROGRESS -> COMPLETED
       \            \             \
        +------------+-------------+--> CANCELLED

Creation runs as one transaction that holds a row lock on the vehicle, so
the availability check, the overlap check and the writes cannot interleave
with a concurrent creation for the same vehicle.
"""

import logging
from typing import Optional, List, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.core.exceptions import (
    ResourceNotFoundError,
    ConflictError,
    InvalidArgumentError,
    InvalidStateError,
    InsufficientPermissionsError,
)
from fleet_rental.app.core.guards import is_admin
from fleet_rental.app.core.timeutils import utc_now, to_naive_utc
from fleet_rental.app.models.booking import Booking
from fleet_rental.app.models.booking_enums import (
    BookingStatus,
    ACTIVE_BOOKING_STATUSES,
    TERMINAL_BOOKING_STATUSES,
)
from fleet_rental.app.models.enums import UserRole
from fleet_rental.app.models.mixins import not_deleted
from fleet_rental.app.models.trip import Trip
from fleet_rental.app.models.trip_enums import TripStatus, TERMINAL_TRIP_STATUSES
from fleet_rental.app.models.vehicle import Vehicle
from fleet_rental.app.models.vehicle_enums import VehicleAvailability
from fleet_rental.app.schemas.booking import BookingCreate
from fleet_rental.app.services.audit import record_event, AuditAction
from fleet_rental.app.services.cache import CacheService
from fleet_rental.app.services.fleet_registry import FleetRegistry
from fleet_rental.app.services.notification_service import NotificationService
from fleet_rental.app.services.pricing import calculate_price

logger = logging.getLogger("fleet_rental.bookings")

BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED},
    BookingStatus.IN_PROGRESS: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
}

ADMIN_DELETED_REASON = "deleted by admin"


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in BOOKING_TRANSITIONS.get(current, set())


class BookingService:

    @staticmethod
    async def create_booking(db: AsyncSession, data: BookingCreate, current_user: dict) -> Booking:
        """
        Create a PENDING booking, flip the vehicle to BOOKED and schedule its trip.

        Checks, in order:
        1. Vehicle exists and is not deleted (ResourceNotFoundError)
        2. Vehicle is AVAILABLE (ConflictError)
        3. start_date is not in the past (InvalidArgumentError)
        4. end_date is after start_date (InvalidArgumentError)
        5. No active booking on the vehicle overlaps [start, end] (ConflictError)

        Any failure rolls back the whole unit.
        """
        customer_id = current_user["user_id"]
        start = to_naive_utc(data.start_date)
        end = to_naive_utc(data.end_date)

        try:
            result = await db.execute(
                select(Vehicle)
                .where(Vehicle.id == data.vehicle_id, not_deleted(Vehicle))
                .with_for_update()
            )
            vehicle = result.scalar_one_or_none()
            if not vehicle:
                raise ResourceNotFoundError("Vehicle", data.vehicle_id)

            if vehicle.availability != VehicleAvailability.AVAILABLE:
                raise ConflictError(
                    "Vehicle is not available for booking",
                    details={"vehicle_id": vehicle.id, "availability": vehicle.availability.value},
                )

            if start < utc_now():
                raise InvalidArgumentError("Start date cannot be in the past")

            if end <= start:
                raise InvalidArgumentError("End date must be after start date")

            overlap = await db.execute(
                select(Booking.id).where(
                    Booking.vehicle_id == vehicle.id,
                    Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                    not_deleted(Booking),
                    Booking.start_date <= end,
                    Booking.end_date >= start,
                ).limit(1)
            )
            conflicting_id = overlap.scalar_one_or_none()
            if conflicting_id is not None:
                raise ConflictError(
                    "Vehicle is already booked for the selected dates",
                    details={"vehicle_id": vehicle.id, "conflicting_booking_id": conflicting_id},
                )

            quote = calculate_price(
                start,
                end,
                price_per_day=vehicle.price_per_day,
                price_per_hour=vehicle.price_per_hour,
                booking_type=data.booking_type,
            )

            booking = Booking(
                customer_id=customer_id,
                vehicle_id=vehicle.id,
                booking_type=data.booking_type,
                start_date=start,
                end_date=end,
                pickup_location=data.pickup_location.model_dump(),
                dropoff_location=data.dropoff_location.model_dump() if data.dropoff_location else None,
                duration_days=quote.duration_days,
                duration_hours=quote.duration_hours,
                base_price=quote.base_price,
                taxes=quote.taxes,
                discount=quote.discount,
                total_price=quote.total_price,
                status=BookingStatus.PENDING,
                special_requests=data.special_requests,
            )
            db.add(booking)
            await db.flush()

            await FleetRegistry.mark_booked(db, vehicle.id)

            trip = Trip(
                booking_id=booking.id,
                vehicle_id=vehicle.id,
                customer_id=customer_id,
                status=TripStatus.SCHEDULED,
            )
            db.add(trip)

            record_event(
                db,
                AuditAction.BOOKING_CREATED,
                actor_id=customer_id,
                actor_email=current_user.get("sub"),
                metadata={"booking_id": booking.id, "vehicle_id": vehicle.id, "total_price": booking.total_price},
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Booking %s created for vehicle %s by customer %s (total %.2f)",
            booking.id, vehicle.id, customer_id, booking.total_price
        )

        await CacheService.clear_vehicle_caches()
        await NotificationService.send_booking_confirmation(db, booking, vehicle)
        await db.refresh(booking)
        return booking

    @staticmethod
    async def _load(db: AsyncSession, booking_id: int) -> Tuple[Booking, Vehicle]:
        result = await db.execute(
            select(Booking).where(Booking.id == booking_id, not_deleted(Booking))
        )
        booking = result.scalar_one_or_none()
        if not booking:
            raise ResourceNotFoundError("Booking", booking_id)

        vehicle = await FleetRegistry.get_vehicle(db, booking.vehicle_id, include_deleted=True)
        return booking, vehicle

    @staticmethod
    def can_access(booking: Booking, vehicle: Vehicle, current_user: dict) -> bool:
        """Admin, the booking's customer, or the owner of the booked vehicle."""
        if is_admin(current_user):
            return True
        user_id = current_user.get("user_id")
        return user_id in (booking.customer_id, vehicle.owner_id)

    @staticmethod
    def _authorize(booking: Booking, vehicle: Vehicle, current_user: dict, action: str) -> None:
        if not BookingService.can_access(booking, vehicle, current_user):
            raise InsufficientPermissionsError(
                f"Not authorized to {action} this booking",
                details={"booking_id": booking.id},
            )

    @staticmethod
    async def get_booking(db: AsyncSession, booking_id: int, current_user: dict) -> Booking:
        booking, vehicle = await BookingService._load(db, booking_id)
        BookingService._authorize(booking, vehicle, current_user, "view")
        return booking

    @staticmethod
    async def list_bookings(
        db: AsyncSession,
        current_user: dict,
        status: Optional[BookingStatus] = None,
        page: int = 1,
        page_size: int = 20,
        include_deleted: bool = False,
    ) -> Tuple[List[Booking], int]:
        """
        Bookings visible to the user: customers see their own, owners those on
        their vehicles, drivers those whose trip is assigned to them, admins all.
        """
        user_id = current_user["user_id"]
        role = current_user.get("role")

        query = select(Booking)
        if not include_deleted:
            query = query.where(not_deleted(Booking))

        if role == UserRole.CUSTOMER.value:
            query = query.where(Booking.customer_id == user_id)
        elif role == UserRole.OWNER.value:
            query = query.where(Booking.vehicle_id.in_(select(Vehicle.id).where(Vehicle.owner_id == user_id)))
        elif role == UserRole.DRIVER.value:
            query = query.where(Booking.id.in_(select(Trip.booking_id).where(Trip.driver_id == user_id)))
        elif role != UserRole.ADMIN.value:
            raise InsufficientPermissionsError("Unknown role")

        if status:
            query = query.where(Booking.status == status)

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar()

        query = query.order_by(Booking.created_at.desc(), Booking.id.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await db.execute(query)

        return list(result.scalars().all()), total

    @staticmethod
    async def booking_history(db: AsyncSession, customer_id: int) -> List[Tuple[Booking, Vehicle]]:
        """The customer's bookings paired with their vehicles, newest first."""
        result = await db.execute(
            select(Booking, Vehicle)
            .join(Vehicle, Vehicle.id == Booking.vehicle_id)
            .where(Booking.customer_id == customer_id, not_deleted(Booking))
            .order_by(Booking.created_at.desc(), Booking.id.desc())
        )
        return [(booking, vehicle) for booking, vehicle in result.all()]

    @staticmethod
    async def _apply_cancellation(
        db: AsyncSession,
        booking: Booking,
        actor_id: int,
        reason: Optional[str],
    ) -> None:
        """Stage the cancellation of a non-terminal booking and its side effects."""
        booking.status = BookingStatus.CANCELLED
        booking.cancellation_reason = reason
        booking.cancelled_by_id = actor_id
        booking.cancelled_at = utc_now()

        await FleetRegistry.mark_available(db, booking.vehicle_id)

        result = await db.execute(select(Trip).where(Trip.booking_id == booking.id))
        trip = result.scalar_one_or_none()
        if trip and trip.status not in TERMINAL_TRIP_STATUSES:
            trip.status = TripStatus.CANCELLED

    @staticmethod
    async def cancel_booking(
        db: AsyncSession,
        booking_id: int,
        current_user: dict,
        reason: Optional[str] = None,
    ) -> Booking:
        """
        Cancel a booking, release its vehicle and cancel its trip.

        Raises:
            ResourceNotFoundError: If the booking does not exist
            InvalidStateError: If the booking is already completed or cancelled
            InsufficientPermissionsError: If the user may not cancel it
        """
        booking, vehicle = await BookingService._load(db, booking_id)

        if booking.status in TERMINAL_BOOKING_STATUSES:
            raise InvalidStateError(
                f"Cannot cancel a {booking.status.value} booking",
                current_status=booking.status.value,
            )

        BookingService._authorize(booking, vehicle, current_user, "cancel")

        await BookingService._apply_cancellation(db, booking, current_user["user_id"], reason)
        record_event(
            db,
            AuditAction.BOOKING_CANCELLED,
            actor_id=current_user["user_id"],
            actor_email=current_user.get("sub"),
            metadata={"booking_id": booking.id, "reason": reason},
        )
        await db.commit()

        logger.info("Booking %s cancelled by user %s", booking.id, current_user["user_id"])
        await CacheService.clear_vehicle_caches()
        await NotificationService.send_booking_cancellation(db, booking)
        await db.refresh(booking)
        return booking

    @staticmethod
    async def update_status(
        db: AsyncSession,
        booking_id: int,
        new_status: BookingStatus,
        current_user: dict,
        reason: Optional[str] = None,
    ) -> Booking:
        """
        Move a booking along the transition table.

        CANCELLED runs the full cancel flow. CONFIRMED stamps confirmed_at.
        COMPLETED releases the vehicle.

        Raises:
            InvalidStateError: If the transition is not allowed
        """
        booking, vehicle = await BookingService._load(db, booking_id)
        BookingService._authorize(booking, vehicle, current_user, "update")

        if not can_transition(booking.status, new_status):
            raise InvalidStateError(
                f"Cannot change booking status from {booking.status.value} to {new_status.value}",
                current_status=booking.status.value,
            )

        if new_status == BookingStatus.CANCELLED:
            return await BookingService.cancel_booking(db, booking_id, current_user, reason)

        previous = booking.status
        booking.status = new_status
        if new_status == BookingStatus.CONFIRMED:
            booking.confirmed_at = utc_now()
        elif new_status == BookingStatus.COMPLETED:
            await FleetRegistry.mark_available(db, booking.vehicle_id)

        record_event(
            db,
            AuditAction.BOOKING_STATUS_CHANGED,
            actor_id=current_user["user_id"],
            actor_email=current_user.get("sub"),
            metadata={"booking_id": booking.id, "from": previous.value, "to": new_status.value},
        )
        await db.commit()
        await db.refresh(booking)

        logger.info("Booking %s status %s -> %s", booking.id, previous.value, new_status.value)
        if new_status == BookingStatus.COMPLETED:
            await CacheService.clear_vehicle_caches()
        return booking

    @staticmethod
    async def delete_booking(db: AsyncSession, booking_id: int, current_user: dict) -> Booking:
        """
        Admin soft delete. A still-open booking is cancelled first, with the
        usual release of its vehicle and trip.
        """
        booking, _ = await BookingService._load(db, booking_id)

        was_open = booking.status not in TERMINAL_BOOKING_STATUSES
        if was_open:
            await BookingService._apply_cancellation(db, booking, current_user["user_id"], ADMIN_DELETED_REASON)
        else:
            booking.status = BookingStatus.CANCELLED
        booking.mark_deleted()

        record_event(
            db,
            AuditAction.BOOKING_DELETED,
            actor_id=current_user["user_id"],
            actor_email=current_user.get("sub"),
            metadata={"booking_id": booking.id, "was_open": was_open},
        )
        await db.commit()

        logger.info("Booking %s deleted by admin %s", booking.id, current_user["user_id"])
        if was_open:
            await CacheService.clear_vehicle_caches()
        return booking
