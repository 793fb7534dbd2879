"""
Trip ledger.

Trips are created by the booking service, one per booking. This module runs
them: status transitions with telemetry, revenue capture at completion,
driver assignment, reviews and issue reports.
"""

import logging
from typing import Optional, List, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.core.config import settings
from fleet_rental.app.core.exceptions import (
    ResourceNotFoundError,
    InvalidArgumentError,
    InvalidStateError,
    InsufficientPermissionsError,
)
from fleet_rental.app.core.guards import is_admin
from fleet_rental.app.core.timeutils import utc_now
from fleet_rental.app.models.booking import Booking
from fleet_rental.app.models.booking_enums import BookingStatus, TERMINAL_BOOKING_STATUSES
from fleet_rental.app.models.driver_assignment import DriverAssignment
from fleet_rental.app.models.driver_assignment_enums import DRIVABLE_ASSIGNMENT_STATUSES
from fleet_rental.app.models.enums import UserRole
from fleet_rental.app.models.mixins import not_deleted
from fleet_rental.app.models.trip import Trip
from fleet_rental.app.models.trip_enums import TripStatus, TERMINAL_TRIP_STATUSES
from fleet_rental.app.models.trip_issue import TripIssue
from fleet_rental.app.models.user import User
from fleet_rental.app.models.vehicle import Vehicle
from fleet_rental.app.schemas.trip import TripStatusUpdate, TripReview
from fleet_rental.app.services.audit import record_event, AuditAction
from fleet_rental.app.services.cache import CacheService
from fleet_rental.app.services.fleet_registry import FleetRegistry
from fleet_rental.app.services.notification_service import NotificationService

logger = logging.getLogger("fleet_rental.trips")

TRIP_TRANSITIONS = {
    TripStatus.SCHEDULED: {TripStatus.IN_PROGRESS, TripStatus.CANCELLED},
    TripStatus.IN_PROGRESS: {TripStatus.COMPLETED, TripStatus.CANCELLED},
}


def compute_actual_distance(trip: Trip) -> float:
    """Odometer delta when both readings are present and consistent, else the planned distance."""
    if (
        trip.odometer_start is not None
        and trip.odometer_end is not None
        and trip.odometer_end >= trip.odometer_start
    ):
        return round(trip.odometer_end - trip.odometer_start, 2)
    return trip.planned_distance_km or 0


class TripLedger:

    @staticmethod
    async def get_trip(db: AsyncSession, trip_id: int) -> Trip:
        result = await db.execute(select(Trip).where(Trip.id == trip_id, not_deleted(Trip)))
        trip = result.scalar_one_or_none()
        if not trip:
            raise ResourceNotFoundError("Trip", trip_id)
        return trip

    @staticmethod
    async def _vehicle_owner_id(db: AsyncSession, vehicle_id: int) -> Optional[int]:
        result = await db.execute(select(Vehicle.owner_id).where(Vehicle.id == vehicle_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_trip_for_user(db: AsyncSession, trip_id: int, current_user: dict) -> Trip:
        trip = await TripLedger.get_trip(db, trip_id)
        if is_admin(current_user):
            return trip

        user_id = current_user["user_id"]
        if user_id in (trip.customer_id, trip.driver_id):
            return trip
        if await TripLedger._vehicle_owner_id(db, trip.vehicle_id) == user_id:
            return trip

        raise InsufficientPermissionsError("Not authorized to view this trip", details={"trip_id": trip.id})

    @staticmethod
    async def list_trips(
        db: AsyncSession,
        current_user: dict,
        status: Optional[TripStatus] = None,
        page: int = 1,
        page_size: int = 20,
        include_deleted: bool = False,
    ) -> Tuple[List[Trip], int]:
        user_id = current_user["user_id"]
        role = current_user.get("role")

        query = select(Trip)
        if not include_deleted:
            query = query.where(not_deleted(Trip))

        if role == UserRole.CUSTOMER.value:
            query = query.where(Trip.customer_id == user_id)
        elif role == UserRole.DRIVER.value:
            query = query.where(Trip.driver_id == user_id)
        elif role == UserRole.OWNER.value:
            query = query.where(Trip.vehicle_id.in_(select(Vehicle.id).where(Vehicle.owner_id == user_id)))
        elif role != UserRole.ADMIN.value:
            raise InsufficientPermissionsError("Unknown role")

        if status:
            query = query.where(Trip.status == status)

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar()

        query = query.order_by(Trip.created_at.desc(), Trip.id.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await db.execute(query)

        return list(result.scalars().all()), total

    @staticmethod
    async def update_status(
        db: AsyncSession,
        trip_id: int,
        data: TripStatusUpdate,
        current_user: dict,
    ) -> Trip:
        """
        Advance a trip.

        SCHEDULED -> IN_PROGRESS records start telemetry.
        IN_PROGRESS -> COMPLETED records end telemetry, computes the distance,
        captures revenue from the booking, completes the booking and releases
        the vehicle. CANCELLED touches the trip only.

        Raises:
            InsufficientPermissionsError: Unless admin, assigned driver or vehicle owner
            InvalidStateError: If the transition is not allowed
        """
        trip = await TripLedger.get_trip(db, trip_id)

        user_id = current_user["user_id"]
        authorized = (
            is_admin(current_user)
            or (trip.driver_id is not None and trip.driver_id == user_id)
            or await TripLedger._vehicle_owner_id(db, trip.vehicle_id) == user_id
        )
        if not authorized:
            raise InsufficientPermissionsError("Not authorized to update this trip", details={"trip_id": trip.id})

        target = data.status
        if target not in TRIP_TRANSITIONS.get(trip.status, set()):
            raise InvalidStateError(
                f"Cannot change trip status from {trip.status.value} to {target.value}",
                current_status=trip.status.value,
            )

        previous = trip.status
        trip.status = target
        if data.notes:
            trip.notes = data.notes

        if target == TripStatus.IN_PROGRESS:
            trip.started_at = utc_now()
            if data.start_location:
                trip.start_location = data.start_location.model_dump()
            if data.odometer_start is not None:
                trip.odometer_start = data.odometer_start
            if data.fuel_level_start is not None:
                trip.fuel_level_start = data.fuel_level_start

        elif target == TripStatus.COMPLETED:
            trip.completed_at = utc_now()
            if data.end_location:
                trip.end_location = data.end_location.model_dump()
            if data.odometer_end is not None:
                trip.odometer_end = data.odometer_end
            if data.fuel_level_end is not None:
                trip.fuel_level_end = data.fuel_level_end
            trip.actual_distance_km = compute_actual_distance(trip)

            booking = await db.get(Booking, trip.booking_id)
            trip.revenue = booking.total_price
            # a booking completed on its own already released the vehicle
            if booking.status not in TERMINAL_BOOKING_STATUSES:
                booking.status = BookingStatus.COMPLETED
                await FleetRegistry.mark_available(db, trip.vehicle_id)

        record_event(
            db,
            AuditAction.TRIP_STATUS_CHANGED,
            actor_id=user_id,
            actor_email=current_user.get("sub"),
            metadata={"trip_id": trip.id, "from": previous.value, "to": target.value},
        )
        await db.commit()

        logger.info("Trip %s status updated %s -> %s by user %s", trip.id, previous.value, target.value, user_id)

        if target == TripStatus.COMPLETED:
            await CacheService.clear_vehicle_caches()
            await NotificationService.send_trip_completion(db, trip)
        await db.refresh(trip)
        return trip

    @staticmethod
    async def assign_driver(db: AsyncSession, trip_id: int, driver_id: int, current_user: dict) -> Trip:
        """
        Assign (or reassign) the driver of a non-terminal trip.

        The driver must be an active driver account and, unless disabled via
        settings.require_driver_assignment, hold an approved or active
        assignment for the trip's vehicle.
        """
        trip = await TripLedger.get_trip(db, trip_id)

        owner_id = await TripLedger._vehicle_owner_id(db, trip.vehicle_id)
        if not is_admin(current_user) and owner_id != current_user["user_id"]:
            raise InsufficientPermissionsError(
                "Not authorized to assign a driver to this trip", details={"trip_id": trip.id}
            )

        if trip.status in TERMINAL_TRIP_STATUSES:
            raise InvalidStateError(
                f"Cannot assign a driver to a {trip.status.value} trip",
                current_status=trip.status.value,
            )

        result = await db.execute(select(User).where(User.id == driver_id, not_deleted(User)))
        driver = result.scalar_one_or_none()
        if not driver or driver.role != UserRole.DRIVER or not driver.is_active:
            raise InvalidArgumentError(
                "User is not an active driver", details={"driver_id": driver_id}
            )

        if settings.require_driver_assignment:
            assignment = await db.execute(
                select(DriverAssignment.id).where(
                    DriverAssignment.driver_id == driver_id,
                    DriverAssignment.vehicle_id == trip.vehicle_id,
                    DriverAssignment.status.in_(DRIVABLE_ASSIGNMENT_STATUSES),
                    not_deleted(DriverAssignment),
                ).limit(1)
            )
            if assignment.scalar_one_or_none() is None:
                raise InvalidArgumentError(
                    "Driver is not approved for this vehicle",
                    details={"driver_id": driver_id, "vehicle_id": trip.vehicle_id},
                )

        trip.driver_id = driver_id
        record_event(
            db,
            AuditAction.DRIVER_ASSIGNED,
            actor_id=current_user["user_id"],
            actor_email=current_user.get("sub"),
            target_user_id=driver_id,
            metadata={"trip_id": trip.id},
        )
        await db.commit()
        await db.refresh(trip)

        logger.info("Driver %s assigned to trip %s", driver_id, trip.id)
        return trip

    @staticmethod
    async def add_review(db: AsyncSession, trip_id: int, data: TripReview, current_user: dict) -> Trip:
        """Customer or assigned driver rates a completed trip."""
        trip = await TripLedger.get_trip(db, trip_id)
        user_id = current_user["user_id"]

        is_customer = trip.customer_id == user_id
        is_driver = trip.driver_id is not None and trip.driver_id == user_id
        if not (is_customer or is_driver):
            raise InsufficientPermissionsError("Not authorized to review this trip", details={"trip_id": trip.id})

        if trip.status != TripStatus.COMPLETED:
            raise InvalidStateError("Only completed trips can be reviewed", current_status=trip.status.value)

        if is_customer:
            trip.customer_rating = data.rating
            trip.customer_review = data.review
        if is_driver:
            trip.driver_rating = data.rating
            trip.driver_review = data.review

        await db.commit()
        await db.refresh(trip)
        return trip

    @staticmethod
    async def report_issue(db: AsyncSession, trip_id: int, description: str, current_user: dict) -> TripIssue:
        trip = await TripLedger.get_trip(db, trip_id)
        user_id = current_user["user_id"]

        if user_id not in (trip.customer_id, trip.driver_id):
            raise InsufficientPermissionsError(
                "Not authorized to report issues for this trip", details={"trip_id": trip.id}
            )

        issue = TripIssue(trip_id=trip.id, reported_by_id=user_id, description=description)
        db.add(issue)
        await db.commit()
        await db.refresh(issue)

        logger.info("Issue %s reported on trip %s", issue.id, trip.id)
        return issue

    @staticmethod
    async def delete_trip(db: AsyncSession, trip_id: int, current_user: dict) -> Trip:
        trip = await TripLedger.get_trip(db, trip_id)
        trip.mark_deleted()

        record_event(
            db,
            AuditAction.TRIP_DELETED,
            actor_id=current_user["user_id"],
            actor_email=current_user.get("sub"),
            metadata={"trip_id": trip.id},
        )
        await db.commit()
        return trip
