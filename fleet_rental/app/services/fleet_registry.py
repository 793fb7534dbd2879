"""
Fleet registry.

Vehicle records, their availability flag and the owner-facing CRUD around
them. Availability transitions (mark_*) only stage changes; the caller owns
the transaction.
"""

import logging
from typing import Optional, List, Tuple

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.core.exceptions import (
    ResourceNotFoundError,
    ConflictError,
    InvalidArgumentError,
)
from fleet_rental.app.core.guards import ownership_guard
from fleet_rental.app.core.timeutils import utc_now
from fleet_rental.app.models.booking import Booking
from fleet_rental.app.models.booking_enums import BookingStatus, ACTIVE_BOOKING_STATUSES
from fleet_rental.app.models.mixins import not_deleted
from fleet_rental.app.models.trip import Trip
from fleet_rental.app.models.trip_enums import TripStatus, TERMINAL_TRIP_STATUSES
from fleet_rental.app.models.vehicle import Vehicle
from fleet_rental.app.models.vehicle_enums import VehicleAvailability, VehicleType
from fleet_rental.app.schemas.vehicle import VehicleCreate, VehicleUpdate
from fleet_rental.app.services.audit import record_event, AuditAction
from fleet_rental.app.services.cache import CacheService

logger = logging.getLogger("fleet_rental.fleet")

# Owners may set these directly; BOOKED belongs to the booking flow.
OWNER_SETTABLE_AVAILABILITY = (
    VehicleAvailability.AVAILABLE,
    VehicleAvailability.MAINTENANCE,
    VehicleAvailability.UNAVAILABLE,
)

VEHICLE_DELETED_REASON = "vehicle deleted"


class FleetRegistry:

    # Availability

    @staticmethod
    async def get_vehicle(db: AsyncSession, vehicle_id: int, include_deleted: bool = False) -> Vehicle:
        query = select(Vehicle).where(Vehicle.id == vehicle_id)
        if not include_deleted:
            query = query.where(not_deleted(Vehicle))

        result = await db.execute(query)
        vehicle = result.scalar_one_or_none()
        if not vehicle:
            raise ResourceNotFoundError("Vehicle", vehicle_id)
        return vehicle

    @staticmethod
    async def is_available(db: AsyncSession, vehicle_id: int) -> bool:
        result = await db.execute(
            select(Vehicle.availability).where(Vehicle.id == vehicle_id, not_deleted(Vehicle))
        )
        availability = result.scalar_one_or_none()
        return availability == VehicleAvailability.AVAILABLE

    @staticmethod
    async def _set_availability(db: AsyncSession, vehicle_id: int, availability: VehicleAvailability) -> Vehicle:
        vehicle = await db.get(Vehicle, vehicle_id)
        if vehicle is None:
            raise ResourceNotFoundError("Vehicle", vehicle_id)
        vehicle.availability = availability
        await db.flush()
        return vehicle

    @staticmethod
    async def mark_booked(db: AsyncSession, vehicle_id: int) -> Vehicle:
        return await FleetRegistry._set_availability(db, vehicle_id, VehicleAvailability.BOOKED)

    @staticmethod
    async def mark_available(db: AsyncSession, vehicle_id: int) -> Vehicle:
        return await FleetRegistry._set_availability(db, vehicle_id, VehicleAvailability.AVAILABLE)

    @staticmethod
    async def mark_unavailable(db: AsyncSession, vehicle_id: int, reason: str) -> Vehicle:
        vehicle = await FleetRegistry._set_availability(db, vehicle_id, VehicleAvailability.UNAVAILABLE)
        logger.info("Vehicle %s marked unavailable: %s", vehicle_id, reason)
        return vehicle

    # CRUD

    @staticmethod
    async def create_vehicle(db: AsyncSession, data: VehicleCreate, current_user: dict) -> Vehicle:
        """
        Register a vehicle owned by the acting user.

        Raises:
            ConflictError: If the registration number is already taken
        """
        existing = await db.execute(
            select(Vehicle.id).where(Vehicle.registration_number == data.registration_number)
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError(
                f"Vehicle with registration {data.registration_number} already exists",
                details={"registration_number": data.registration_number},
            )

        vehicle = Vehicle(owner_id=current_user["user_id"], **data.model_dump())
        db.add(vehicle)
        await db.flush()

        record_event(
            db,
            AuditAction.VEHICLE_CREATED,
            actor_id=current_user["user_id"],
            actor_email=current_user.get("sub"),
            metadata={"vehicle_id": vehicle.id, "registration_number": vehicle.registration_number},
        )
        await db.commit()
        await db.refresh(vehicle)

        logger.info("Vehicle %s registered by user %s", vehicle.id, current_user["user_id"])
        await CacheService.clear_vehicle_caches()
        return vehicle

    @staticmethod
    async def list_vehicles(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        vehicle_type: Optional[VehicleType] = None,
        availability: Optional[VehicleAvailability] = None,
        city: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        owner_id: Optional[int] = None,
        include_deleted: bool = False,
    ) -> Tuple[List[Vehicle], int]:
        query = select(Vehicle)
        if not include_deleted:
            query = query.where(not_deleted(Vehicle))
        if vehicle_type:
            query = query.where(Vehicle.vehicle_type == vehicle_type)
        if availability:
            query = query.where(Vehicle.availability == availability)
        if city:
            query = query.where(func.lower(Vehicle.city) == city.lower())
        if min_price is not None:
            query = query.where(Vehicle.price_per_day >= min_price)
        if max_price is not None:
            query = query.where(Vehicle.price_per_day <= max_price)
        if owner_id is not None:
            query = query.where(Vehicle.owner_id == owner_id)

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar()

        query = query.order_by(Vehicle.created_at.desc(), Vehicle.id.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await db.execute(query)

        return list(result.scalars().all()), total

    @staticmethod
    async def update_vehicle(db: AsyncSession, vehicle_id: int, data: VehicleUpdate, current_user: dict) -> Vehicle:
        vehicle = await FleetRegistry.get_vehicle(db, vehicle_id)
        ownership_guard.enforce(vehicle.owner_id, current_user, "vehicle")

        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(vehicle, field, value)

        record_event(
            db,
            AuditAction.VEHICLE_UPDATED,
            actor_id=current_user["user_id"],
            actor_email=current_user.get("sub"),
            metadata={"vehicle_id": vehicle.id, "fields": sorted(changes)},
        )
        await db.commit()
        await db.refresh(vehicle)

        await CacheService.clear_vehicle_caches()
        return vehicle

    @staticmethod
    async def update_availability(
        db: AsyncSession,
        vehicle_id: int,
        availability: VehicleAvailability,
        current_user: dict,
        reason: Optional[str] = None,
    ) -> Vehicle:
        """
        Owner/admin availability change.

        Raises:
            InvalidArgumentError: If availability is BOOKED
        """
        vehicle = await FleetRegistry.get_vehicle(db, vehicle_id)
        ownership_guard.enforce(vehicle.owner_id, current_user, "vehicle")

        if availability not in OWNER_SETTABLE_AVAILABILITY:
            raise InvalidArgumentError(
                f"Availability '{availability.value}' is managed by bookings and cannot be set directly",
                details={"allowed": [a.value for a in OWNER_SETTABLE_AVAILABILITY]},
            )

        previous = vehicle.availability
        if availability == VehicleAvailability.UNAVAILABLE:
            await FleetRegistry.mark_unavailable(db, vehicle.id, reason or "set by owner")
        else:
            await FleetRegistry._set_availability(db, vehicle.id, availability)

        record_event(
            db,
            AuditAction.VEHICLE_AVAILABILITY_CHANGED,
            actor_id=current_user["user_id"],
            actor_email=current_user.get("sub"),
            metadata={
                "vehicle_id": vehicle.id,
                "from": previous.value,
                "to": availability.value,
                "reason": reason,
            },
        )
        await db.commit()
        await db.refresh(vehicle)

        await CacheService.clear_vehicle_caches()
        return vehicle

    @staticmethod
    async def delete_vehicle(db: AsyncSession, vehicle_id: int, current_user: dict) -> Vehicle:
        """
        Soft delete a vehicle and cancel its open bookings and their trips.
        """
        vehicle = await FleetRegistry.get_vehicle(db, vehicle_id)
        ownership_guard.enforce(vehicle.owner_id, current_user, "vehicle")

        now = utc_now()
        vehicle.mark_deleted()
        await FleetRegistry.mark_unavailable(db, vehicle.id, VEHICLE_DELETED_REASON)

        result = await db.execute(
            select(Booking.id).where(
                Booking.vehicle_id == vehicle.id,
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                not_deleted(Booking),
            )
        )
        booking_ids = list(result.scalars().all())

        if booking_ids:
            await db.execute(
                update(Booking)
                .where(Booking.id.in_(booking_ids))
                .values(
                    status=BookingStatus.CANCELLED,
                    cancellation_reason=VEHICLE_DELETED_REASON,
                    cancelled_by_id=current_user["user_id"],
                    cancelled_at=now,
                )
                .execution_options(synchronize_session="fetch")
            )
            await db.execute(
                update(Trip)
                .where(Trip.booking_id.in_(booking_ids), Trip.status.notin_(TERMINAL_TRIP_STATUSES))
                .values(status=TripStatus.CANCELLED)
                .execution_options(synchronize_session="fetch")
            )

        record_event(
            db,
            AuditAction.VEHICLE_DELETED,
            actor_id=current_user["user_id"],
            actor_email=current_user.get("sub"),
            metadata={"vehicle_id": vehicle.id, "cancelled_bookings": booking_ids},
        )
        await db.commit()

        logger.info(
            "Vehicle %s deleted by user %s, %s bookings cancelled",
            vehicle.id, current_user["user_id"], len(booking_ids)
        )
        await CacheService.clear_vehicle_caches()
        return vehicle
