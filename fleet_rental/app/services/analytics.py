"""
Analytics Service.

Read-only rollups over vehicles, bookings and trips for the owner, driver,
customer and admin dashboards.
"""

from datetime import timedelta
from typing import List, Dict, Tuple

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.core.timeutils import utc_now
from fleet_rental.app.models.booking import Booking
from fleet_rental.app.models.booking_enums import BookingStatus, ACTIVE_BOOKING_STATUSES
from fleet_rental.app.models.enums import UserRole
from fleet_rental.app.models.mixins import not_deleted
from fleet_rental.app.models.trip import Trip
from fleet_rental.app.models.trip_enums import TripStatus
from fleet_rental.app.models.user import User
from fleet_rental.app.models.vehicle import Vehicle
from fleet_rental.app.schemas.analytics import (
    MetricTuple,
    VehiclePerformance,
    OwnerStats,
    DriverStats,
    CustomerStats,
    AdminDashboardStats,
)

REVENUE_MONTHS = 6


def _month_keys(now, months: int) -> List[Tuple[int, int]]:
    """(year, month) pairs for the last ``months`` months, oldest first, current month last."""
    keys = []
    year, month = now.year, now.month
    for _ in range(months):
        keys.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


class AnalyticsService:

    @staticmethod
    async def get_owner_stats(db: AsyncSession, owner_id: int, days: int = 30) -> OwnerStats:
        """Owner overview; revenue counts trips completed within the last ``days`` days."""
        since = utc_now() - timedelta(days=days)
        owned = select(Vehicle.id).where(Vehicle.owner_id == owner_id, not_deleted(Vehicle))

        total_vehicles = (await db.execute(
            select(func.count(Vehicle.id)).where(Vehicle.owner_id == owner_id, not_deleted(Vehicle))
        )).scalar() or 0

        revenue = (await db.execute(
            select(func.coalesce(func.sum(Trip.revenue), 0)).where(
                Trip.vehicle_id.in_(owned),
                Trip.status == TripStatus.COMPLETED,
                Trip.completed_at >= since,
                not_deleted(Trip),
            )
        )).scalar() or 0.0

        total_bookings = (await db.execute(
            select(func.count(Booking.id)).where(Booking.vehicle_id.in_(owned), not_deleted(Booking))
        )).scalar() or 0

        cancelled_bookings = (await db.execute(
            select(func.count(Booking.id)).where(
                Booking.vehicle_id.in_(owned),
                Booking.status == BookingStatus.CANCELLED,
                not_deleted(Booking),
            )
        )).scalar() or 0

        completed_trips = (await db.execute(
            select(func.count(Trip.id)).where(
                Trip.vehicle_id.in_(owned),
                Trip.status == TripStatus.COMPLETED,
                not_deleted(Trip),
            )
        )).scalar() or 0

        # Completed trips per vehicle; vehicles without trips report zeros
        stmt = select(
            Vehicle.id,
            Vehicle.registration_number,
            Vehicle.availability,
            func.count(Trip.id).label("total_trips"),
            func.coalesce(func.sum(Trip.revenue), 0).label("total_revenue"),
        ).outerjoin(
            Trip,
            and_(
                Trip.vehicle_id == Vehicle.id,
                Trip.status == TripStatus.COMPLETED,
                Trip.is_deleted.is_(False),
            ),
        ).where(
            Vehicle.owner_id == owner_id,
            not_deleted(Vehicle),
        ).group_by(Vehicle.id, Vehicle.registration_number, Vehicle.availability).order_by(Vehicle.id)

        rows = await db.execute(stmt)
        vehicles = [
            VehiclePerformance(
                vehicle_id=row.id,
                registration_number=row.registration_number,
                availability=row.availability.value,
                total_trips=row.total_trips,
                total_revenue=float(row.total_revenue),
            )
            for row in rows
        ]

        return OwnerStats(
            period_days=days,
            total_vehicles=total_vehicles,
            total_revenue=float(revenue),
            total_bookings=total_bookings,
            cancelled_bookings=cancelled_bookings,
            completed_trips=completed_trips,
            vehicles=vehicles,
        )

    @staticmethod
    async def get_driver_stats(db: AsyncSession, driver_id: int) -> DriverStats:
        result = await db.execute(
            select(Trip).where(Trip.driver_id == driver_id, not_deleted(Trip))
        )
        trips = list(result.scalars().all())
        completed = [t for t in trips if t.status == TripStatus.COMPLETED]

        ratings = [t.customer_rating for t in completed if t.customer_rating]
        average_rating = round(sum(ratings) / len(ratings), 2) if ratings else None

        distance = sum((t.actual_distance_km or t.planned_distance_km or 0) for t in completed)

        return DriverStats(
            total_trips=len(trips),
            completed_trips=len(completed),
            total_earnings=round(sum(t.revenue or 0 for t in completed), 2),
            average_rating=average_rating,
            total_distance_km=round(distance, 2),
        )

    @staticmethod
    async def get_customer_stats(db: AsyncSession, customer_id: int) -> CustomerStats:
        result = await db.execute(
            select(Booking.status, Booking.total_price, Vehicle.vehicle_type)
            .join(Vehicle, Vehicle.id == Booking.vehicle_id)
            .where(Booking.customer_id == customer_id, not_deleted(Booking))
        )
        rows = result.all()

        type_counts: Dict[str, int] = {}
        for row in rows:
            type_counts[row.vehicle_type.value] = type_counts.get(row.vehicle_type.value, 0) + 1
        favorite = max(type_counts, key=type_counts.get) if type_counts else None

        return CustomerStats(
            total_bookings=len(rows),
            completed_bookings=sum(1 for r in rows if r.status == BookingStatus.COMPLETED),
            cancelled_bookings=sum(1 for r in rows if r.status == BookingStatus.CANCELLED),
            total_spent=round(sum(r.total_price for r in rows if r.status != BookingStatus.CANCELLED), 2),
            favorite_vehicle_type=favorite,
        )

    @staticmethod
    async def get_admin_dashboard(db: AsyncSession) -> AdminDashboardStats:
        async def count(stmt) -> int:
            return (await db.execute(stmt)).scalar() or 0

        total_vehicles = await count(select(func.count(Vehicle.id)).where(not_deleted(Vehicle)))
        total_drivers = await count(
            select(func.count(User.id)).where(User.role == UserRole.DRIVER, not_deleted(User))
        )
        total_customers = await count(
            select(func.count(User.id)).where(User.role == UserRole.CUSTOMER, not_deleted(User))
        )
        total_trips = await count(select(func.count(Trip.id)).where(not_deleted(Trip)))
        completed_trips = await count(
            select(func.count(Trip.id)).where(Trip.status == TripStatus.COMPLETED, not_deleted(Trip))
        )
        cancelled_bookings = await count(
            select(func.count(Booking.id)).where(Booking.status == BookingStatus.CANCELLED, not_deleted(Booking))
        )
        active_bookings = await count(
            select(func.count(Booking.id)).where(Booking.status.in_(ACTIVE_BOOKING_STATUSES), not_deleted(Booking))
        )

        total_revenue = (await db.execute(
            select(func.coalesce(func.sum(Trip.revenue), 0)).where(
                Trip.status == TripStatus.COMPLETED, not_deleted(Trip)
            )
        )).scalar() or 0.0

        # Monthly revenue: bucket in Python to stay portable across databases
        now = utc_now()
        months = _month_keys(now, REVENUE_MONTHS)
        first_year, first_month = months[0]
        window_start = now.replace(year=first_year, month=first_month, day=1, hour=0, minute=0, second=0, microsecond=0)

        result = await db.execute(
            select(Trip.completed_at, Trip.revenue).where(
                Trip.status == TripStatus.COMPLETED,
                Trip.completed_at >= window_start,
                not_deleted(Trip),
            )
        )
        buckets = {key: 0.0 for key in months}
        for completed_at, revenue in result.all():
            key = (completed_at.year, completed_at.month)
            if key in buckets:
                buckets[key] += revenue or 0

        monthly_revenue = [
            MetricTuple(label=f"{year:04d}-{month:02d}", value=round(buckets[(year, month)], 2))
            for year, month in months
        ]

        type_rows = await db.execute(
            select(Vehicle.vehicle_type, func.count(Vehicle.id))
            .where(not_deleted(Vehicle))
            .group_by(Vehicle.vehicle_type)
        )
        distribution = [
            MetricTuple(label=vehicle_type.value, value=total)
            for vehicle_type, total in type_rows.all()
        ]
        distribution.sort(key=lambda m: m.label)

        return AdminDashboardStats(
            total_vehicles=total_vehicles,
            total_drivers=total_drivers,
            total_customers=total_customers,
            total_trips=total_trips,
            completed_trips=completed_trips,
            cancelled_bookings=cancelled_bookings,
            active_bookings=active_bookings,
            total_revenue=round(float(total_revenue), 2),
            monthly_revenue=monthly_revenue,
            vehicle_type_distribution=distribution,
        )
