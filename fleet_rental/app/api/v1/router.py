"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from fleet_rental.app.api.v1.endpoints import (
    auth, vehicles, bookings, trips, drivers,
    analytics, admin, notifications, users
)

router = APIRouter()

router.include_router(auth.router)
router.include_router(users.router)
router.include_router(vehicles.router)
router.include_router(bookings.router)
router.include_router(trips.router)
router.include_router(drivers.router)
router.include_router(analytics.router)
router.include_router(admin.router)
router.include_router(notifications.router)
