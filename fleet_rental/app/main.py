"""
Fleet Rental API application.

Wires the v1 routers, the error envelope handlers, request logging and the
startup/shutdown of the database and Redis connections.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from fleet_rental.app.api.v1.router import router as api_v1_router
from fleet_rental.app.core.config import settings
from fleet_rental.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from fleet_rental.app.core.observability import ObservabilityMiddleware, setup_logging
from fleet_rental.app.core.rate_limit import AuthRateLimitMiddleware
from fleet_rental.app.core.redis_client import ping_redis, close_redis
from fleet_rental.app.db.session import engine, Base

# Every mapped table must be imported before create_all runs
from fleet_rental.app.models.user import User  # noqa: F401
from fleet_rental.app.models.vehicle import Vehicle  # noqa: F401
from fleet_rental.app.models.booking import Booking  # noqa: F401
from fleet_rental.app.models.trip import Trip  # noqa: F401
from fleet_rental.app.models.trip_issue import TripIssue  # noqa: F401
from fleet_rental.app.models.driver_assignment import DriverAssignment  # noqa: F401
from fleet_rental.app.models.notification import Notification  # noqa: F401
from fleet_rental.app.models.audit_log import AuditLog  # noqa: F401

setup_logging()
logger = logging.getLogger("fleet_rental")


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s API %s ready", settings.app_name, settings.api_version)

    yield

    await close_redis()
    await engine.dispose()
    logger.info("%s API stopped", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Vehicle fleet rental API: vehicles, bookings, trips and driver assignments",
    lifespan=lifespan,
)

app.add_middleware(AuthRateLimitMiddleware)
app.add_middleware(ObservabilityMiddleware)

app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness plus Redis reachability. Redis being down degrades caching only."""
    redis_up = await ping_redis()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "up" if redis_up else "down",
    }
