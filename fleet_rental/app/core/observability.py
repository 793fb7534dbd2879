"""
Request logging.

Every request gets a correlation id (taken from ``X-Correlation-ID`` when the
client sends one) that is echoed back along with the handling time.
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from fleet_rental.app.core.config import settings

logger = logging.getLogger("fleet_rental")


def setup_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        started = time.perf_counter()

        response = await call_next(request)

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time"] = str(duration_ms)

        logger.log(
            _level_for(response.status_code),
            "%s %s -> %s (%.2f ms)",
            request.method, request.url.path, response.status_code, duration_ms,
            extra={
                "correlation_id": correlation_id,
                "client_ip": request.client.host if request.client else "unknown",
            },
        )
        return response
