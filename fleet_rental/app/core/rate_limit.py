"""
Throttling of failed register and login attempts.

Failures (any 4xx/5xx answer) are counted per client IP in a fixed Redis
window; successful attempts are not counted. Once a client reaches
``auth_rate_limit_attempts`` it gets 429 until the window expires. Redis
errors never block a request.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from fleet_rental.app.core import redis_client as redis_module
from fleet_rental.app.core.config import settings
from fleet_rental.app.core.exceptions import RateLimitExceededError, app_exception_handler

logger = logging.getLogger("fleet_rental.auth")

RATE_LIMIT_PREFIX = "rate_limit:auth:"
THROTTLED_PATHS = ("/auth/login", "/auth/register")


def _is_throttled(request: Request) -> bool:
    return (
        settings.auth_rate_limit_enabled
        and request.method == "POST"
        and request.url.path.endswith(THROTTLED_PATHS)
    )


async def _retry_after(key: str) -> int:
    """Seconds until the client may try again, or 0 when it is under the limit."""
    failures = await redis_module.redis_client.get(key)
    if int(failures or 0) < settings.auth_rate_limit_attempts:
        return 0
    return max(await redis_module.redis_client.ttl(key), 1)


async def _count_failure(key: str) -> None:
    try:
        if await redis_module.redis_client.incr(key) == 1:
            await redis_module.redis_client.expire(key, settings.auth_rate_limit_window_seconds)
    except Exception:
        logger.exception("Could not record failed attempt for %s", key)


class AuthRateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        if not _is_throttled(request):
            return await call_next(request)

        key = RATE_LIMIT_PREFIX + (request.client.host if request.client else "unknown")
        try:
            retry_after = await _retry_after(key)
        except Exception:
            logger.exception("Rate limit check failed for %s", key)
            retry_after = 0

        if retry_after:
            logger.warning("Throttled %s %s from %s", request.method, request.url.path, key)
            response = await app_exception_handler(request, RateLimitExceededError(retry_after))
            response.headers["Retry-After"] = str(retry_after)
            return response

        response = await call_next(request)
        if response.status_code >= 400:
            await _count_failure(key)
        return response
