"""
Shared Redis connection for the response cache and token revocation.

Callers resolve ``redis_client`` through this module at call time, so the
client can be replaced (tests swap in an in-memory stand-in).
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from fleet_rental.app.core.config import settings

logger = logging.getLogger("fleet_rental.redis")

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def ping_redis() -> bool:
    """True when Redis answers PING. Reported by /health, never raised."""
    try:
        return bool(await redis_client.ping())
    except (RedisError, OSError):
        logger.warning("Redis ping failed")
        return False


async def close_redis() -> None:
    await redis_client.aclose()
