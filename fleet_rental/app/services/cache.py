"""
Response cache backed by Redis.

Public vehicle reads are cached as JSON under keys derived from the request
path and query string. Mutations drop every key under a resource prefix.
Cache failures are logged and never surface to the caller.
"""

import json
import logging
from typing import Any, Optional

from fastapi import Request

from fleet_rental.app.core import redis_client as redis_module
from fleet_rental.app.core.config import settings

logger = logging.getLogger("fleet_rental.cache")

CACHE_PREFIX = "cache:"
VEHICLE_CACHE_PATTERN = f"{CACHE_PREFIX}vehicles:*"


class CacheService:

    @staticmethod
    def build_key(resource: str, request: Request) -> str:
        """Key for a GET response, e.g. cache:vehicles:/v1/vehicles?page=1."""
        key = f"{CACHE_PREFIX}{resource}:{request.url.path}"
        if request.url.query:
            key = f"{key}?{request.url.query}"
        return key

    @staticmethod
    async def get(key: str) -> Optional[Any]:
        if not settings.cache_enabled:
            return None
        try:
            value = await redis_module.redis_client.get(key)
        except Exception:
            logger.exception("Cache get error for key %s", key)
            return None

        if value is None:
            logger.debug("Cache miss for key: %s", key)
            return None

        logger.debug("Cache hit for key: %s", key)
        try:
            return json.loads(value)
        except (TypeError, ValueError):
            logger.warning("Discarding unreadable cache entry %s", key)
            return None

    @staticmethod
    async def set(key: str, data: Any, ttl_seconds: Optional[int] = None) -> bool:
        if not settings.cache_enabled:
            return False
        try:
            await redis_module.redis_client.setex(
                key, ttl_seconds or settings.cache_ttl_seconds, json.dumps(data)
            )
            return True
        except Exception:
            logger.exception("Cache set error for key %s", key)
            return False

    @staticmethod
    async def delete_pattern(pattern: str) -> int:
        """Delete every key matching a glob pattern. Returns the number deleted."""
        deleted = 0
        try:
            async for key in redis_module.redis_client.scan_iter(match=pattern):
                deleted += await redis_module.redis_client.delete(key)
        except Exception:
            logger.exception("Cache pattern delete error for %s", pattern)
            return deleted

        if deleted:
            logger.info("Cache deleted for pattern: %s, count: %s", pattern, deleted)
        return deleted

    @staticmethod
    async def clear_vehicle_caches() -> int:
        """Vehicle listings embed availability, so any booking change must call this."""
        return await CacheService.delete_pattern(VEHICLE_CACHE_PATTERN)
