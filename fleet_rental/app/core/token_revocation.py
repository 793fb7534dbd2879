"""
Token revocation backed by Redis.

Two kinds of entries, both expiring with the token lifetime:

- ``blacklist:token:<sha256>``: one token, written on logout
- ``user:tokens:<id>:revoked``: every token of a user, written on account deletion

All checks fail open: with Redis unreachable a signed, unexpired token is
still accepted, and the database check in get_current_user remains.
"""

import hashlib
import logging

from fleet_rental.app.core import redis_client as redis_module
from fleet_rental.app.core.config import settings

logger = logging.getLogger("fleet_rental.auth")

TOKEN_BLACKLIST_PREFIX = "blacklist:token:"
USER_TOKENS_PREFIX = "user:tokens:"


def _token_key(token: str) -> str:
    return TOKEN_BLACKLIST_PREFIX + hashlib.sha256(token.encode()).hexdigest()


def _user_key(user_id: int) -> str:
    return f"{USER_TOKENS_PREFIX}{user_id}:revoked"


def _ttl_seconds() -> int:
    return settings.access_token_expire_minutes * 60


async def revoke_token(token: str, user_id: int) -> bool:
    """Blacklist one token. Returns False if Redis could not be written."""
    try:
        await redis_module.redis_client.setex(_token_key(token), _ttl_seconds(), str(user_id))
    except Exception:
        logger.exception("Error revoking token for user %s", user_id)
        return False
    return True


async def is_token_revoked(token: str) -> bool:
    try:
        return await redis_module.redis_client.exists(_token_key(token)) > 0
    except Exception:
        logger.exception("Error checking token revocation")
        return False


async def revoke_all_user_tokens(user_id: int) -> bool:
    """Invalidate every outstanding token of ``user_id``."""
    try:
        await redis_module.redis_client.setex(_user_key(user_id), _ttl_seconds(), "1")
    except Exception:
        logger.exception("Error revoking all tokens for user %s", user_id)
        return False
    return True


async def are_user_tokens_revoked(user_id: int) -> bool:
    try:
        return await redis_module.redis_client.exists(_user_key(user_id)) > 0
    except Exception:
        logger.exception("Error checking user token revocation for user %s", user_id)
        return False
