"""
Access and refresh tokens.

HS256 JWTs carrying the user's email (``sub``), id and role, plus a ``type``
claim separating short-lived access tokens from refresh tokens. The role
claim is informational only: get_current_user reloads it from the database
on every request.
"""

import logging
import uuid
from datetime import timedelta
from typing import Optional, Dict, Any

from jose import ExpiredSignatureError, JWTError, jwt

from fleet_rental.app.core.config import settings
from fleet_rental.app.core.timeutils import utc_now

logger = logging.getLogger("fleet_rental.auth")

ACCESS = "access"
REFRESH = "refresh"


def token_claims(user) -> Dict[str, Any]:
    """Identity claims for ``user``."""
    return {"sub": user.email, "user_id": user.id, "role": user.role.value}


def _sign(claims: Dict[str, Any], token_type: str, lifetime: timedelta) -> str:
    issued_at = utc_now()
    to_encode = dict(claims)
    to_encode.update(
        type=token_type,
        jti=uuid.uuid4().hex,
        iat=issued_at,
        exp=issued_at + lifetime,
    )
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_access_token(claims: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Sign ``claims`` with an issue time and an expiry (default from settings)."""
    return _sign(claims, ACCESS, expires_delta or timedelta(minutes=settings.access_token_expire_minutes))


def create_refresh_token(claims: Dict[str, Any]) -> str:
    return _sign(claims, REFRESH, timedelta(days=settings.refresh_token_expire_days))


def _decode(token: str, token_type: str) -> Optional[Dict[str, Any]]:
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except ExpiredSignatureError:
        logger.info("Rejected expired %s token", token_type)
        return None
    except JWTError:
        return None
    if claims.get("type") != token_type:
        return None
    return claims


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Verified claims, or None for an expired, tampered, malformed or refresh token."""
    return _decode(token, ACCESS)


def decode_refresh_token(token: str) -> Optional[Dict[str, Any]]:
    return _decode(token, REFRESH)
