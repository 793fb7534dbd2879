"""
Request authentication.

``get_current_user`` is the single entry point; role and ownership guards in
guards.py build on the payload it returns.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.core.jwt import decode_access_token
from fleet_rental.app.core.token_revocation import is_token_revoked, are_user_tokens_revoked
from fleet_rental.app.db.session import get_db
from fleet_rental.app.models.user import User

bearer_scheme = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    Resolve the bearer token to the acting user.

    Rejects, in order: a bad or expired token, a token revoked by logout,
    tokens of a user whose sessions were all revoked, and users that no
    longer exist or were soft-deleted (401). Deactivated users get 403.

    The returned payload carries ``sub`` (email), ``user_id``, ``role`` and
    the raw ``token``. Email and role are taken from the database, so a
    profile edit or an admin's role change applies to tokens already issued.
    """
    token = credentials.credentials

    payload = decode_access_token(token)
    if payload is None:
        raise _unauthorized("Could not validate credentials")

    user_id = payload.get("user_id")
    if not user_id:
        raise _unauthorized("Invalid token payload")

    if await is_token_revoked(token):
        raise _unauthorized("Token has been revoked")
    if await are_user_tokens_revoked(user_id):
        raise _unauthorized("User access has been revoked")

    user = await db.get(User, user_id)
    if user is None or user.is_deleted:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")

    payload["sub"] = user.email
    payload["role"] = user.role.value
    payload["token"] = token
    return payload
