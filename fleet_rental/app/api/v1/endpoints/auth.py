"""
Authentication API endpoints.

Register, login, token refresh, logout and the caller's own account.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from fleet_rental.app.db.session import get_db
from fleet_rental.app.models.user import User
from fleet_rental.app.models.enums import UserRole
from fleet_rental.app.schemas.auth import (
    AccessTokenResponse,
    PasswordUpdate,
    RefreshRequest,
    TokenResponse,
    UserDetailsUpdate,
    UserLogin,
    UserRegister,
    UserResponse,
)
from fleet_rental.app.core.security import get_password_hash, verify_password
from fleet_rental.app.core.jwt import create_access_token, create_refresh_token, decode_refresh_token, token_claims
from fleet_rental.app.core.dependencies import get_current_user
from fleet_rental.app.core.exceptions import (
    AuthenticationError,
    ConflictError,
    InsufficientPermissionsError,
    InvalidArgumentError,
    ResourceNotFoundError,
)
from fleet_rental.app.core.token_revocation import are_user_tokens_revoked, is_token_revoked, revoke_token
from fleet_rental.app.services.audit import log_event, record_event, AuditAction
from fleet_rental.app.services.users import UserService

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _issue_token(user: User) -> TokenResponse:
    claims = token_claims(user)
    return TokenResponse(
        access_token=create_access_token(claims),
        refresh_token=create_refresh_token(claims),
        token_type="bearer",
        user_id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new user.

    - ADMIN role cannot be created via API.
    - DRIVER role requires a licence number.
    """
    if user_data.role == UserRole.ADMIN:
        raise InsufficientPermissionsError("Admin users cannot be registered via API")

    if user_data.role == UserRole.DRIVER and not user_data.license_number:
        raise InvalidArgumentError("License number is required for drivers")

    email = user_data.email.lower()
    conditions = [User.email == email]
    if user_data.license_number:
        conditions.append(User.license_number == user_data.license_number)

    result = await db.execute(select(User).where(or_(*conditions)))
    existing_user = result.scalars().first()
    if existing_user:
        if existing_user.email == email:
            raise ConflictError("Email already registered")
        raise ConflictError("License number already registered")

    new_user = User(
        name=user_data.name,
        email=email,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
        phone=user_data.phone,
        license_number=user_data.license_number if user_data.role == UserRole.DRIVER else None,
        business_name=user_data.business_name if user_data.role == UserRole.OWNER else None,
        is_active=True,
    )
    db.add(new_user)
    await db.flush()

    record_event(
        db,
        AuditAction.USER_CREATED,
        actor_id=new_user.id,
        actor_email=new_user.email,
        target_user_id=new_user.id,
        metadata={"role": new_user.role.value},
    )
    await db.commit()
    await db.refresh(new_user)

    return _issue_token(new_user)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Login user and return JWT token.

    Logs successful and failed login attempts for security monitoring.
    """
    email = credentials.email.lower()
    ip_address = request.client.host if request.client else None

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not user or user.is_deleted:
        await log_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            actor_email=email,
            ip_address=ip_address,
            metadata={"reason": "User not found"}
        )
        raise AuthenticationError("Invalid credentials")

    if not verify_password(credentials.password, user.hashed_password):
        await log_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            actor_id=user.id,
            actor_email=user.email,
            ip_address=ip_address,
            metadata={"reason": "Invalid password"}
        )
        raise AuthenticationError("Invalid credentials")

    if not user.is_active:
        await log_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            actor_id=user.id,
            actor_email=user.email,
            ip_address=ip_address,
            metadata={"reason": "Account is inactive"}
        )
        raise InsufficientPermissionsError("Your account has been deactivated. Please contact support.")

    await log_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        actor_id=user.id,
        actor_email=user.email,
        ip_address=ip_address,
    )

    return _issue_token(user)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get current authenticated user information."""
    result = await db.execute(select(User).where(User.id == current_user["user_id"]))
    user = result.scalar_one_or_none()

    if not user:
        raise ResourceNotFoundError("User", current_user["user_id"])

    return UserResponse.model_validate(user)


@router.post("/logout")
async def logout(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the presented token."""
    revoked = await revoke_token(current_user["token"], current_user["user_id"])

    await log_event(
        db=db,
        action=AuditAction.TOKEN_REVOKED,
        actor_id=current_user["user_id"],
        actor_email=current_user.get("sub"),
        metadata={"revoked": revoked}
    )

    return {"success": True, "message": "Logout successful"}


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh_access_token(
    body: RefreshRequest,
    db: AsyncSession = Depends(get_db)
):
    """Exchange a refresh token for a new access token."""
    claims = decode_refresh_token(body.refresh_token)
    if claims is None or not claims.get("user_id"):
        raise AuthenticationError("Invalid or expired refresh token")

    if await is_token_revoked(body.refresh_token) or await are_user_tokens_revoked(claims["user_id"]):
        raise AuthenticationError("Refresh token has been revoked")

    user = await db.get(User, claims["user_id"])
    if user is None or user.is_deleted or not user.is_active:
        raise AuthenticationError("User not found")

    return AccessTokenResponse(access_token=create_access_token(token_claims(user)))


@router.put("/updatedetails", response_model=UserResponse)
async def update_details(
    body: UserDetailsUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user = await UserService.update_details(db, current_user["user_id"], body)
    return UserResponse.model_validate(user)


@router.put("/updatepassword", response_model=TokenResponse)
async def update_password(
    body: PasswordUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Change the password. The presented token is revoked and a fresh pair issued."""
    user = await UserService.change_password(db, current_user["user_id"], body)
    await revoke_token(current_user["token"], user.id)
    return _issue_token(user)
