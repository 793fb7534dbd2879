"""
User accounts: lookups, self-service profile edits and password changes.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.core.exceptions import (
    AuthenticationError,
    ConflictError,
    InsufficientPermissionsError,
    ResourceNotFoundError,
)
from fleet_rental.app.core.guards import is_admin
from fleet_rental.app.core.security import get_password_hash, verify_password
from fleet_rental.app.models.enums import UserRole
from fleet_rental.app.models.mixins import not_deleted
from fleet_rental.app.models.user import User
from fleet_rental.app.schemas.auth import PasswordUpdate, ProfileUpdate, UserDetailsUpdate
from fleet_rental.app.services.audit import AuditAction, record_event

logger = logging.getLogger("fleet_rental.users")


class UserService:

    @staticmethod
    async def get_user(db: AsyncSession, user_id: int) -> User:
        result = await db.execute(select(User).where(User.id == user_id, not_deleted(User)))
        user = result.scalar_one_or_none()
        if not user:
            raise ResourceNotFoundError("User", user_id)
        return user

    @staticmethod
    async def get_profile(db: AsyncSession, user_id: int, current_user: dict) -> User:
        """A user's own profile; admins may read anyone's."""
        user = await UserService.get_user(db, user_id)
        if not is_admin(current_user) and user.id != current_user["user_id"]:
            raise InsufficientPermissionsError("Not authorized to view this profile")
        return user

    @staticmethod
    async def _ensure_unique(db: AsyncSession, user_id: int, column, value, label: str) -> None:
        result = await db.execute(select(User.id).where(column == value, User.id != user_id))
        if result.first():
            raise ConflictError(f"{label} already registered")

    @staticmethod
    async def _save(db: AsyncSession, user: User, action: str, changed: List[str]) -> User:
        record_event(
            db,
            action,
            actor_id=user.id,
            actor_email=user.email,
            target_user_id=user.id,
            metadata={"fields": changed} if changed else None,
        )
        await db.commit()
        await db.refresh(user)
        logger.info("User %s: %s %s", user.id, action, ", ".join(changed))
        return user

    @staticmethod
    async def update_details(db: AsyncSession, user_id: int, data: UserDetailsUpdate) -> User:
        """Name, email and phone of the caller's own account."""
        user = await UserService.get_user(db, user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if "email" in changes:
            changes["email"] = changes["email"].lower()
            await UserService._ensure_unique(db, user.id, User.email, changes["email"], "Email")

        for field, value in changes.items():
            setattr(user, field, value)
        return await UserService._save(db, user, AuditAction.PROFILE_UPDATED, sorted(changes))

    @staticmethod
    async def update_profile(db: AsyncSession, user_id: int, data: ProfileUpdate, current_user: dict) -> User:
        """
        Edit a profile. Only the account holder may do this, admins included.
        Drivers may change their licence number, owners their business name.
        """
        if user_id != current_user["user_id"]:
            raise InsufficientPermissionsError("Not authorized to update this profile")

        user = await UserService.get_user(db, user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if user.role != UserRole.DRIVER:
            changes.pop("license_number", None)
        if user.role != UserRole.OWNER:
            changes.pop("business_name", None)

        if "license_number" in changes:
            await UserService._ensure_unique(
                db, user.id, User.license_number, changes["license_number"], "License number"
            )

        for field, value in changes.items():
            setattr(user, field, value)
        return await UserService._save(db, user, AuditAction.PROFILE_UPDATED, sorted(changes))

    @staticmethod
    async def change_password(db: AsyncSession, user_id: int, data: PasswordUpdate) -> User:
        """
        Raises:
            AuthenticationError: If current_password does not match
        """
        user = await UserService.get_user(db, user_id)
        if not verify_password(data.current_password, user.hashed_password):
            raise AuthenticationError("Current password is incorrect")

        user.hashed_password = get_password_hash(data.new_password)
        return await UserService._save(db, user, AuditAction.PASSWORD_CHANGED, [])

    @staticmethod
    async def list_users(
        db: AsyncSession,
        role: Optional[UserRole] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Tuple[List[User], int]:
        """Non-deleted users, newest first."""
        conditions = [not_deleted(User)]
        if role:
            conditions.append(User.role == role)

        total = (await db.execute(select(func.count(User.id)).where(*conditions))).scalar()
        result = await db.execute(
            select(User)
            .where(*conditions)
            .order_by(User.created_at.desc(), User.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total
