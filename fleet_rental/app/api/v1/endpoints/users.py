"""
User profiles.

Anyone may read and edit their own profile; admins may read any profile.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.core.dependencies import get_current_user
from fleet_rental.app.db.session import get_db
from fleet_rental.app.schemas.auth import ProfileUpdate, UserResponse
from fleet_rental.app.services.users import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/profile", response_model=UserResponse)
async def my_profile(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await UserService.get_profile(db, current_user["user_id"], current_user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_profile(
    user_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await UserService.get_profile(db, user_id, current_user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_profile(
    user_id: int,
    body: ProfileUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await UserService.update_profile(db, user_id, body, current_user)
