"""User endpoints."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from krushilink.api.deps import get_current_driver, get_current_user, get_db
from krushilink.core.exceptions import NotFoundError, ValidationError
from krushilink.models.user import User
from krushilink.schemas.user import (
    AvailabilityUpdate,
    DriverProfileUpdate,
    FarmerProfileUpdate,
    PublicUserResponse,
    PushTokenRegister,
    RoleSelect,
    UserResponse,
    UserUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _save(db: AsyncSession, user: User) -> User:
    await db.flush()
    await db.refresh(user)
    return user


@router.get("/me", response_model=UserResponse)
async def get_my_profile(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get current user's profile."""
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_my_profile(
    updates: UserUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Update current user's profile."""
    update_data = updates.model_dump(exclude_unset=True)

    # Check email uniqueness if being updated
    if update_data.get("email"):
        result = await db.execute(
            select(User.id).where(User.email == update_data["email"], User.id != current_user.id)
        )
        if result.scalar_one_or_none():
            raise ValidationError("Email already registered")

    for field, value in update_data.items():
        setattr(current_user, field, value)

    return await _save(db, current_user)


@router.post("/me/role", response_model=UserResponse)
async def select_role(
    request: RoleSelect,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Pick farmer or driver. Can only be done once."""
    if current_user.role is not None:
        raise ValidationError(f"Role already set to {current_user.role}")

    current_user.role = request.role
    if request.role == "driver":
        # Drivers stay offline until an admin verifies them
        current_user.is_active = False

    logger.info(f"User {current_user.id} onboarded as {request.role}")
    return await _save(db, current_user)


@router.put("/me/driver-profile", response_model=UserResponse)
async def update_driver_profile(
    profile: DriverProfileUpdate,
    current_user: Annotated[User, Depends(get_current_driver)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Fill in tractor and location details."""
    for field, value in profile.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)
    current_user.is_profile_complete = True
    return await _save(db, current_user)


@router.put("/me/farmer-profile", response_model=UserResponse)
async def update_farmer_profile(
    profile: FarmerProfileUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Fill in farm details."""
    if current_user.role != "farmer":
        raise ValidationError("Only farmers have a farm profile")

    for field, value in profile.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)
    current_user.is_profile_complete = True
    return await _save(db, current_user)


@router.post("/me/availability", response_model=UserResponse)
async def update_availability(
    request: AvailabilityUpdate,
    current_user: Annotated[User, Depends(get_current_driver)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Go online or offline, optionally updating the current location."""
    if request.is_active and not current_user.is_verified:
        raise ValidationError("Your account is awaiting verification")

    current_user.is_active = request.is_active
    if request.latitude is not None and request.longitude is not None:
        current_user.latitude = request.latitude
        current_user.longitude = request.longitude

    return await _save(db, current_user)


@router.post("/me/push-token", response_model=UserResponse)
async def register_push_token(
    request: PushTokenRegister,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Register the device token used for push notifications."""
    current_user.push_token = request.token
    return await _save(db, current_user)


@router.get("/{user_id}", response_model=PublicUserResponse)
async def get_user_profile(
    user_id: UUID,
    _: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get public profile of a user."""
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user or user.is_suspended:
        raise NotFoundError("User", str(user_id))

    return user
