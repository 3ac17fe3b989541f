"""API dependencies for authentication and common operations."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from krushilink.core.exceptions import AuthenticationError, AuthorizationError
from krushilink.core.security import verify_token
from krushilink.database import get_db
from krushilink.models.user import User
from krushilink.schemas.user import UserProvision

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Resolve the bearer token to a user, creating the account on first sight."""
    if not credentials:
        raise AuthenticationError("Not authenticated")

    payload = verify_token(credentials.credentials, token_type="access")
    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationError("Invalid token payload")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        user = await _provision_user(db, user_id, payload)

    if user.is_suspended:
        raise AuthenticationError("User account is suspended")

    return user


async def _provision_user(db: AsyncSession, user_id: UUID, payload: dict) -> User:
    if not payload.get("phone") and not payload.get("email"):
        raise AuthenticationError("User not found")

    claims = UserProvision(phone=payload.get("phone"), email=payload.get("email"))
    user = User(id=user_id, phone=claims.phone, email=claims.email, role=None)
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise AuthenticationError("Account already exists for these credentials")

    await db.refresh(user)
    logger.info(f"Provisioned user {user_id} from identity token")
    return user


async def get_current_onboarded_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get current user and verify a role has been chosen."""
    if current_user.role is None:
        raise AuthorizationError("Choose a role to finish onboarding")
    return current_user


async def get_current_farmer(
    current_user: Annotated[User, Depends(get_current_onboarded_user)],
) -> User:
    """Get current user and verify they are a farmer."""
    if current_user.role != "farmer":
        raise AuthorizationError("Farmer access required")
    return current_user


async def get_current_driver(
    current_user: Annotated[User, Depends(get_current_onboarded_user)],
) -> User:
    """Get current user and verify they are a driver."""
    if current_user.role != "driver":
        raise AuthorizationError("Driver access required")
    return current_user


async def get_current_admin(
    current_user: Annotated[User, Depends(get_current_onboarded_user)],
) -> User:
    """Get current user and verify they are an admin."""
    if current_user.role != "admin":
        raise AuthorizationError("Admin access required")
    return current_user


def get_client_ip(request: Request) -> str | None:
    """Client IP for audit entries."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
