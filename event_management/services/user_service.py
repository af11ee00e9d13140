"""
User administration.

Deleting a user removes their subscriptions and role assignments through
the ON DELETE CASCADE foreign keys; comments keep their text and display
name with user_id set to NULL.
"""

from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from event_management.models.user import User
from event_management.schemas.user import UserWithRolesResponse, UserResponse
from event_management.services.authorization_service import get_user_roles, get_user_permissions
from event_management.core.logging import get_logger

logger = get_logger(__name__)


async def get_user(db: AsyncSession, user_id: int) -> Optional[User]:
    return await db.get(User, user_id)


async def describe_user(db: AsyncSession, user: User) -> UserWithRolesResponse:
    return UserWithRolesResponse(
        **UserResponse.model_validate(user).model_dump(),
        roles=await get_user_roles(db, user.id),
        permissions=await get_user_permissions(db, user.id),
    )


async def list_users(db: AsyncSession) -> list[UserWithRolesResponse]:
    result = await db.execute(select(User).order_by(User.email))
    return [await describe_user(db, user) for user in result.scalars().all()]


async def delete_user(db: AsyncSession, user_id: int, acting_user_id: int) -> None:
    if user_id == acting_user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account here",
        )

    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found",
        )

    await db.delete(user)
    await db.flush()
    logger.info("user_deleted", user_id=user_id, deleted_by=acting_user_id)


async def set_active(db: AsyncSession, user_id: int, active: bool) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found",
        )
    user.is_active = active
    await db.flush()
    logger.info("user_activation_changed", user_id=user_id, active=active)
    return user
