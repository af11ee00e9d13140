"""
User administration endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from event_management.db.session import get_db
from event_management.schemas.role import RoleAssignment
from event_management.schemas.user import UserWithRolesResponse
from event_management.services import authorization_service, user_service
from event_management.api.deps import require_permission
from event_management.core.permissions import Permission
from event_management.core.security import Principal

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/", response_model=list[UserWithRolesResponse])
async def list_users_endpoint(
    principal: Principal = Depends(require_permission(Permission.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.list_users(db)


@router.get("/{user_id}", response_model=UserWithRolesResponse)
async def get_user_endpoint(
    user_id: int,
    principal: Principal = Depends(require_permission(Permission.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User {user_id} not found")
    return await user_service.describe_user(db, user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user_endpoint(
    user_id: int,
    principal: Principal = Depends(require_permission(Permission.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
):
    await user_service.delete_user(db, user_id, acting_user_id=principal.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{user_id}/activation", response_model=UserWithRolesResponse)
async def activate_user_endpoint(
    user_id: int,
    active: bool = True,
    principal: Principal = Depends(require_permission(Permission.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.set_active(db, user_id, active)
    return await user_service.describe_user(db, user)


@router.post("/{user_id}/roles", response_model=list[str])
async def assign_role_endpoint(
    user_id: int,
    data: RoleAssignment,
    principal: Principal = Depends(require_permission(Permission.MANAGE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return await authorization_service.assign_role(db, user_id, data.role)


@router.delete("/{user_id}/roles/{role_name}", response_model=list[str])
async def remove_role_endpoint(
    user_id: int,
    role_name: str,
    principal: Principal = Depends(require_permission(Permission.MANAGE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return await authorization_service.remove_role(db, user_id, role_name)
