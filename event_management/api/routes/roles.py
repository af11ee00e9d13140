"""
Role and permission-matrix endpoints.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from event_management.db.session import get_db
from event_management.schemas.role import (
    RoleCreate,
    RoleResponse,
    PermissionGrant,
    PermissionCheckResponse,
)
from event_management.services import authorization_service
from event_management.api.deps import require_permission
from event_management.core.permissions import ALL_PERMISSIONS, Permission
from event_management.core.security import Principal, get_current_principal

router = APIRouter(tags=["Roles"])


@router.get("/permissions", response_model=list[str])
async def list_permissions_endpoint():
    """The closed set of grantable permissions."""
    return list(ALL_PERMISSIONS)


@router.get("/permissions/check", response_model=PermissionCheckResponse)
async def check_permission_endpoint(
    permission: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Whether the caller holds a permission; used by clients to show or hide admin UI."""
    granted = await authorization_service.has_permission(db, principal, permission)
    return PermissionCheckResponse(permission=permission, granted=granted)


@router.get("/roles", response_model=list[RoleResponse])
async def list_roles_endpoint(
    principal: Principal = Depends(require_permission(Permission.MANAGE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return [
        RoleResponse(id=role.id, name=role.name, permissions=permissions)
        for role, permissions in await authorization_service.list_roles(db)
    ]


@router.post("/roles", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role_endpoint(
    data: RoleCreate,
    principal: Principal = Depends(require_permission(Permission.MANAGE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    role = await authorization_service.create_role(db, data.name.strip())
    return RoleResponse(id=role.id, name=role.name, permissions=[])


@router.delete("/roles/{role_name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role_endpoint(
    role_name: str,
    principal: Principal = Depends(require_permission(Permission.MANAGE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    await authorization_service.delete_role(db, role_name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/roles/{role_name}/permissions", response_model=list[str])
async def grant_permission_endpoint(
    role_name: str,
    data: PermissionGrant,
    principal: Principal = Depends(require_permission(Permission.CONFIGURE_PERMISSIONS)),
    db: AsyncSession = Depends(get_db),
):
    return await authorization_service.grant_permission(db, role_name, data.permission)


@router.delete("/roles/{role_name}/permissions/{permission}", response_model=list[str])
async def revoke_permission_endpoint(
    role_name: str,
    permission: str,
    principal: Principal = Depends(require_permission(Permission.CONFIGURE_PERMISSIONS)),
    db: AsyncSession = Depends(get_db),
):
    return await authorization_service.revoke_permission(db, role_name, permission)
