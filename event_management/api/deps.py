"""
Access-control dependencies.

require_permission(p) is the HTTP face of has_permission: anonymous callers
get 401, authenticated callers without the permission get 403.
"""

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from event_management.db.session import get_db
from event_management.core.permissions import Permission
from event_management.core.security import Principal, get_current_principal
from event_management.services.authorization_service import has_permission


def require_permission(permission: Permission):
    async def dependency(
        principal: Principal = Depends(get_current_principal),
        db: AsyncSession = Depends(get_db),
    ) -> Principal:
        if not principal.is_authenticated:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if not await has_permission(db, principal, permission.value):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission '{permission.value}'",
            )
        return principal

    return dependency
