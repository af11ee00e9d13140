"""
Role and permission management, and the permission check itself.

has_permission walks principal -> user -> roles -> permission claims and
grants on the first role carrying the requested permission. It never
raises: a denial is just False, and the API layer turns it into 401/403.

Permission strings are validated against the Permission enum only when
they are granted to a role.
"""

from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from event_management.models.role import Role, RoleClaim, UserRole
from event_management.models.user import User
from event_management.core.logging import get_logger
from event_management.core.metrics import record_authorization
from event_management.core.permissions import CLAIM_TYPE, is_known_permission
from event_management.core.security import Principal

logger = get_logger(__name__)


async def get_role_by_name(db: AsyncSession, name: str) -> Optional[Role]:
    result = await db.execute(select(Role).where(Role.name == name))
    return result.scalar_one_or_none()


async def _user_role_rows(db: AsyncSession, user_id: int) -> list[tuple[int, str]]:
    result = await db.execute(
        select(Role.id, Role.name)
        .join(UserRole, UserRole.role_id == Role.id)
        .where(UserRole.user_id == user_id)
        .order_by(Role.name)
    )
    return [(role_id, name) for role_id, name in result.all()]


async def get_user_roles(db: AsyncSession, user_id: int) -> list[str]:
    """Names of the roles held by a user, alphabetical."""
    return [name for _, name in await _user_role_rows(db, user_id)]


async def get_role_permissions(db: AsyncSession, role_id: int) -> list[str]:
    result = await db.execute(
        select(RoleClaim.claim_value)
        .where(RoleClaim.role_id == role_id, RoleClaim.claim_type == CLAIM_TYPE)
        .order_by(RoleClaim.claim_value)
    )
    return list(result.scalars().all())


async def get_user_permissions(db: AsyncSession, user_id: int) -> list[str]:
    """Union of permission claims across every role the user holds."""
    result = await db.execute(
        select(RoleClaim.claim_value)
        .join(UserRole, UserRole.role_id == RoleClaim.role_id)
        .where(UserRole.user_id == user_id, RoleClaim.claim_type == CLAIM_TYPE)
        .distinct()
        .order_by(RoleClaim.claim_value)
    )
    return list(result.scalars().all())


async def has_permission(db: AsyncSession, principal: Principal, permission: str) -> bool:
    """Does the principal hold ``permission`` through any of its roles?"""
    metric_label = permission if is_known_permission(permission) else "unknown"

    if not principal.is_authenticated:
        record_authorization(metric_label, False)
        return False

    user = await db.get(User, principal.user_id)
    if user is None or not user.is_active:
        reason = "no_user" if user is None else "inactive"
        logger.info("permission_denied", user_id=principal.user_id, permission=permission, reason=reason)
        record_authorization(metric_label, False)
        return False

    for role_id, role_name in await _user_role_rows(db, user.id):
        if permission in await get_role_permissions(db, role_id):
            logger.debug("permission_granted", user_id=user.id, permission=permission, role=role_name)
            record_authorization(metric_label, True)
            return True

    logger.info("permission_denied", user_id=user.id, permission=permission, reason="no_role_grants")
    record_authorization(metric_label, False)
    return False


# ---------------------------------------------------------------------------
# Role administration
# ---------------------------------------------------------------------------

async def list_roles(db: AsyncSession) -> list[tuple[Role, list[str]]]:
    result = await db.execute(select(Role).order_by(Role.name))
    roles = list(result.scalars().all())
    return [(role, await get_role_permissions(db, role.id)) for role in roles]


async def ensure_role(db: AsyncSession, name: str) -> Role:
    """Return the named role, creating it if needed."""
    role = await get_role_by_name(db, name)
    if role is None:
        role = Role(name=name)
        db.add(role)
        await db.flush()
        logger.info("role_created", role=name)
    return role


async def create_role(db: AsyncSession, name: str) -> Role:
    if await get_role_by_name(db, name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Role '{name}' already exists",
        )
    return await ensure_role(db, name)


async def _require_role(db: AsyncSession, name: str) -> Role:
    role = await get_role_by_name(db, name)
    if role is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Role '{name}' not found",
        )
    return role


async def delete_role(db: AsyncSession, name: str) -> None:
    role = await _require_role(db, name)
    await db.delete(role)
    await db.flush()
    logger.info("role_deleted", role=name)


async def grant_permission(db: AsyncSession, role_name: str, permission: str) -> list[str]:
    """
    Attach a permission claim to a role. Unknown permissions are rejected
    with 422; granting one the role already has is a no-op.
    Returns the role's permissions afterwards.
    """
    if not is_known_permission(permission):
        logger.warning("permission_grant_rejected", role=role_name, permission=permission)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown permission '{permission}'",
        )

    role = await _require_role(db, role_name)
    current = await get_role_permissions(db, role.id)
    if permission not in current:
        db.add(RoleClaim(role_id=role.id, claim_type=CLAIM_TYPE, claim_value=permission))
        await db.flush()
        logger.info("permission_granted_to_role", role=role_name, permission=permission)
        current = sorted([*current, permission])
    return current


async def revoke_permission(db: AsyncSession, role_name: str, permission: str) -> list[str]:
    role = await _require_role(db, role_name)
    result = await db.execute(
        delete(RoleClaim).where(
            RoleClaim.role_id == role.id,
            RoleClaim.claim_type == CLAIM_TYPE,
            RoleClaim.claim_value == permission,
        )
    )
    if result.rowcount:
        logger.info("permission_revoked_from_role", role=role_name, permission=permission)
    return await get_role_permissions(db, role.id)


# ---------------------------------------------------------------------------
# User role assignment
# ---------------------------------------------------------------------------

async def _require_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found",
        )
    return user


async def assign_role(db: AsyncSession, user_id: int, role_name: str) -> list[str]:
    """Give a user a role (idempotent). Returns the user's roles afterwards."""
    user = await _require_user(db, user_id)
    role = await _require_role(db, role_name)

    if await db.get(UserRole, (user.id, role.id)) is None:
        db.add(UserRole(user_id=user.id, role_id=role.id))
        await db.flush()
        logger.info("role_assigned", user_id=user.id, role=role_name)
    return await get_user_roles(db, user.id)


async def remove_role(db: AsyncSession, user_id: int, role_name: str) -> list[str]:
    user = await _require_user(db, user_id)
    role = await _require_role(db, role_name)

    result = await db.execute(
        delete(UserRole).where(UserRole.user_id == user.id, UserRole.role_id == role.id)
    )
    if result.rowcount:
        logger.info("role_removed", user_id=user.id, role=role_name)
    return await get_user_roles(db, user.id)
