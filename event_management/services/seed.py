"""
Idempotent seed data: roles, their permissions, the admin account and a
few demo events. Safe to run on every startup.
"""

from datetime import timedelta

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from event_management.models.event import Event
from event_management.models.user import User
from event_management.core.config import get_settings
from event_management.core.logging import get_logger
from event_management.core.permissions import Permission, ALL_PERMISSIONS
from event_management.core.security import hash_password
from event_management.services.authorization_service import (
    ensure_role,
    grant_permission,
    assign_role,
)
from event_management.utils import utcnow

logger = get_logger(__name__)
settings = get_settings()

ROLE_USER = "User"
ROLE_ADMIN = "Admin"
ROLE_SUPERVISOR = "Supervisor"

ROLE_PERMISSIONS: dict[str, tuple[str, ...]] = {
    ROLE_USER: (),
    ROLE_ADMIN: (Permission.MANAGE_EVENTS.value, Permission.VIEW_SUBSCRIBERS.value),
    ROLE_SUPERVISOR: ALL_PERMISSIONS,
}

DEMO_EVENTS = (
    ("Music Festival", 5, "Rome", "Music", 200),
    ("Tech Conference", 10, "Milan", "Technology", 500),
    ("Art Exhibition", 2, "Florence", "Art", 100),
)


async def seed_roles(db: AsyncSession) -> None:
    for role_name, permissions in ROLE_PERMISSIONS.items():
        await ensure_role(db, role_name)
        for permission in permissions:
            await grant_permission(db, role_name, permission)


async def seed_admin(db: AsyncSession) -> User:
    email = settings.SEED_ADMIN_EMAIL.lower()
    result = await db.execute(select(User).where(User.email == email))
    admin = result.scalar_one_or_none()
    if admin is None:
        admin = User(
            email=email,
            display_name="Administrator",
            hashed_password=hash_password(settings.SEED_ADMIN_PASSWORD),
            email_confirmed=True,
        )
        db.add(admin)
        await db.flush()
        logger.info("seed_admin_created", user_id=admin.id, email=email)

    await assign_role(db, admin.id, ROLE_ADMIN)
    return admin


async def seed_demo_events(db: AsyncSession) -> int:
    existing = (await db.execute(select(func.count(Event.id)))).scalar_one()
    if existing:
        return 0

    now = utcnow()
    for title, days_ahead, location, category, capacity in DEMO_EVENTS:
        db.add(
            Event(
                title=title,
                start_time=now + timedelta(days=days_ahead),
                location=location,
                category=category,
                max_participants=capacity,
            )
        )
    await db.flush()
    logger.info("seed_demo_events_created", count=len(DEMO_EVENTS))
    return len(DEMO_EVENTS)


async def seed_database(db: AsyncSession) -> None:
    await seed_roles(db)
    await seed_admin(db)
    if settings.SEED_DEMO_EVENTS:
        await seed_demo_events(db)
    logger.info("seed_complete")
