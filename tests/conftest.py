"""
Pytest fixtures for test database, client, and authentication.

Each test gets a fresh SQLite database file with foreign keys enforced,
so cascade behaviour matches production.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SEED_ON_STARTUP", "false")

from datetime import timedelta
from typing import AsyncGenerator, Iterable

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from event_management.main import app
from event_management.db.base import Base
from event_management.db.session import get_db, build_engine
from event_management.core.security import create_access_token, hash_password
from event_management.models import User, Event
from event_management.services.authorization_service import assign_role
from event_management.services.seed import seed_roles, ROLE_ADMIN, ROLE_SUPERVISOR, ROLE_USER
from event_management.utils import utcnow


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables in a throwaway database and hand out sessions bound to it."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def roles(db_session: AsyncSession) -> None:
    """Standard roles with their permission grants."""
    await seed_roles(db_session)
    await db_session.commit()


async def make_user(
    db: AsyncSession,
    email: str,
    role_names: Iterable[str] = (),
    display_name: str | None = None,
    password: str = "password123",
    confirmed: bool = True,
) -> User:
    user = User(
        email=email,
        display_name=display_name,
        hashed_password=hash_password(password),
        email_confirmed=confirmed,
    )
    db.add(user)
    await db.flush()
    for role_name in role_names:
        await assign_role(db, user.id, role_name)
    await db.commit()
    await db.refresh(user)
    return user


async def make_event(
    db: AsyncSession,
    title: str = "Test Concert",
    days_ahead: float = 30,
    max_participants: int = 100,
    **fields,
) -> Event:
    event = Event(
        title=title,
        start_time=utcnow() + timedelta(days=days_ahead),
        max_participants=max_participants,
        **fields,
    )
    db.add(event)
    await db.commit()
    await db.refresh(event)
    return event


def headers_for(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def alice(db_session: AsyncSession, roles) -> User:
    return await make_user(db_session, "alice@example.com", [ROLE_USER], display_name="Alice")


@pytest_asyncio.fixture
async def bob(db_session: AsyncSession, roles) -> User:
    return await make_user(db_session, "bob@example.com", [ROLE_USER], display_name="Bob")


@pytest_asyncio.fixture
async def carol(db_session: AsyncSession, roles) -> User:
    return await make_user(db_session, "carol@example.com", [ROLE_USER])


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession, roles) -> User:
    return await make_user(db_session, "admin@example.com", [ROLE_ADMIN], display_name="Admin")


@pytest_asyncio.fixture
async def supervisor(db_session: AsyncSession, roles) -> User:
    return await make_user(
        db_session, "supervisor@example.com", [ROLE_SUPERVISOR, ROLE_ADMIN], display_name="Supervisor"
    )


@pytest_asyncio.fixture
async def alice_headers(alice: User) -> dict:
    return headers_for(alice)


@pytest_asyncio.fixture
async def admin_headers(admin: User) -> dict:
    return headers_for(admin)


@pytest_asyncio.fixture
async def supervisor_headers(supervisor: User) -> dict:
    return headers_for(supervisor)


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession) -> Event:
    """An upcoming event with 100 places."""
    return await make_event(
        db_session,
        description="A test event",
        location="Test Venue",
        category="Music",
    )
