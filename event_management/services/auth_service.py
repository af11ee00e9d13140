"""
Authentication service handling registration, email confirmation, login
and logout.

Email delivery is not part of this service: the confirmation link is
logged so an operator (or a mail relay tailing the log) can pick it up.
"""

from datetime import datetime, timezone
from typing import Optional

import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from event_management.models.user import User
from event_management.schemas.user import UserCreate, UserLogin
from event_management.core.config import get_settings
from event_management.core.security import (
    EMAIL_CONFIRMATION_PURPOSE,
    hash_password,
    verify_password,
    create_access_token,
    create_email_confirmation_token,
    decode_token,
)
from event_management.core.logging import get_logger
from event_management.services.authorization_service import assign_role, ensure_role
from event_management.services.token_blocklist import revoke_token

logger = get_logger(__name__)
settings = get_settings()

CONFIRM_PATH = "/api/v1/auth/confirm-email"


def build_confirmation_url(base_url: str, token: str) -> str:
    base = (settings.PUBLIC_BASE_URL or base_url).rstrip("/")
    return f"{base}{CONFIRM_PATH}?token={token}"


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


def issue_confirmation(user: User, base_url: str) -> str:
    token = create_email_confirmation_token(user.id)
    confirm_url = build_confirmation_url(base_url, token)
    logger.info("email_confirmation_issued", user_id=user.id, email=user.email, confirm_url=confirm_url)
    return token


async def register_user(db: AsyncSession, user_data: UserCreate, base_url: str = "") -> User:
    """
    Register a new, unconfirmed user with the default role.
    Raises 409 if the email already exists.
    """
    email = user_data.email.lower()
    if await get_user_by_email(db, email):
        logger.warning("registration_failed", reason="email_exists", email=email)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    user = User(
        email=email,
        display_name=user_data.display_name,
        hashed_password=hash_password(user_data.password),
        email_confirmed=False,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    await ensure_role(db, settings.DEFAULT_USER_ROLE)
    await assign_role(db, user.id, settings.DEFAULT_USER_ROLE)

    issue_confirmation(user, base_url)
    logger.info("user_registered", user_id=user.id, email=user.email)
    return user


async def confirm_email(db: AsyncSession, token: str) -> User:
    """Mark the token's user as confirmed. Raises 400 on a bad or expired token."""
    try:
        payload = decode_token(token, purpose=EMAIL_CONFIRMATION_PURPOSE)
        user_id = int(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired confirmation token",
        )

    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid user",
        )

    if not user.email_confirmed:
        user.email_confirmed = True
        await db.flush()
        logger.info("email_confirmed", user_id=user.id)
    return user


async def resend_confirmation(db: AsyncSession, email: str, base_url: str = "") -> bool:
    """Issue a new confirmation link. Returns False for unknown or already confirmed accounts."""
    user = await get_user_by_email(db, email)
    if user is None or user.email_confirmed:
        return False
    issue_confirmation(user, base_url)
    return True


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> str:
    """
    Authenticate user and return JWT access token.
    Raises 401 if credentials are invalid, 403 if the account cannot sign in.
    """
    user = await get_user_by_email(db, login_data.email)

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", email=login_data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )

    if settings.REQUIRE_CONFIRMED_EMAIL and not user.email_confirmed:
        logger.info("login_blocked_unconfirmed", user_id=user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Email address not confirmed",
        )

    token = create_access_token(data={"sub": str(user.id)})
    logger.info("user_logged_in", user_id=user.id)
    return token


async def logout(token: str) -> bool:
    """Revoke an access token for the rest of its lifetime."""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"verify_exp": False},
        )
    except jwt.PyJWTError:
        return False

    jti = payload.get("jti")
    if not jti:
        return False

    expires_at = datetime.fromtimestamp(payload.get("exp", 0), tz=timezone.utc)
    ttl = int((expires_at - datetime.now(timezone.utc)).total_seconds())
    logger.info("user_logged_out", user_id=payload.get("sub"))
    return await revoke_token(jti, ttl)
