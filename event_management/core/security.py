"""
Password hashing, JWT issuing/decoding and the request principal.

Access tokens carry the user id in ``sub`` and a ``jti`` so they can be
revoked on logout. Email-confirmation tokens are JWTs with a ``purpose``
claim and a longer lifetime.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from event_management.core.config import get_settings
from event_management.core.logging import get_logger
from event_management.db.session import get_db
from event_management.models.user import User
from event_management.services.token_blocklist import is_token_revoked

logger = get_logger(__name__)
settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)

ACCESS_TOKEN_PURPOSE = "access"
EMAIL_CONFIRMATION_PURPOSE = "email_confirmation"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(
        password.encode(), bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    ).decode()


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        # Malformed hash in storage
        return False


def _encode(claims: dict, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": now,
        "exp": now + expires_delta,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed access token. ``data`` must contain ``sub``."""
    return _encode(
        {**data, "purpose": ACCESS_TOKEN_PURPOSE},
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_email_confirmation_token(user_id: int) -> str:
    return _encode(
        {"sub": str(user_id), "purpose": EMAIL_CONFIRMATION_PURPOSE},
        timedelta(hours=settings.EMAIL_CONFIRMATION_EXPIRE_HOURS),
    )


def decode_token(token: str, purpose: str = ACCESS_TOKEN_PURPOSE) -> dict:
    """Decode and verify a token. Raises jwt.PyJWTError on failure."""
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("purpose") != purpose:
        raise jwt.InvalidTokenError(f"Token is not a {purpose} token")
    return payload


@dataclass(frozen=True)
class Principal:
    """Caller identity resolved from the request. Anonymous when user_id is None."""

    user_id: Optional[int] = None
    token_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


ANONYMOUS = Principal()


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    """Resolve the bearer token to a principal; invalid or missing tokens are anonymous."""
    if credentials is None:
        return ANONYMOUS

    try:
        payload = decode_token(credentials.credentials)
        user_id = int(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError) as e:
        logger.info("token_rejected", reason=str(e))
        return ANONYMOUS

    jti = payload.get("jti")
    if jti and await is_token_revoked(jti):
        logger.info("token_rejected", reason="revoked", user_id=user_id)
        return ANONYMOUS

    return Principal(user_id=user_id, token_id=jti)


async def get_current_user_id(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> int:
    """
    Dependency for endpoints that require a signed-in, active user.
    Tokens stay valid until expiry, so the account is re-checked on every request.
    """
    if not principal.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await db.get(User, principal.user_id)
    if user is None or not user.is_active:
        logger.info("token_rejected", reason="inactive_account", user_id=principal.user_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is deactivated or no longer exists",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user.id
