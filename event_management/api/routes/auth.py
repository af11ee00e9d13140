"""
Authentication endpoints: register, confirm email, login and logout.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from event_management.db.session import get_db
from event_management.schemas.user import (
    UserCreate,
    UserResponse,
    UserWithRolesResponse,
    UserLogin,
    Token,
    EmailRequest,
    MessageResponse,
)
from event_management.services import auth_service, user_service
from event_management.core.security import bearer_scheme, get_current_user_id

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, request: Request, db: AsyncSession = Depends(get_db)):
    """Register a new account. A confirmation link is issued for the email address."""
    return await auth_service.register_user(db, user_data, base_url=str(request.base_url))


@router.get("/confirm-email", response_model=MessageResponse)
async def confirm_email(token: str = Query(..., min_length=1), db: AsyncSession = Depends(get_db)):
    await auth_service.confirm_email(db, token)
    return MessageResponse(message="Email confirmed")


@router.post("/resend-confirmation", response_model=MessageResponse)
async def resend_confirmation(
    payload: EmailRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    # Same answer either way so the endpoint cannot be used to probe accounts
    await auth_service.resend_confirmation(db, payload.email, base_url=str(request.base_url))
    return MessageResponse(message="If the account exists and is unconfirmed, a new link was sent")


@router.post("/login", response_model=Token)
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate and receive a JWT access token."""
    token = await auth_service.authenticate_user(db, login_data)
    return Token(access_token=token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    user_id: int = Depends(get_current_user_id),
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
):
    await auth_service.logout(credentials.credentials)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserWithRolesResponse)
async def me(user_id: int = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    user = await user_service.get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return await user_service.describe_user(db, user)
