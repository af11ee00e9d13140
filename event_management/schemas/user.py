"""
Pydantic schemas for user-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    email: EmailStr
    display_name: Optional[str] = Field(None, max_length=100)
    password: str = Field(..., min_length=6, max_length=128)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: int
    email: str
    display_name: Optional[str]
    email_confirmed: bool
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class UserWithRolesResponse(UserResponse):
    roles: list[str] = []
    permissions: list[str] = []


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class EmailRequest(BaseModel):
    email: EmailStr


class MessageResponse(BaseModel):
    message: str
