"""
Pydantic schemas for roles and permission grants.
"""

from pydantic import BaseModel, Field


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_\- ]+$")


class RoleResponse(BaseModel):
    id: int
    name: str
    permissions: list[str] = []


class PermissionGrant(BaseModel):
    permission: str = Field(..., min_length=1, max_length=128)


class RoleAssignment(BaseModel):
    role: str = Field(..., min_length=1, max_length=64)


class PermissionCheckResponse(BaseModel):
    permission: str
    granted: bool
