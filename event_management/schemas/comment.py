"""
Pydantic schemas for event comments.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class CommentCreate(BaseModel):
    body: str = Field(..., min_length=1, max_length=2000)
    parent_id: Optional[int] = None


class CommentResponse(BaseModel):
    id: int
    event_id: int
    parent_id: Optional[int]
    user_id: Optional[int]
    user_display_name: str
    body: str
    from_admin: bool
    is_hidden: bool
    created_at: datetime
    replies: list["CommentResponse"] = []

    model_config = {"from_attributes": True}


class CommentVisibility(BaseModel):
    hidden: bool
