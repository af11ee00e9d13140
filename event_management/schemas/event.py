"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, computed_field, model_validator

from event_management.utils import to_naive_utc


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    start_time: datetime
    location: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = Field(None, max_length=100)
    max_participants: int = Field(..., ge=0, le=100000)


class EventUpdate(EventCreate):
    """Updates overwrite every field, so the payload is a full event."""


class EventResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    start_time: datetime
    location: Optional[str]
    category: Optional[str]
    max_participants: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class EventSubscriptionEntry(BaseModel):
    id: int
    user_id: int
    created_at: datetime

    model_config = {"from_attributes": True}


class EventDetail(EventResponse):
    subscriptions: list[EventSubscriptionEntry] = []

    @computed_field
    @property
    def subscription_count(self) -> int:
        return len(self.subscriptions)

    @computed_field
    @property
    def remaining_places(self) -> int:
        return max(self.max_participants - len(self.subscriptions), 0)


class EventSearchParams(BaseModel):
    text: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=200)
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    @model_validator(mode="after")
    def check_range(self) -> "EventSearchParams":
        if self.date_from and self.date_to:
            if to_naive_utc(self.date_from) > to_naive_utc(self.date_to):
                raise ValueError("date_from must not be after date_to")
        return self


class EventStats(BaseModel):
    total_events: int
    upcoming_events: int
    total_subscriptions: int
    total_capacity: int
