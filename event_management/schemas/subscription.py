"""
Pydantic schemas for the subscription workflow.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class SubscribeResult(str, Enum):
    """Closed set of outcomes of a subscribe request."""

    SUCCESS = "success"
    EVENT_NOT_FOUND = "event_not_found"
    USER_NOT_FOUND = "user_not_found"
    EVENT_CLOSED = "event_closed"
    ALREADY_SUBSCRIBED = "already_subscribed"
    EVENT_FULL = "event_full"


class SubscribeResponse(BaseModel):
    event_id: int
    result: SubscribeResult
    message: str


class SubscriptionStatus(BaseModel):
    event_id: int
    subscribed: bool


class UnsubscribeResponse(BaseModel):
    event_id: int
    removed: bool


class SubscriberResponse(BaseModel):
    subscription_id: int
    user_id: int
    email: str
    display_name: Optional[str]
    subscribed_at: datetime


class UserSubscriptionResponse(BaseModel):
    subscription_id: int
    event_id: int
    event_title: str
    event_start_time: datetime
    subscribed_at: datetime
