"""
Subscription endpoints for the authenticated user.

Every subscribe outcome comes back as a SubscribeResponse so clients can
switch on ``result``; the HTTP status only mirrors it.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from event_management.db.session import get_db
from event_management.schemas.subscription import (
    SubscribeResult,
    SubscribeResponse,
    SubscriptionStatus,
    UnsubscribeResponse,
    UserSubscriptionResponse,
)
from event_management.services import subscription_service
from event_management.core.security import get_current_user_id

router = APIRouter(tags=["Subscriptions"])

RESULT_STATUS = {
    SubscribeResult.SUCCESS: status.HTTP_201_CREATED,
    SubscribeResult.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    SubscribeResult.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    SubscribeResult.EVENT_CLOSED: status.HTTP_409_CONFLICT,
    SubscribeResult.ALREADY_SUBSCRIBED: status.HTTP_409_CONFLICT,
    SubscribeResult.EVENT_FULL: status.HTTP_409_CONFLICT,
}

RESULT_MESSAGES = {
    SubscribeResult.SUCCESS: "You are registered for this event",
    SubscribeResult.EVENT_NOT_FOUND: "Event not found",
    SubscribeResult.USER_NOT_FOUND: "User not found",
    SubscribeResult.EVENT_CLOSED: "Registration is closed: the event has already started",
    SubscribeResult.ALREADY_SUBSCRIBED: "You are already registered for this event",
    SubscribeResult.EVENT_FULL: "The event is full",
}


@router.post("/events/{event_id}/subscription", response_model=SubscribeResponse)
async def subscribe_endpoint(
    event_id: int,
    response: Response,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    result = await subscription_service.subscribe(db, event_id, user_id)
    response.status_code = RESULT_STATUS[result]
    return SubscribeResponse(event_id=event_id, result=result, message=RESULT_MESSAGES[result])


@router.delete("/events/{event_id}/subscription", response_model=UnsubscribeResponse)
async def unsubscribe_endpoint(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    removed = await subscription_service.unsubscribe(db, event_id, user_id)
    return UnsubscribeResponse(event_id=event_id, removed=removed)


@router.get("/events/{event_id}/subscription", response_model=SubscriptionStatus)
async def subscription_status_endpoint(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    subscribed = await subscription_service.is_subscribed(db, event_id, user_id)
    return SubscriptionStatus(event_id=event_id, subscribed=subscribed)


@router.get("/me/subscriptions", response_model=list[UserSubscriptionResponse])
async def my_subscriptions_endpoint(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await subscription_service.list_user_subscriptions(db, user_id)
