"""
Event endpoints: public listing, search and detail; admin CRUD.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from event_management.db.session import get_db
from event_management.schemas.event import (
    EventCreate,
    EventUpdate,
    EventResponse,
    EventDetail,
    EventSearchParams,
    EventStats,
)
from event_management.schemas.subscription import SubscriberResponse
from event_management.services import event_service, subscription_service
from event_management.api.deps import require_permission
from event_management.core.permissions import Permission
from event_management.core.security import Principal

router = APIRouter(prefix="/events", tags=["Events"])


def _not_found(event_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Event {event_id} not found",
    )


@router.get("/", response_model=list[EventResponse])
async def list_events_endpoint(db: AsyncSession = Depends(get_db)):
    """All events, ordered by start time."""
    return await event_service.list_events(db)


@router.get("/search", response_model=list[EventResponse])
async def search_events_endpoint(
    q: Optional[str] = Query(None, max_length=200),
    category: Optional[str] = Query(None, max_length=100),
    location: Optional[str] = Query(None, max_length=200),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    try:
        params = EventSearchParams(
            text=q,
            category=category,
            location=location,
            date_from=date_from,
            date_to=date_to,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False, include_input=False),
        )
    return await event_service.search_events(db, params)


@router.get("/stats", response_model=EventStats)
async def event_stats_endpoint(db: AsyncSession = Depends(get_db)):
    return await event_service.get_stats(db)


@router.get("/categories", response_model=list[str])
async def event_categories_endpoint(db: AsyncSession = Depends(get_db)):
    return await event_service.list_categories(db)


@router.get("/{event_id}", response_model=EventDetail)
async def get_event_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    """Single event with its subscriptions and remaining places."""
    event = await event_service.get_event(db, event_id)
    if event is None:
        raise _not_found(event_id)
    return event


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    principal: Principal = Depends(require_permission(Permission.MANAGE_EVENTS)),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.create_event(db, event_data)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    event_data: EventUpdate,
    principal: Principal = Depends(require_permission(Permission.MANAGE_EVENTS)),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.update_event(db, event_id, event_data)
    if event is None:
        raise _not_found(event_id)
    return event


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_endpoint(
    event_id: int,
    principal: Principal = Depends(require_permission(Permission.MANAGE_EVENTS)),
    db: AsyncSession = Depends(get_db),
):
    if not await event_service.delete_event(db, event_id):
        raise _not_found(event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{event_id}/subscribers", response_model=list[SubscriberResponse])
async def list_subscribers_endpoint(
    event_id: int,
    principal: Principal = Depends(require_permission(Permission.VIEW_SUBSCRIBERS)),
    db: AsyncSession = Depends(get_db),
):
    if not await event_service.event_exists(db, event_id):
        raise _not_found(event_id)
    return await subscription_service.list_subscribers(db, event_id)
