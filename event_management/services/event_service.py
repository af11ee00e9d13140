"""
Event service handling queries and CRUD operations.

Not-found is reported through the return value (None / False); access
control for the mutating operations lives in the API layer.
"""

from typing import Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from event_management.models.event import Event
from event_management.models.subscription import Subscription
from event_management.schemas.event import (
    EventCreate,
    EventUpdate,
    EventDetail,
    EventSearchParams,
    EventStats,
    EventResponse,
    EventSubscriptionEntry,
)
from event_management.core.logging import get_logger
from event_management.core.metrics import record_db_operation
from event_management.utils import utcnow, to_naive_utc

logger = get_logger(__name__)


def _contains(column, value: str):
    """Case-insensitive substring match; % and _ in the input match literally."""
    return column.icontains(value.strip(), autoescape=True)


async def list_events(db: AsyncSession) -> list[Event]:
    """All events ordered by start time ascending."""
    result = await db.execute(select(Event).order_by(Event.start_time.asc(), Event.id.asc()))
    record_db_operation("read")
    return list(result.scalars().all())


async def event_exists(db: AsyncSession, event_id: int) -> bool:
    result = await db.execute(select(Event.id).where(Event.id == event_id))
    return result.first() is not None


async def get_event(db: AsyncSession, event_id: int) -> Optional[EventDetail]:
    """Get one event with its subscriptions, or None if it does not exist."""
    event = await db.get(Event, event_id)
    if event is None:
        return None

    result = await db.execute(
        select(Subscription)
        .where(Subscription.event_id == event_id)
        .order_by(Subscription.created_at.asc(), Subscription.id.asc())
    )
    subscriptions = [EventSubscriptionEntry.model_validate(s) for s in result.scalars().all()]
    record_db_operation("read")

    return EventDetail(
        **EventResponse.model_validate(event).model_dump(),
        subscriptions=subscriptions,
    )


async def search_events(db: AsyncSession, params: EventSearchParams) -> list[Event]:
    """
    Filter events. Every criterion is optional and they combine with AND:
    - text: substring of title, description or location (case-insensitive)
    - category: exact category, ignoring case
    - location: substring of location (case-insensitive)
    - date_from / date_to: inclusive bounds on start time
    """
    query = select(Event)

    if params.text and params.text.strip():
        query = query.where(
            or_(
                _contains(Event.title, params.text),
                _contains(Event.description, params.text),
                _contains(Event.location, params.text),
            )
        )

    if params.category and params.category.strip():
        query = query.where(func.lower(Event.category) == params.category.strip().lower())

    if params.location and params.location.strip():
        query = query.where(_contains(Event.location, params.location))

    if params.date_from:
        query = query.where(Event.start_time >= to_naive_utc(params.date_from))

    if params.date_to:
        query = query.where(Event.start_time <= to_naive_utc(params.date_to))

    result = await db.execute(query.order_by(Event.start_time.asc(), Event.id.asc()))
    record_db_operation("read")
    return list(result.scalars().all())


async def list_categories(db: AsyncSession) -> list[str]:
    """Distinct non-empty categories, for search filters."""
    result = await db.execute(
        select(Event.category)
        .where(Event.category.is_not(None), Event.category != "")
        .distinct()
        .order_by(Event.category)
    )
    return list(result.scalars().all())


async def get_stats(db: AsyncSession) -> EventStats:
    now = utcnow()

    total_events = (await db.execute(select(func.count(Event.id)))).scalar_one()
    upcoming = (
        await db.execute(select(func.count(Event.id)).where(Event.start_time >= now))
    ).scalar_one()
    total_subscriptions = (await db.execute(select(func.count(Subscription.id)))).scalar_one()
    total_capacity = (
        await db.execute(select(func.coalesce(func.sum(Event.max_participants), 0)))
    ).scalar_one()
    record_db_operation("read")

    return EventStats(
        total_events=total_events,
        upcoming_events=upcoming,
        total_subscriptions=total_subscriptions,
        total_capacity=int(total_capacity),
    )


def _apply_fields(event: Event, data: EventCreate) -> None:
    event.title = data.title
    event.description = data.description
    event.start_time = to_naive_utc(data.start_time)
    event.location = data.location
    event.category = data.category
    event.max_participants = data.max_participants


async def create_event(db: AsyncSession, event_data: EventCreate) -> Event:
    event = Event()
    _apply_fields(event, event_data)
    db.add(event)
    await db.flush()
    await db.refresh(event)
    record_db_operation("write")

    logger.info(
        "event_created",
        event_id=event.id,
        title=event.title,
        capacity=event.max_participants,
    )
    return event


async def update_event(db: AsyncSession, event_id: int, event_data: EventUpdate) -> Optional[Event]:
    """Overwrite every field of an existing event. Returns None if the id is unknown."""
    event = await db.get(Event, event_id)
    if event is None:
        logger.info("event_update_not_found", event_id=event_id)
        return None

    _apply_fields(event, event_data)
    await db.flush()
    await db.refresh(event)
    record_db_operation("write")

    logger.info("event_updated", event_id=event.id, capacity=event.max_participants)
    return event


async def delete_event(db: AsyncSession, event_id: int) -> bool:
    """
    Delete an event. Its subscriptions and comments are removed by the
    foreign key cascade, not here.
    """
    event = await db.get(Event, event_id)
    if event is None:
        return False

    await db.delete(event)
    await db.flush()
    record_db_operation("delete")

    logger.info("event_deleted", event_id=event_id)
    return True
