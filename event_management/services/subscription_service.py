"""
Subscription service: registering users for capacity-limited events.

SUBSCRIBE WORKFLOW
==================

Checks run in a fixed order and the first failing one decides the outcome:

  1. event exists                    -> EVENT_NOT_FOUND
  2. user exists                     -> USER_NOT_FOUND
  3. event has not started yet       -> EVENT_CLOSED   (REGISTRATION_CLOSES_AT_START)
  4. no subscription for the pair    -> ALREADY_SUBSCRIBED
  5. subscriptions < max_participants -> EVENT_FULL
  6. insert                          -> SUCCESS

Nothing is written unless every check passes.

Concurrency:
  Steps 4-6 are read-then-write. Two requests can race between them.

  - Duplicates: the unique constraint on (event_id, user_id) is the final
    word. A losing insert raises IntegrityError, the transaction is rolled
    back and the caller gets ALREADY_SUBSCRIBED.
  - Capacity: the insert is a single INSERT ... SELECT that only produces a
    row while the event still has room, so the count and the write happen
    in one statement under the writer's lock. If it inserts nothing the
    event filled up after step 5 and the caller gets EVENT_FULL.
  - With SUBSCRIPTION_ROW_LOCK the event row is also read with
    SELECT ... FOR UPDATE, so on PostgreSQL concurrent subscribes to the
    same event queue behind each other until the request commits. SQLite
    drops the clause; its writers queue on the database lock instead.
  - Lock contention that outlasts the driver's busy timeout surfaces as
    OperationalError. The transaction is rolled back and the whole workflow
    re-runs, up to MAX_RETRY_ATTEMPTS times.
"""

import time

from sqlalchemy import select, func, delete, insert, literal, DateTime
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from event_management.models.event import Event
from event_management.models.subscription import Subscription
from event_management.models.user import User
from event_management.schemas.subscription import (
    SubscribeResult,
    SubscriberResponse,
    UserSubscriptionResponse,
)
from event_management.core.config import get_settings
from event_management.core.logging import get_logger
from event_management.core.metrics import (
    record_subscription_attempt,
    record_unsubscription,
    record_db_operation,
    subscription_conflicts,
    subscription_latency,
)
from event_management.utils import utcnow

logger = get_logger(__name__)
settings = get_settings()

MAX_RETRY_ATTEMPTS = 3


def event_query(event_id: int):
    """The event lookup that opens the workflow, row-locked when configured."""
    query = select(Event).where(Event.id == event_id)
    if settings.SUBSCRIPTION_ROW_LOCK:
        query = query.with_for_update()
    return query


async def count_subscriptions(db: AsyncSession, event_id: int) -> int:
    result = await db.execute(
        select(func.count(Subscription.id)).where(Subscription.event_id == event_id)
    )
    return result.scalar_one()


async def is_subscribed(db: AsyncSession, event_id: int, user_id: int) -> bool:
    result = await db.execute(
        select(Subscription.id).where(
            Subscription.event_id == event_id,
            Subscription.user_id == user_id,
        )
    )
    return result.first() is not None


def _reject(result: SubscribeResult, event_id: int, user_id: int, **context) -> SubscribeResult:
    logger.info(
        "subscription_rejected",
        event_id=event_id,
        user_id=user_id,
        reason=result.value,
        **context,
    )
    return result


async def subscribe(db: AsyncSession, event_id: int, user_id: int) -> SubscribeResult:
    """Register a user for an event. See the module docstring for the check order."""
    started = time.perf_counter()
    try:
        for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
            try:
                result = await _subscribe(db, event_id, user_id)
                break
            except OperationalError as e:
                await db.rollback()
                subscription_conflicts.labels(reason="lock_contention").inc()
                logger.warning(
                    "subscription_retry",
                    event_id=event_id,
                    user_id=user_id,
                    attempt=attempt,
                    error=str(e.orig),
                )
                if attempt == MAX_RETRY_ATTEMPTS:
                    raise
    finally:
        subscription_latency.observe(time.perf_counter() - started)
    record_subscription_attempt(result.value)
    return result


async def _insert_if_room(db: AsyncSession, event: Event, user_id: int, now) -> bool:
    """INSERT ... SELECT guarded by the live subscription count. Returns whether a row was written."""
    taken = (
        select(func.count(Subscription.id))
        .where(Subscription.event_id == event.id)
        .scalar_subquery()
    )
    source = select(
        Event.id,
        literal(user_id),
        literal(now, DateTime()),
    ).where(Event.id == event.id, taken < Event.max_participants)

    result = await db.execute(
        insert(Subscription.__table__).from_select(["event_id", "user_id", "created_at"], source)
    )
    return result.rowcount > 0


async def _subscribe(db: AsyncSession, event_id: int, user_id: int) -> SubscribeResult:
    event = (await db.execute(event_query(event_id))).scalar_one_or_none()
    if event is None:
        return _reject(SubscribeResult.EVENT_NOT_FOUND, event_id, user_id)

    user = await db.get(User, user_id)
    if user is None:
        return _reject(SubscribeResult.USER_NOT_FOUND, event_id, user_id)

    now = utcnow()
    if settings.REGISTRATION_CLOSES_AT_START and event.start_time <= now:
        return _reject(
            SubscribeResult.EVENT_CLOSED, event_id, user_id, start_time=event.start_time.isoformat()
        )

    if await is_subscribed(db, event_id, user_id):
        return _reject(SubscribeResult.ALREADY_SUBSCRIBED, event_id, user_id)

    taken = await count_subscriptions(db, event_id)
    if taken >= event.max_participants:
        return _reject(
            SubscribeResult.EVENT_FULL,
            event_id,
            user_id,
            taken=taken,
            capacity=event.max_participants,
        )

    try:
        inserted = await _insert_if_room(db, event, user_id, now)
    except IntegrityError:
        await db.rollback()
        if not await is_subscribed(db, event_id, user_id):
            raise
        # Lost a race against a concurrent subscribe for the same pair
        subscription_conflicts.labels(reason="duplicate").inc()
        return _reject(SubscribeResult.ALREADY_SUBSCRIBED, event_id, user_id, race=True)

    if not inserted:
        # Places ran out between the count and the insert
        subscription_conflicts.labels(reason="capacity").inc()
        return _reject(
            SubscribeResult.EVENT_FULL,
            event_id,
            user_id,
            capacity=event.max_participants,
            race=True,
        )

    record_db_operation("write")
    logger.info(
        "subscription_created",
        event_id=event_id,
        user_id=user_id,
        taken=taken + 1,
        capacity=event.max_participants,
    )
    return SubscribeResult.SUCCESS


async def unsubscribe(db: AsyncSession, event_id: int, user_id: int) -> bool:
    """Remove the subscription for the pair. Returns whether a row was removed."""
    result = await db.execute(
        delete(Subscription).where(
            Subscription.event_id == event_id,
            Subscription.user_id == user_id,
        )
    )
    removed = result.rowcount > 0
    record_unsubscription(removed)

    if removed:
        record_db_operation("delete")
        logger.info("subscription_removed", event_id=event_id, user_id=user_id)
    return removed


async def list_subscribers(db: AsyncSession, event_id: int) -> list[SubscriberResponse]:
    """Subscribers of an event with user display info, in subscription order."""
    result = await db.execute(
        select(Subscription, User)
        .join(User, User.id == Subscription.user_id)
        .where(Subscription.event_id == event_id)
        .order_by(Subscription.created_at.asc(), Subscription.id.asc())
    )
    record_db_operation("read")
    return [
        SubscriberResponse(
            subscription_id=sub.id,
            user_id=user.id,
            email=user.email,
            display_name=user.display_name,
            subscribed_at=sub.created_at,
        )
        for sub, user in result.all()
    ]


async def list_user_subscriptions(db: AsyncSession, user_id: int) -> list[UserSubscriptionResponse]:
    """Events a user is registered for, most recent registration first."""
    result = await db.execute(
        select(Subscription, Event)
        .join(Event, Event.id == Subscription.event_id)
        .where(Subscription.user_id == user_id)
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
    )
    record_db_operation("read")
    return [
        UserSubscriptionResponse(
            subscription_id=sub.id,
            event_id=event.id,
            event_title=event.title,
            event_start_time=event.start_time,
            subscribed_at=sub.created_at,
        )
        for sub, event in result.all()
    ]
