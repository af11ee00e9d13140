"""
Tests for the subscribe workflow: outcomes, check order, and persistence.
"""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import select, func
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from event_management.models import Subscription
from event_management.schemas.subscription import SubscribeResult
from event_management.schemas.event import EventCreate
from event_management.services import subscription_service, event_service, user_service
from event_management.utils import utcnow

from conftest import make_event, make_user


async def _count(db: AsyncSession, event_id: int | None = None) -> int:
    query = select(func.count(Subscription.id))
    if event_id is not None:
        query = query.where(Subscription.event_id == event_id)
    return (await db.execute(query)).scalar_one()


@pytest.mark.asyncio
async def test_subscribe_then_is_subscribed(db_session, test_event, alice):
    result = await subscription_service.subscribe(db_session, test_event.id, alice.id)

    assert result == SubscribeResult.SUCCESS
    assert await subscription_service.is_subscribed(db_session, test_event.id, alice.id)
    assert await _count(db_session, test_event.id) == 1


@pytest.mark.asyncio
async def test_subscription_gets_creation_timestamp(db_session, test_event, alice):
    before = utcnow()
    await subscription_service.subscribe(db_session, test_event.id, alice.id)

    sub = (await db_session.execute(select(Subscription))).scalar_one()
    assert sub.created_at >= before
    assert sub.created_at <= utcnow()


@pytest.mark.asyncio
async def test_second_subscribe_reports_already_subscribed(db_session, test_event, alice):
    await subscription_service.subscribe(db_session, test_event.id, alice.id)
    result = await subscription_service.subscribe(db_session, test_event.id, alice.id)

    assert result == SubscribeResult.ALREADY_SUBSCRIBED
    assert await _count(db_session, test_event.id) == 1


@pytest.mark.asyncio
async def test_unknown_event(db_session, alice):
    result = await subscription_service.subscribe(db_session, 99999, alice.id)

    assert result == SubscribeResult.EVENT_NOT_FOUND
    assert await _count(db_session) == 0


@pytest.mark.asyncio
async def test_unknown_user(db_session, test_event):
    result = await subscription_service.subscribe(db_session, test_event.id, 99999)

    assert result == SubscribeResult.USER_NOT_FOUND
    assert await _count(db_session) == 0


@pytest.mark.asyncio
async def test_unknown_event_is_reported_before_unknown_user(db_session):
    result = await subscription_service.subscribe(db_session, 99999, 99999)
    assert result == SubscribeResult.EVENT_NOT_FOUND


@pytest.mark.asyncio
async def test_event_full(db_session, alice, bob, carol):
    event = await make_event(db_session, max_participants=2)
    assert await subscription_service.subscribe(db_session, event.id, alice.id) == SubscribeResult.SUCCESS
    assert await subscription_service.subscribe(db_session, event.id, bob.id) == SubscribeResult.SUCCESS

    result = await subscription_service.subscribe(db_session, event.id, carol.id)

    assert result == SubscribeResult.EVENT_FULL
    assert await _count(db_session, event.id) == 2
    assert not await subscription_service.is_subscribed(db_session, event.id, carol.id)


@pytest.mark.asyncio
async def test_zero_capacity_event_is_always_full(db_session, alice):
    event = await make_event(db_session, max_participants=0)
    result = await subscription_service.subscribe(db_session, event.id, alice.id)
    assert result == SubscribeResult.EVENT_FULL


@pytest.mark.asyncio
async def test_duplicate_check_runs_before_capacity_check(db_session, alice):
    """A full event that the user already joined reports ALREADY_SUBSCRIBED."""
    event = await make_event(db_session, max_participants=1)
    await subscription_service.subscribe(db_session, event.id, alice.id)

    result = await subscription_service.subscribe(db_session, event.id, alice.id)
    assert result == SubscribeResult.ALREADY_SUBSCRIBED


@pytest.mark.asyncio
async def test_started_event_is_closed(db_session, alice):
    event = await make_event(db_session, days_ahead=-1)

    result = await subscription_service.subscribe(db_session, event.id, alice.id)

    assert result == SubscribeResult.EVENT_CLOSED
    assert await _count(db_session) == 0


@pytest.mark.asyncio
async def test_closed_check_runs_before_duplicate_and_capacity(db_session, alice):
    event = await make_event(db_session, days_ahead=-1, max_participants=1)
    db_session.add(Subscription(event_id=event.id, user_id=alice.id))
    await db_session.commit()

    result = await subscription_service.subscribe(db_session, event.id, alice.id)
    assert result == SubscribeResult.EVENT_CLOSED


@pytest.mark.asyncio
async def test_closing_can_be_disabled(db_session, alice, monkeypatch):
    monkeypatch.setattr(subscription_service.settings, "REGISTRATION_CLOSES_AT_START", False)
    event = await make_event(db_session, days_ahead=-1)

    result = await subscription_service.subscribe(db_session, event.id, alice.id)
    assert result == SubscribeResult.SUCCESS


@pytest.mark.asyncio
async def test_constraint_violation_reports_already_subscribed(db_session, test_event, alice, monkeypatch):
    """
    Simulate losing the race: the duplicate check sees nothing, but a row
    for the pair already exists, so the insert hits the unique constraint.
    """
    event_id, user_id = test_event.id, alice.id
    db_session.add(Subscription(event_id=event_id, user_id=user_id))
    await db_session.commit()

    real_is_subscribed = subscription_service.is_subscribed
    calls = {"n": 0}

    async def stale_first_check(db, e_id, u_id):
        calls["n"] += 1
        if calls["n"] == 1:
            return False
        return await real_is_subscribed(db, e_id, u_id)

    monkeypatch.setattr(subscription_service, "is_subscribed", stale_first_check)

    result = await subscription_service.subscribe(db_session, event_id, user_id)

    assert result == SubscribeResult.ALREADY_SUBSCRIBED
    assert await _count(db_session, event_id) == 1


@pytest.mark.asyncio
async def test_unsubscribe(db_session, test_event, alice):
    await subscription_service.subscribe(db_session, test_event.id, alice.id)

    assert await subscription_service.unsubscribe(db_session, test_event.id, alice.id) is True
    assert not await subscription_service.is_subscribed(db_session, test_event.id, alice.id)


@pytest.mark.asyncio
async def test_unsubscribe_without_subscription(db_session, test_event, alice, bob):
    await subscription_service.subscribe(db_session, test_event.id, bob.id)

    assert await subscription_service.unsubscribe(db_session, test_event.id, alice.id) is False
    assert await _count(db_session, test_event.id) == 1


@pytest.mark.asyncio
async def test_unsubscribe_frees_a_place(db_session, alice, bob):
    """Tech Conference with one place: A in, B full, A out, B in."""
    event = await event_service.create_event(
        db_session,
        EventCreate(
            title="Tech Conference",
            start_time=utcnow() + timedelta(days=10),
            location="Milan",
            max_participants=1,
        ),
    )

    assert await subscription_service.subscribe(db_session, event.id, alice.id) == SubscribeResult.SUCCESS
    assert await subscription_service.subscribe(db_session, event.id, bob.id) == SubscribeResult.EVENT_FULL
    assert await subscription_service.unsubscribe(db_session, event.id, alice.id) is True
    assert await subscription_service.subscribe(db_session, event.id, bob.id) == SubscribeResult.SUCCESS


@pytest.mark.asyncio
async def test_deleting_event_removes_its_subscriptions(db_session, alice, bob):
    event = await make_event(db_session)
    other = await make_event(db_session, title="Other")
    await subscription_service.subscribe(db_session, event.id, alice.id)
    await subscription_service.subscribe(db_session, event.id, bob.id)
    await subscription_service.subscribe(db_session, other.id, alice.id)
    await db_session.commit()

    assert await event_service.delete_event(db_session, event.id) is True
    await db_session.commit()

    assert await _count(db_session, event.id) == 0
    assert await _count(db_session, other.id) == 1


@pytest.mark.asyncio
async def test_deleting_user_removes_their_subscriptions(db_session, test_event, alice, bob, admin):
    await subscription_service.subscribe(db_session, test_event.id, alice.id)
    await subscription_service.subscribe(db_session, test_event.id, bob.id)
    await db_session.commit()

    await user_service.delete_user(db_session, alice.id, acting_user_id=admin.id)
    await db_session.commit()

    assert await _count(db_session, test_event.id) == 1
    subscribers = await subscription_service.list_subscribers(db_session, test_event.id)
    assert [s.email for s in subscribers] == ["bob@example.com"]


@pytest.mark.asyncio
async def test_list_subscribers_in_subscription_order(db_session, test_event, alice, bob, carol):
    for user in (bob, carol, alice):
        await subscription_service.subscribe(db_session, test_event.id, user.id)

    subscribers = await subscription_service.list_subscribers(db_session, test_event.id)

    assert [s.user_id for s in subscribers] == [bob.id, carol.id, alice.id]
    assert subscribers[0].display_name == "Bob"
    assert subscribers[1].display_name is None


@pytest.mark.asyncio
async def test_list_user_subscriptions(db_session, alice):
    first = await make_event(db_session, title="First")
    second = await make_event(db_session, title="Second")
    await subscription_service.subscribe(db_session, first.id, alice.id)
    await subscription_service.subscribe(db_session, second.id, alice.id)

    mine = await subscription_service.list_user_subscriptions(db_session, alice.id)

    assert {m.event_title for m in mine} == {"First", "Second"}


@pytest.mark.asyncio
async def test_capacity_counts_all_users(db_session, roles):
    event = await make_event(db_session, max_participants=3)
    users = [await make_user(db_session, f"user{i}@example.com") for i in range(5)]

    results = [await subscription_service.subscribe(db_session, event.id, u.id) for u in users]

    assert results.count(SubscribeResult.SUCCESS) == 3
    assert results[3:] == [SubscribeResult.EVENT_FULL, SubscribeResult.EVENT_FULL]
    assert await _count(db_session, event.id) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("row_lock", [True, False])
async def test_concurrent_subscribes_for_last_place(
    session_factory, db_session, alice, bob, monkeypatch, row_lock
):
    """Two sessions race for the only place left: one wins, the other sees EVENT_FULL."""
    monkeypatch.setattr(subscription_service.settings, "SUBSCRIPTION_ROW_LOCK", row_lock)
    event = await make_event(db_session, max_participants=1)
    event_id, user_ids = event.id, (alice.id, bob.id)

    async def attempt(user_id: int) -> SubscribeResult:
        async with session_factory() as session:
            result = await subscription_service.subscribe(session, event_id, user_id)
            await session.commit()
            return result

    results = await asyncio.gather(*(attempt(u) for u in user_ids))

    assert sorted(results) == sorted([SubscribeResult.SUCCESS, SubscribeResult.EVENT_FULL])
    assert await _count(db_session, event_id) == 1


@pytest.mark.asyncio
async def test_place_taken_after_count_reports_full(db_session, alice, bob, monkeypatch):
    """
    The count says there is room, but another subscription landed before the
    insert. The guarded insert writes nothing and the result is EVENT_FULL.
    """
    event = await make_event(db_session, max_participants=1)
    event_id = event.id
    db_session.add(Subscription(event_id=event_id, user_id=bob.id))
    await db_session.commit()

    async def stale_count(db, e_id):
        return 0

    monkeypatch.setattr(subscription_service, "count_subscriptions", stale_count)

    result = await subscription_service.subscribe(db_session, event_id, alice.id)

    assert result == SubscribeResult.EVENT_FULL
    assert await _count(db_session, event_id) == 1
    assert not await subscription_service.is_subscribed(db_session, event_id, alice.id)


@pytest.mark.asyncio
async def test_lock_contention_is_retried(db_session, test_event, alice, monkeypatch):
    event_id, user_id = test_event.id, alice.id
    real_subscribe = subscription_service._subscribe
    calls = {"n": 0}

    async def locked_once(db, e_id, u_id):
        calls["n"] += 1
        if calls["n"] == 1:
            raise OperationalError("INSERT", {}, Exception("database is locked"))
        return await real_subscribe(db, e_id, u_id)

    monkeypatch.setattr(subscription_service, "_subscribe", locked_once)

    result = await subscription_service.subscribe(db_session, event_id, user_id)

    assert result == SubscribeResult.SUCCESS
    assert calls["n"] == 2
    assert await _count(db_session, event_id) == 1


@pytest.mark.asyncio
async def test_persistent_lock_contention_propagates(db_session, test_event, alice, monkeypatch):
    event_id, user_id = test_event.id, alice.id

    async def always_locked(db, e_id, u_id):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(subscription_service, "_subscribe", always_locked)

    with pytest.raises(OperationalError):
        await subscription_service.subscribe(db_session, event_id, user_id)
    assert await _count(db_session, event_id) == 0


@pytest.mark.parametrize("row_lock", [True, False])
def test_event_lookup_row_lock_toggle(monkeypatch, row_lock):
    monkeypatch.setattr(subscription_service.settings, "SUBSCRIPTION_ROW_LOCK", row_lock)

    sql = str(subscription_service.event_query(1).compile(dialect=postgresql.dialect()))

    assert ("FOR UPDATE" in sql) is row_lock
