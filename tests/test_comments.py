"""
Tests for event comment threads and moderation.
"""

import pytest
from httpx import AsyncClient

from conftest import make_event, headers_for


async def _post(client: AsyncClient, event_id: int, headers: dict, body: str, parent_id=None):
    payload = {"body": body}
    if parent_id is not None:
        payload["parent_id"] = parent_id
    return await client.post(f"/api/v1/events/{event_id}/comments", json=payload, headers=headers)


@pytest.mark.asyncio
async def test_add_comment(client: AsyncClient, alice_headers, test_event):
    response = await _post(client, test_event.id, alice_headers, "  Looking forward to it  ")

    assert response.status_code == 201
    data = response.json()
    assert data["body"] == "Looking forward to it"
    assert data["user_display_name"] == "Alice"
    assert data["from_admin"] is False
    assert data["parent_id"] is None


@pytest.mark.asyncio
async def test_admin_comment_is_flagged(client: AsyncClient, admin_headers, test_event):
    response = await _post(client, test_event.id, admin_headers, "Doors open at 8pm")
    assert response.json()["from_admin"] is True


@pytest.mark.asyncio
async def test_display_name_falls_back_to_email(client: AsyncClient, carol, test_event):
    response = await _post(client, test_event.id, headers_for(carol), "Hi")
    assert response.json()["user_display_name"] == "carol@example.com"


@pytest.mark.asyncio
async def test_anonymous_cannot_comment(client: AsyncClient, test_event):
    response = await _post(client, test_event.id, {}, "Hello")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_comment_on_missing_event(client: AsyncClient, alice_headers):
    response = await _post(client, 99999, alice_headers, "Hello")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_blank_comment_rejected(client: AsyncClient, alice_headers, test_event):
    response = await _post(client, test_event.id, alice_headers, "   ")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_threaded_listing(client: AsyncClient, alice_headers, admin_headers, test_event):
    first = (await _post(client, test_event.id, alice_headers, "Is there parking?")).json()
    second = (await _post(client, test_event.id, alice_headers, "Second question")).json()
    await _post(client, test_event.id, admin_headers, "Yes, behind the venue", parent_id=first["id"])

    response = await client.get(f"/api/v1/events/{test_event.id}/comments")

    assert response.status_code == 200
    roots = response.json()
    assert [c["id"] for c in roots] == [first["id"], second["id"]]
    assert [r["body"] for r in roots[0]["replies"]] == ["Yes, behind the venue"]
    assert roots[1]["replies"] == []


@pytest.mark.asyncio
async def test_reply_must_share_event(client: AsyncClient, db_session, alice_headers, test_event):
    other = await make_event(db_session, title="Other")
    parent = (await _post(client, test_event.id, alice_headers, "Parent")).json()

    response = await _post(client, other.id, alice_headers, "Wrong thread", parent_id=parent["id"])
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_reply_to_reply_rejected(client: AsyncClient, alice_headers, admin_headers, test_event):
    top = (await _post(client, test_event.id, alice_headers, "Parking?")).json()
    reply = (await _post(client, test_event.id, admin_headers, "Behind the venue", parent_id=top["id"])).json()

    response = await _post(client, test_event.id, alice_headers, "Thanks", parent_id=reply["id"])

    assert response.status_code == 400
    assert response.json()["detail"] == "Replies cannot be nested"


@pytest.mark.asyncio
async def test_hidden_comment_only_visible_to_moderators(
    client: AsyncClient, alice_headers, admin_headers, test_event
):
    hidden = (await _post(client, test_event.id, alice_headers, "Spam")).json()
    await _post(client, test_event.id, alice_headers, "Reply to spam", parent_id=hidden["id"])
    await _post(client, test_event.id, alice_headers, "Fine")

    response = await client.put(
        f"/api/v1/comments/{hidden['id']}/visibility",
        json={"hidden": True},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["is_hidden"] is True

    public = (await client.get(f"/api/v1/events/{test_event.id}/comments")).json()
    assert [c["body"] for c in public] == ["Fine"]

    moderated = (
        await client.get(f"/api/v1/events/{test_event.id}/comments", headers=admin_headers)
    ).json()
    assert [c["body"] for c in moderated] == ["Spam", "Fine"]
    assert moderated[0]["replies"][0]["body"] == "Reply to spam"


@pytest.mark.asyncio
async def test_hiding_requires_permission(client: AsyncClient, alice_headers, test_event):
    comment = (await _post(client, test_event.id, alice_headers, "Mine")).json()

    response = await client.put(
        f"/api/v1/comments/{comment['id']}/visibility",
        json={"hidden": True},
        headers=alice_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_author_can_delete_own_comment(client: AsyncClient, alice_headers, test_event):
    comment = (await _post(client, test_event.id, alice_headers, "Oops")).json()

    response = await client.delete(f"/api/v1/comments/{comment['id']}", headers=alice_headers)

    assert response.status_code == 204
    assert (await client.get(f"/api/v1/events/{test_event.id}/comments")).json() == []


@pytest.mark.asyncio
async def test_other_user_cannot_delete(client: AsyncClient, alice_headers, bob, test_event):
    comment = (await _post(client, test_event.id, alice_headers, "Mine")).json()

    response = await client.delete(f"/api/v1/comments/{comment['id']}", headers=headers_for(bob))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_moderator_can_delete_any(client: AsyncClient, alice_headers, admin_headers, test_event):
    comment = (await _post(client, test_event.id, alice_headers, "Rude")).json()

    response = await client.delete(f"/api/v1/comments/{comment['id']}", headers=admin_headers)
    assert response.status_code == 204


@pytest.mark.asyncio
async def test_delete_missing_comment(client: AsyncClient, admin_headers):
    response = await client.delete("/api/v1/comments/99999", headers=admin_headers)
    assert response.status_code == 404
