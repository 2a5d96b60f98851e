"""Participant API tests — registration rules, status, cache routing."""

import json

import pytest

from eventhub.cache import CacheName
from eventhub.events.types import PARTICIPANT_CHANGES


@pytest.fixture
async def event(client):
    resp = await client.post(
        "/api/events",
        json={
            "title": "Workshop",
            "start_time": "2026-11-05T09:00:00Z",
            "end_time": "2026-11-05T12:00:00Z",
            "max_participants": 2,
        },
    )
    assert resp.status_code == 201
    return resp.json()


async def _register(client, event_id, name="Ada", email="ada@example.com"):
    return await client.post(
        "/api/participants",
        json={"event_id": event_id, "name": name, "email": email},
    )


@pytest.mark.asyncio
async def test_register_and_fetch(client, event):
    resp = await _register(client, event["id"])
    assert resp.status_code == 201
    participant = resp.json()
    assert participant["status"] == "registered"
    assert participant["event_id"] == event["id"]

    resp = await client.get(f"/api/participants/{participant['id']}")
    assert resp.status_code == 200
    assert resp.json()["email"] == "ada@example.com"

    resp = await client.get(f"/api/events/{event['id']}/participants")
    assert [p["id"] for p in resp.json()] == [participant["id"]]


@pytest.mark.asyncio
async def test_duplicate_email_is_conflict(client, event):
    assert (await _register(client, event["id"])).status_code == 201
    resp = await _register(client, event["id"], name="Ada again")
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Participant already registered"


@pytest.mark.asyncio
async def test_full_event_is_conflict(client, event):
    assert (await _register(client, event["id"], email="a@example.com")).status_code == 201
    assert (await _register(client, event["id"], email="b@example.com")).status_code == 201

    resp = await _register(client, event["id"], email="c@example.com")
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Event is full"


@pytest.mark.asyncio
async def test_unknown_event_is_bad_request(client):
    resp = await _register(client, "00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Event not found"


@pytest.mark.asyncio
async def test_blank_name_or_email_rejected(client, event):
    assert (await _register(client, event["id"], name=" ")).status_code == 400
    assert (await _register(client, event["id"], email="")).status_code == 400


@pytest.mark.asyncio
async def test_update_status(client, event):
    participant = (await _register(client, event["id"])).json()
    resp = await client.put(
        f"/api/participants/{participant['id']}", json={"status": "confirmed"}
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "confirmed"

    resp = await client.put(
        f"/api/participants/{participant['id']}", json={"status": "bogus"}
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_delete_participant(client, event):
    participant = (await _register(client, event["id"])).json()
    resp = await client.delete(f"/api/participants/{participant['id']}")
    assert resp.status_code == 204
    resp = await client.get(f"/api/participants/{participant['id']}")
    assert resp.status_code == 404
    resp = await client.delete(f"/api/participants/{participant['id']}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_participant_writes_only_touch_participant_caches(app, client, event):
    cache = app.state.cache
    await client.get(f"/api/events/{event['id']}")
    await client.get(f"/api/events/{event['id']}/participants")
    assert cache.get(CacheName.PARTICIPANTS, event["id"]) == ()

    await _register(client, event["id"])

    assert cache.get(CacheName.PARTICIPANTS, event["id"]) is None
    assert cache.get(CacheName.EVENT, event["id"]) is not None
    resp = await client.get(f"/api/events/{event['id']}/participants")
    assert len(resp.json()) == 1


@pytest.mark.asyncio
async def test_participant_changes_are_logged(client, changelog, event):
    participant = (await _register(client, event["id"])).json()
    await client.put(f"/api/participants/{participant['id']}", json={"status": "cancelled"})
    await client.delete(f"/api/participants/{participant['id']}")

    records = [r for r in await changelog.changes_since(0) if r.channel == PARTICIPANT_CHANGES]
    payloads = [json.loads(r.payload) for r in records]
    assert [p["operation"] for p in payloads] == ["INSERT", "UPDATE", "DELETE"]
    assert all(p["event_id"] == event["id"] for p in payloads)
