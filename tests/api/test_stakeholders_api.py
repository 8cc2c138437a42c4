"""Integration tests for stakeholder and people endpoints."""

import uuid

import pytest

pytestmark = pytest.mark.integration


async def test_person_roundtrip(client):
    created = await client.post("/api/people", json={"first_name": "Grace", "last_name": "Hopper"})
    assert created.status_code == 201

    fetched = await client.get(f"/api/people/{created.json()['id']}")
    assert fetched.json()["last_name"] == "Hopper"

    missing = await client.get(f"/api/people/{uuid.uuid4()}")
    assert missing.status_code == 404


async def test_pending_decisions_for_person(client, create_person):
    ada = await create_person()
    decision = (await client.post("/api/decisions", json={"title": "Hire?", "assigned_to_id": str(ada)})).json()

    pending = (await client.get(f"/api/people/{ada}/pending-decisions")).json()

    assert [d["id"] for d in pending] == [decision["id"]]


async def test_create_stakeholder_and_duplicate(client):
    payload = {"name": "Ada Lovelace", "email": "Ada@Example.com"}

    created = await client.post("/api/stakeholders", json=payload)
    assert created.status_code == 201
    assert created.json()["email"] == "ada@example.com"

    duplicate = await client.post("/api/stakeholders", json=payload)
    assert duplicate.status_code == 409
    assert "debug_id" in duplicate.json()


async def test_metrics_follow_resolution(client, create_person):
    ada = await create_person()
    stakeholder = (
        await client.post("/api/stakeholders", json={"name": "Ada", "email": "ada@example.com", "person_id": str(ada)})
    ).json()
    decision = (await client.post("/api/decisions", json={"title": "Hire?", "assigned_to_id": str(ada)})).json()

    pending = (await client.get(f"/api/stakeholders/{stakeholder['id']}/metrics")).json()
    assert pending["decisions_pending"] == 1

    blocked = await client.post(f"/api/stakeholders/{stakeholder['id']}/deactivate")
    assert blocked.status_code == 422

    await client.post(
        f"/api/decisions/{decision['id']}/resolve", json={"rationale": "Yes"}, headers={"X-Actor-ID": str(ada)}
    )
    metrics = (await client.get(f"/api/stakeholders/{stakeholder['id']}/metrics")).json()
    assert metrics["decisions_pending"] == 0
    assert metrics["decisions_completed"] == 1
    assert metrics["avg_response_time_hours"] is not None

    board = (await client.get("/api/stakeholders/leaderboard")).json()
    assert [s["id"] for s in board["most_active"]] == [stakeholder["id"]]

    deactivated = await client.post(f"/api/stakeholders/{stakeholder['id']}/deactivate")
    assert deactivated.json()["active"] is False
    assert (await client.get("/api/stakeholders")).json() == []
    assert len((await client.get("/api/stakeholders", params={"include_inactive": True})).json()) == 1


async def test_lookup_by_email(client):
    created = (await client.post("/api/stakeholders", json={"name": "Ada", "email": "ada@example.com"})).json()

    found = await client.get("/api/stakeholders/by-email/ADA@example.com")
    assert found.status_code == 200
    assert found.json()["id"] == created["id"]

    missing = await client.get("/api/stakeholders/by-email/nobody@example.com")
    assert missing.status_code == 404


async def test_patch_stakeholder(client):
    ada = (await client.post("/api/stakeholders", json={"name": "Ada", "email": "ada@example.com"})).json()
    await client.post("/api/stakeholders", json={"name": "Grace", "email": "grace@example.com"})

    renamed = await client.patch(
        f"/api/stakeholders/{ada['id']}", json={"name": "Ada Lovelace", "email": "Ada.L@Example.com"}
    )
    assert renamed.status_code == 200, renamed.text
    assert renamed.json()["name"] == "Ada Lovelace"
    assert renamed.json()["email"] == "ada.l@example.com"

    taken = await client.patch(f"/api/stakeholders/{ada['id']}", json={"email": "grace@example.com"})
    assert taken.status_code == 409


async def test_delete_stakeholder_deactivates(client):
    ada = (await client.post("/api/stakeholders", json={"name": "Ada", "email": "ada@example.com"})).json()

    deleted = await client.delete(f"/api/stakeholders/{ada['id']}")
    assert deleted.status_code == 204

    assert (await client.get("/api/stakeholders")).json() == []
    kept = (await client.get(f"/api/stakeholders/{ada['id']}")).json()
    assert kept["active"] is False
