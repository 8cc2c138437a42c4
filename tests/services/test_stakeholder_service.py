"""Tests for StakeholderService records, metric callbacks and leaderboard."""

import uuid
from datetime import timedelta

import pytest

from decisionops.core.exceptions import DuplicateError, InvalidArgumentError, NotFoundError
from decisionops.db.base import transaction
from decisionops.schemas.stakeholders import UpdateStakeholderRequest
from tests.support import T0

pytestmark = pytest.mark.integration


async def test_create_normalises_email(stakeholder_service, tenant_id):
    stakeholder = await stakeholder_service.create(tenant_id, "Ada Lovelace", "  Ada@Example.COM ")

    assert stakeholder.email == "ada@example.com"
    assert stakeholder.active is True
    assert stakeholder.decisions_pending == 0
    assert stakeholder.avg_response_time_hours is None


async def test_duplicate_email_rejected(stakeholder_service, tenant_id):
    await stakeholder_service.create(tenant_id, "Ada", "ada@example.com")
    with pytest.raises(DuplicateError):
        await stakeholder_service.create(tenant_id, "Ada again", "ADA@example.com")


async def test_same_email_allowed_in_other_tenant(stakeholder_service, tenant_id, other_tenant_id):
    await stakeholder_service.create(tenant_id, "Ada", "ada@example.com")
    other = await stakeholder_service.create(other_tenant_id, "Ada", "ada@example.com")
    assert other.tenant_id == other_tenant_id


async def test_duplicate_person_rejected(stakeholder_service, ada, tenant_id):
    await stakeholder_service.create(tenant_id, "Ada", "ada@example.com", person_id=ada.id)
    with pytest.raises(DuplicateError):
        await stakeholder_service.create(tenant_id, "Ada (work)", "ada@work.example", person_id=ada.id)


async def test_create_with_unknown_person(stakeholder_service, tenant_id):
    with pytest.raises(NotFoundError):
        await stakeholder_service.create(tenant_id, "Ghost", "ghost@example.com", person_id=uuid.uuid4())


async def test_deactivate_refused_with_pending(stakeholder_service, make_stakeholder, make_decision, ada, tenant_id):
    stakeholder = await make_stakeholder(ada)
    await make_decision(assigned_to_id=ada.id)

    with pytest.raises(InvalidArgumentError):
        await stakeholder_service.deactivate(tenant_id, stakeholder.id)

    assert (await stakeholder_service.get(tenant_id, stakeholder.id)).active is True


async def test_deactivate_hides_from_default_listing(stakeholder_service, tenant_id):
    bob = await stakeholder_service.create(tenant_id, "bob", "bob@example.com")
    await stakeholder_service.create(tenant_id, "Alice", "alice@example.com")

    await stakeholder_service.deactivate(tenant_id, bob.id)

    assert [s.name for s in await stakeholder_service.list_stakeholders(tenant_id)] == ["Alice"]
    everyone = await stakeholder_service.list_stakeholders(tenant_id, active_only=False)
    assert [s.name for s in everyone] == ["Alice", "bob"]


async def test_on_completed_floors_pending_at_zero(stakeholder_service, session_factory, tenant_id):
    stakeholder = await stakeholder_service.create(tenant_id, "Ada", "ada@example.com")

    async with transaction(session_factory, "Stakeholder") as session:
        await stakeholder_service.on_completed(session, stakeholder.id, T0, 3.0)

    refreshed = await stakeholder_service.get(tenant_id, stakeholder.id)
    assert refreshed.decisions_pending == 0
    assert refreshed.decisions_completed == 1
    assert refreshed.avg_response_time_hours == pytest.approx(3.0)
    assert refreshed.last_decision_at == T0


async def test_on_escalated_leaves_pending(stakeholder_service, session_factory, tenant_id):
    stakeholder = await stakeholder_service.create(tenant_id, "Ada", "ada@example.com")

    async with transaction(session_factory, "Stakeholder") as session:
        await stakeholder_service.on_assigned(session, stakeholder.id)
        await stakeholder_service.on_escalated(session, stakeholder.id)

    refreshed = await stakeholder_service.get(tenant_id, stakeholder.id)
    assert refreshed.decisions_pending == 1
    assert refreshed.decisions_escalated == 1


async def test_leaderboard(stakeholder_service, session_factory, tenant_id):
    quick = await stakeholder_service.create(tenant_id, "Quick", "quick@example.com")
    slow = await stakeholder_service.create(tenant_id, "Slow", "slow@example.com")
    idle = await stakeholder_service.create(tenant_id, "Idle", "idle@example.com")

    async with transaction(session_factory, "Stakeholder") as session:
        await stakeholder_service.on_completed(session, quick.id, T0, 1.0)
        await stakeholder_service.on_completed(session, quick.id, T0 + timedelta(hours=1), 2.0)
        await stakeholder_service.on_completed(session, slow.id, T0, 40.0)
        for _ in range(3):
            await stakeholder_service.on_assigned(session, idle.id)

    board = await stakeholder_service.leaderboard(tenant_id)

    assert [s.name for s in board.fastest_responders] == ["Quick", "Slow"]
    assert [s.name for s in board.most_active] == ["Quick", "Slow"]
    assert {s.name for s in board.needing_attention} == {"Slow", "Idle"}
    assert board.needing_attention[0].name == "Idle"


async def test_get_other_tenant(stakeholder_service, tenant_id, other_tenant_id):
    stakeholder = await stakeholder_service.create(tenant_id, "Ada", "ada@example.com")
    with pytest.raises(NotFoundError):
        await stakeholder_service.get(other_tenant_id, stakeholder.id)


async def test_get_by_email_is_case_insensitive(stakeholder_service, tenant_id, other_tenant_id):
    stakeholder = await stakeholder_service.create(tenant_id, "Ada", "ada@example.com")

    found = await stakeholder_service.get_by_email(tenant_id, " ADA@example.com")
    assert found.id == stakeholder.id

    with pytest.raises(NotFoundError):
        await stakeholder_service.get_by_email(other_tenant_id, "ada@example.com")


async def test_update_renames_and_changes_email(stakeholder_service, tenant_id):
    stakeholder = await stakeholder_service.create(tenant_id, "Ada", "ada@example.com")

    updated = await stakeholder_service.update(
        tenant_id, stakeholder.id, UpdateStakeholderRequest(name=" Ada L. ", email="Ada@Work.example")
    )

    assert updated.name == "Ada L."
    assert updated.email == "ada@work.example"
    assert (await stakeholder_service.get_by_email(tenant_id, "ada@work.example")).id == stakeholder.id


async def test_update_rejects_taken_email(stakeholder_service, tenant_id):
    ada = await stakeholder_service.create(tenant_id, "Ada", "ada@example.com")
    await stakeholder_service.create(tenant_id, "Grace", "grace@example.com")

    with pytest.raises(DuplicateError):
        await stakeholder_service.update(tenant_id, ada.id, UpdateStakeholderRequest(email="GRACE@example.com"))

    # Keeping the own email is not a conflict
    same = await stakeholder_service.update(tenant_id, ada.id, UpdateStakeholderRequest(email="ada@example.com"))
    assert same.email == "ada@example.com"


async def test_update_active_flag_respects_pending(
    stakeholder_service, make_stakeholder, make_decision, ada, tenant_id
):
    stakeholder = await make_stakeholder(ada)
    await make_decision(assigned_to_id=ada.id)

    with pytest.raises(InvalidArgumentError):
        await stakeholder_service.update(tenant_id, stakeholder.id, UpdateStakeholderRequest(active=False))

    idle = await stakeholder_service.create(tenant_id, "Idle", "idle@example.com")
    await stakeholder_service.deactivate(tenant_id, idle.id)
    reactivated = await stakeholder_service.update(tenant_id, idle.id, UpdateStakeholderRequest(active=True))
    assert reactivated.active is True


async def test_update_leaves_counters_alone(stakeholder_service, session_factory, tenant_id):
    stakeholder = await stakeholder_service.create(tenant_id, "Ada", "ada@example.com")
    async with transaction(session_factory, "Stakeholder") as session:
        await stakeholder_service.on_completed(session, stakeholder.id, T0, 4.0)

    updated = await stakeholder_service.update(tenant_id, stakeholder.id, UpdateStakeholderRequest(name="Ada"))

    assert updated.decisions_completed == 1
    assert updated.avg_response_time_hours == pytest.approx(4.0)
