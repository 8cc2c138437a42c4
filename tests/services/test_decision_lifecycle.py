"""Tests for DecisionService lifecycle operations against a real database."""

import uuid
from datetime import timedelta

import pytest

from decisionops.core.exceptions import IllegalStateTransition, InvalidArgumentError, NotFoundError
from decisionops.domain.decisions import DecisionPriority, DecisionStatus
from decisionops.schemas.decisions import BlockedItem, DecisionOption, UpdateDecisionRequest
from decisionops.schemas.events import EventType
from tests.support import T0

pytestmark = pytest.mark.integration


# ============================================================================
# Create
# ============================================================================


async def test_create_sets_sla_and_deadline(make_decision, ada, events):
    """HIGH priority gets an 8 hour SLA counted from creation."""
    decision = await make_decision(now=T0, priority=DecisionPriority.HIGH, assigned_to_id=ada.id)

    assert decision.status == DecisionStatus.NEEDS_INPUT
    assert decision.sla_hours == 8
    assert decision.due_at == T0 + timedelta(hours=8)
    assert decision.escalation_level == 0
    assert [e.event_type for e in events.events] == [EventType.DECISION_CREATED]
    assert events.events[0].decision_id == decision.id


async def test_create_with_explicit_sla(make_decision):
    decision = await make_decision(now=T0, priority=DecisionPriority.LOW, sla_hours=2)
    assert decision.sla_hours == 2
    assert decision.due_at == T0 + timedelta(hours=2)


async def test_create_rejects_unknown_assignee(make_decision):
    with pytest.raises(NotFoundError):
        await make_decision(assigned_to_id=uuid.uuid4())


async def test_create_rejects_blank_title(make_decision, events):
    with pytest.raises(InvalidArgumentError):
        await make_decision(title="   ")
    assert events.events == []


async def test_create_dedupes_blocked_items(make_decision, make_hypothesis):
    hypothesis = await make_hypothesis()
    item = BlockedItem(id=hypothesis.id)

    decision = await make_decision(blocked_items=[item, item])

    assert decision.blocked_items == [item]


async def test_create_rejects_unknown_blocked_hypothesis(make_decision):
    with pytest.raises(NotFoundError):
        await make_decision(blocked_items=[BlockedItem(id=uuid.uuid4())])


async def test_create_rejects_unsupported_blocked_type(make_decision, make_hypothesis):
    hypothesis = await make_hypothesis()
    with pytest.raises(InvalidArgumentError):
        await make_decision(blocked_items=[BlockedItem(type="feature", id=hypothesis.id)])


async def test_create_increments_assignee_pending(make_decision, make_stakeholder, stakeholder_service, ada, tenant_id):
    stakeholder = await make_stakeholder(ada)

    await make_decision(assigned_to_id=ada.id)
    await make_decision(assigned_to_id=ada.id)

    refreshed = await stakeholder_service.get(tenant_id, stakeholder.id)
    assert refreshed.decisions_pending == 2


# ============================================================================
# Guarded transitions
# ============================================================================


async def test_start_discussion_then_resolve(decision_service, make_decision, ada, tenant_id):
    decision = await make_decision(now=T0)

    discussed = await decision_service.start_discussion(tenant_id, decision.id)
    assert discussed.status == DecisionStatus.UNDER_DISCUSSION

    result = await decision_service.resolve(tenant_id, decision.id, ada.id, "Usage-based wins", now=T0 + timedelta(hours=3))
    assert result.decision.status == DecisionStatus.DECIDED
    assert result.decision.decided_by_id == ada.id
    assert result.decision.decided_at == T0 + timedelta(hours=3)
    assert result.decision.decision_rationale == "Usage-based wins"


async def test_illegal_transition_leaves_row_unchanged(decision_service, make_decision, tenant_id):
    """implement from NEEDS_INPUT is refused and nothing is written."""
    decision = await make_decision(now=T0)
    before = await decision_service.get(tenant_id, decision.id)

    with pytest.raises(IllegalStateTransition) as exc_info:
        await decision_service.implement(tenant_id, decision.id)

    assert exc_info.value.current == DecisionStatus.NEEDS_INPUT
    assert exc_info.value.target == DecisionStatus.IMPLEMENTED
    after = await decision_service.get(tenant_id, decision.id)
    assert after.status == DecisionStatus.NEEDS_INPUT
    assert after.version == before.version
    assert after.updated_at is None


async def test_resolve_is_not_reentrant(decision_service, make_decision, ada, grace, tenant_id):
    decision = await make_decision(now=T0)
    await decision_service.resolve(tenant_id, decision.id, ada.id, "first call", now=T0 + timedelta(hours=1))

    with pytest.raises(IllegalStateTransition):
        await decision_service.resolve(tenant_id, decision.id, grace.id, "second call", now=T0 + timedelta(hours=2))

    stored = await decision_service.get(tenant_id, decision.id)
    assert stored.decided_by_id == ada.id
    assert stored.decision_rationale == "first call"
    assert stored.decided_at == T0 + timedelta(hours=1)


async def test_resolve_requires_rationale(decision_service, make_decision, ada, tenant_id):
    decision = await make_decision()
    with pytest.raises(InvalidArgumentError):
        await decision_service.resolve(tenant_id, decision.id, ada.id, "  ")


async def test_resolve_matches_selected_option(decision_service, make_decision, ada, tenant_id):
    options = [DecisionOption(id="seat", title="Per seat"), DecisionOption(id="usage", title="Usage based", pros=["fair"])]
    decision = await make_decision(options=options)

    result = await decision_service.resolve(
        tenant_id, decision.id, ada.id, "aligns with cost", selected_option=DecisionOption(id="usage", title="?")
    )

    # The stored option is the decision's own copy, not the caller's payload
    assert result.decision.selected_option.title == "Usage based"
    assert result.decision.selected_option.pros == ["fair"]


async def test_resolve_rejects_foreign_option(decision_service, make_decision, ada, tenant_id):
    decision = await make_decision(options=[DecisionOption(id="seat", title="Per seat")])
    with pytest.raises(InvalidArgumentError):
        await decision_service.resolve(
            tenant_id, decision.id, ada.id, "why not", selected_option=DecisionOption(id="flat", title="Flat fee")
        )
    stored = await decision_service.get(tenant_id, decision.id)
    assert stored.status == DecisionStatus.NEEDS_INPUT


async def test_defer_and_reopen(decision_service, make_decision, tenant_id):
    decision = await make_decision(now=T0, priority=DecisionPriority.NORMAL)

    deferred = await decision_service.defer(tenant_id, decision.id, "waiting for Q3 budget")
    assert deferred.status == DecisionStatus.DEFERRED
    assert deferred.decision_rationale == "waiting for Q3 budget"

    reopened = await decision_service.reopen(tenant_id, decision.id, now=T0 + timedelta(days=10))
    assert reopened.status == DecisionStatus.NEEDS_INPUT
    assert reopened.decision_rationale is None
    assert reopened.due_at == T0 + timedelta(days=10, hours=24)


async def test_defer_requires_reason(decision_service, make_decision, tenant_id):
    decision = await make_decision()
    with pytest.raises(InvalidArgumentError):
        await decision_service.defer(tenant_id, decision.id, "")


async def test_cancel_decided_then_reopen(decision_service, make_decision, ada, tenant_id):
    decision = await make_decision()
    await decision_service.resolve(tenant_id, decision.id, ada.id, "done")

    cancelled = await decision_service.cancel(tenant_id, decision.id, "superseded")
    assert cancelled.status == DecisionStatus.CANCELLED
    assert cancelled.decision_rationale == "superseded"

    reopened = await decision_service.reopen(tenant_id, decision.id)
    assert reopened.status == DecisionStatus.NEEDS_INPUT


async def test_implemented_is_final(decision_service, make_decision, ada, tenant_id):
    decision = await make_decision()
    await decision_service.resolve(tenant_id, decision.id, ada.id, "ship it")
    await decision_service.implement(tenant_id, decision.id)

    with pytest.raises(IllegalStateTransition):
        await decision_service.cancel(tenant_id, decision.id, "too late")
    with pytest.raises(IllegalStateTransition):
        await decision_service.reopen(tenant_id, decision.id)

    stored = await decision_service.get(tenant_id, decision.id)
    assert stored.status == DecisionStatus.IMPLEMENTED


async def test_reopen_from_open_state_refused(decision_service, make_decision, tenant_id):
    decision = await make_decision()
    with pytest.raises(IllegalStateTransition):
        await decision_service.reopen(tenant_id, decision.id)


# ============================================================================
# Escalation
# ============================================================================


async def test_escalate_moves_assignee_and_bumps_level(decision_service, make_decision, ada, grace, tenant_id, events):
    decision = await make_decision(now=T0, assigned_to_id=ada.id)

    escalated = await decision_service.escalate(tenant_id, decision.id, grace.id, reason="no answer", now=T0 + timedelta(hours=30))

    assert escalated.escalation_level == 1
    assert escalated.assigned_to_id == grace.id
    assert escalated.escalated_to_id == grace.id
    assert escalated.escalated_at == T0 + timedelta(hours=30)

    event = events.of_type(EventType.DECISION_ESCALATED)[0]
    assert event.escalated_from_id == ada.id
    assert event.escalated_to_id == grace.id
    assert event.wait_time_hours == 30.0


async def test_escalation_level_only_increases(decision_service, make_decision, ada, grace, tenant_id):
    decision = await make_decision(assigned_to_id=ada.id)
    await decision_service.escalate(tenant_id, decision.id, grace.id)
    again = await decision_service.escalate(tenant_id, decision.id, ada.id)
    assert again.escalation_level == 2


@pytest.mark.parametrize("closing", ["defer", "resolve"])
async def test_escalate_refused_when_not_open(decision_service, make_decision, ada, grace, tenant_id, closing):
    decision = await make_decision(assigned_to_id=ada.id)
    if closing == "defer":
        await decision_service.defer(tenant_id, decision.id, "later")
    else:
        await decision_service.resolve(tenant_id, decision.id, ada.id, "done")

    with pytest.raises(IllegalStateTransition):
        await decision_service.escalate(tenant_id, decision.id, grace.id)

    stored = await decision_service.get(tenant_id, decision.id)
    assert stored.escalation_level == 0
    assert stored.assigned_to_id == ada.id


async def test_escalate_to_unknown_person(decision_service, make_decision, tenant_id):
    decision = await make_decision()
    with pytest.raises(NotFoundError):
        await decision_service.escalate(tenant_id, decision.id, uuid.uuid4())


# ============================================================================
# End-to-end SLA scenario
# ============================================================================


async def test_high_priority_decision_breaches_sla_then_resolves(
    decision_service, stakeholder_service, make_decision, make_stakeholder, ada, grace, tenant_id, events
):
    """HIGH decision: overdue after 9h, escalated, resolved; metrics follow each step."""
    ada_stakeholder = await make_stakeholder(ada)
    grace_stakeholder = await make_stakeholder(grace)
    decision = await make_decision(now=T0, priority=DecisionPriority.HIGH, assigned_to_id=ada.id)
    assert decision.due_at == T0 + timedelta(hours=8)

    assert await decision_service.overdue(tenant_id, now=T0 + timedelta(hours=7)) == []
    late = T0 + timedelta(hours=9)
    assert [d.id for d in await decision_service.overdue(tenant_id, now=late)] == [decision.id]
    assert [d.id for d in await decision_service.escalation_candidates(tenant_id, now=late)] == [decision.id]

    await decision_service.escalate(tenant_id, decision.id, grace.id, reason="SLA breached", now=late)
    assert await decision_service.escalation_candidates(tenant_id, now=late) == []

    ada_after_escalation = await stakeholder_service.get(tenant_id, ada_stakeholder.id)
    assert ada_after_escalation.decisions_escalated == 1
    assert ada_after_escalation.decisions_pending == 1

    result = await decision_service.resolve(
        tenant_id, decision.id, grace.id, "Going with usage pricing", now=T0 + timedelta(hours=10)
    )
    assert result.decision.status == DecisionStatus.DECIDED

    grace_after = await stakeholder_service.get(tenant_id, grace_stakeholder.id)
    assert grace_after.decisions_completed == 1
    assert grace_after.decisions_pending == 0
    assert grace_after.avg_response_time_hours == pytest.approx(10.0)
    assert grace_after.last_decision_at == T0 + timedelta(hours=10)

    resolved_event = events.of_type(EventType.DECISION_RESOLVED)[0]
    assert resolved_event.was_escalated is True
    assert resolved_event.escalation_level == 1
    assert resolved_event.cycle_time_hours == pytest.approx(10.0)


async def test_running_average_over_several_resolutions(
    decision_service, stakeholder_service, make_decision, make_stakeholder, ada, tenant_id
):
    stakeholder = await make_stakeholder(ada)
    for hours in (2, 4, 9):
        decision = await make_decision(now=T0, assigned_to_id=ada.id)
        await decision_service.resolve(tenant_id, decision.id, ada.id, "ok", now=T0 + timedelta(hours=hours))

    refreshed = await stakeholder_service.get(tenant_id, stakeholder.id)
    assert refreshed.decisions_completed == 3
    assert refreshed.decisions_pending == 0
    assert refreshed.avg_response_time_hours == pytest.approx(5.0)


# ============================================================================
# Assignment, edits, delete
# ============================================================================


async def test_reassign_appends_context_note(decision_service, make_decision, ada, grace, tenant_id):
    decision = await make_decision(assigned_to_id=ada.id, context="Budget is fixed.")

    reassigned = await decision_service.reassign(tenant_id, decision.id, grace.id, reason="Ada is on leave")

    assert reassigned.assigned_to_id == grace.id
    assert reassigned.context == "Budget is fixed.\n\n[Reassigned from Ada Lovelace to Grace Hopper] Ada is on leave"


async def test_assign_has_no_status_guard(decision_service, make_decision, ada, grace, tenant_id):
    decision = await make_decision(assigned_to_id=ada.id)
    await decision_service.resolve(tenant_id, decision.id, ada.id, "done")

    assigned = await decision_service.assign(tenant_id, decision.id, grace.id)

    assert assigned.assigned_to_id == grace.id
    assert assigned.context is None


async def test_update_sla_recomputes_deadline_from_creation(decision_service, make_decision, tenant_id):
    decision = await make_decision(now=T0)

    updated = await decision_service.update(
        tenant_id, decision.id, UpdateDecisionRequest(sla_hours=2, description="now with details")
    )

    assert updated.sla_hours == 2
    assert updated.due_at == T0 + timedelta(hours=2)
    assert updated.description == "now with details"
    assert updated.status == DecisionStatus.NEEDS_INPUT


async def test_update_ignores_null_for_required_fields(decision_service, make_decision, tenant_id):
    decision = await make_decision(tags=["pricing"])

    updated = await decision_service.update(tenant_id, decision.id, UpdateDecisionRequest(tags=None, title=None))

    assert updated.tags == ["pricing"]
    assert updated.title == "Pick a pricing model"


async def test_update_priority_keeps_deadline_and_reorders_queue(decision_service, make_decision, tenant_id):
    decision = await make_decision(now=T0, priority=DecisionPriority.LOW)
    urgent = await make_decision(now=T0 + timedelta(minutes=1), priority=DecisionPriority.HIGH)

    updated = await decision_service.update(
        tenant_id, decision.id, UpdateDecisionRequest(priority=DecisionPriority.BLOCKING)
    )

    assert updated.priority == DecisionPriority.BLOCKING
    assert updated.due_at == decision.due_at
    assert [d.id for d in await decision_service.pending(tenant_id)] == [decision.id, urgent.id]


async def test_update_assignee_validates_person(decision_service, make_decision, ada, tenant_id):
    decision = await make_decision()

    updated = await decision_service.update(tenant_id, decision.id, UpdateDecisionRequest(assigned_to_id=ada.id))
    assert updated.assigned_to_id == ada.id

    with pytest.raises(NotFoundError):
        await decision_service.update(tenant_id, decision.id, UpdateDecisionRequest(assigned_to_id=uuid.uuid4()))
    assert (await decision_service.get(tenant_id, decision.id)).assigned_to_id == ada.id


async def test_update_replaces_blocked_items(decision_service, make_decision, make_hypothesis, tenant_id):
    first, second = await make_hypothesis(), await make_hypothesis(title="Annual plans reduce churn")
    decision = await make_decision(blocked_items=[BlockedItem(id=first.id)])

    updated = await decision_service.update(
        tenant_id,
        decision.id,
        UpdateDecisionRequest(blocked_items=[BlockedItem(id=second.id), BlockedItem(id=second.id)]),
    )
    assert updated.blocked_items == [BlockedItem(id=second.id)]

    with pytest.raises(NotFoundError):
        await decision_service.update(
            tenant_id, decision.id, UpdateDecisionRequest(blocked_items=[BlockedItem(id=uuid.uuid4())])
        )
    with pytest.raises(InvalidArgumentError):
        await decision_service.update(
            tenant_id, decision.id, UpdateDecisionRequest(blocked_items=[BlockedItem(type="outcome", id=first.id)])
        )


async def test_delete_removes_votes_and_comments(
    decision_service, vote_service, comment_service, make_decision, ada, tenant_id
):
    decision = await make_decision()
    await vote_service.cast(tenant_id, decision.id, ada.id, "approve")
    await comment_service.add(tenant_id, decision.id, ada.id, "Looks right")

    await decision_service.delete(tenant_id, decision.id)

    with pytest.raises(NotFoundError):
        await decision_service.get(tenant_id, decision.id)
    assert await decision_service.activity_counts([decision.id]) == {decision.id: (0, 0)}


async def test_add_blocked_item_ignores_duplicates(decision_service, make_decision, make_hypothesis, tenant_id):
    hypothesis = await make_hypothesis()
    decision = await make_decision()
    item = BlockedItem(id=hypothesis.id)

    await decision_service.add_blocked_item(tenant_id, decision.id, item)
    again = await decision_service.add_blocked_item(tenant_id, decision.id, item)

    assert again.blocked_items == [item]


async def test_decision_cannot_block_itself(decision_service, make_decision, tenant_id):
    decision = await make_decision()
    with pytest.raises(InvalidArgumentError):
        await decision_service.add_blocked_item(tenant_id, decision.id, BlockedItem(id=decision.id))


# ============================================================================
# Tenant isolation
# ============================================================================


async def test_other_tenant_sees_nothing(decision_service, make_decision, ada, other_tenant_id):
    decision = await make_decision()

    with pytest.raises(NotFoundError):
        await decision_service.get(other_tenant_id, decision.id)
    with pytest.raises(NotFoundError):
        await decision_service.resolve(other_tenant_id, decision.id, ada.id, "not yours")
    assert await decision_service.list_decisions(other_tenant_id) == []


async def test_person_from_other_tenant_is_not_found(decision_service, make_decision, make_person, other_tenant_id, tenant_id):
    outsider = await make_person("Eve", "Outsider", tenant=other_tenant_id)
    decision = await make_decision()

    with pytest.raises(NotFoundError):
        await decision_service.assign(tenant_id, decision.id, outsider.id)
