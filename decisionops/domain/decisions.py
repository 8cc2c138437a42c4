"""Decision enums, SLA table and lifecycle rules.

Pure domain functions for the decision state machine.
No DB access, fully deterministic: callers pass `now` explicitly.
"""

from datetime import datetime, timedelta
from enum import StrEnum

from decisionops.core.exceptions import IllegalStateTransition, InvalidArgumentError
from decisionops.domain.state_machine import TransitionTable


class DecisionStatus(StrEnum):
    """Decision lifecycle states."""

    NEEDS_INPUT = "needs_input"  # Waiting for stakeholder input
    UNDER_DISCUSSION = "under_discussion"
    DECIDED = "decided"
    IMPLEMENTED = "implemented"
    DEFERRED = "deferred"
    CANCELLED = "cancelled"  # Terminal except via reopen


class DecisionPriority(StrEnum):
    """Decision priority. Declaration order is queue rank (BLOCKING first)."""

    BLOCKING = "blocking"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class DecisionType(StrEnum):
    """Classification only, no behavioural effect."""

    PRODUCT = "product"
    UX = "ux"
    TECHNICAL = "technical"
    ARCHITECTURAL = "architectural"
    STRATEGIC = "strategic"
    OPERATIONAL = "operational"
    RESOURCE = "resource"
    SCOPE = "scope"
    TIMELINE = "timeline"


# SLA hours per priority
SLA_TABLE: dict[DecisionPriority, int] = {
    DecisionPriority.BLOCKING: 4,
    DecisionPriority.HIGH: 8,
    DecisionPriority.NORMAL: 24,
    DecisionPriority.LOW: 72,
}

PRIORITY_RANK: dict[DecisionPriority, int] = {p: rank for rank, p in enumerate(DecisionPriority)}

OPEN_STATUSES = frozenset({DecisionStatus.NEEDS_INPUT, DecisionStatus.UNDER_DISCUSSION})

# DEFERRED is deliberately absent: a deferred decision past its due date still reports overdue.
NOT_OVERDUE_STATUSES = frozenset(
    {DecisionStatus.DECIDED, DecisionStatus.IMPLEMENTED, DecisionStatus.CANCELLED}
)

DECISION_TRANSITIONS = TransitionTable(
    "Decision",
    {
        DecisionStatus.NEEDS_INPUT: [
            DecisionStatus.UNDER_DISCUSSION,
            DecisionStatus.DECIDED,
            DecisionStatus.DEFERRED,
            DecisionStatus.CANCELLED,
        ],
        DecisionStatus.UNDER_DISCUSSION: [
            DecisionStatus.DECIDED,
            DecisionStatus.DEFERRED,
            DecisionStatus.CANCELLED,
        ],
        DecisionStatus.DECIDED: [DecisionStatus.IMPLEMENTED, DecisionStatus.CANCELLED],
        DecisionStatus.IMPLEMENTED: [],
        DecisionStatus.DEFERRED: [DecisionStatus.NEEDS_INPUT, DecisionStatus.CANCELLED],
        DecisionStatus.CANCELLED: [DecisionStatus.NEEDS_INPUT],
    },
)


def sla_hours_for(
    priority: DecisionPriority,
    override: int | None = None,
    table_override: dict[str, int] | None = None,
) -> int:
    """Resolve SLA hours: explicit override, then configured table, then default table."""
    if override is not None:
        if override <= 0:
            raise InvalidArgumentError("sla_hours must be positive")
        return override
    if table_override and priority.value in table_override:
        return table_override[priority.value]
    return SLA_TABLE[priority]


def compute_due_at(start: datetime, sla_hours: int) -> datetime:
    return start + timedelta(hours=sla_hours)


def hours_between(start: datetime | None, end: datetime) -> float:
    """Fractional hours from start to end, 0 when start is unset."""
    if start is None:
        return 0.0
    return (end - start).total_seconds() / 3600


def is_overdue(status: DecisionStatus, due_at: datetime | None, now: datetime) -> bool:
    """True when the deadline has passed and the decision is still actionable."""
    if due_at is None:
        return False
    return now > due_at and status not in NOT_OVERDUE_STATUSES


def require_open(status: DecisionStatus, operation: str) -> None:
    """Guard for operations that only apply to open decisions (escalate)."""
    if status not in OPEN_STATUSES:
        raise IllegalStateTransition(status, operation, entity="Decision")


def require_text(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise InvalidArgumentError(f"{field} is required")
    return value.strip()


def reassignment_note(previous_name: str | None, new_name: str, reason: str) -> str:
    return f"[Reassigned from {previous_name or 'unassigned'} to {new_name}] {reason}"


def append_context(existing: str | None, note: str) -> str:
    """Append an audit note to free-text context, keeping prior content."""
    if existing and existing.strip():
        return f"{existing}\n\n{note}"
    return note
