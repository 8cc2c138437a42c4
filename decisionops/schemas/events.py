"""Domain event envelopes published to the event channel.

Flat envelope with an `event_type` discriminator; the Redis sink publishes each
type on its own `{prefix}.{event_type}` channel.
"""

import uuid
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

from decisionops.domain.decisions import DecisionPriority, DecisionType
from decisionops.domain.hypotheses import HypothesisStatus


class EventType:
    """Event type constants."""

    DECISION_CREATED = "decision.created"
    DECISION_RESOLVED = "decision.resolved"
    DECISION_ESCALATED = "decision.escalated"
    HYPOTHESIS_STATUS_CHANGED = "hypothesis.status-changed"
    HYPOTHESIS_CONCLUDED = "hypothesis.concluded"


class DomainEvent(BaseModel):
    event_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    tenant_id: uuid.UUID
    actor_id: uuid.UUID | None = None


class DecisionCreatedEvent(DomainEvent):
    event_type: Literal["decision.created"] = EventType.DECISION_CREATED
    decision_id: uuid.UUID
    title: str
    priority: DecisionPriority
    decision_type: DecisionType | None = None
    assigned_to_id: uuid.UUID | None = None
    outcome_id: uuid.UUID | None = None
    hypothesis_id: uuid.UUID | None = None
    due_at: datetime | None = None


class DecisionResolvedEvent(DomainEvent):
    event_type: Literal["decision.resolved"] = EventType.DECISION_RESOLVED
    decision_id: uuid.UUID
    title: str
    priority: DecisionPriority
    decided_by_id: uuid.UUID
    rationale: str
    cycle_time_hours: float
    was_escalated: bool
    escalation_level: int
    unblocked_hypothesis_ids: list[uuid.UUID] = Field(default_factory=list)


class DecisionEscalatedEvent(DomainEvent):
    event_type: Literal["decision.escalated"] = EventType.DECISION_ESCALATED
    decision_id: uuid.UUID
    title: str
    priority: DecisionPriority
    escalated_from_id: uuid.UUID | None = None
    escalated_to_id: uuid.UUID
    escalation_level: int
    reason: str | None = None
    wait_time_hours: float


class HypothesisStatusChangedEvent(DomainEvent):
    event_type: Literal["hypothesis.status-changed"] = EventType.HYPOTHESIS_STATUS_CHANGED
    hypothesis_id: uuid.UUID
    title: str
    from_status: HypothesisStatus
    to_status: HypothesisStatus
    reason: str | None = None


class HypothesisConcludedEvent(DomainEvent):
    event_type: Literal["hypothesis.concluded"] = EventType.HYPOTHESIS_CONCLUDED
    hypothesis_id: uuid.UUID
    title: str
    conclusion: HypothesisStatus
    conclusion_notes: str | None = None
