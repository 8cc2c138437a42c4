"""Decision Pydantic schemas: structured field types plus API requests and responses."""

import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from decisionops.domain.decisions import (
    DecisionPriority,
    DecisionStatus,
    DecisionType,
    hours_between,
    is_overdue,
)
from decisionops.domain.votes import VoteType

# ──────────────────────────────────────────────────────────────────────────────
# Structured field types (persisted through PydanticJSON)
# ──────────────────────────────────────────────────────────────────────────────


class DecisionOption(BaseModel):
    """A labeled choice offered by a decision."""

    id: str = Field(min_length=1)
    title: str
    description: str | None = None
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class BlockedItem(BaseModel):
    """An entity waiting on this decision. Only "hypothesis" is acted on today."""

    model_config = ConfigDict(frozen=True)

    type: str = "hypothesis"
    id: uuid.UUID

    @field_validator("type")
    @classmethod
    def _normalize_type(cls, value: str) -> str:
        return value.strip().lower()


# ──────────────────────────────────────────────────────────────────────────────
# Requests
# ──────────────────────────────────────────────────────────────────────────────


class CreateDecisionRequest(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=10000)
    context: str | None = None
    options: list[DecisionOption] = Field(default_factory=list)
    priority: DecisionPriority = DecisionPriority.NORMAL
    decision_type: DecisionType | None = None
    owner_id: uuid.UUID | None = None
    assigned_to_id: uuid.UUID | None = None
    outcome_id: uuid.UUID | None = None
    hypothesis_id: uuid.UUID | None = None
    team_id: uuid.UUID | None = None
    sla_hours: int | None = Field(default=None, gt=0)
    blocked_items: list[BlockedItem] = Field(default_factory=list)
    external_refs: dict[str, str] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)


class UpdateDecisionRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=10000)
    context: str | None = None
    options: list[DecisionOption] | None = None
    priority: DecisionPriority | None = None
    decision_type: DecisionType | None = None
    owner_id: uuid.UUID | None = None
    assigned_to_id: uuid.UUID | None = None
    outcome_id: uuid.UUID | None = None
    hypothesis_id: uuid.UUID | None = None
    team_id: uuid.UUID | None = None
    sla_hours: int | None = Field(default=None, gt=0)
    blocked_items: list[BlockedItem] | None = None
    external_refs: dict[str, str] | None = None
    tags: list[str] | None = None


class ResolveDecisionRequest(BaseModel):
    rationale: str
    selected_option: DecisionOption | None = None


class ReasonRequest(BaseModel):
    reason: str


class EscalateDecisionRequest(BaseModel):
    escalate_to_id: uuid.UUID
    reason: str | None = None


class AssignDecisionRequest(BaseModel):
    assigned_to_id: uuid.UUID


class ReassignDecisionRequest(BaseModel):
    assigned_to_id: uuid.UUID
    reason: str | None = None


class CastVoteRequest(BaseModel):
    vote: VoteType
    comment: str | None = Field(default=None, max_length=1000)


class CreateCommentRequest(BaseModel):
    content: str = Field(min_length=1)
    option_id: str | None = None
    parent_id: uuid.UUID | None = None


class UpdateCommentRequest(BaseModel):
    content: str = Field(min_length=1)


# ──────────────────────────────────────────────────────────────────────────────
# Responses
# ──────────────────────────────────────────────────────────────────────────────


class VoteResponse(BaseModel):
    id: uuid.UUID
    decision_id: uuid.UUID
    person_id: uuid.UUID
    vote: VoteType
    comment: str | None
    created_at: datetime
    updated_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class VoteSummary(BaseModel):
    total_votes: int
    count_by_type: dict[VoteType, int]
    votes: list[VoteResponse]


class CommentResponse(BaseModel):
    id: uuid.UUID
    decision_id: uuid.UUID
    author_id: uuid.UUID
    content: str
    option_id: str | None
    parent_id: uuid.UUID | None
    edited: bool
    created_at: datetime
    updated_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class DecisionResponse(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    title: str
    description: str | None
    context: str | None
    options: list[DecisionOption]
    status: DecisionStatus
    priority: DecisionPriority
    decision_type: DecisionType | None
    owner_id: uuid.UUID | None
    assigned_to_id: uuid.UUID | None
    escalated_to_id: uuid.UUID | None
    decided_by_id: uuid.UUID | None
    created_by_id: uuid.UUID | None
    outcome_id: uuid.UUID | None
    hypothesis_id: uuid.UUID | None
    team_id: uuid.UUID | None
    sla_hours: int
    due_at: datetime | None
    escalation_level: int
    escalated_at: datetime | None
    decided_at: datetime | None
    decision_rationale: str | None
    selected_option: DecisionOption | None
    blocked_items: list[BlockedItem]
    external_refs: dict[str, str]
    tags: list[str]
    created_at: datetime
    updated_at: datetime | None

    is_overdue: bool = False
    wait_time_hours: float = 0.0
    comment_count: int = 0
    vote_count: int = 0
    votes: list[VoteResponse] | None = None
    comments: list[CommentResponse] | None = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_model(
        cls,
        decision,
        now: datetime | None = None,
        comment_count: int = 0,
        vote_count: int = 0,
        votes: list | None = None,
        comments: list | None = None,
    ) -> "DecisionResponse":
        """Build a response from a Decision row, computing the time-derived fields at `now`."""
        now = now or datetime.now(UTC)
        response = cls.model_validate(decision)
        return response.model_copy(
            update={
                "is_overdue": is_overdue(decision.status, decision.due_at, now),
                "wait_time_hours": round(hours_between(decision.created_at, now), 2),
                "comment_count": comment_count,
                "vote_count": vote_count,
                "votes": [VoteResponse.model_validate(v) for v in votes] if votes is not None else None,
                "comments": (
                    [CommentResponse.model_validate(c) for c in comments] if comments is not None else None
                ),
            }
        )


class ResolveDecisionResponse(BaseModel):
    decision: DecisionResponse
    unblocked_hypothesis_ids: list[uuid.UUID]


class DecisionQueueResponse(BaseModel):
    needs_input: list[DecisionResponse]
    under_discussion: list[DecisionResponse]
    decided: list[DecisionResponse]
    total_pending: int
    avg_decision_time_hours: float | None


class AverageDecisionTimeResponse(BaseModel):
    days: int
    avg_decision_time_hours: float | None
