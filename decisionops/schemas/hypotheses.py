"""Hypothesis Pydantic schemas."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from decisionops.domain.hypotheses import HypothesisStatus


class ExperimentResults(BaseModel):
    """Structured experiment outcome stored on conclusion."""

    model_config = ConfigDict(extra="forbid")

    metrics: dict[str, float] = Field(default_factory=dict)
    sample_size: int | None = Field(default=None, ge=0)
    confidence: float | None = Field(default=None, ge=0, le=1)
    summary: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class CreateHypothesisRequest(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    statement: str | None = None
    outcome_id: uuid.UUID | None = None
    owner_id: uuid.UUID | None = None


class UpdateHypothesisRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    statement: str | None = None
    outcome_id: uuid.UUID | None = None
    owner_id: uuid.UUID | None = None


class TransitionHypothesisRequest(BaseModel):
    target_status: HypothesisStatus
    reason: str | None = None


class ConcludeHypothesisRequest(BaseModel):
    conclusion: HypothesisStatus
    conclusion_notes: str | None = None
    experiment_results: ExperimentResults | None = None


class AbandonHypothesisRequest(BaseModel):
    reason: str | None = None


class HypothesisResponse(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    title: str
    statement: str | None
    owner_id: uuid.UUID | None
    outcome_id: uuid.UUID | None
    status: HypothesisStatus
    blocked_reason: str | None
    started_at: datetime | None
    deployed_at: datetime | None
    measuring_started_at: datetime | None
    concluded_at: datetime | None
    concluded_by_id: uuid.UUID | None
    conclusion_notes: str | None
    experiment_results: ExperimentResults | None
    created_at: datetime
    updated_at: datetime | None

    model_config = ConfigDict(from_attributes=True)
