"""Stakeholder and directory Pydantic schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CreatePersonRequest(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(default="", max_length=100)
    email: str | None = None


class PersonResponse(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    first_name: str
    last_name: str
    email: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CreateStakeholderRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    person_id: uuid.UUID | None = None


class UpdateStakeholderRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, min_length=3, max_length=255)
    person_id: uuid.UUID | None = None
    active: bool | None = None


class StakeholderResponse(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    person_id: uuid.UUID | None
    name: str
    email: str
    active: bool
    decisions_pending: int
    decisions_completed: int
    decisions_escalated: int
    avg_response_time_hours: float | None
    last_decision_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LeaderboardResponse(BaseModel):
    fastest_responders: list[StakeholderResponse]
    most_active: list[StakeholderResponse]
    needing_attention: list[StakeholderResponse]


class StakeholderMetricsResponse(BaseModel):
    stakeholder_id: uuid.UUID
    decisions_pending: int
    decisions_completed: int
    decisions_escalated: int
    avg_response_time_hours: float | None
    last_decision_at: datetime | None
