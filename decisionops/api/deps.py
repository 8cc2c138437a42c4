"""Shared FastAPI dependencies.

Tenant and actor identity arrive as headers; authentication happens upstream.
Service dependencies can be replaced in tests via app.dependency_overrides.
"""

import uuid

from fastapi import Depends, Header, HTTPException, Request

from decisionops.db.base import get_session_factory
from decisionops.services.comment_service import CommentService
from decisionops.services.decision_service import DecisionService
from decisionops.services.events import EventSink, NullEventSink
from decisionops.services.hypothesis_service import HypothesisService
from decisionops.services.stakeholder_service import StakeholderService
from decisionops.services.vote_service import VoteService


def get_tenant_id(x_tenant_id: uuid.UUID = Header()) -> uuid.UUID:
    return x_tenant_id


def get_actor_id(x_actor_id: uuid.UUID | None = Header(default=None)) -> uuid.UUID | None:
    return x_actor_id


def require_actor(actor_id: uuid.UUID | None = Depends(get_actor_id)) -> uuid.UUID:
    """Actor header is mandatory for operations attributed to a person."""
    if actor_id is None:
        raise HTTPException(status_code=400, detail="X-Actor-ID header is required")
    return actor_id


def get_event_sink(request: Request) -> EventSink:
    """Event sink configured at startup (NullEventSink when events are disabled)."""
    return getattr(request.app.state, "event_sink", None) or NullEventSink()


def get_decision_service(events: EventSink = Depends(get_event_sink)) -> DecisionService:
    return DecisionService(get_session_factory(), events=events)


def get_hypothesis_service(events: EventSink = Depends(get_event_sink)) -> HypothesisService:
    return HypothesisService(get_session_factory(), events=events)


def get_stakeholder_service() -> StakeholderService:
    return StakeholderService(get_session_factory())


def get_vote_service() -> VoteService:
    return VoteService(get_session_factory())


def get_comment_service() -> CommentService:
    return CommentService(get_session_factory())
