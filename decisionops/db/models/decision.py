"""Decision model: time-boxed approval requests.

Rows carry a version counter (SQLAlchemy version_id_col): an UPDATE issued from
a stale read fails with StaleDataError instead of overwriting a concurrent write.

Python-level defaults are set explicitly in __init__ so that in-memory model
instances (unit tests, pre-flush objects) behave correctly without a DB round-trip.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, Enum, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid

from decisionops.db.base import Base
from decisionops.db.types import PydanticJSON, UTCDateTime
from decisionops.domain.decisions import DecisionPriority, DecisionStatus, DecisionType
from decisionops.schemas.decisions import BlockedItem, DecisionOption


def _enum(enum_cls, name: str) -> Enum:
    # Persist the lowercase values, not member names
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )


class Decision(Base):
    __tablename__ = "decisions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)

    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    context = Column(Text, nullable=True)  # free text; reassignment notes are appended here
    options = Column(PydanticJSON(list[DecisionOption]), nullable=False, default=list)

    status = Column(_enum(DecisionStatus, "decision_status"), nullable=False, default=DecisionStatus.NEEDS_INPUT, index=True)
    priority = Column(_enum(DecisionPriority, "decision_priority"), nullable=False, default=DecisionPriority.NORMAL)
    decision_type = Column(_enum(DecisionType, "decision_type"), nullable=True)

    # People
    owner_id = Column(Uuid, ForeignKey("people.id"), nullable=True)
    assigned_to_id = Column(Uuid, ForeignKey("people.id"), nullable=True, index=True)
    escalated_to_id = Column(Uuid, ForeignKey("people.id"), nullable=True)
    decided_by_id = Column(Uuid, ForeignKey("people.id"), nullable=True)
    created_by_id = Column(Uuid, ForeignKey("people.id"), nullable=True)

    # Informational links
    outcome_id = Column(Uuid, nullable=True)
    hypothesis_id = Column(Uuid, nullable=True)
    team_id = Column(Uuid, nullable=True)

    # SLA and escalation
    sla_hours = Column(Integer, nullable=False)
    due_at = Column(UTCDateTime, nullable=True, index=True)
    escalation_level = Column(Integer, nullable=False, default=0)
    escalated_at = Column(UTCDateTime, nullable=True)

    # Resolution
    decided_at = Column(UTCDateTime, nullable=True)
    decision_rationale = Column(Text, nullable=True)
    selected_option = Column(PydanticJSON(DecisionOption | None), nullable=True)

    blocked_items = Column(PydanticJSON(list[BlockedItem]), nullable=False, default=list)
    external_refs = Column(PydanticJSON(dict[str, str]), nullable=False, default=dict)
    tags = Column(PydanticJSON(list[str]), nullable=False, default=list)

    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(UTCDateTime, nullable=True)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __init__(self, **kwargs: object) -> None:
        kwargs.setdefault("status", DecisionStatus.NEEDS_INPUT)
        kwargs.setdefault("priority", DecisionPriority.NORMAL)
        kwargs.setdefault("escalation_level", 0)
        kwargs.setdefault("options", [])
        kwargs.setdefault("blocked_items", [])
        kwargs.setdefault("external_refs", {})
        kwargs.setdefault("tags", [])
        super().__init__(**kwargs)


class DecisionVote(Base):
    """One vote per (decision, person); re-voting overwrites."""

    __tablename__ = "decision_votes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    decision_id = Column(Uuid, ForeignKey("decisions.id", ondelete="CASCADE"), nullable=False, index=True)
    person_id = Column(Uuid, ForeignKey("people.id"), nullable=False, index=True)

    vote = Column(String(32), nullable=False)  # VoteType value
    comment = Column(String(1000), nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(UTCDateTime, nullable=True)

    __table_args__ = (
        # Upsert key
        UniqueConstraint("decision_id", "person_id", name="uq_vote_decision_person"),
    )


class DecisionComment(Base):
    __tablename__ = "decision_comments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    decision_id = Column(Uuid, ForeignKey("decisions.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(Uuid, ForeignKey("people.id"), nullable=False)
    parent_id = Column(Uuid, ForeignKey("decision_comments.id", ondelete="CASCADE"), nullable=True)

    content = Column(Text, nullable=False)
    option_id = Column(String(100), nullable=True)  # DecisionOption.id the comment refers to
    edited = Column(Boolean, nullable=False, default=False)

    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(UTCDateTime, nullable=True)

    def __init__(self, **kwargs: object) -> None:
        kwargs.setdefault("edited", False)
        super().__init__(**kwargs)
