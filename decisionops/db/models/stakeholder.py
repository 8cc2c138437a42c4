"""Stakeholder model: performance-tracked identity behind decision assignees.

Counters are mutated only through StakeholderService callbacks, each a single
atomic UPDATE statement.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, String, UniqueConstraint, Uuid

from decisionops.db.base import Base
from decisionops.db.types import UTCDateTime


class Stakeholder(Base):
    __tablename__ = "stakeholders"
    __table_args__ = (
        UniqueConstraint("tenant_id", "person_id", name="uq_stakeholder_person"),
        UniqueConstraint("tenant_id", "email", name="uq_stakeholder_email"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)
    person_id = Column(Uuid, ForeignKey("people.id"), nullable=True, index=True)

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    active = Column(Boolean, nullable=False, default=True)

    # Performance aggregates
    decisions_pending = Column(Integer, nullable=False, default=0)
    decisions_completed = Column(Integer, nullable=False, default=0)
    decisions_escalated = Column(Integer, nullable=False, default=0)
    avg_response_time_hours = Column(Float, nullable=True)
    last_decision_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(UTC))

    def __init__(self, **kwargs: object) -> None:
        # Column(default=...) only fires at INSERT; keep in-memory instances consistent.
        kwargs.setdefault("active", True)
        kwargs.setdefault("decisions_pending", 0)
        kwargs.setdefault("decisions_completed", 0)
        kwargs.setdefault("decisions_escalated", 0)
        super().__init__(**kwargs)
