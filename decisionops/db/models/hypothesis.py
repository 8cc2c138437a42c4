"""Hypothesis model: units of work that can be gated on a decision."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, Enum, ForeignKey, Integer, String, Text, Uuid

from decisionops.db.base import Base
from decisionops.db.types import PydanticJSON, UTCDateTime
from decisionops.domain.hypotheses import HypothesisStatus
from decisionops.schemas.hypotheses import ExperimentResults


class Hypothesis(Base):
    __tablename__ = "hypotheses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)

    title = Column(String(500), nullable=False)
    statement = Column(Text, nullable=True)
    owner_id = Column(Uuid, ForeignKey("people.id"), nullable=True)
    outcome_id = Column(Uuid, nullable=True, index=True)

    status = Column(
        Enum(
            HypothesisStatus,
            name="hypothesis_status",
            native_enum=False,
            length=32,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
        default=HypothesisStatus.DRAFT,
        index=True,
    )
    blocked_reason = Column(Text, nullable=True)  # set iff status == BLOCKED

    # Lifecycle timestamps
    started_at = Column(UTCDateTime, nullable=True)
    deployed_at = Column(UTCDateTime, nullable=True)
    measuring_started_at = Column(UTCDateTime, nullable=True)

    # Conclusion (VALIDATED / INVALIDATED only; abandon reuses conclusion_notes)
    concluded_at = Column(UTCDateTime, nullable=True)
    concluded_by_id = Column(Uuid, ForeignKey("people.id"), nullable=True)
    conclusion_notes = Column(Text, nullable=True)
    experiment_results = Column(PydanticJSON(ExperimentResults | None), nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(UTCDateTime, nullable=True)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __init__(self, **kwargs: object) -> None:
        kwargs.setdefault("status", HypothesisStatus.DRAFT)
        super().__init__(**kwargs)
