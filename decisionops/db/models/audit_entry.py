"""AuditEntry model: append-only record of lifecycle operations."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, String, Uuid

from decisionops.db.base import Base
from decisionops.db.types import JSONType, UTCDateTime


class AuditEntry(Base):
    __tablename__ = "audit_entries"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)

    entity_type = Column(String(50), nullable=False)  # "decision", "hypothesis", "comment"
    entity_id = Column(Uuid, nullable=False, index=True)
    action = Column(String(50), nullable=False)  # "resolved", "escalated", "status_changed", ...
    actor_id = Column(Uuid, nullable=True)
    detail = Column(JSONType, nullable=False, default=dict)  # action-specific payload

    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(UTC), index=True)
    # NO updated_at -- entries are immutable (append-only)
