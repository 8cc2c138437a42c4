"""Person model: directory entries referenced by decisions and hypotheses."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, String, Uuid

from decisionops.db.base import Base
from decisionops.db.types import UTCDateTime


class Person(Base):
    __tablename__ = "people"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(255), nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(UTC))

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
