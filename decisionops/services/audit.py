"""Audit sink: append-only trail of lifecycle operations.

Entries are written inside the caller's transaction, so an operation that
rolls back leaves no audit trace.
"""

import uuid
from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from decisionops.db.models.audit_entry import AuditEntry


class AuditSink(ABC):
    @abstractmethod
    async def record(self, session: AsyncSession, entry: AuditEntry) -> None: ...


class DbAuditSink(AuditSink):
    async def record(self, session: AsyncSession, entry: AuditEntry) -> None:
        session.add(entry)


def audit_entry(
    tenant_id: uuid.UUID,
    entity_type: str,
    entity_id: uuid.UUID,
    action: str,
    actor_id: uuid.UUID | None = None,
    **detail: Any,
) -> AuditEntry:
    """Build an AuditEntry; keyword arguments become the JSON detail payload."""
    return AuditEntry(
        tenant_id=tenant_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        actor_id=actor_id,
        detail={key: _jsonable(value) for key, value in detail.items()},
    )


def _jsonable(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value
