"""Pull-driven escalation sweep.

The service owns no timers. An external scheduler runs the sweep, which lists
escalation candidates (overdue, never escalated) per tenant and optionally
escalates each one to a fallback person.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog
from sqlalchemy import select

from decisionops.core.exceptions import DecisionOpsError
from decisionops.db.models.decision import Decision
from decisionops.services.decision_service import DecisionService

logger = structlog.get_logger(__name__)

SWEEP_REASON = "SLA breached: automatic escalation"


@dataclass
class SweepReport:
    tenant_id: uuid.UUID
    candidates: list[Decision] = field(default_factory=list)
    escalated: list[uuid.UUID] = field(default_factory=list)
    failed: dict[uuid.UUID, str] = field(default_factory=dict)


async def tenants_with_decisions(service: DecisionService) -> list[uuid.UUID]:
    async with service.session_factory() as session:
        result = await session.execute(select(Decision.tenant_id).distinct())
        return list(result.scalars().all())


async def sweep_tenant(
    service: DecisionService,
    tenant_id: uuid.UUID,
    escalate_to_id: uuid.UUID | None = None,
    reason: str = SWEEP_REASON,
    now: datetime | None = None,
) -> SweepReport:
    """List (and optionally escalate) the tenant's escalation candidates.

    A failure on one decision (e.g. it was resolved concurrently) is recorded
    in the report and does not stop the sweep.
    """
    now = now or datetime.now(UTC)
    report = SweepReport(tenant_id=tenant_id)
    report.candidates = await service.escalation_candidates(tenant_id, now)

    if escalate_to_id is None:
        return report

    for decision in report.candidates:
        try:
            await service.escalate(tenant_id, decision.id, escalate_to_id, reason=reason, now=now, first_only=True)
            report.escalated.append(decision.id)
        except DecisionOpsError as e:
            report.failed[decision.id] = str(e)
            logger.warning("sweep_escalation_failed", decision_id=str(decision.id), error=str(e))

    logger.info(
        "escalation_sweep_completed",
        tenant_id=str(tenant_id),
        candidates=len(report.candidates),
        escalated=len(report.escalated),
        failed=len(report.failed),
    )
    return report
