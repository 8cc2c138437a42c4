"""HypothesisService: guarded lifecycle for hypotheses.

Every status change goes through HYPOTHESIS_TRANSITIONS. Public operations run
in their own transaction; set_ready runs inside the caller's transaction so a
decision resolution and the hypotheses it unblocks commit together.
"""

import uuid
from datetime import UTC, datetime

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from decisionops.core.exceptions import IllegalStateTransition, InvalidArgumentError, NotFoundError
from decisionops.db.base import transaction
from decisionops.db.models.hypothesis import Hypothesis
from decisionops.domain.decisions import require_text
from decisionops.domain.hypotheses import (
    CONCLUSION_STATUSES,
    HYPOTHESIS_TRANSITIONS,
    STATUS_TIMESTAMPS,
    HypothesisStatus,
)
from decisionops.schemas.events import HypothesisConcludedEvent, HypothesisStatusChangedEvent
from decisionops.schemas.hypotheses import ExperimentResults, UpdateHypothesisRequest
from decisionops.services.audit import AuditSink, DbAuditSink, audit_entry
from decisionops.services.directory import PersonDirectory
from decisionops.services.events import EventSink, publish_best_effort

logger = structlog.get_logger(__name__)


class HypothesisService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        events: EventSink | None = None,
        audit: AuditSink | None = None,
    ):
        self.session_factory = session_factory
        self.events = events
        self.audit = audit or DbAuditSink()
        self.people = PersonDirectory()

    async def create(
        self,
        tenant_id: uuid.UUID,
        title: str,
        statement: str | None = None,
        owner_id: uuid.UUID | None = None,
        outcome_id: uuid.UUID | None = None,
        actor_id: uuid.UUID | None = None,
    ) -> Hypothesis:
        """Create a hypothesis in DRAFT.

        Raises:
            InvalidArgumentError: Blank title
            NotFoundError: owner_id does not resolve in the tenant
        """
        title = require_text(title, "title")
        async with transaction(self.session_factory, "Hypothesis") as session:
            if owner_id is not None:
                await self.people.get(session, owner_id, tenant_id)

            hypothesis = Hypothesis(
                tenant_id=tenant_id,
                title=title,
                statement=statement,
                owner_id=owner_id,
                outcome_id=outcome_id,
            )
            session.add(hypothesis)
            await session.flush()
            await self.audit.record(session, audit_entry(tenant_id, "hypothesis", hypothesis.id, "created", actor_id))

        logger.info("hypothesis_created", hypothesis_id=str(hypothesis.id), tenant_id=str(tenant_id))
        return hypothesis

    async def get(self, tenant_id: uuid.UUID, hypothesis_id: uuid.UUID) -> Hypothesis:
        async with self.session_factory() as session:
            hypothesis = await self.find(session, tenant_id, hypothesis_id)
            if hypothesis is None:
                raise NotFoundError("Hypothesis", hypothesis_id)
            return hypothesis

    async def update(
        self,
        tenant_id: uuid.UUID,
        hypothesis_id: uuid.UUID,
        request: UpdateHypothesisRequest,
        actor_id: uuid.UUID | None = None,
        now: datetime | None = None,
    ) -> Hypothesis:
        """Edit descriptive fields. Status only moves through transition/conclude/abandon."""
        changes = {
            key: getattr(request, key)
            for key in request.model_fields_set
            if not (key == "title" and request.title is None)
        }
        if "title" in changes:
            changes["title"] = require_text(changes["title"], "title")

        async with transaction(self.session_factory, "Hypothesis", hypothesis_id) as session:
            hypothesis = await self._load_for_update(session, tenant_id, hypothesis_id)
            if not changes:
                return hypothesis
            if changes.get("owner_id") is not None:
                await self.people.get(session, changes["owner_id"], tenant_id)

            for key, value in changes.items():
                setattr(hypothesis, key, value)
            hypothesis.updated_at = now or datetime.now(UTC)
            await self.audit.record(
                session,
                audit_entry(tenant_id, "hypothesis", hypothesis_id, "updated", actor_id, fields=sorted(changes)),
            )

        logger.info("hypothesis_updated", hypothesis_id=str(hypothesis_id), fields=sorted(changes))
        return hypothesis

    async def delete(self, tenant_id: uuid.UUID, hypothesis_id: uuid.UUID, actor_id: uuid.UUID | None = None) -> None:
        """Delete a hypothesis. Decisions still listing it skip it when they resolve."""
        async with transaction(self.session_factory, "Hypothesis", hypothesis_id) as session:
            hypothesis = await self._load_for_update(session, tenant_id, hypothesis_id)
            await session.delete(hypothesis)
            await self.audit.record(
                session, audit_entry(tenant_id, "hypothesis", hypothesis_id, "deleted", actor_id, title=hypothesis.title)
            )

        logger.info("hypothesis_deleted", hypothesis_id=str(hypothesis_id), tenant_id=str(tenant_id))

    async def list_hypotheses(
        self,
        tenant_id: uuid.UUID,
        status: HypothesisStatus | None = None,
        owner_id: uuid.UUID | None = None,
        outcome_id: uuid.UUID | None = None,
    ) -> list[Hypothesis]:
        query = select(Hypothesis).where(Hypothesis.tenant_id == tenant_id)
        if status is not None:
            query = query.where(Hypothesis.status == status)
        if owner_id is not None:
            query = query.where(Hypothesis.owner_id == owner_id)
        if outcome_id is not None:
            query = query.where(Hypothesis.outcome_id == outcome_id)

        async with self.session_factory() as session:
            result = await session.execute(query.order_by(Hypothesis.created_at.desc()))
            return list(result.scalars().all())

    async def blocked(self, tenant_id: uuid.UUID) -> list[Hypothesis]:
        return await self.list_hypotheses(tenant_id, status=HypothesisStatus.BLOCKED)

    async def status_counts(self, tenant_id: uuid.UUID) -> dict[HypothesisStatus, int]:
        """Count hypotheses per status. Every status is present, unused ones at zero."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Hypothesis.status, func.count())
                .where(Hypothesis.tenant_id == tenant_id)
                .group_by(Hypothesis.status)
            )
            counts = {status: 0 for status in HypothesisStatus}
            for status, count in result.all():
                counts[HypothesisStatus(status)] = count
            return counts

    async def transition(
        self,
        tenant_id: uuid.UUID,
        hypothesis_id: uuid.UUID,
        target: HypothesisStatus,
        reason: str | None = None,
        actor_id: uuid.UUID | None = None,
        now: datetime | None = None,
    ) -> Hypothesis:
        """Move a hypothesis along one edge of the lifecycle.

        Entering BUILDING / DEPLOYED / MEASURING stamps the matching timestamp.
        Entering BLOCKED requires a reason; leaving BLOCKED clears it.

        Raises:
            InvalidArgumentError: Conclusion target (use conclude) or BLOCKED without a reason
            IllegalStateTransition: Edge not in the lifecycle table
        """
        now = now or datetime.now(UTC)
        target = HypothesisStatus(target)
        if target in CONCLUSION_STATUSES:
            raise InvalidArgumentError(f"Use conclude to move a hypothesis to {target.name}")
        if target == HypothesisStatus.ABANDONED:
            return await self.abandon(tenant_id, hypothesis_id, reason, actor_id=actor_id, now=now)

        async with transaction(self.session_factory, "Hypothesis", hypothesis_id) as session:
            hypothesis = await self._load_for_update(session, tenant_id, hypothesis_id)
            previous = HypothesisStatus(hypothesis.status)
            HYPOTHESIS_TRANSITIONS.validate(previous, target)

            if target == HypothesisStatus.BLOCKED:
                hypothesis.blocked_reason = require_text(reason, "reason")
            elif previous == HypothesisStatus.BLOCKED:
                hypothesis.blocked_reason = None

            timestamp_field = STATUS_TIMESTAMPS.get(target)
            if timestamp_field:
                setattr(hypothesis, timestamp_field, now)

            hypothesis.status = target
            hypothesis.updated_at = now
            await self.audit.record(
                session,
                audit_entry(
                    tenant_id,
                    "hypothesis",
                    hypothesis_id,
                    "status_changed",
                    actor_id,
                    from_status=previous,
                    to_status=target,
                    reason=reason,
                ),
            )

        logger.info(
            "hypothesis_status_changed",
            hypothesis_id=str(hypothesis_id),
            from_status=previous.value,
            to_status=target.value,
        )
        await publish_best_effort(
            self.events,
            HypothesisStatusChangedEvent(
                tenant_id=tenant_id,
                actor_id=actor_id,
                hypothesis_id=hypothesis_id,
                title=hypothesis.title,
                from_status=previous,
                to_status=target,
                reason=reason,
            ),
        )
        return hypothesis

    async def conclude(
        self,
        tenant_id: uuid.UUID,
        hypothesis_id: uuid.UUID,
        conclusion: HypothesisStatus,
        concluded_by_id: uuid.UUID,
        conclusion_notes: str | None = None,
        experiment_results: ExperimentResults | dict | None = None,
        now: datetime | None = None,
    ) -> Hypothesis:
        """Record the experiment outcome (MEASURING -> VALIDATED | INVALIDATED).

        Args:
            tenant_id: Owning tenant
            hypothesis_id: Hypothesis to conclude
            conclusion: VALIDATED or INVALIDATED
            concluded_by_id: Person recording the conclusion
            conclusion_notes: Free-text notes
            experiment_results: Structured results (validated against ExperimentResults)
            now: Clock override

        Returns:
            The concluded hypothesis

        Raises:
            InvalidArgumentError: Conclusion is not VALIDATED/INVALIDATED, or malformed results
            IllegalStateTransition: Hypothesis is not MEASURING
            NotFoundError: Hypothesis or person not in the tenant
        """
        now = now or datetime.now(UTC)
        conclusion = HypothesisStatus(conclusion)
        if conclusion not in CONCLUSION_STATUSES:
            raise InvalidArgumentError("conclusion must be VALIDATED or INVALIDATED")
        if isinstance(experiment_results, dict):
            experiment_results = _parse_results(experiment_results)

        async with transaction(self.session_factory, "Hypothesis", hypothesis_id) as session:
            hypothesis = await self._load_for_update(session, tenant_id, hypothesis_id)
            previous = HypothesisStatus(hypothesis.status)
            HYPOTHESIS_TRANSITIONS.validate(previous, conclusion)
            await self.people.get(session, concluded_by_id, tenant_id)

            hypothesis.status = conclusion
            hypothesis.concluded_at = now
            hypothesis.concluded_by_id = concluded_by_id
            hypothesis.conclusion_notes = conclusion_notes
            hypothesis.experiment_results = experiment_results
            hypothesis.updated_at = now
            await self.audit.record(
                session,
                audit_entry(
                    tenant_id,
                    "hypothesis",
                    hypothesis_id,
                    "concluded",
                    concluded_by_id,
                    conclusion=conclusion,
                ),
            )

        logger.info("hypothesis_concluded", hypothesis_id=str(hypothesis_id), conclusion=conclusion.value)
        await publish_best_effort(
            self.events,
            HypothesisConcludedEvent(
                tenant_id=tenant_id,
                actor_id=concluded_by_id,
                hypothesis_id=hypothesis_id,
                title=hypothesis.title,
                conclusion=conclusion,
                conclusion_notes=conclusion_notes,
            ),
        )
        return hypothesis

    async def abandon(
        self,
        tenant_id: uuid.UUID,
        hypothesis_id: uuid.UUID,
        reason: str | None = None,
        actor_id: uuid.UUID | None = None,
        now: datetime | None = None,
    ) -> Hypothesis:
        """Abandon from any non-terminal state; the reason is kept as conclusion_notes."""
        now = now or datetime.now(UTC)
        async with transaction(self.session_factory, "Hypothesis", hypothesis_id) as session:
            hypothesis = await self._load_for_update(session, tenant_id, hypothesis_id)
            previous = HypothesisStatus(hypothesis.status)
            HYPOTHESIS_TRANSITIONS.validate(previous, HypothesisStatus.ABANDONED)

            hypothesis.status = HypothesisStatus.ABANDONED
            hypothesis.blocked_reason = None
            hypothesis.conclusion_notes = reason
            hypothesis.updated_at = now
            await self.audit.record(
                session,
                audit_entry(tenant_id, "hypothesis", hypothesis_id, "abandoned", actor_id, reason=reason),
            )

        logger.info("hypothesis_abandoned", hypothesis_id=str(hypothesis_id), from_status=previous.value)
        await publish_best_effort(
            self.events,
            HypothesisStatusChangedEvent(
                tenant_id=tenant_id,
                actor_id=actor_id,
                hypothesis_id=hypothesis_id,
                title=hypothesis.title,
                from_status=previous,
                to_status=HypothesisStatus.ABANDONED,
                reason=reason,
            ),
        )
        return hypothesis

    async def set_ready(
        self,
        session: AsyncSession,
        tenant_id: uuid.UUID,
        hypothesis_id: uuid.UUID,
        now: datetime | None = None,
    ) -> Hypothesis:
        """BLOCKED -> READY inside the caller's transaction (decision cascade).

        Raises:
            NotFoundError: Hypothesis not in the tenant
            IllegalStateTransition: Hypothesis is not BLOCKED
        """
        hypothesis = await self._load_for_update(session, tenant_id, hypothesis_id)
        current = HypothesisStatus(hypothesis.status)
        if current != HypothesisStatus.BLOCKED:
            raise IllegalStateTransition(current, HypothesisStatus.READY, entity="Hypothesis")

        hypothesis.status = HypothesisStatus.READY
        hypothesis.blocked_reason = None
        hypothesis.updated_at = now or datetime.now(UTC)
        logger.info("hypothesis_unblocked", hypothesis_id=str(hypothesis_id))
        return hypothesis

    async def find(
        self, session: AsyncSession, tenant_id: uuid.UUID, hypothesis_id: uuid.UUID
    ) -> Hypothesis | None:
        result = await session.execute(
            select(Hypothesis).where(Hypothesis.id == hypothesis_id, Hypothesis.tenant_id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def _load_for_update(
        self, session: AsyncSession, tenant_id: uuid.UUID, hypothesis_id: uuid.UUID
    ) -> Hypothesis:
        result = await session.execute(
            select(Hypothesis)
            .where(Hypothesis.id == hypothesis_id, Hypothesis.tenant_id == tenant_id)
            .with_for_update()
        )
        hypothesis = result.scalar_one_or_none()
        if hypothesis is None:
            raise NotFoundError("Hypothesis", hypothesis_id)
        return hypothesis


def _parse_results(raw: dict) -> ExperimentResults:
    try:
        return ExperimentResults.model_validate(raw)
    except ValueError as e:
        raise InvalidArgumentError(f"Malformed experiment_results: {e}") from e
