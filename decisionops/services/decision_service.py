"""DecisionService: orchestrates the decision lifecycle.

Each public operation is one transaction: the decision row is loaded FOR UPDATE
(and carries a version counter), the guard is checked against
DECISION_TRANSITIONS, and every side effect (stakeholder metrics, unblocked
hypotheses, audit entries) is written through the same session. Events are
published only after the transaction commits.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from decisionops.core.config import get_settings
from decisionops.core.exceptions import ConcurrentModificationError, InvalidArgumentError, NotFoundError
from decisionops.db.base import transaction
from decisionops.db.models.decision import Decision, DecisionComment, DecisionVote
from decisionops.db.models.person import Person
from decisionops.domain.decisions import (
    DECISION_TRANSITIONS,
    OPEN_STATUSES,
    DecisionPriority,
    DecisionStatus,
    DecisionType,
    append_context,
    compute_due_at,
    hours_between,
    reassignment_note,
    require_open,
    require_text,
    sla_hours_for,
)
from decisionops.domain.hypotheses import HypothesisStatus
from decisionops.domain.queue import escalation_candidates, order_queue, overdue, split_by_status
from decisionops.schemas.decisions import BlockedItem, CreateDecisionRequest, DecisionOption, UpdateDecisionRequest
from decisionops.schemas.events import DecisionCreatedEvent, DecisionEscalatedEvent, DecisionResolvedEvent
from decisionops.services.audit import AuditSink, DbAuditSink, audit_entry
from decisionops.services.directory import PersonDirectory, StakeholderDirectory
from decisionops.services.events import EventSink, publish_best_effort
from decisionops.services.hypothesis_service import HypothesisService
from decisionops.services.stakeholder_service import StakeholderService

logger = structlog.get_logger(__name__)

HYPOTHESIS_ITEM = "hypothesis"
RECENTLY_DECIDED_LIMIT = 20
NON_NULLABLE_FIELDS = frozenset(
    {"title", "options", "priority", "blocked_items", "external_refs", "tags", "sla_hours"}
)


@dataclass
class ResolveResult:
    decision: Decision
    unblocked_hypothesis_ids: list[uuid.UUID] = field(default_factory=list)


@dataclass
class DecisionActivity:
    """A decision with its votes and comments, as returned by get_with_activity."""

    decision: Decision
    votes: list[DecisionVote]
    comments: list[DecisionComment]


@dataclass
class DecisionQueue:
    needs_input: list[Decision]
    under_discussion: list[Decision]
    decided: list[Decision]
    total_pending: int
    avg_decision_time_hours: float | None


class DecisionService:
    """Service layer for the decision lifecycle.

    Collaborators are injected so tests can swap the event sink or wrap the
    hypothesis/stakeholder services.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        events: EventSink | None = None,
        audit: AuditSink | None = None,
        hypotheses: HypothesisService | None = None,
        stakeholders: StakeholderService | None = None,
    ):
        self.session_factory = session_factory
        self.events = events
        self.audit = audit or DbAuditSink()
        self.hypotheses = hypotheses or HypothesisService(session_factory, events=events, audit=self.audit)
        self.stakeholders = stakeholders or StakeholderService(session_factory)
        self.people = PersonDirectory()
        self.stakeholder_directory = StakeholderDirectory()

    # ──────────────────────────────────────────────────────────────────
    # Create / read / update / delete
    # ──────────────────────────────────────────────────────────────────

    async def create(
        self,
        tenant_id: uuid.UUID,
        request: CreateDecisionRequest,
        created_by_id: uuid.UUID | None = None,
        now: datetime | None = None,
    ) -> Decision:
        """Create a decision in NEEDS_INPUT with its SLA deadline.

        Args:
            tenant_id: Owning tenant
            request: Decision fields
            created_by_id: Person raising the decision
            now: Clock override (creation time)

        Returns:
            The persisted decision

        Raises:
            InvalidArgumentError: Blank title or invalid blocked items
            NotFoundError: Owner, assignee, creator or blocked hypothesis not in the tenant
        """
        now = now or datetime.now(UTC)
        title = require_text(request.title, "title")
        sla_hours = sla_hours_for(request.priority, request.sla_hours, get_settings().sla_hours_override)
        decision_id = uuid.uuid4()

        async with transaction(self.session_factory, "Decision", decision_id) as session:
            for person_id in (request.owner_id, request.assigned_to_id, created_by_id):
                if person_id is not None:
                    await self.people.get(session, person_id, tenant_id)

            blocked_items: list[BlockedItem] = []
            for item in request.blocked_items:
                await self._validate_blocked_item(session, tenant_id, decision_id, item)
                if item not in blocked_items:
                    blocked_items.append(item)

            decision = Decision(
                id=decision_id,
                tenant_id=tenant_id,
                title=title,
                description=request.description,
                context=request.context,
                options=request.options,
                priority=request.priority,
                decision_type=request.decision_type,
                owner_id=request.owner_id,
                assigned_to_id=request.assigned_to_id,
                created_by_id=created_by_id,
                outcome_id=request.outcome_id,
                hypothesis_id=request.hypothesis_id,
                team_id=request.team_id,
                sla_hours=sla_hours,
                due_at=compute_due_at(now, sla_hours),
                blocked_items=blocked_items,
                external_refs=request.external_refs,
                tags=request.tags,
                created_at=now,
            )
            session.add(decision)
            await session.flush()

            stakeholder = await self.stakeholder_directory.find_by_person(session, request.assigned_to_id, tenant_id)
            if stakeholder is not None:
                await self.stakeholders.on_assigned(session, stakeholder.id)

            await self.audit.record(
                session,
                audit_entry(tenant_id, "decision", decision_id, "created", created_by_id, priority=request.priority),
            )

        logger.info(
            "decision_created",
            decision_id=str(decision_id),
            tenant_id=str(tenant_id),
            priority=decision.priority.value,
            sla_hours=sla_hours,
        )
        await publish_best_effort(
            self.events,
            DecisionCreatedEvent(
                tenant_id=tenant_id,
                actor_id=created_by_id,
                decision_id=decision_id,
                title=decision.title,
                priority=decision.priority,
                decision_type=decision.decision_type,
                assigned_to_id=decision.assigned_to_id,
                outcome_id=decision.outcome_id,
                hypothesis_id=decision.hypothesis_id,
                due_at=decision.due_at,
            ),
        )
        return decision

    async def get(self, tenant_id: uuid.UUID, decision_id: uuid.UUID) -> Decision:
        async with self.session_factory() as session:
            return await self._load(session, tenant_id, decision_id)

    async def get_with_activity(self, tenant_id: uuid.UUID, decision_id: uuid.UUID) -> DecisionActivity:
        """Load a decision together with its votes and comments (oldest first)."""
        async with self.session_factory() as session:
            decision = await self._load(session, tenant_id, decision_id)
            votes = await session.execute(
                select(DecisionVote).where(DecisionVote.decision_id == decision_id).order_by(DecisionVote.created_at)
            )
            comments = await session.execute(
                select(DecisionComment)
                .where(DecisionComment.decision_id == decision_id)
                .order_by(DecisionComment.created_at)
            )
            return DecisionActivity(
                decision=decision,
                votes=list(votes.scalars().all()),
                comments=list(comments.scalars().all()),
            )

    async def activity_counts(self, decision_ids: list[uuid.UUID]) -> dict[uuid.UUID, tuple[int, int]]:
        """Return {decision_id: (vote_count, comment_count)} for the given decisions."""
        counts = {decision_id: (0, 0) for decision_id in decision_ids}
        if not decision_ids:
            return counts

        async with self.session_factory() as session:
            votes = await session.execute(
                select(DecisionVote.decision_id, func.count())
                .where(DecisionVote.decision_id.in_(decision_ids))
                .group_by(DecisionVote.decision_id)
            )
            comments = await session.execute(
                select(DecisionComment.decision_id, func.count())
                .where(DecisionComment.decision_id.in_(decision_ids))
                .group_by(DecisionComment.decision_id)
            )
            for decision_id, count in votes.all():
                counts[decision_id] = (count, counts[decision_id][1])
            for decision_id, count in comments.all():
                counts[decision_id] = (counts[decision_id][0], count)
        return counts

    async def list_decisions(
        self,
        tenant_id: uuid.UUID,
        status: DecisionStatus | None = None,
        priority: DecisionPriority | None = None,
        decision_type: DecisionType | None = None,
        assigned_to_id: uuid.UUID | None = None,
        team_id: uuid.UUID | None = None,
        outcome_id: uuid.UUID | None = None,
        hypothesis_id: uuid.UUID | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Decision]:
        """List decisions, newest first, with optional filters."""
        query = select(Decision).where(Decision.tenant_id == tenant_id)
        filters = [
            (Decision.status, status),
            (Decision.priority, priority),
            (Decision.decision_type, decision_type),
            (Decision.assigned_to_id, assigned_to_id),
            (Decision.team_id, team_id),
            (Decision.outcome_id, outcome_id),
            (Decision.hypothesis_id, hypothesis_id),
        ]
        for column, value in filters:
            if value is not None:
                query = query.where(column == value)

        async with self.session_factory() as session:
            result = await session.execute(query.order_by(Decision.created_at.desc()).limit(limit).offset(offset))
            return list(result.scalars().all())

    async def update(
        self,
        tenant_id: uuid.UUID,
        decision_id: uuid.UUID,
        request: UpdateDecisionRequest,
        actor_id: uuid.UUID | None = None,
        now: datetime | None = None,
    ) -> Decision:
        """Edit descriptive fields, priority, assignee and blocked items. Status is never touched here.

        Changing sla_hours recomputes due_at from the creation time. Changing
        priority moves the decision in the queue but keeps its deadline.
        Changing the assignee leaves stakeholder metrics alone, like assign.
        blocked_items replaces the whole list.
        """
        now = now or datetime.now(UTC)
        # Structured fields keep their typed values; an explicit null leaves them unchanged.
        changes = {
            key: getattr(request, key)
            for key in request.model_fields_set
            if not (key in NON_NULLABLE_FIELDS and getattr(request, key) is None)
        }
        if not changes:
            return await self.get(tenant_id, decision_id)
        if "title" in changes:
            changes["title"] = require_text(changes["title"], "title")

        async with transaction(self.session_factory, "Decision", decision_id) as session:
            decision = await self._load(session, tenant_id, decision_id, for_update=True)
            for key in ("owner_id", "assigned_to_id"):
                if changes.get(key) is not None:
                    await self.people.get(session, changes[key], tenant_id)
            if "blocked_items" in changes:
                blocked_items: list[BlockedItem] = []
                for item in changes["blocked_items"]:
                    await self._validate_blocked_item(session, tenant_id, decision_id, item)
                    if item not in blocked_items:
                        blocked_items.append(item)
                changes["blocked_items"] = blocked_items

            sla_hours = changes.pop("sla_hours", None)
            for key, value in changes.items():
                setattr(decision, key, value)
            if sla_hours is not None:
                decision.sla_hours = sla_hours_for(decision.priority, sla_hours)
                decision.due_at = compute_due_at(decision.created_at, decision.sla_hours)
            decision.updated_at = now

            await self.audit.record(
                session,
                audit_entry(tenant_id, "decision", decision_id, "updated", actor_id, fields=sorted(request.model_fields_set)),
            )

        logger.info("decision_updated", decision_id=str(decision_id), fields=sorted(request.model_fields_set))
        return decision

    async def delete(self, tenant_id: uuid.UUID, decision_id: uuid.UUID, actor_id: uuid.UUID | None = None) -> None:
        """Delete a decision with its votes and comments."""
        async with transaction(self.session_factory, "Decision", decision_id) as session:
            decision = await self._load(session, tenant_id, decision_id, for_update=True)
            await session.execute(delete(DecisionVote).where(DecisionVote.decision_id == decision_id))
            await session.execute(delete(DecisionComment).where(DecisionComment.decision_id == decision_id))
            await session.delete(decision)
            await self.audit.record(
                session, audit_entry(tenant_id, "decision", decision_id, "deleted", actor_id, title=decision.title)
            )

        logger.info("decision_deleted", decision_id=str(decision_id), tenant_id=str(tenant_id))

    # ──────────────────────────────────────────────────────────────────
    # Lifecycle transitions
    # ──────────────────────────────────────────────────────────────────

    async def start_discussion(
        self,
        tenant_id: uuid.UUID,
        decision_id: uuid.UUID,
        actor_id: uuid.UUID | None = None,
        now: datetime | None = None,
    ) -> Decision:
        return await self._simple_transition(
            tenant_id, decision_id, DecisionStatus.UNDER_DISCUSSION, "discussion_started", actor_id, now
        )

    async def resolve(
        self,
        tenant_id: uuid.UUID,
        decision_id: uuid.UUID,
        decided_by_id: uuid.UUID,
        rationale: str,
        selected_option: DecisionOption | None = None,
        now: datetime | None = None,
    ) -> ResolveResult:
        """Resolve an open decision and run its cascade atomically.

        Within one transaction: the decision moves to DECIDED, every BLOCKED
        hypothesis listed in blocked_items moves to READY, and the assignee's
        stakeholder metrics record the completion. After commit a
        decision.resolved event is published.

        Args:
            tenant_id: Owning tenant
            decision_id: Decision to resolve
            decided_by_id: Person making the call
            rationale: Required explanation
            selected_option: Chosen option (must match one of the decision's options)
            now: Clock override

        Returns:
            ResolveResult with the decision and the ids of unblocked hypotheses

        Raises:
            InvalidArgumentError: Blank rationale or unknown selected option
            IllegalStateTransition: Decision is not NEEDS_INPUT / UNDER_DISCUSSION
            NotFoundError: Decision or decider not in the tenant
            ConcurrentModificationError: The decision changed underneath this transaction
        """
        now = now or datetime.now(UTC)
        rationale = require_text(rationale, "rationale")

        async with transaction(self.session_factory, "Decision", decision_id) as session:
            decision = await self._load(session, tenant_id, decision_id, for_update=True)
            DECISION_TRANSITIONS.validate(DecisionStatus(decision.status), DecisionStatus.DECIDED)
            await self.people.get(session, decided_by_id, tenant_id)
            if selected_option is not None:
                selected_option = self._match_option(decision, selected_option)

            decision.status = DecisionStatus.DECIDED
            decision.decided_at = now
            decision.decided_by_id = decided_by_id
            decision.decision_rationale = rationale
            decision.selected_option = selected_option
            decision.updated_at = now
            await session.flush()

            unblocked = await self._unblock_hypotheses(session, decision, now)

            cycle_time_hours = hours_between(decision.created_at, now)
            stakeholder = await self.stakeholder_directory.find_by_person(session, decision.assigned_to_id, tenant_id)
            if stakeholder is not None:
                await self.stakeholders.on_completed(session, stakeholder.id, now, cycle_time_hours)

            await self.audit.record(
                session,
                audit_entry(
                    tenant_id,
                    "decision",
                    decision_id,
                    "resolved",
                    decided_by_id,
                    selected_option=selected_option.id if selected_option else None,
                    unblocked_hypothesis_ids=unblocked,
                ),
            )

        logger.info(
            "decision_resolved",
            decision_id=str(decision_id),
            cycle_time_hours=round(cycle_time_hours, 2),
            escalation_level=decision.escalation_level,
            unblocked=len(unblocked),
        )
        await publish_best_effort(
            self.events,
            DecisionResolvedEvent(
                tenant_id=tenant_id,
                actor_id=decided_by_id,
                decision_id=decision_id,
                title=decision.title,
                priority=decision.priority,
                decided_by_id=decided_by_id,
                rationale=rationale,
                cycle_time_hours=cycle_time_hours,
                was_escalated=decision.escalation_level > 0,
                escalation_level=decision.escalation_level,
                unblocked_hypothesis_ids=unblocked,
            ),
        )
        return ResolveResult(decision=decision, unblocked_hypothesis_ids=unblocked)

    async def implement(
        self,
        tenant_id: uuid.UUID,
        decision_id: uuid.UUID,
        actor_id: uuid.UUID | None = None,
        now: datetime | None = None,
    ) -> Decision:
        return await self._simple_transition(
            tenant_id, decision_id, DecisionStatus.IMPLEMENTED, "implemented", actor_id, now
        )

    async def defer(
        self,
        tenant_id: uuid.UUID,
        decision_id: uuid.UUID,
        reason: str,
        actor_id: uuid.UUID | None = None,
        now: datetime | None = None,
    ) -> Decision:
        """Park an open decision; the reason is stored as the rationale."""
        reason = require_text(reason, "reason")
        return await self._simple_transition(
            tenant_id, decision_id, DecisionStatus.DEFERRED, "deferred", actor_id, now, rationale=reason
        )

    async def cancel(
        self,
        tenant_id: uuid.UUID,
        decision_id: uuid.UUID,
        reason: str,
        actor_id: uuid.UUID | None = None,
        now: datetime | None = None,
    ) -> Decision:
        """Cancel any non-terminal decision; the reason is stored as the rationale."""
        reason = require_text(reason, "reason")
        return await self._simple_transition(
            tenant_id, decision_id, DecisionStatus.CANCELLED, "cancelled", actor_id, now, rationale=reason
        )

    async def reopen(
        self,
        tenant_id: uuid.UUID,
        decision_id: uuid.UUID,
        actor_id: uuid.UUID | None = None,
        now: datetime | None = None,
    ) -> Decision:
        """DEFERRED / CANCELLED -> NEEDS_INPUT with a fresh deadline from now."""
        now = now or datetime.now(UTC)
        async with transaction(self.session_factory, "Decision", decision_id) as session:
            decision = await self._load(session, tenant_id, decision_id, for_update=True)
            previous = DecisionStatus(decision.status)
            DECISION_TRANSITIONS.validate(previous, DecisionStatus.NEEDS_INPUT)

            decision.status = DecisionStatus.NEEDS_INPUT
            decision.decision_rationale = None
            decision.due_at = compute_due_at(now, decision.sla_hours)
            decision.updated_at = now
            await self.audit.record(
                session,
                audit_entry(tenant_id, "decision", decision_id, "reopened", actor_id, from_status=previous),
            )

        logger.info("decision_reopened", decision_id=str(decision_id), from_status=previous.value)
        return decision

    async def escalate(
        self,
        tenant_id: uuid.UUID,
        decision_id: uuid.UUID,
        escalate_to_id: uuid.UUID,
        reason: str | None = None,
        actor_id: uuid.UUID | None = None,
        now: datetime | None = None,
        first_only: bool = False,
    ) -> Decision:
        """Escalate an open decision to another person.

        The escalation level only ever increases. The target becomes both
        escalated_to and the assignee. The previous assignee's stakeholder
        record (if any) counts one more escalation; its pending count is
        left unchanged.

        Raises:
            IllegalStateTransition: Decision is not NEEDS_INPUT / UNDER_DISCUSSION
            NotFoundError: Decision or target person not in the tenant
            ConcurrentModificationError: first_only is set and the decision was already escalated
        """
        now = now or datetime.now(UTC)
        async with transaction(self.session_factory, "Decision", decision_id) as session:
            decision = await self._load(session, tenant_id, decision_id, for_update=True)
            require_open(DecisionStatus(decision.status), "escalate")
            if first_only and decision.escalation_level:
                raise ConcurrentModificationError("Decision", decision_id)
            await self.people.get(session, escalate_to_id, tenant_id)

            previous_assignee_id = decision.assigned_to_id
            decision.escalation_level = (decision.escalation_level or 0) + 1
            decision.escalated_at = now
            decision.escalated_to_id = escalate_to_id
            decision.assigned_to_id = escalate_to_id
            decision.updated_at = now
            await session.flush()

            previous = await self.stakeholder_directory.find_by_person(session, previous_assignee_id, tenant_id)
            if previous is not None:
                await self.stakeholders.on_escalated(session, previous.id)

            await self.audit.record(
                session,
                audit_entry(
                    tenant_id,
                    "decision",
                    decision_id,
                    "escalated",
                    actor_id,
                    escalated_from_id=previous_assignee_id,
                    escalated_to_id=escalate_to_id,
                    escalation_level=decision.escalation_level,
                    reason=reason,
                ),
            )

        wait_time_hours = hours_between(decision.created_at, now)
        logger.info(
            "decision_escalated",
            decision_id=str(decision_id),
            escalation_level=decision.escalation_level,
            wait_time_hours=round(wait_time_hours, 2),
        )
        await publish_best_effort(
            self.events,
            DecisionEscalatedEvent(
                tenant_id=tenant_id,
                actor_id=actor_id,
                decision_id=decision_id,
                title=decision.title,
                priority=decision.priority,
                escalated_from_id=previous_assignee_id,
                escalated_to_id=escalate_to_id,
                escalation_level=decision.escalation_level,
                reason=reason,
                wait_time_hours=wait_time_hours,
            ),
        )
        return decision

    async def assign(
        self,
        tenant_id: uuid.UUID,
        decision_id: uuid.UUID,
        assigned_to_id: uuid.UUID,
        actor_id: uuid.UUID | None = None,
        now: datetime | None = None,
    ) -> Decision:
        """Point the decision at a new assignee. No status guard."""
        return await self.reassign(tenant_id, decision_id, assigned_to_id, None, actor_id=actor_id, now=now)

    async def reassign(
        self,
        tenant_id: uuid.UUID,
        decision_id: uuid.UUID,
        assigned_to_id: uuid.UUID,
        reason: str | None = None,
        actor_id: uuid.UUID | None = None,
        now: datetime | None = None,
    ) -> Decision:
        """Reassign, appending "[Reassigned from X to Y] reason" to context when a reason is given."""
        now = now or datetime.now(UTC)
        async with transaction(self.session_factory, "Decision", decision_id) as session:
            decision = await self._load(session, tenant_id, decision_id, for_update=True)
            new_assignee = await self.people.get(session, assigned_to_id, tenant_id)

            previous_assignee: Person | None = None
            if decision.assigned_to_id is not None:
                previous_assignee = await self.people.find(session, decision.assigned_to_id, tenant_id)

            decision.assigned_to_id = assigned_to_id
            if reason is not None and reason.strip():
                note = reassignment_note(
                    previous_assignee.full_name if previous_assignee else None,
                    new_assignee.full_name,
                    reason.strip(),
                )
                decision.context = append_context(decision.context, note)
            decision.updated_at = now

            await self.audit.record(
                session,
                audit_entry(
                    tenant_id,
                    "decision",
                    decision_id,
                    "reassigned" if reason else "assigned",
                    actor_id,
                    previous_assignee_id=previous_assignee.id if previous_assignee else None,
                    assigned_to_id=assigned_to_id,
                ),
            )

        logger.info("decision_assigned", decision_id=str(decision_id), assigned_to_id=str(assigned_to_id))
        return decision

    async def add_blocked_item(
        self,
        tenant_id: uuid.UUID,
        decision_id: uuid.UUID,
        item: BlockedItem,
        actor_id: uuid.UUID | None = None,
    ) -> Decision:
        """Record that a hypothesis waits on this decision. Duplicates are ignored."""
        async with transaction(self.session_factory, "Decision", decision_id) as session:
            decision = await self._load(session, tenant_id, decision_id, for_update=True)
            await self._validate_blocked_item(session, tenant_id, decision_id, item)

            items = list(decision.blocked_items or [])
            if item in items:
                return decision
            items.append(item)
            decision.blocked_items = items
            await self.audit.record(
                session,
                audit_entry(tenant_id, "decision", decision_id, "blocked_item_added", actor_id, item_id=item.id),
            )

        logger.info("decision_blocked_item_added", decision_id=str(decision_id), item_id=str(item.id))
        return decision

    # ──────────────────────────────────────────────────────────────────
    # Queue views and aggregates
    # ──────────────────────────────────────────────────────────────────

    async def queue(self, tenant_id: uuid.UUID, now: datetime | None = None) -> DecisionQueue:
        """Open decisions grouped by status in priority order, plus recently decided."""
        now = now or datetime.now(UTC)
        open_decisions = await self._open_decisions(tenant_id)
        groups = split_by_status(open_decisions)

        async with self.session_factory() as session:
            result = await session.execute(
                select(Decision)
                .where(Decision.tenant_id == tenant_id, Decision.status == DecisionStatus.DECIDED)
                .order_by(Decision.decided_at.desc())
                .limit(RECENTLY_DECIDED_LIMIT)
            )
            decided = list(result.scalars().all())

        return DecisionQueue(
            needs_input=groups[DecisionStatus.NEEDS_INPUT],
            under_discussion=groups[DecisionStatus.UNDER_DISCUSSION],
            decided=decided,
            total_pending=len(open_decisions),
            avg_decision_time_hours=await self.average_decision_time(
                tenant_id, get_settings().average_decision_window_days, now
            ),
        )

    async def pending(self, tenant_id: uuid.UUID, team_id: uuid.UUID | None = None) -> list[Decision]:
        """Open decisions in queue order, optionally for one team."""
        return order_queue(await self._open_decisions(tenant_id, team_id=team_id))

    async def blocking(self, tenant_id: uuid.UUID) -> list[Decision]:
        """Open BLOCKING-priority decisions, oldest first."""
        return order_queue(await self._open_decisions(tenant_id, priority=DecisionPriority.BLOCKING))

    async def overdue(self, tenant_id: uuid.UUID, now: datetime | None = None) -> list[Decision]:
        now = now or datetime.now(UTC)
        return overdue(await self._open_decisions(tenant_id), now)

    async def escalation_candidates(self, tenant_id: uuid.UUID, now: datetime | None = None) -> list[Decision]:
        """Overdue open decisions that were never escalated (pull query for an external sweep)."""
        now = now or datetime.now(UTC)
        return escalation_candidates(await self._open_decisions(tenant_id), now)

    async def pending_for_person(self, tenant_id: uuid.UUID, person_id: uuid.UUID) -> list[Decision]:
        """Open decisions assigned to a person, in queue order."""
        return order_queue(await self._open_decisions(tenant_id, assigned_to_id=person_id))

    async def status_counts(self, tenant_id: uuid.UUID) -> dict[DecisionStatus, int]:
        """Count decisions per status. Every status is present, unused ones at zero."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Decision.status, func.count())
                .where(Decision.tenant_id == tenant_id)
                .group_by(Decision.status)
            )
            counts = {status: 0 for status in DecisionStatus}
            for status, count in result.all():
                counts[DecisionStatus(status)] = count
            return counts

    async def average_decision_time(
        self, tenant_id: uuid.UUID, days: int = 30, now: datetime | None = None
    ) -> float | None:
        """Mean hours from creation to resolution for decisions decided in the last `days` days."""
        if days <= 0:
            raise InvalidArgumentError("days must be positive")
        now = now or datetime.now(UTC)
        since = now - timedelta(days=days)

        async with self.session_factory() as session:
            result = await session.execute(
                select(Decision.created_at, Decision.decided_at).where(
                    Decision.tenant_id == tenant_id,
                    Decision.decided_at.is_not(None),
                    Decision.decided_at >= since,
                )
            )
            durations = [hours_between(created_at, decided_at) for created_at, decided_at in result.all()]

        if not durations:
            return None
        return sum(durations) / len(durations)

    # ──────────────────────────────────────────────────────────────────
    # Internals
    # ──────────────────────────────────────────────────────────────────

    async def _simple_transition(
        self,
        tenant_id: uuid.UUID,
        decision_id: uuid.UUID,
        target: DecisionStatus,
        action: str,
        actor_id: uuid.UUID | None,
        now: datetime | None,
        rationale: str | None = None,
    ) -> Decision:
        now = now or datetime.now(UTC)
        async with transaction(self.session_factory, "Decision", decision_id) as session:
            decision = await self._load(session, tenant_id, decision_id, for_update=True)
            previous = DecisionStatus(decision.status)
            DECISION_TRANSITIONS.validate(previous, target)

            decision.status = target
            if rationale is not None:
                decision.decision_rationale = rationale
            decision.updated_at = now
            await self.audit.record(
                session,
                audit_entry(tenant_id, "decision", decision_id, action, actor_id, from_status=previous, reason=rationale),
            )

        logger.info(f"decision_{action}", decision_id=str(decision_id), from_status=previous.value)
        return decision

    async def _unblock_hypotheses(self, session: AsyncSession, decision: Decision, now: datetime) -> list[uuid.UUID]:
        unblocked: list[uuid.UUID] = []
        for item in decision.blocked_items or []:
            if item.type != HYPOTHESIS_ITEM:
                continue
            hypothesis = await self.hypotheses.find(session, decision.tenant_id, item.id)
            if hypothesis is None or hypothesis.status != HypothesisStatus.BLOCKED:
                continue
            await self.hypotheses.set_ready(session, decision.tenant_id, item.id, now=now)
            unblocked.append(item.id)
        return unblocked

    async def _validate_blocked_item(
        self, session: AsyncSession, tenant_id: uuid.UUID, decision_id: uuid.UUID, item: BlockedItem
    ) -> None:
        if item.id == decision_id:
            raise InvalidArgumentError("A decision cannot block itself")
        if item.type != HYPOTHESIS_ITEM:
            raise InvalidArgumentError(f"Unsupported blocked item type: {item.type}")
        if await self.hypotheses.find(session, tenant_id, item.id) is None:
            raise NotFoundError("Hypothesis", item.id)

    @staticmethod
    def _match_option(decision: Decision, selected: DecisionOption) -> DecisionOption:
        options = decision.options or []
        if not options:
            return selected
        for option in options:
            if option.id == selected.id:
                return option
        raise InvalidArgumentError(f"Selected option {selected.id} is not one of the decision's options")

    async def _open_decisions(
        self,
        tenant_id: uuid.UUID,
        assigned_to_id: uuid.UUID | None = None,
        team_id: uuid.UUID | None = None,
        priority: DecisionPriority | None = None,
    ) -> list[Decision]:
        query = select(Decision).where(Decision.tenant_id == tenant_id, Decision.status.in_(list(OPEN_STATUSES)))
        if assigned_to_id is not None:
            query = query.where(Decision.assigned_to_id == assigned_to_id)
        if team_id is not None:
            query = query.where(Decision.team_id == team_id)
        if priority is not None:
            query = query.where(Decision.priority == priority)
        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def _load(
        self,
        session: AsyncSession,
        tenant_id: uuid.UUID,
        decision_id: uuid.UUID,
        for_update: bool = False,
    ) -> Decision:
        query = select(Decision).where(Decision.id == decision_id, Decision.tenant_id == tenant_id)
        if for_update:
            query = query.with_for_update()
        result = await session.execute(query)
        decision = result.scalar_one_or_none()
        if decision is None:
            raise NotFoundError("Decision", decision_id)
        return decision
