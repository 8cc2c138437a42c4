"""StakeholderService: performance aggregates and stakeholder records.

The metric callbacks (on_assigned / on_completed / on_escalated) take the
caller's session and run as a single UPDATE ... SET col = expression each, so
concurrent resolutions never read-then-write the same running average. The
arithmetic mirrors domain.metrics.incremental_mean.
"""

import uuid
from datetime import datetime

import structlog
from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from decisionops.core.config import get_settings
from decisionops.core.exceptions import DuplicateError, InvalidArgumentError, NotFoundError
from decisionops.db.base import transaction
from decisionops.db.models.stakeholder import Stakeholder
from decisionops.domain.decisions import require_text
from decisionops.domain.metrics import Leaderboard, build_leaderboard
from decisionops.schemas.stakeholders import UpdateStakeholderRequest
from decisionops.services.directory import PersonDirectory

logger = structlog.get_logger(__name__)


class StakeholderService:
    """Stakeholder CRUD, metric callbacks and leaderboard views."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self.people = PersonDirectory()

    # ──────────────────────────────────────────────────────────────────
    # Metric callbacks (run inside the caller's transaction)
    # ──────────────────────────────────────────────────────────────────

    async def on_assigned(self, session: AsyncSession, stakeholder_id: uuid.UUID) -> None:
        """A decision was assigned: pending += 1."""
        await session.execute(
            update(Stakeholder)
            .where(Stakeholder.id == stakeholder_id)
            .values(decisions_pending=Stakeholder.decisions_pending + 1)
            .execution_options(synchronize_session=False)
        )
        logger.debug("stakeholder_assigned", stakeholder_id=str(stakeholder_id))

    async def on_completed(
        self,
        session: AsyncSession,
        stakeholder_id: uuid.UUID,
        decided_at: datetime,
        response_time_hours: float,
    ) -> None:
        """A decision was resolved: fold the response time into the running mean.

        Args:
            session: Caller's session (the resolve transaction)
            stakeholder_id: Stakeholder whose counters change
            decided_at: Resolution timestamp, stored as last_decision_at
            response_time_hours: Hours from decision creation to resolution
        """
        # SET expressions see the pre-update row, so `completed` is n - 1 here.
        completed = Stakeholder.decisions_completed
        avg = Stakeholder.avg_response_time_hours
        await session.execute(
            update(Stakeholder)
            .where(Stakeholder.id == stakeholder_id)
            .values(
                decisions_pending=case(
                    (Stakeholder.decisions_pending > 0, Stakeholder.decisions_pending - 1),
                    else_=0,
                ),
                decisions_completed=completed + 1,
                last_decision_at=decided_at,
                avg_response_time_hours=case(
                    (avg.is_(None), response_time_hours),
                    else_=(avg * completed + response_time_hours) / (completed + 1),
                ),
            )
            .execution_options(synchronize_session=False)
        )
        logger.info(
            "stakeholder_decision_completed",
            stakeholder_id=str(stakeholder_id),
            response_time_hours=round(response_time_hours, 2),
        )

    async def on_escalated(self, session: AsyncSession, stakeholder_id: uuid.UUID) -> None:
        """A decision was escalated away from this stakeholder: escalated += 1.

        Pending is intentionally left as-is.
        """
        await session.execute(
            update(Stakeholder)
            .where(Stakeholder.id == stakeholder_id)
            .values(decisions_escalated=Stakeholder.decisions_escalated + 1)
            .execution_options(synchronize_session=False)
        )
        logger.info("stakeholder_escalated", stakeholder_id=str(stakeholder_id))

    # ──────────────────────────────────────────────────────────────────
    # Records
    # ──────────────────────────────────────────────────────────────────

    async def create(
        self,
        tenant_id: uuid.UUID,
        name: str,
        email: str,
        person_id: uuid.UUID | None = None,
    ) -> Stakeholder:
        """Create a stakeholder record.

        Raises:
            NotFoundError: person_id does not resolve in the tenant
            DuplicateError: Email (or person) already tracked in the tenant
        """
        email = email.strip().lower()
        if not name.strip():
            raise InvalidArgumentError("name is required")

        try:
            async with transaction(self.session_factory, "Stakeholder") as session:
                if person_id is not None:
                    await self.people.get(session, person_id, tenant_id)

                existing = await session.execute(
                    select(Stakeholder.id).where(Stakeholder.tenant_id == tenant_id, Stakeholder.email == email)
                )
                if existing.scalar_one_or_none() is not None:
                    raise DuplicateError(f"Stakeholder with email {email} already exists")

                stakeholder = Stakeholder(tenant_id=tenant_id, name=name.strip(), email=email, person_id=person_id)
                session.add(stakeholder)
                await session.flush()
        except IntegrityError as e:
            raise DuplicateError("Stakeholder already exists for this person or email") from e

        logger.info("stakeholder_created", stakeholder_id=str(stakeholder.id), tenant_id=str(tenant_id))
        return stakeholder

    async def get(self, tenant_id: uuid.UUID, stakeholder_id: uuid.UUID) -> Stakeholder:
        async with self.session_factory() as session:
            return await self._load(session, tenant_id, stakeholder_id)

    async def get_by_email(self, tenant_id: uuid.UUID, email: str) -> Stakeholder:
        email = email.strip().lower()
        async with self.session_factory() as session:
            result = await session.execute(
                select(Stakeholder).where(Stakeholder.tenant_id == tenant_id, Stakeholder.email == email)
            )
            stakeholder = result.scalar_one_or_none()
            if stakeholder is None:
                raise NotFoundError("Stakeholder", email)
            return stakeholder

    async def update(
        self, tenant_id: uuid.UUID, stakeholder_id: uuid.UUID, request: UpdateStakeholderRequest
    ) -> Stakeholder:
        """Edit name, email, linked person or active flag. Counters are never touched here.

        Raises:
            DuplicateError: New email or person already tracked in the tenant
            InvalidArgumentError: Blank name, or deactivating with pending decisions
        """
        changes = {key: getattr(request, key) for key in request.model_fields_set if getattr(request, key) is not None}

        try:
            async with transaction(self.session_factory, "Stakeholder", stakeholder_id) as session:
                stakeholder = await self._load(session, tenant_id, stakeholder_id, for_update=True)
                if "name" in changes:
                    changes["name"] = require_text(changes["name"], "name")
                if "email" in changes:
                    changes["email"] = changes["email"].strip().lower()
                    if changes["email"] != stakeholder.email:
                        existing = await session.execute(
                            select(Stakeholder.id).where(
                                Stakeholder.tenant_id == tenant_id, Stakeholder.email == changes["email"]
                            )
                        )
                        if existing.scalar_one_or_none() is not None:
                            raise DuplicateError(f"Stakeholder with email {changes['email']} already exists")
                if "person_id" in changes:
                    await self.people.get(session, changes["person_id"], tenant_id)
                if changes.get("active") is False:
                    self._require_no_pending(stakeholder)

                for key, value in changes.items():
                    setattr(stakeholder, key, value)
                await session.flush()
        except IntegrityError as e:
            raise DuplicateError("Stakeholder already exists for this person or email") from e

        logger.info("stakeholder_updated", stakeholder_id=str(stakeholder_id), fields=sorted(changes))
        return stakeholder

    async def list_stakeholders(self, tenant_id: uuid.UUID, active_only: bool = True) -> list[Stakeholder]:
        async with self.session_factory() as session:
            query = select(Stakeholder).where(Stakeholder.tenant_id == tenant_id)
            if active_only:
                query = query.where(Stakeholder.active.is_(True))
            result = await session.execute(query.order_by(func.lower(Stakeholder.name)))
            return list(result.scalars().all())

    async def deactivate(self, tenant_id: uuid.UUID, stakeholder_id: uuid.UUID) -> Stakeholder:
        """Mark a stakeholder inactive.

        Raises:
            InvalidArgumentError: Stakeholder still has pending decisions
        """
        async with transaction(self.session_factory, "Stakeholder", stakeholder_id) as session:
            stakeholder = await self._load(session, tenant_id, stakeholder_id, for_update=True)
            self._require_no_pending(stakeholder)
            stakeholder.active = False

        logger.info("stakeholder_deactivated", stakeholder_id=str(stakeholder_id))
        return stakeholder

    async def leaderboard(self, tenant_id: uuid.UUID) -> Leaderboard:
        settings = get_settings()
        stakeholders = await self.list_stakeholders(tenant_id)
        return build_leaderboard(
            stakeholders,
            limit=settings.leaderboard_size,
            pending_threshold=settings.attention_pending_threshold,
            response_hours_threshold=settings.attention_response_hours_threshold,
        )

    @staticmethod
    def _require_no_pending(stakeholder: Stakeholder) -> None:
        if stakeholder.decisions_pending > 0:
            raise InvalidArgumentError(
                f"Stakeholder has {stakeholder.decisions_pending} pending decisions; reassign them first"
            )

    async def _load(
        self,
        session: AsyncSession,
        tenant_id: uuid.UUID,
        stakeholder_id: uuid.UUID,
        for_update: bool = False,
    ) -> Stakeholder:
        query = (
            select(Stakeholder)
            .where(Stakeholder.id == stakeholder_id, Stakeholder.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await session.execute(query)
        stakeholder = result.scalar_one_or_none()
        if stakeholder is None:
            raise NotFoundError("Stakeholder", stakeholder_id)
        return stakeholder
