"""VoteService: one vote per person per decision, with a per-option summary."""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from decisionops.core.exceptions import NotFoundError
from decisionops.db.base import transaction
from decisionops.db.models.decision import Decision, DecisionVote
from decisionops.domain.votes import VoteType, tally
from decisionops.services.directory import PersonDirectory

logger = structlog.get_logger(__name__)


@dataclass
class VoteTally:
    total_votes: int
    count_by_type: dict[VoteType, int]
    votes: list[DecisionVote]


class VoteService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self.people = PersonDirectory()

    async def cast(
        self,
        tenant_id: uuid.UUID,
        decision_id: uuid.UUID,
        person_id: uuid.UUID,
        vote: VoteType,
        comment: str | None = None,
        now: datetime | None = None,
    ) -> DecisionVote:
        """Cast or overwrite a person's vote on a decision.

        Raises:
            NotFoundError: Decision or person not in the tenant
        """
        now = now or datetime.now(UTC)
        vote = VoteType(vote)
        try:
            record, overwritten = await self._upsert(tenant_id, decision_id, person_id, vote, comment, now)
        except IntegrityError:
            # A concurrent first vote by the same person won the insert; overwrite it.
            logger.info("vote_insert_conflict", decision_id=str(decision_id), person_id=str(person_id))
            record, overwritten = await self._upsert(tenant_id, decision_id, person_id, vote, comment, now)

        logger.info(
            "vote_cast",
            decision_id=str(decision_id),
            person_id=str(person_id),
            vote=vote.value,
            overwritten=overwritten,
        )
        return record

    async def _upsert(
        self,
        tenant_id: uuid.UUID,
        decision_id: uuid.UUID,
        person_id: uuid.UUID,
        vote: VoteType,
        comment: str | None,
        now: datetime,
    ) -> tuple[DecisionVote, bool]:
        async with transaction(self.session_factory, "DecisionVote") as session:
            await _require_decision(session, tenant_id, decision_id)
            await self.people.get(session, person_id, tenant_id)

            existing = await self._find(session, decision_id, person_id)
            if existing is not None:
                existing.vote = vote.value
                existing.comment = comment
                existing.updated_at = now
                record = existing
            else:
                record = DecisionVote(
                    decision_id=decision_id,
                    person_id=person_id,
                    vote=vote.value,
                    comment=comment,
                    created_at=now,
                )
                session.add(record)
            await session.flush()
        return record, existing is not None

    async def remove(self, tenant_id: uuid.UUID, decision_id: uuid.UUID, person_id: uuid.UUID) -> None:
        """Withdraw a person's vote.

        Raises:
            NotFoundError: Decision not in the tenant, or the person has not voted
        """
        async with transaction(self.session_factory, "DecisionVote") as session:
            await _require_decision(session, tenant_id, decision_id)
            existing = await self._find(session, decision_id, person_id)
            if existing is None:
                raise NotFoundError("Vote", f"{decision_id}/{person_id}")
            await session.delete(existing)

        logger.info("vote_removed", decision_id=str(decision_id), person_id=str(person_id))

    async def list_votes(self, tenant_id: uuid.UUID, decision_id: uuid.UUID) -> list[DecisionVote]:
        async with self.session_factory() as session:
            await _require_decision(session, tenant_id, decision_id)
            result = await session.execute(
                select(DecisionVote).where(DecisionVote.decision_id == decision_id).order_by(DecisionVote.created_at)
            )
            return list(result.scalars().all())

    async def summary(self, tenant_id: uuid.UUID, decision_id: uuid.UUID) -> VoteTally:
        votes = await self.list_votes(tenant_id, decision_id)
        return VoteTally(
            total_votes=len(votes),
            count_by_type=tally(v.vote for v in votes),
            votes=votes,
        )

    @staticmethod
    async def _find(session: AsyncSession, decision_id: uuid.UUID, person_id: uuid.UUID) -> DecisionVote | None:
        result = await session.execute(
            select(DecisionVote).where(DecisionVote.decision_id == decision_id, DecisionVote.person_id == person_id)
        )
        return result.scalar_one_or_none()


async def _require_decision(session: AsyncSession, tenant_id: uuid.UUID, decision_id: uuid.UUID) -> None:
    result = await session.execute(
        select(Decision.id).where(Decision.id == decision_id, Decision.tenant_id == tenant_id)
    )
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Decision", decision_id)
