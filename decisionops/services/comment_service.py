"""CommentService: threaded discussion on decisions.

Only the author may edit or delete a comment.
"""

import uuid
from datetime import UTC, datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from decisionops.core.exceptions import ForbiddenError, NotFoundError
from decisionops.db.base import transaction
from decisionops.db.models.decision import Decision, DecisionComment
from decisionops.domain.decisions import require_text
from decisionops.services.audit import AuditSink, DbAuditSink, audit_entry
from decisionops.services.directory import PersonDirectory

logger = structlog.get_logger(__name__)


class CommentService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], audit: AuditSink | None = None):
        self.session_factory = session_factory
        self.audit = audit or DbAuditSink()
        self.people = PersonDirectory()

    async def add(
        self,
        tenant_id: uuid.UUID,
        decision_id: uuid.UUID,
        author_id: uuid.UUID,
        content: str,
        option_id: str | None = None,
        parent_id: uuid.UUID | None = None,
        now: datetime | None = None,
    ) -> DecisionComment:
        """Add a comment, optionally replying to another comment on the same decision.

        Raises:
            InvalidArgumentError: Blank content
            NotFoundError: Decision, author or parent comment missing
        """
        now = now or datetime.now(UTC)
        content = require_text(content, "content")
        async with transaction(self.session_factory, "DecisionComment") as session:
            result = await session.execute(
                select(Decision.id).where(Decision.id == decision_id, Decision.tenant_id == tenant_id)
            )
            if result.scalar_one_or_none() is None:
                raise NotFoundError("Decision", decision_id)
            await self.people.get(session, author_id, tenant_id)

            if parent_id is not None:
                parent = await session.get(DecisionComment, parent_id)
                if parent is None or parent.decision_id != decision_id:
                    raise NotFoundError("Comment", parent_id)

            comment = DecisionComment(
                decision_id=decision_id,
                author_id=author_id,
                content=content,
                option_id=option_id,
                parent_id=parent_id,
                created_at=now,
            )
            session.add(comment)
            await session.flush()
            await self.audit.record(
                session,
                audit_entry(tenant_id, "comment", comment.id, "created", author_id, decision_id=decision_id),
            )

        logger.info("comment_added", decision_id=str(decision_id), comment_id=str(comment.id))
        return comment

    async def edit(
        self,
        tenant_id: uuid.UUID,
        comment_id: uuid.UUID,
        actor_id: uuid.UUID,
        content: str,
        now: datetime | None = None,
    ) -> DecisionComment:
        """Replace the comment text and flag it as edited (author only)."""
        now = now or datetime.now(UTC)
        content = require_text(content, "content")
        async with transaction(self.session_factory, "DecisionComment", comment_id) as session:
            comment = await self._load_owned(session, tenant_id, comment_id, actor_id)
            comment.content = content
            comment.edited = True
            comment.updated_at = now

        logger.info("comment_edited", comment_id=str(comment_id))
        return comment

    async def delete(self, tenant_id: uuid.UUID, comment_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        """Delete a comment (author only). Replies are removed with it."""
        async with transaction(self.session_factory, "DecisionComment", comment_id) as session:
            comment = await self._load_owned(session, tenant_id, comment_id, actor_id)
            await self.audit.record(
                session,
                audit_entry(tenant_id, "comment", comment_id, "deleted", actor_id, decision_id=comment.decision_id),
            )
            await self._delete_thread(session, comment)

        logger.info("comment_deleted", comment_id=str(comment_id))

    async def list_comments(self, tenant_id: uuid.UUID, decision_id: uuid.UUID) -> list[DecisionComment]:
        """All comments on a decision, oldest first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Decision.id).where(Decision.id == decision_id, Decision.tenant_id == tenant_id)
            )
            if result.scalar_one_or_none() is None:
                raise NotFoundError("Decision", decision_id)

            result = await session.execute(
                select(DecisionComment)
                .where(DecisionComment.decision_id == decision_id)
                .order_by(DecisionComment.created_at)
            )
            return list(result.scalars().all())

    async def _load_owned(
        self,
        session: AsyncSession,
        tenant_id: uuid.UUID,
        comment_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> DecisionComment:
        result = await session.execute(
            select(DecisionComment)
            .join(Decision, Decision.id == DecisionComment.decision_id)
            .where(DecisionComment.id == comment_id, Decision.tenant_id == tenant_id)
        )
        comment = result.scalar_one_or_none()
        if comment is None:
            raise NotFoundError("Comment", comment_id)
        if comment.author_id != actor_id:
            raise ForbiddenError("Only the author can modify this comment")
        return comment

    async def _delete_thread(self, session: AsyncSession, comment: DecisionComment) -> None:
        # Foreign-key cascades are not enforced on every backend; walk replies explicitly.
        result = await session.execute(select(DecisionComment).where(DecisionComment.parent_id == comment.id))
        for reply in result.scalars().all():
            await self._delete_thread(session, reply)
        await session.delete(comment)
        await session.flush()
