"""Shared test fixtures for all test groups.

Service and API tests run against a throwaway SQLite database (aiosqlite).
Set TEST_DATABASE_URL to run them against PostgreSQL instead.
"""

import os
import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from decisionops.db.base import Base, transaction
from decisionops.services.comment_service import CommentService
from decisionops.services.decision_service import DecisionService
from decisionops.services.directory import PersonDirectory
from decisionops.services.hypothesis_service import HypothesisService
from decisionops.services.stakeholder_service import StakeholderService
from decisionops.services.vote_service import VoteService
from tests.support import RecordingEventSink


@pytest.fixture
async def engine(tmp_path) -> AsyncEngine:
    url = os.getenv("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'decisionops_test.db'}"
    engine = create_async_engine(url, echo=False)

    # Import all models so metadata is populated
    import decisionops.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def events() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture
def tenant_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def other_tenant_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def make_person(session_factory, tenant_id):
    """Factory: insert a person (default tenant) and return it."""

    async def _make(first_name: str = "Ada", last_name: str = "Lovelace", tenant: uuid.UUID | None = None):
        async with transaction(session_factory, "Person") as session:
            return await PersonDirectory().create(
                session,
                tenant or tenant_id,
                first_name,
                last_name,
                f"{first_name}.{last_name}@example.com".lower(),
            )

    return _make


@pytest.fixture
def make_stakeholder(stakeholder_service, tenant_id):
    """Factory: track an existing person as a stakeholder."""

    async def _make(person, tenant: uuid.UUID | None = None):
        return await stakeholder_service.create(
            tenant or tenant_id,
            person.full_name,
            person.email,
            person_id=person.id,
        )

    return _make


@pytest.fixture
def stakeholder_service(session_factory) -> StakeholderService:
    return StakeholderService(session_factory)


@pytest.fixture
def hypothesis_service(session_factory, events) -> HypothesisService:
    return HypothesisService(session_factory, events=events)


@pytest.fixture
def decision_service(session_factory, events, hypothesis_service, stakeholder_service) -> DecisionService:
    return DecisionService(
        session_factory,
        events=events,
        hypotheses=hypothesis_service,
        stakeholders=stakeholder_service,
    )


@pytest.fixture
def vote_service(session_factory) -> VoteService:
    return VoteService(session_factory)


@pytest.fixture
def comment_service(session_factory) -> CommentService:
    return CommentService(session_factory)
