"""API-specific test fixtures.

The app runs in-process through httpx's ASGITransport, which does not run the
lifespan: the global session factory is pointed at the test engine instead,
and the event sink dependency is overridden with a recording sink.
"""

import uuid

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from decisionops.api.deps import get_event_sink
from decisionops.main import create_app


@pytest.fixture
def app(engine, events):
    import decisionops.db.base as db_mod

    db_mod._engine = engine
    db_mod._session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    app = create_app()
    app.dependency_overrides[get_event_sink] = lambda: events
    yield app

    app.dependency_overrides.clear()
    db_mod._engine = None
    db_mod._session_factory = None


@pytest.fixture
async def client(app, tenant_id):
    """Client whose requests carry the test tenant header by default."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-Tenant-ID": str(tenant_id)},
    ) as c:
        yield c


@pytest.fixture
def create_person(client):
    async def _create(first_name: str = "Ada", last_name: str = "Lovelace") -> uuid.UUID:
        response = await client.post("/api/people", json={"first_name": first_name, "last_name": last_name})
        assert response.status_code == 201
        return uuid.UUID(response.json()["id"])

    return _create
