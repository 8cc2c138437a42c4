"""Fixtures for service tests: seeded people and hypotheses in a given state."""

import pytest

from decisionops.domain.hypotheses import HypothesisStatus
from decisionops.schemas.decisions import CreateDecisionRequest


@pytest.fixture
async def ada(make_person):
    return await make_person("Ada", "Lovelace")


@pytest.fixture
async def grace(make_person):
    return await make_person("Grace", "Hopper")


@pytest.fixture
def make_hypothesis(hypothesis_service, tenant_id):
    """Factory: create a hypothesis and walk it to the requested status."""
    paths = {
        HypothesisStatus.DRAFT: [],
        HypothesisStatus.READY: [HypothesisStatus.READY],
        HypothesisStatus.BLOCKED: [HypothesisStatus.READY, HypothesisStatus.BLOCKED],
        HypothesisStatus.BUILDING: [HypothesisStatus.READY, HypothesisStatus.BUILDING],
        HypothesisStatus.MEASURING: [
            HypothesisStatus.READY,
            HypothesisStatus.BUILDING,
            HypothesisStatus.DEPLOYED,
            HypothesisStatus.MEASURING,
        ],
    }

    async def _make(status: HypothesisStatus = HypothesisStatus.DRAFT, title: str = "Shorter onboarding lifts activation"):
        hypothesis = await hypothesis_service.create(tenant_id, title)
        for step in paths[status]:
            reason = "waiting on pricing decision" if step == HypothesisStatus.BLOCKED else None
            hypothesis = await hypothesis_service.transition(tenant_id, hypothesis.id, step, reason=reason)
        return hypothesis

    return _make


@pytest.fixture
def make_decision(decision_service, tenant_id):
    """Factory: create a decision from keyword fields (title defaults provided)."""

    async def _make(now=None, created_by_id=None, **fields):
        fields.setdefault("title", "Pick a pricing model")
        return await decision_service.create(
            tenant_id, CreateDecisionRequest(**fields), created_by_id=created_by_id, now=now
        )

    return _make
