"""Hypothesis API routes."""

import uuid

from fastapi import APIRouter, Depends, Response

from decisionops.api.deps import get_actor_id, get_hypothesis_service, get_tenant_id, require_actor
from decisionops.domain.hypotheses import HypothesisStatus
from decisionops.schemas.hypotheses import (
    AbandonHypothesisRequest,
    ConcludeHypothesisRequest,
    CreateHypothesisRequest,
    HypothesisResponse,
    TransitionHypothesisRequest,
    UpdateHypothesisRequest,
)
from decisionops.services.hypothesis_service import HypothesisService

router = APIRouter()


@router.post("", response_model=HypothesisResponse, status_code=201)
async def create_hypothesis(
    request: CreateHypothesisRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID | None = Depends(get_actor_id),
    service: HypothesisService = Depends(get_hypothesis_service),
):
    return await service.create(
        tenant_id,
        request.title,
        statement=request.statement,
        owner_id=request.owner_id,
        outcome_id=request.outcome_id,
        actor_id=actor_id,
    )


@router.get("", response_model=list[HypothesisResponse])
async def list_hypotheses(
    status: HypothesisStatus | None = None,
    owner_id: uuid.UUID | None = None,
    outcome_id: uuid.UUID | None = None,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: HypothesisService = Depends(get_hypothesis_service),
):
    return await service.list_hypotheses(tenant_id, status=status, owner_id=owner_id, outcome_id=outcome_id)


@router.get("/blocked", response_model=list[HypothesisResponse])
async def list_blocked(
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: HypothesisService = Depends(get_hypothesis_service),
):
    return await service.blocked(tenant_id)


@router.get("/status-counts", response_model=dict[HypothesisStatus, int])
async def get_status_counts(
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: HypothesisService = Depends(get_hypothesis_service),
):
    return await service.status_counts(tenant_id)


@router.get("/{hypothesis_id}", response_model=HypothesisResponse)
async def get_hypothesis(
    hypothesis_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: HypothesisService = Depends(get_hypothesis_service),
):
    return await service.get(tenant_id, hypothesis_id)


@router.patch("/{hypothesis_id}", response_model=HypothesisResponse)
async def update_hypothesis(
    hypothesis_id: uuid.UUID,
    request: UpdateHypothesisRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID | None = Depends(get_actor_id),
    service: HypothesisService = Depends(get_hypothesis_service),
):
    return await service.update(tenant_id, hypothesis_id, request, actor_id=actor_id)


@router.delete("/{hypothesis_id}", status_code=204)
async def delete_hypothesis(
    hypothesis_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID | None = Depends(get_actor_id),
    service: HypothesisService = Depends(get_hypothesis_service),
):
    await service.delete(tenant_id, hypothesis_id, actor_id=actor_id)
    return Response(status_code=204)


@router.post("/{hypothesis_id}/transition", response_model=HypothesisResponse)
async def transition_hypothesis(
    hypothesis_id: uuid.UUID,
    request: TransitionHypothesisRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID | None = Depends(get_actor_id),
    service: HypothesisService = Depends(get_hypothesis_service),
):
    """Move a hypothesis along its lifecycle (BLOCKED requires a reason).

    Raises:
        HTTPException(409): Transition not allowed from the current status
        HTTPException(422): Conclusion target or missing blocked reason
    """
    return await service.transition(
        tenant_id, hypothesis_id, request.target_status, reason=request.reason, actor_id=actor_id
    )


@router.post("/{hypothesis_id}/conclude", response_model=HypothesisResponse)
async def conclude_hypothesis(
    hypothesis_id: uuid.UUID,
    request: ConcludeHypothesisRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID = Depends(require_actor),
    service: HypothesisService = Depends(get_hypothesis_service),
):
    return await service.conclude(
        tenant_id,
        hypothesis_id,
        request.conclusion,
        actor_id,
        conclusion_notes=request.conclusion_notes,
        experiment_results=request.experiment_results,
    )


@router.post("/{hypothesis_id}/abandon", response_model=HypothesisResponse)
async def abandon_hypothesis(
    hypothesis_id: uuid.UUID,
    request: AbandonHypothesisRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID | None = Depends(get_actor_id),
    service: HypothesisService = Depends(get_hypothesis_service),
):
    return await service.abandon(tenant_id, hypothesis_id, request.reason, actor_id=actor_id)
