"""Stakeholder API routes: records, metrics and leaderboard."""

import uuid

from fastapi import APIRouter, Depends, Response

from decisionops.api.deps import get_stakeholder_service, get_tenant_id
from decisionops.schemas.stakeholders import (
    CreateStakeholderRequest,
    LeaderboardResponse,
    StakeholderMetricsResponse,
    StakeholderResponse,
    UpdateStakeholderRequest,
)
from decisionops.services.stakeholder_service import StakeholderService

router = APIRouter()


@router.post("", response_model=StakeholderResponse, status_code=201)
async def create_stakeholder(
    request: CreateStakeholderRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: StakeholderService = Depends(get_stakeholder_service),
):
    """Start tracking a stakeholder.

    Raises:
        HTTPException(404): person_id not found in the tenant
        HTTPException(409): Email already tracked in the tenant
    """
    return await service.create(tenant_id, request.name, request.email, person_id=request.person_id)


@router.get("", response_model=list[StakeholderResponse])
async def list_stakeholders(
    include_inactive: bool = False,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: StakeholderService = Depends(get_stakeholder_service),
):
    return await service.list_stakeholders(tenant_id, active_only=not include_inactive)


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: StakeholderService = Depends(get_stakeholder_service),
):
    board = await service.leaderboard(tenant_id)
    return LeaderboardResponse(
        fastest_responders=[StakeholderResponse.model_validate(s) for s in board.fastest_responders],
        most_active=[StakeholderResponse.model_validate(s) for s in board.most_active],
        needing_attention=[StakeholderResponse.model_validate(s) for s in board.needing_attention],
    )


@router.get("/by-email/{email}", response_model=StakeholderResponse)
async def get_stakeholder_by_email(
    email: str,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: StakeholderService = Depends(get_stakeholder_service),
):
    return await service.get_by_email(tenant_id, email)


@router.get("/{stakeholder_id}", response_model=StakeholderResponse)
async def get_stakeholder(
    stakeholder_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: StakeholderService = Depends(get_stakeholder_service),
):
    return await service.get(tenant_id, stakeholder_id)


@router.get("/{stakeholder_id}/metrics", response_model=StakeholderMetricsResponse)
async def get_stakeholder_metrics(
    stakeholder_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: StakeholderService = Depends(get_stakeholder_service),
):
    stakeholder = await service.get(tenant_id, stakeholder_id)
    return StakeholderMetricsResponse(
        stakeholder_id=stakeholder.id,
        decisions_pending=stakeholder.decisions_pending,
        decisions_completed=stakeholder.decisions_completed,
        decisions_escalated=stakeholder.decisions_escalated,
        avg_response_time_hours=stakeholder.avg_response_time_hours,
        last_decision_at=stakeholder.last_decision_at,
    )


@router.post("/{stakeholder_id}/deactivate", response_model=StakeholderResponse)
async def deactivate_stakeholder(
    stakeholder_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: StakeholderService = Depends(get_stakeholder_service),
):
    """Stop tracking a stakeholder. Refused while decisions are still pending."""
    return await service.deactivate(tenant_id, stakeholder_id)


@router.patch("/{stakeholder_id}", response_model=StakeholderResponse)
async def update_stakeholder(
    stakeholder_id: uuid.UUID,
    request: UpdateStakeholderRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: StakeholderService = Depends(get_stakeholder_service),
):
    """Edit a stakeholder record.

    Raises:
        HTTPException(409): New email already tracked in the tenant
        HTTPException(422): Deactivating while decisions are still pending
    """
    return await service.update(tenant_id, stakeholder_id, request)


@router.delete("/{stakeholder_id}", status_code=204)
async def delete_stakeholder(
    stakeholder_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: StakeholderService = Depends(get_stakeholder_service),
):
    """Soft delete: the record and its metric history stay, marked inactive."""
    await service.deactivate(tenant_id, stakeholder_id)
    return Response(status_code=204)
