"""Person directory routes (seeding and lookup)."""

import uuid

from fastapi import APIRouter, Depends

from decisionops.api.deps import get_decision_service, get_tenant_id
from decisionops.api.routes.decisions import decision_responses
from decisionops.db.base import get_session_factory, transaction
from decisionops.schemas.decisions import DecisionResponse
from decisionops.schemas.stakeholders import CreatePersonRequest, PersonResponse
from decisionops.services.decision_service import DecisionService
from decisionops.services.directory import PersonDirectory

router = APIRouter()


@router.post("", response_model=PersonResponse, status_code=201)
async def create_person(request: CreatePersonRequest, tenant_id: uuid.UUID = Depends(get_tenant_id)):
    async with transaction(get_session_factory(), "Person") as session:
        person = await PersonDirectory().create(
            session, tenant_id, request.first_name, request.last_name, request.email
        )
    return person


@router.get("/{person_id}", response_model=PersonResponse)
async def get_person(person_id: uuid.UUID, tenant_id: uuid.UUID = Depends(get_tenant_id)):
    async with get_session_factory()() as session:
        return await PersonDirectory().get(session, person_id, tenant_id)


@router.get("/{person_id}/pending-decisions", response_model=list[DecisionResponse])
async def get_pending_decisions(
    person_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: DecisionService = Depends(get_decision_service),
):
    """Open decisions assigned to the person, in queue order."""
    return await decision_responses(service, await service.pending_for_person(tenant_id, person_id))
