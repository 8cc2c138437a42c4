"""Decision API routes: lifecycle, queue views, votes and comments."""

import uuid
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Query, Response

from decisionops.api.deps import (
    get_actor_id,
    get_comment_service,
    get_decision_service,
    get_tenant_id,
    get_vote_service,
    require_actor,
)
from decisionops.db.models.decision import Decision
from decisionops.domain.decisions import DecisionPriority, DecisionStatus, DecisionType
from decisionops.schemas.decisions import (
    AssignDecisionRequest,
    AverageDecisionTimeResponse,
    BlockedItem,
    CastVoteRequest,
    CommentResponse,
    CreateCommentRequest,
    CreateDecisionRequest,
    DecisionQueueResponse,
    DecisionResponse,
    EscalateDecisionRequest,
    ReasonRequest,
    ReassignDecisionRequest,
    ResolveDecisionRequest,
    ResolveDecisionResponse,
    UpdateCommentRequest,
    UpdateDecisionRequest,
    VoteResponse,
    VoteSummary,
)
from decisionops.services.comment_service import CommentService
from decisionops.services.decision_service import DecisionService
from decisionops.services.vote_service import VoteService

router = APIRouter()


async def decision_responses(service: DecisionService, decisions: list[Decision]) -> list[DecisionResponse]:
    now = datetime.now(UTC)
    counts = await service.activity_counts([d.id for d in decisions])
    return [
        DecisionResponse.from_model(d, now, vote_count=counts[d.id][0], comment_count=counts[d.id][1])
        for d in decisions
    ]


async def decision_response(service: DecisionService, decision: Decision) -> DecisionResponse:
    return (await decision_responses(service, [decision]))[0]


# ──────────────────────────────────────────────────────────────────────────────
# Collection and queue views (static paths first)
# ──────────────────────────────────────────────────────────────────────────────


@router.post("", response_model=DecisionResponse, status_code=201)
async def create_decision(
    request: CreateDecisionRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID | None = Depends(get_actor_id),
    service: DecisionService = Depends(get_decision_service),
):
    """Raise a new decision. Its SLA deadline is derived from the priority."""
    decision = await service.create(tenant_id, request, created_by_id=actor_id)
    return DecisionResponse.from_model(decision)


@router.get("", response_model=list[DecisionResponse])
async def list_decisions(
    status: DecisionStatus | None = None,
    priority: DecisionPriority | None = None,
    decision_type: DecisionType | None = None,
    assigned_to_id: uuid.UUID | None = None,
    team_id: uuid.UUID | None = None,
    outcome_id: uuid.UUID | None = None,
    hypothesis_id: uuid.UUID | None = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: DecisionService = Depends(get_decision_service),
):
    decisions = await service.list_decisions(
        tenant_id,
        status=status,
        priority=priority,
        decision_type=decision_type,
        assigned_to_id=assigned_to_id,
        team_id=team_id,
        outcome_id=outcome_id,
        hypothesis_id=hypothesis_id,
        limit=limit,
        offset=offset,
    )
    return await decision_responses(service, decisions)


@router.get("/queue", response_model=DecisionQueueResponse)
async def get_queue(
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: DecisionService = Depends(get_decision_service),
):
    """Open decisions grouped by status in priority order, plus recently decided ones."""
    queue = await service.queue(tenant_id)
    return DecisionQueueResponse(
        needs_input=await decision_responses(service, queue.needs_input),
        under_discussion=await decision_responses(service, queue.under_discussion),
        decided=await decision_responses(service, queue.decided),
        total_pending=queue.total_pending,
        avg_decision_time_hours=queue.avg_decision_time_hours,
    )


@router.get("/pending", response_model=list[DecisionResponse])
async def get_pending(
    team_id: uuid.UUID | None = None,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: DecisionService = Depends(get_decision_service),
):
    """Open decisions in queue order, optionally for one team."""
    return await decision_responses(service, await service.pending(tenant_id, team_id=team_id))


@router.get("/blocking", response_model=list[DecisionResponse])
async def get_blocking(
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: DecisionService = Depends(get_decision_service),
):
    return await decision_responses(service, await service.blocking(tenant_id))


@router.get("/overdue", response_model=list[DecisionResponse])
async def get_overdue(
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: DecisionService = Depends(get_decision_service),
):
    return await decision_responses(service, await service.overdue(tenant_id))


@router.get("/escalation-candidates", response_model=list[DecisionResponse])
async def get_escalation_candidates(
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: DecisionService = Depends(get_decision_service),
):
    """Overdue open decisions that have never been escalated."""
    return await decision_responses(service, await service.escalation_candidates(tenant_id))


@router.get("/mine", response_model=list[DecisionResponse])
async def get_my_pending(
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID = Depends(require_actor),
    service: DecisionService = Depends(get_decision_service),
):
    return await decision_responses(service, await service.pending_for_person(tenant_id, actor_id))


@router.get("/status-counts", response_model=dict[DecisionStatus, int])
async def get_status_counts(
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: DecisionService = Depends(get_decision_service),
):
    return await service.status_counts(tenant_id)


@router.get("/average-time", response_model=AverageDecisionTimeResponse)
async def get_average_decision_time(
    days: int = Query(default=30, ge=1, le=365),
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: DecisionService = Depends(get_decision_service),
):
    avg = await service.average_decision_time(tenant_id, days)
    return AverageDecisionTimeResponse(days=days, avg_decision_time_hours=avg)


@router.patch("/comments/{comment_id}", response_model=CommentResponse)
async def edit_comment(
    comment_id: uuid.UUID,
    request: UpdateCommentRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID = Depends(require_actor),
    comments: CommentService = Depends(get_comment_service),
):
    """Edit a comment. Only its author may do this."""
    return await comments.edit(tenant_id, comment_id, actor_id, request.content)


@router.delete("/comments/{comment_id}", status_code=204)
async def delete_comment(
    comment_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID = Depends(require_actor),
    comments: CommentService = Depends(get_comment_service),
):
    await comments.delete(tenant_id, comment_id, actor_id)
    return Response(status_code=204)


# ──────────────────────────────────────────────────────────────────────────────
# Single decision
# ──────────────────────────────────────────────────────────────────────────────


@router.get("/{decision_id}", response_model=DecisionResponse)
async def get_decision(
    decision_id: uuid.UUID,
    include_votes: bool = False,
    include_comments: bool = False,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    service: DecisionService = Depends(get_decision_service),
):
    activity = await service.get_with_activity(tenant_id, decision_id)
    return DecisionResponse.from_model(
        activity.decision,
        vote_count=len(activity.votes),
        comment_count=len(activity.comments),
        votes=activity.votes if include_votes else None,
        comments=activity.comments if include_comments else None,
    )


@router.patch("/{decision_id}", response_model=DecisionResponse)
async def update_decision(
    decision_id: uuid.UUID,
    request: UpdateDecisionRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID | None = Depends(get_actor_id),
    service: DecisionService = Depends(get_decision_service),
):
    decision = await service.update(tenant_id, decision_id, request, actor_id=actor_id)
    return await decision_response(service, decision)


@router.delete("/{decision_id}", status_code=204)
async def delete_decision(
    decision_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID | None = Depends(get_actor_id),
    service: DecisionService = Depends(get_decision_service),
):
    await service.delete(tenant_id, decision_id, actor_id=actor_id)
    return Response(status_code=204)


@router.post("/{decision_id}/start-discussion", response_model=DecisionResponse)
async def start_discussion(
    decision_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID | None = Depends(get_actor_id),
    service: DecisionService = Depends(get_decision_service),
):
    decision = await service.start_discussion(tenant_id, decision_id, actor_id=actor_id)
    return await decision_response(service, decision)


@router.post("/{decision_id}/resolve", response_model=ResolveDecisionResponse)
async def resolve_decision(
    decision_id: uuid.UUID,
    request: ResolveDecisionRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID = Depends(require_actor),
    service: DecisionService = Depends(get_decision_service),
):
    """Resolve a decision; blocked hypotheses it lists move back to READY.

    Raises:
        HTTPException(409): Decision is not open
        HTTPException(422): Missing rationale or unknown option
    """
    result = await service.resolve(
        tenant_id, decision_id, actor_id, request.rationale, selected_option=request.selected_option
    )
    return ResolveDecisionResponse(
        decision=await decision_response(service, result.decision),
        unblocked_hypothesis_ids=result.unblocked_hypothesis_ids,
    )


@router.post("/{decision_id}/implement", response_model=DecisionResponse)
async def implement_decision(
    decision_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID | None = Depends(get_actor_id),
    service: DecisionService = Depends(get_decision_service),
):
    decision = await service.implement(tenant_id, decision_id, actor_id=actor_id)
    return await decision_response(service, decision)


@router.post("/{decision_id}/defer", response_model=DecisionResponse)
async def defer_decision(
    decision_id: uuid.UUID,
    request: ReasonRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID | None = Depends(get_actor_id),
    service: DecisionService = Depends(get_decision_service),
):
    decision = await service.defer(tenant_id, decision_id, request.reason, actor_id=actor_id)
    return await decision_response(service, decision)


@router.post("/{decision_id}/cancel", response_model=DecisionResponse)
async def cancel_decision(
    decision_id: uuid.UUID,
    request: ReasonRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID | None = Depends(get_actor_id),
    service: DecisionService = Depends(get_decision_service),
):
    decision = await service.cancel(tenant_id, decision_id, request.reason, actor_id=actor_id)
    return await decision_response(service, decision)


@router.post("/{decision_id}/reopen", response_model=DecisionResponse)
async def reopen_decision(
    decision_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID | None = Depends(get_actor_id),
    service: DecisionService = Depends(get_decision_service),
):
    decision = await service.reopen(tenant_id, decision_id, actor_id=actor_id)
    return await decision_response(service, decision)


@router.post("/{decision_id}/escalate", response_model=DecisionResponse)
async def escalate_decision(
    decision_id: uuid.UUID,
    request: EscalateDecisionRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID | None = Depends(get_actor_id),
    service: DecisionService = Depends(get_decision_service),
):
    decision = await service.escalate(
        tenant_id, decision_id, request.escalate_to_id, reason=request.reason, actor_id=actor_id
    )
    return await decision_response(service, decision)


@router.post("/{decision_id}/assign", response_model=DecisionResponse)
async def assign_decision(
    decision_id: uuid.UUID,
    request: AssignDecisionRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID | None = Depends(get_actor_id),
    service: DecisionService = Depends(get_decision_service),
):
    decision = await service.assign(tenant_id, decision_id, request.assigned_to_id, actor_id=actor_id)
    return await decision_response(service, decision)


@router.post("/{decision_id}/reassign", response_model=DecisionResponse)
async def reassign_decision(
    decision_id: uuid.UUID,
    request: ReassignDecisionRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID | None = Depends(get_actor_id),
    service: DecisionService = Depends(get_decision_service),
):
    decision = await service.reassign(
        tenant_id, decision_id, request.assigned_to_id, request.reason, actor_id=actor_id
    )
    return await decision_response(service, decision)


@router.post("/{decision_id}/blocked-items", response_model=DecisionResponse)
async def add_blocked_item(
    decision_id: uuid.UUID,
    item: BlockedItem,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID | None = Depends(get_actor_id),
    service: DecisionService = Depends(get_decision_service),
):
    decision = await service.add_blocked_item(tenant_id, decision_id, item, actor_id=actor_id)
    return await decision_response(service, decision)


# ──────────────────────────────────────────────────────────────────────────────
# Votes
# ──────────────────────────────────────────────────────────────────────────────


@router.get("/{decision_id}/votes", response_model=list[VoteResponse])
async def list_votes(
    decision_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    votes: VoteService = Depends(get_vote_service),
):
    return await votes.list_votes(tenant_id, decision_id)


@router.get("/{decision_id}/votes/summary", response_model=VoteSummary)
async def vote_summary(
    decision_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    votes: VoteService = Depends(get_vote_service),
):
    summary = await votes.summary(tenant_id, decision_id)
    return VoteSummary(
        total_votes=summary.total_votes,
        count_by_type=summary.count_by_type,
        votes=[VoteResponse.model_validate(v) for v in summary.votes],
    )


@router.post("/{decision_id}/votes", response_model=VoteResponse)
async def cast_vote(
    decision_id: uuid.UUID,
    request: CastVoteRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID = Depends(require_actor),
    votes: VoteService = Depends(get_vote_service),
):
    """Cast the actor's vote; a second vote overwrites the first."""
    return await votes.cast(tenant_id, decision_id, actor_id, request.vote, request.comment)


@router.delete("/{decision_id}/votes", status_code=204)
async def remove_vote(
    decision_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID = Depends(require_actor),
    votes: VoteService = Depends(get_vote_service),
):
    await votes.remove(tenant_id, decision_id, actor_id)
    return Response(status_code=204)


# ──────────────────────────────────────────────────────────────────────────────
# Comments
# ──────────────────────────────────────────────────────────────────────────────


@router.get("/{decision_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    decision_id: uuid.UUID,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    comments: CommentService = Depends(get_comment_service),
):
    return await comments.list_comments(tenant_id, decision_id)


@router.post("/{decision_id}/comments", response_model=CommentResponse, status_code=201)
async def add_comment(
    decision_id: uuid.UUID,
    request: CreateCommentRequest,
    tenant_id: uuid.UUID = Depends(get_tenant_id),
    actor_id: uuid.UUID = Depends(require_actor),
    comments: CommentService = Depends(get_comment_service),
):
    return await comments.add(
        tenant_id,
        decision_id,
        actor_id,
        request.content,
        option_id=request.option_id,
        parent_id=request.parent_id,
    )
