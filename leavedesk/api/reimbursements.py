# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from leavedesk.api.deps import ActorDep, RepositoryDep, ReviewerDep, StateMachineDep
from leavedesk.models.enums import RequestKind, RequestStatus
from leavedesk.schemas.request import ReimbursementPayload, RequestListResponse, RequestResponse, TransitionPayload
from leavedesk.services import request as request_service
from leavedesk.services.request import build_request_response

reimbursements_router = APIRouter(prefix="/reimbursements", tags=["reimbursements"])


@reimbursements_router.post("", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def create_reimbursement(
    payload: ReimbursementPayload,
    actor: ActorDep,
    machine: StateMachineDep,
) -> RequestResponse:
    """Claim an expense reimbursement."""
    request = await machine.create(actor.id, payload)
    return build_request_response(request)


@reimbursements_router.get("", response_model=RequestListResponse)
async def list_reimbursements(
    actor: ActorDep,
    repository: RepositoryDep,
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
) -> RequestListResponse:
    """List reimbursement requests; employees only see their own."""
    return await request_service.list_requests(repository, actor, RequestKind.REIMBURSEMENT, status_filter)


@reimbursements_router.get("/my", response_model=RequestListResponse)
async def list_my_reimbursements(
    actor: ActorDep,
    repository: RepositoryDep,
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
) -> RequestListResponse:
    """List the caller's own reimbursement requests."""
    return await request_service.list_requests(repository, actor, RequestKind.REIMBURSEMENT, status_filter, mine=True)


@reimbursements_router.get("/{request_id}", response_model=RequestResponse)
async def get_reimbursement(
    request_id: uuid.UUID,
    actor: ActorDep,
    repository: RepositoryDep,
) -> RequestResponse:
    """Get a single reimbursement request."""
    return await request_service.get_request(repository, actor, RequestKind.REIMBURSEMENT, request_id)


@reimbursements_router.patch("/{request_id}", response_model=RequestResponse)
async def update_reimbursement_status(
    request_id: uuid.UUID,
    payload: TransitionPayload,
    actor: ReviewerDep,
    repository: RepositoryDep,
    machine: StateMachineDep,
) -> RequestResponse:
    """Move a reimbursement request to a new status (managers and admins)."""
    await request_service.get_request(repository, actor, RequestKind.REIMBURSEMENT, request_id)
    request = await machine.transition(actor, request_id, payload.status, payload.comment)
    return build_request_response(request)


@reimbursements_router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reimbursement(
    request_id: uuid.UUID,
    actor: ActorDep,
    repository: RepositoryDep,
    machine: StateMachineDep,
) -> None:
    """Delete a pending reimbursement request (any status for admins)."""
    await request_service.get_request(repository, actor, RequestKind.REIMBURSEMENT, request_id)
    await machine.delete(actor, request_id)
