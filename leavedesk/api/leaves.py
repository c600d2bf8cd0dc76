# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from leavedesk.api.deps import ActorDep, RepositoryDep, ReviewerDep, StateMachineDep
from leavedesk.models.enums import RequestKind, RequestStatus
from leavedesk.schemas.request import LeavePayload, RequestListResponse, RequestResponse, TransitionPayload
from leavedesk.services import request as request_service
from leavedesk.services.request import build_request_response

leaves_router = APIRouter(prefix="/leaves", tags=["leaves"])


@leaves_router.post("", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def apply_leave(
    payload: LeavePayload,
    actor: ActorDep,
    machine: StateMachineDep,
) -> RequestResponse:
    """Apply for leave."""
    request = await machine.create(actor.id, payload)
    return build_request_response(request)


@leaves_router.get("", response_model=RequestListResponse)
async def list_leaves(
    actor: ActorDep,
    repository: RepositoryDep,
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
) -> RequestListResponse:
    """List leave requests; employees only see their own."""
    return await request_service.list_requests(repository, actor, RequestKind.LEAVE, status_filter)


@leaves_router.get("/my", response_model=RequestListResponse)
async def list_my_leaves(
    actor: ActorDep,
    repository: RepositoryDep,
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
) -> RequestListResponse:
    """List the caller's own leave requests."""
    return await request_service.list_requests(repository, actor, RequestKind.LEAVE, status_filter, mine=True)


@leaves_router.get("/{request_id}", response_model=RequestResponse)
async def get_leave(
    request_id: uuid.UUID,
    actor: ActorDep,
    repository: RepositoryDep,
) -> RequestResponse:
    """Get a single leave request."""
    return await request_service.get_request(repository, actor, RequestKind.LEAVE, request_id)


@leaves_router.patch("/{request_id}", response_model=RequestResponse)
async def update_leave_status(
    request_id: uuid.UUID,
    payload: TransitionPayload,
    actor: ReviewerDep,
    repository: RepositoryDep,
    machine: StateMachineDep,
) -> RequestResponse:
    """Move a leave request to a new status (managers and admins)."""
    await request_service.get_request(repository, actor, RequestKind.LEAVE, request_id)
    request = await machine.transition(actor, request_id, payload.status, payload.comment)
    return build_request_response(request)


@leaves_router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_leave(
    request_id: uuid.UUID,
    actor: ActorDep,
    repository: RepositoryDep,
    machine: StateMachineDep,
) -> None:
    """Delete a pending leave request (any status for admins)."""
    await request_service.get_request(repository, actor, RequestKind.LEAVE, request_id)
    await machine.delete(actor, request_id)
