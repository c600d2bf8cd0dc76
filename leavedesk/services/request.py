"""Read side of the request workflow: lookups, listings and response mapping."""

from __future__ import annotations

from typing import TYPE_CHECKING

from leavedesk.exceptions import NotFoundError
from leavedesk.models.enums import RequestKind, RequestStatus, Role
from leavedesk.schemas.request import RequestListResponse, RequestResponse

if TYPE_CHECKING:
    import uuid

    from leavedesk.models.request import ApprovalRequest
    from leavedesk.models.subject import Subject
    from leavedesk.services.repository import RequestRepository


def build_request_response(request: ApprovalRequest) -> RequestResponse:
    """Map a request model to its response schema."""
    return RequestResponse(
        id=request.id,
        subject_id=request.subject_id,
        kind=RequestKind(request.kind),
        status=RequestStatus(request.status),
        leave_type=request.leave_type,
        from_date=request.from_date,
        to_date=request.to_date,
        reason=request.reason,
        day_count=request.day_count,
        risk_flag=request.risk_flag,
        amount=request.amount,
        expense_date=request.expense_date,
        description=request.description,
        attachment_ref=request.attachment_ref,
        reviewer_comment=request.reviewer_comment,
        reviewed_by=request.reviewed_by,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


async def get_request(
    repository: RequestRepository,
    actor: Subject,
    kind: RequestKind,
    request_id: uuid.UUID,
) -> RequestResponse:
    """Get a single request. Employees only see their own."""
    request = await repository.find_by_id(request_id)
    if request is None or request.kind != kind:
        msg = f"{kind} request not found"
        raise NotFoundError(msg)
    if actor.role == Role.EMPLOYEE and request.subject_id != actor.id:
        msg = f"{kind} request not found"
        raise NotFoundError(msg)
    return build_request_response(request)


async def list_requests(
    repository: RequestRepository,
    actor: Subject,
    kind: RequestKind,
    status_filter: RequestStatus | None = None,
    mine: bool = False,
) -> RequestListResponse:
    """List requests newest first.

    Employees (or anyone asking for ``mine``) only see their own requests;
    managers and admins see everyone's.
    """
    subject_id = actor.id if mine or actor.role == Role.EMPLOYEE else None
    statuses = [status_filter] if status_filter is not None else None
    requests = await repository.list_requests(kind=kind, statuses=statuses, subject_id=subject_id)
    return RequestListResponse(items=[build_request_response(r) for r in requests], total=len(requests))
