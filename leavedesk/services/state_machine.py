"""Approval state machine for leave and reimbursement requests.

This is the only place that changes a request's status. Each write is a
read-decide-write cycle: the request and its subject are read, the role
table and the ledger decide what happens, and the repository applies the
status change together with any balance posting only if nothing moved in
between. A lost race re-runs the cycle a bounded number of times.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import TYPE_CHECKING

from leavedesk.config import get_settings
from leavedesk.exceptions import (
    ConcurrentModificationError,
    ConflictError,
    InsufficientBalanceError,
    NoOpError,
    NotFoundError,
    UnauthorizedTransitionError,
    ValidationError,
)
from leavedesk.models.enums import AuditAction, AuditEntityType, RequestKind, RequestStatus, Role
from leavedesk.models.request import ApprovalRequest
from leavedesk.schemas.request import LeavePayload, ReimbursementPayload
from leavedesk.services.audit import build_audit_log, model_to_audit_dict
from leavedesk.services.conflict import has_overlap
from leavedesk.services.duration import whole_days_inclusive
from leavedesk.services.events import RequestCreated, RequestStatusChanged, get_event_publisher
from leavedesk.services.kinds import descriptor_for
from leavedesk.services.ledger import BalanceLedger
from leavedesk.services.repository import StatusChange
from leavedesk.services.risk import is_risky
from leavedesk.services.transitions import check_transition

if TYPE_CHECKING:
    import uuid

    from leavedesk.models.subject import Subject
    from leavedesk.services.events import EventPublisher, LifecycleEvent
    from leavedesk.services.ledger import LedgerPosting
    from leavedesk.services.repository import RequestRepository

logger = logging.getLogger(__name__)


class ApprovalStateMachine:
    """Creates requests and moves them through the approval workflow."""

    def __init__(
        self,
        repository: RequestRepository,
        publisher: EventPublisher | None = None,
        ledger: BalanceLedger | None = None,
        max_attempts: int | None = None,
        retry_backoff: float | None = None,
    ) -> None:
        settings = get_settings()
        self._repository = repository
        self._publisher = publisher if publisher is not None else get_event_publisher()
        self._ledger = ledger if ledger is not None else BalanceLedger()
        self._max_attempts = max_attempts if max_attempts is not None else settings.transition_max_attempts
        self._retry_backoff = retry_backoff if retry_backoff is not None else settings.transition_retry_backoff

    # -----------------------------------------------------------------------
    # Create
    # -----------------------------------------------------------------------

    async def create(
        self,
        subject_id: uuid.UUID,
        payload: LeavePayload | ReimbursementPayload,
    ) -> ApprovalRequest:
        """Create a Pending request owned by ``subject_id``.

        Leave requests are checked for overlaps and affordability and get a
        risk flag. The insert is guarded by the subject version read before
        the overlap check, so two racing overlapping leaves cannot both land.
        """
        for attempt in range(1, self._max_attempts + 1):
            subject = await self._get_subject_or_404(subject_id)

            if isinstance(payload, LeavePayload):
                request = await self._prepare_leave(subject, payload)
                guard: int | None = subject.version
            else:
                request = self._prepare_reimbursement(subject, payload)
                guard = None

            audit = build_audit_log(
                actor_id=subject.id,
                entity_type=AuditEntityType.REQUEST,
                entity_id=request.id,
                action=AuditAction.CREATE,
                details=_describe_new_request(request),
                after_json=model_to_audit_dict(request),
            )
            if await self._repository.insert(request, subject_version=guard, audit=audit) is not None:
                break
            logger.info(
                "Subject %s changed while creating a %s request (attempt %d/%d)",
                subject.id,
                request.kind,
                attempt,
                self._max_attempts,
            )
            await self._pause_before_retry(attempt)
        else:
            raise ConcurrentModificationError

        logger.info("Created %s request %s for subject %s", request.kind, request.id, subject.id)
        descriptor = descriptor_for(request.kind)
        await self._notify(
            RequestCreated(
                kind=RequestKind(request.kind),
                request_id=request.id,
                subject_id=subject.id,
                subject_name=subject.name,
                risk_flag=request.risk_flag,
                charged_days=descriptor.charged_days(request),
                charged_amount=descriptor.charged_amount(request),
            )
        )
        return request

    async def _prepare_leave(self, subject: Subject, payload: LeavePayload) -> ApprovalRequest:
        day_count = whole_days_inclusive(payload.from_date, payload.to_date)

        if await has_overlap(self._repository, subject.id, payload.from_date, payload.to_date):
            raise ConflictError

        # Early rejection only; the days are debited at final approval.
        if day_count > subject.leave_balance:
            msg = f"Insufficient leave balance. You have {subject.leave_balance} days left."
            raise InsufficientBalanceError(msg)

        return ApprovalRequest(
            subject_id=subject.id,
            kind=RequestKind.LEAVE.value,
            status=RequestStatus.PENDING.value,
            leave_type=payload.leave_type,
            from_date=payload.from_date,
            to_date=payload.to_date,
            reason=payload.reason,
            attachment_ref=payload.attachment_ref,
            day_count=day_count,
            risk_flag=is_risky(payload.from_date, payload.to_date, day_count),
        )

    @staticmethod
    def _prepare_reimbursement(subject: Subject, payload: ReimbursementPayload) -> ApprovalRequest:
        if payload.amount <= 0:
            msg = "Amount must be positive"
            raise ValidationError(msg)
        return ApprovalRequest(
            subject_id=subject.id,
            kind=RequestKind.REIMBURSEMENT.value,
            status=RequestStatus.PENDING.value,
            amount=payload.amount,
            expense_date=payload.expense_date,
            description=payload.description,
            attachment_ref=payload.attachment_ref,
        )

    # -----------------------------------------------------------------------
    # Transition
    # -----------------------------------------------------------------------

    async def transition(
        self,
        actor: Subject,
        request_id: uuid.UUID,
        target_status: RequestStatus,
        comment: str | None = None,
    ) -> ApprovalRequest:
        """Move a request to ``target_status`` on behalf of ``actor``.

        Raises NoOpError without side effects when the request already has
        the target status. Approving a leave debits its days and moving a
        leave out of Approved credits them back, in the same atomic write
        as the status change.
        """
        target = RequestStatus(target_status)

        for attempt in range(1, self._max_attempts + 1):
            request = await self._get_request_or_404(request_id)
            subject = await self._get_subject_or_404(request.subject_id)
            current = RequestStatus(request.status)

            if target == current:
                msg = f"Request is already {current}"
                raise NoOpError(msg)

            check_transition(Role(actor.role), Role(subject.role), current, target)
            posting = self._posting_for(actor, subject, request, current, target)

            change = StatusChange(new_status=target, reviewed_by=actor.id, reviewer_comment=comment)
            before = model_to_audit_dict(request)
            change.apply_to(request)
            audit = build_audit_log(
                actor_id=actor.id,
                entity_type=AuditEntityType.REQUEST,
                entity_id=request.id,
                action=AuditAction.TRANSITION,
                details=f"{actor.role} updated {request.kind} for {subject.email} to {target}",
                before_json=before,
                after_json=model_to_audit_dict(request),
            )

            if await self._repository.compare_and_swap_status(request.id, current, change, posting, audit):
                break
            logger.warning(
                "Request %s changed during %s -> %s (attempt %d/%d)",
                request.id,
                current,
                target,
                attempt,
                self._max_attempts,
            )
            await self._pause_before_retry(attempt)
        else:
            raise ConcurrentModificationError

        logger.info("Request %s moved %s -> %s by %s", request.id, current, target, actor.id)
        await self._notify(
            RequestStatusChanged(
                kind=RequestKind(request.kind),
                request_id=request.id,
                subject_id=request.subject_id,
                new_status=target,
            )
        )
        return request

    def _posting_for(
        self,
        actor: Subject,
        subject: Subject,
        request: ApprovalRequest,
        current: RequestStatus,
        target: RequestStatus,
    ) -> LedgerPosting | None:
        descriptor = descriptor_for(request.kind)
        if not descriptor.affects_balance:
            return None
        days = descriptor.charged_days(request)
        if target is RequestStatus.APPROVED:
            return self._ledger.debit(subject, days, request_id=request.id, actor_id=actor.id)
        if current is RequestStatus.APPROVED:
            return self._ledger.credit(subject, days, request_id=request.id, actor_id=actor.id)
        return None

    # -----------------------------------------------------------------------
    # Delete
    # -----------------------------------------------------------------------

    async def delete(self, actor: Subject, request_id: uuid.UUID) -> None:
        """Delete a request.

        Owners may delete their own Pending requests; Admins may delete any
        request. Deleting an Approved leave gives its days back.
        """
        is_admin = actor.role == Role.ADMIN

        for attempt in range(1, self._max_attempts + 1):
            request = await self._get_request_or_404(request_id)
            current = RequestStatus(request.status)

            if not is_admin and request.subject_id != actor.id:
                msg = "Not authorized to delete this request"
                raise UnauthorizedTransitionError(msg)
            if not is_admin and current is not RequestStatus.PENDING:
                msg = "Cannot delete a processed request"
                raise ValidationError(msg)

            posting = None
            if current is RequestStatus.APPROVED and descriptor_for(request.kind).affects_balance:
                subject = await self._get_subject_or_404(request.subject_id)
                days = descriptor_for(request.kind).charged_days(request)
                posting = self._ledger.credit(subject, days, request_id=request.id, actor_id=actor.id)

            audit = build_audit_log(
                actor_id=actor.id,
                entity_type=AuditEntityType.REQUEST,
                entity_id=request.id,
                action=AuditAction.DELETE,
                details=f"{actor.role} deleted {request.kind} request in status {current}",
                before_json=model_to_audit_dict(request),
            )
            if await self._repository.delete(request.id, current, posting, audit):
                break
            logger.warning("Request %s changed during delete (attempt %d/%d)", request.id, attempt, self._max_attempts)
            await self._pause_before_retry(attempt)
        else:
            raise ConcurrentModificationError

        logger.info("Request %s deleted by %s", request_id, actor.id)

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    async def _get_request_or_404(self, request_id: uuid.UUID) -> ApprovalRequest:
        request = await self._repository.find_by_id(request_id)
        if request is None:
            msg = "Request not found"
            raise NotFoundError(msg)
        return request

    async def _get_subject_or_404(self, subject_id: uuid.UUID) -> Subject:
        subject = await self._repository.get_subject(subject_id)
        if subject is None:
            msg = "Subject not found"
            raise NotFoundError(msg)
        return subject

    async def _pause_before_retry(self, attempt: int) -> None:
        """Sleep a random slice of the backoff window so racing writers spread out."""
        if attempt >= self._max_attempts or self._retry_backoff <= 0:
            return
        await asyncio.sleep(random.uniform(0, self._retry_backoff * attempt))

    async def _notify(self, event: LifecycleEvent) -> None:
        """Publish best effort; a failing publisher never undoes a committed change."""
        try:
            await self._publisher.publish(event)
        except Exception:
            logger.exception("Failed to publish %s for request %s", event.event, event.request_id)


def _describe_new_request(request: ApprovalRequest) -> str:
    descriptor = descriptor_for(request.kind)
    if descriptor.affects_balance:
        pattern = "RISKY PATTERN" if request.risk_flag else "NORMAL"
        return (
            f"Applied for {request.leave_type} from {request.from_date} to {request.to_date}"
            f" ({descriptor.charged_days(request)} days, {pattern})"
        )
    return f"Claimed {descriptor.charged_amount(request)} for expense on {request.expense_date}"
