"""Subject registration and administrative balance adjustments."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from leavedesk.config import get_settings
from leavedesk.exceptions import ConcurrentModificationError, NotFoundError
from leavedesk.models.enums import AuditAction, AuditEntityType, LedgerEntryType, Role
from leavedesk.models.subject import Subject
from leavedesk.schemas.subject import (
    LedgerEntryResponse,
    LedgerListResponse,
    SubjectListResponse,
    SubjectResponse,
)
from leavedesk.services.audit import build_audit_log, model_to_audit_dict
from leavedesk.services.ledger import BalanceLedger, ledger_total

if TYPE_CHECKING:
    import uuid

    from leavedesk.models.ledger import LedgerEntry
    from leavedesk.schemas.subject import AdjustmentPayload, CreateSubjectPayload
    from leavedesk.services.repository import RequestRepository

logger = logging.getLogger(__name__)


def build_subject_response(subject: Subject) -> SubjectResponse:
    """Map a subject model to its response schema."""
    return SubjectResponse(
        id=subject.id,
        name=subject.name,
        email=subject.email,
        role=Role(subject.role),
        department=subject.department,
        leave_balance=subject.leave_balance,
        created_at=subject.created_at,
    )


def _build_ledger_entry_response(entry: LedgerEntry) -> LedgerEntryResponse:
    return LedgerEntryResponse(
        id=entry.id,
        request_id=entry.request_id,
        entry_type=LedgerEntryType(entry.entry_type),
        days=entry.days,
        balance_after=entry.balance_after,
        actor_id=entry.actor_id,
        note=entry.note,
        created_at=entry.created_at,
    )


async def get_subject_or_404(repository: RequestRepository, subject_id: uuid.UUID) -> Subject:
    subject = await repository.get_subject(subject_id)
    if subject is None:
        msg = "Subject not found"
        raise NotFoundError(msg)
    return subject


async def register_subject(
    repository: RequestRepository,
    payload: CreateSubjectPayload,
    actor_id: uuid.UUID | None = None,
) -> SubjectResponse:
    """Register a subject with an opening balance and its OPENING ledger entry."""
    opening_balance = payload.leave_balance
    if opening_balance is None:
        opening_balance = get_settings().default_leave_balance

    subject = Subject(
        name=payload.name,
        email=payload.email,
        role=payload.role.value,
        department=payload.department,
        leave_balance=opening_balance,
    )
    opening = BalanceLedger().opening(subject, actor_id=actor_id).to_entry()
    await repository.insert_subject(subject, opening)
    logger.info("Registered %s %s with %d days", subject.role, subject.email, subject.leave_balance)
    return build_subject_response(subject)


async def list_subjects(repository: RequestRepository) -> SubjectListResponse:
    subjects = await repository.list_subjects()
    return SubjectListResponse(items=[build_subject_response(s) for s in subjects], total=len(subjects))


async def adjust_balance(
    repository: RequestRepository,
    actor: Subject,
    subject_id: uuid.UUID,
    payload: AdjustmentPayload,
    max_attempts: int | None = None,
) -> SubjectResponse:
    """Apply an administrative correction to a subject's balance through the ledger."""
    attempts = max_attempts if max_attempts is not None else get_settings().transition_max_attempts
    ledger = BalanceLedger()

    for _ in range(attempts):
        subject = await get_subject_or_404(repository, subject_id)
        before = model_to_audit_dict(subject)
        posting = ledger.adjust(subject, payload.days, actor_id=actor.id, note=payload.note)
        subject.leave_balance = posting.balance_after
        audit = build_audit_log(
            actor_id=actor.id,
            entity_type=AuditEntityType.SUBJECT,
            entity_id=subject.id,
            action=AuditAction.ADJUST,
            details=payload.note,
            before_json=before,
            after_json=model_to_audit_dict(subject),
        )
        if await repository.apply_posting(posting, audit):
            break
    else:
        raise ConcurrentModificationError

    logger.info("Adjusted balance of %s by %d days", subject.id, payload.days)
    return build_subject_response(subject)


async def get_ledger(repository: RequestRepository, subject_id: uuid.UUID) -> LedgerListResponse:
    """Return a subject's ledger and whether its balance reconciles with it."""
    subject = await get_subject_or_404(repository, subject_id)
    entries = await repository.list_ledger_entries(subject_id)
    return LedgerListResponse(
        items=[_build_ledger_entry_response(e) for e in entries],
        total=len(entries),
        balance=subject.leave_balance,
        consistent=subject.leave_balance == ledger_total(entries),
    )
