"""Tests for the SQLAlchemy repository against SQLite.

These exercise the guarded writes the workflow relies on: status
compare-and-swap, version-guarded postings and the all-or-nothing
grouping of a status change with its ledger entry and audit row.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from leavedesk.exceptions import AppError, InsufficientBalanceError, StorageUnavailableError
from leavedesk.models.enums import AuditAction, AuditEntityType, LedgerEntryType, RequestKind, RequestStatus, Role
from leavedesk.models.request import ApprovalRequest
from leavedesk.models.subject import Subject
from leavedesk.schemas.request import LeavePayload, ReimbursementPayload
from leavedesk.services.audit import build_audit_log
from leavedesk.services.events import RecordingEventPublisher
from leavedesk.services.ledger import BalanceLedger, verify_balance
from leavedesk.services.repository import SqlRequestRepository, StatusChange
from leavedesk.services.state_machine import ApprovalStateMachine

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path


async def _register(
    repository: SqlRequestRepository,
    role: Role,
    name: str,
    balance: int = 20,
) -> Subject:
    subject = Subject(
        name=name,
        email=f"{name.lower().replace(' ', '.')}@example.com",
        role=role.value,
        leave_balance=balance,
    )
    await repository.insert_subject(subject, BalanceLedger().opening(subject).to_entry())
    return subject


def _pending_leave(subject: Subject) -> ApprovalRequest:
    return ApprovalRequest(
        subject_id=subject.id,
        kind=RequestKind.LEAVE.value,
        status=RequestStatus.PENDING.value,
        leave_type="Vacation",
        from_date=date(2024, 3, 4),
        to_date=date(2024, 3, 6),
        reason="Trip",
        day_count=3,
        risk_flag=False,
    )


# ---------------------------------------------------------------------------
# Subjects
# ---------------------------------------------------------------------------


async def test_insert_and_get_subject(sql_repository: SqlRequestRepository) -> None:
    subject = await _register(sql_repository, Role.EMPLOYEE, "Sam Sql")

    stored = await sql_repository.get_subject(subject.id)
    assert stored is not None
    assert stored.email == "sam.sql@example.com"
    assert stored.leave_balance == 20

    entries = await sql_repository.list_ledger_entries(subject.id)
    assert [e.entry_type for e in entries] == [LedgerEntryType.OPENING]
    assert verify_balance(stored, entries)


async def test_duplicate_email_rejected(sql_repository: SqlRequestRepository) -> None:
    await _register(sql_repository, Role.EMPLOYEE, "Dana Dup")
    with pytest.raises(AppError) as exc_info:
        await _register(sql_repository, Role.MANAGER, "Dana Dup")
    assert exc_info.value.status_code == 409


async def test_list_subjects(sql_repository: SqlRequestRepository) -> None:
    await _register(sql_repository, Role.EMPLOYEE, "First One")
    await _register(sql_repository, Role.ADMIN, "Second One")
    names = {s.name for s in await sql_repository.list_subjects()}
    assert names == {"First One", "Second One"}


# ---------------------------------------------------------------------------
# Guarded writes
# ---------------------------------------------------------------------------


async def test_insert_guarded_by_subject_version(sql_repository: SqlRequestRepository) -> None:
    subject = await _register(sql_repository, Role.EMPLOYEE, "Vera Version")

    first = _pending_leave(subject)
    assert await sql_repository.insert(first, subject_version=subject.version) == first.id

    # The stale snapshot no longer matches.
    second = _pending_leave(subject)
    assert await sql_repository.insert(second, subject_version=subject.version) is None
    assert await sql_repository.find_by_id(second.id) is None


async def test_compare_and_swap_status(sql_repository: SqlRequestRepository) -> None:
    subject = await _register(sql_repository, Role.EMPLOYEE, "Cas Case")
    reviewer = await _register(sql_repository, Role.MANAGER, "Rita Reviewer")
    request = _pending_leave(subject)
    await sql_repository.insert(request)

    change = StatusChange(new_status=RequestStatus.MANAGER_APPROVED, reviewed_by=reviewer.id, reviewer_comment="ok")
    assert await sql_repository.compare_and_swap_status(request.id, RequestStatus.PENDING, change) is True

    stored = await sql_repository.find_by_id(request.id)
    assert stored is not None
    assert stored.status == RequestStatus.MANAGER_APPROVED
    assert stored.reviewed_by == reviewer.id
    assert stored.reviewer_comment == "ok"
    assert stored.version == 2

    # Second writer still believes the request is Pending.
    late = StatusChange(new_status=RequestStatus.REJECTED, reviewed_by=reviewer.id)
    assert await sql_repository.compare_and_swap_status(request.id, RequestStatus.PENDING, late) is False
    stored = await sql_repository.find_by_id(request.id)
    assert stored is not None
    assert stored.status == RequestStatus.MANAGER_APPROVED


async def test_stale_posting_rolls_back_status_change(sql_repository: SqlRequestRepository) -> None:
    subject = await _register(sql_repository, Role.EMPLOYEE, "Rollo Back")
    admin = await _register(sql_repository, Role.ADMIN, "Ada Admin")
    request = _pending_leave(subject)
    request.status = RequestStatus.MANAGER_APPROVED.value
    await sql_repository.insert(request)

    ledger = BalanceLedger()
    snapshot = await sql_repository.get_subject(subject.id)
    assert snapshot is not None
    stale = ledger.debit(snapshot, 3, request_id=request.id)

    # Someone else moves the balance first.
    assert await sql_repository.apply_posting(ledger.adjust(snapshot, 1, note="bonus day")) is True

    change = StatusChange(new_status=RequestStatus.APPROVED, reviewed_by=admin.id)
    audit = build_audit_log(
        actor_id=admin.id,
        entity_type=AuditEntityType.REQUEST,
        entity_id=request.id,
        action=AuditAction.TRANSITION,
    )
    ok = await sql_repository.compare_and_swap_status(
        request.id, RequestStatus.MANAGER_APPROVED, change, posting=stale, audit=audit
    )
    assert ok is False

    stored = await sql_repository.find_by_id(request.id)
    assert stored is not None
    assert stored.status == RequestStatus.MANAGER_APPROVED
    refreshed = await sql_repository.get_subject(subject.id)
    assert refreshed is not None
    assert refreshed.leave_balance == 21
    assert await sql_repository.list_audit_logs(request.id) == []
    assert [e.entry_type for e in await sql_repository.list_ledger_entries(subject.id)] == [
        LedgerEntryType.OPENING,
        LedgerEntryType.ADJUSTMENT,
    ]


async def test_guarded_delete(sql_repository: SqlRequestRepository) -> None:
    subject = await _register(sql_repository, Role.EMPLOYEE, "Del Ete")
    request = _pending_leave(subject)
    await sql_repository.insert(request)

    assert await sql_repository.delete(request.id, RequestStatus.APPROVED) is False
    assert await sql_repository.delete(request.id, RequestStatus.PENDING) is True
    assert await sql_repository.find_by_id(request.id) is None


async def test_list_requests_filters(sql_repository: SqlRequestRepository) -> None:
    subject = await _register(sql_repository, Role.EMPLOYEE, "Fil Ter")
    other = await _register(sql_repository, Role.EMPLOYEE, "Oth Er")
    leave = _pending_leave(subject)
    claim = ApprovalRequest(
        subject_id=other.id,
        kind=RequestKind.REIMBURSEMENT.value,
        status=RequestStatus.APPROVED.value,
        amount=Decimal("12.30"),
        expense_date=date(2024, 3, 4),
        description="Parking",
    )
    await sql_repository.insert(leave)
    await sql_repository.insert(claim)

    assert [r.id for r in await sql_repository.list_requests(kind=RequestKind.LEAVE)] == [leave.id]
    assert [r.id for r in await sql_repository.list_requests(statuses=[RequestStatus.APPROVED])] == [claim.id]
    assert [r.id for r in await sql_repository.find_by_subject(other.id)] == [claim.id]
    assert len(await sql_repository.list_requests()) == 2


# ---------------------------------------------------------------------------
# Workflow end to end on SQL
# ---------------------------------------------------------------------------


async def test_full_leave_flow_on_sql(sql_repository: SqlRequestRepository) -> None:
    employee = await _register(sql_repository, Role.EMPLOYEE, "Flo Flow")
    manager = await _register(sql_repository, Role.MANAGER, "Meg Manager")
    admin = await _register(sql_repository, Role.ADMIN, "Abe Admin")
    machine = ApprovalStateMachine(sql_repository, RecordingEventPublisher(), max_attempts=3)

    request = await machine.create(
        employee.id,
        LeavePayload(leave_type="Sick", from_date=date(2024, 3, 4), to_date=date(2024, 3, 6), reason="Flu"),
    )
    await machine.transition(manager, request.id, RequestStatus.MANAGER_APPROVED)
    await machine.transition(admin, request.id, RequestStatus.APPROVED)

    stored = await sql_repository.get_subject(employee.id)
    assert stored is not None
    assert stored.leave_balance == 17

    await machine.transition(admin, request.id, RequestStatus.REJECTED, "Reversed")
    stored = await sql_repository.get_subject(employee.id)
    assert stored is not None
    assert stored.leave_balance == 20
    assert verify_balance(stored, await sql_repository.list_ledger_entries(employee.id))

    actions = [log.action for log in await sql_repository.list_audit_logs(request.id)]
    assert actions == [AuditAction.CREATE, AuditAction.TRANSITION, AuditAction.TRANSITION, AuditAction.TRANSITION]


async def test_approval_beyond_balance_on_sql(sql_repository: SqlRequestRepository) -> None:
    employee = await _register(sql_repository, Role.EMPLOYEE, "Low Days", balance=3)
    manager = await _register(sql_repository, Role.MANAGER, "Mo Manager")
    admin = await _register(sql_repository, Role.ADMIN, "Al Admin")
    machine = ApprovalStateMachine(sql_repository, RecordingEventPublisher(), max_attempts=3)

    first = await machine.create(
        employee.id,
        LeavePayload(leave_type="Vacation", from_date=date(2024, 3, 4), to_date=date(2024, 3, 6), reason="A"),
    )
    second = await machine.create(
        employee.id,
        LeavePayload(leave_type="Vacation", from_date=date(2024, 3, 11), to_date=date(2024, 3, 12), reason="B"),
    )
    for request in (first, second):
        await machine.transition(manager, request.id, RequestStatus.MANAGER_APPROVED)
    await machine.transition(admin, first.id, RequestStatus.APPROVED)

    with pytest.raises(InsufficientBalanceError):
        await machine.transition(admin, second.id, RequestStatus.APPROVED)

    stored = await sql_repository.find_by_id(second.id)
    assert stored is not None
    assert stored.status == RequestStatus.MANAGER_APPROVED


async def test_reimbursement_amount_survives_storage(sql_repository: SqlRequestRepository) -> None:
    employee = await _register(sql_repository, Role.EMPLOYEE, "Ria Receipt")
    machine = ApprovalStateMachine(sql_repository, RecordingEventPublisher(), max_attempts=3)

    request = await machine.create(
        employee.id,
        ReimbursementPayload(amount=Decimal("120.45"), expense_date=date(2024, 3, 4), description="Train"),
    )
    stored = await sql_repository.find_by_id(request.id)
    assert stored is not None
    assert stored.amount == Decimal("120.45")
    assert stored.kind == RequestKind.REIMBURSEMENT


# ---------------------------------------------------------------------------
# Storage outages
# ---------------------------------------------------------------------------


@pytest.fixture
async def unreachable_repository(tmp_path: Path) -> AsyncIterator[SqlRequestRepository]:
    """A repository whose database file sits in a directory that does not exist."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'leave_desk.db'}")
    yield SqlRequestRepository(async_sessionmaker(engine, expire_on_commit=False))
    await engine.dispose()


async def test_unreachable_store_fails_reads_as_retryable(unreachable_repository: SqlRequestRepository) -> None:
    with pytest.raises(StorageUnavailableError) as exc_info:
        await unreachable_repository.find_by_id(uuid.uuid4())

    assert exc_info.value.retryable is True
    assert exc_info.value.status_code == 503


async def test_unreachable_store_fails_status_writes_as_retryable(
    unreachable_repository: SqlRequestRepository,
) -> None:
    change = StatusChange(new_status=RequestStatus.MANAGER_APPROVED, reviewed_by=uuid.uuid4())

    with pytest.raises(StorageUnavailableError) as exc_info:
        await unreachable_repository.compare_and_swap_status(uuid.uuid4(), RequestStatus.PENDING, change)

    assert exc_info.value.retryable is True
