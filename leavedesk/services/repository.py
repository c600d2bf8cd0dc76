# ruff: noqa: TC003
"""Durable storage of subjects, requests and ledger entries.

Writes that belong together (a status change, its ledger posting and its
audit row) go through one call so that the implementation can apply them in
a single transaction. Status writes are compare-and-swap on the previously
read status; postings are guarded by the subject ``version``.
"""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlmodel import col

from leavedesk.exceptions import AppError, StorageUnavailableError
from leavedesk.models.audit import AuditLog
from leavedesk.models.base import now_utc
from leavedesk.models.enums import LedgerEntryType, RequestKind, RequestStatus
from leavedesk.models.ledger import LedgerEntry
from leavedesk.models.request import ApprovalRequest
from leavedesk.models.subject import Subject

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Collection

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from leavedesk.services.ledger import LedgerPosting


@dataclass(frozen=True)
class StatusChange:
    """Fields written together with a new request status."""

    new_status: RequestStatus
    reviewed_by: uuid.UUID
    reviewer_comment: str | None = None
    updated_at: datetime = field(default_factory=now_utc)

    def apply_to(self, request: ApprovalRequest) -> None:
        request.status = self.new_status.value
        request.reviewed_by = self.reviewed_by
        if self.reviewer_comment is not None:
            request.reviewer_comment = self.reviewer_comment
        request.updated_at = self.updated_at
        request.version += 1


_ModelT = TypeVar("_ModelT", ApprovalRequest, Subject, LedgerEntry, AuditLog)


class _StaleWriteError(Exception):
    """Internal signal that a guarded write lost its race."""


@runtime_checkable
class RequestRepository(Protocol):
    """Storage contract the approval workflow depends on."""

    async def insert(
        self,
        request: ApprovalRequest,
        subject_version: int | None = None,
        audit: AuditLog | None = None,
    ) -> uuid.UUID | None:
        """Store a new request. Returns None if ``subject_version`` no longer matches."""
        ...

    async def find_by_id(self, request_id: uuid.UUID) -> ApprovalRequest | None: ...

    async def find_by_subject(
        self,
        subject_id: uuid.UUID,
        statuses: Collection[RequestStatus] | None = None,
        kind: RequestKind | None = None,
    ) -> list[ApprovalRequest]: ...

    async def list_requests(
        self,
        kind: RequestKind | None = None,
        statuses: Collection[RequestStatus] | None = None,
        subject_id: uuid.UUID | None = None,
    ) -> list[ApprovalRequest]:
        """List requests newest first."""
        ...

    async def compare_and_swap_status(
        self,
        request_id: uuid.UUID,
        expected_status: RequestStatus,
        change: StatusChange,
        posting: LedgerPosting | None = None,
        audit: AuditLog | None = None,
    ) -> bool:
        """Write ``change`` only if the stored status is still ``expected_status``."""
        ...

    async def delete(
        self,
        request_id: uuid.UUID,
        expected_status: RequestStatus,
        posting: LedgerPosting | None = None,
        audit: AuditLog | None = None,
    ) -> bool: ...

    async def insert_subject(self, subject: Subject, opening: LedgerEntry | None = None) -> Subject: ...

    async def get_subject(self, subject_id: uuid.UUID) -> Subject | None: ...

    async def list_subjects(self) -> list[Subject]: ...

    async def apply_posting(self, posting: LedgerPosting, audit: AuditLog | None = None) -> bool:
        """Apply a standalone posting. Returns False if the subject changed meanwhile."""
        ...

    async def list_ledger_entries(self, subject_id: uuid.UUID) -> list[LedgerEntry]: ...

    async def list_audit_logs(self, entity_id: uuid.UUID | None = None) -> list[AuditLog]: ...


# ---------------------------------------------------------------------------
# SQLAlchemy implementation
# ---------------------------------------------------------------------------


class SqlRequestRepository:
    """Repository backed by an async SQLAlchemy session factory.

    Each call runs in its own session so that concurrent callers get their
    own connections and the database arbitrates the guarded writes.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except (OperationalError, InterfaceError, PoolTimeoutError, TimeoutError) as exc:
            raise StorageUnavailableError from exc

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        async with self._session() as session, session.begin():
            yield session

    async def insert(
        self,
        request: ApprovalRequest,
        subject_version: int | None = None,
        audit: AuditLog | None = None,
    ) -> uuid.UUID | None:
        try:
            async with self._transaction() as session:
                if subject_version is not None:
                    result = await session.execute(
                        update(Subject)
                        .where(col(Subject.id) == request.subject_id, col(Subject.version) == subject_version)
                        .values(version=col(Subject.version) + 1)
                    )
                    if result.rowcount != 1:  # type: ignore[attr-defined]
                        raise _StaleWriteError
                session.add(request)
                if audit is not None:
                    session.add(audit)
        except _StaleWriteError:
            return None
        return request.id

    async def find_by_id(self, request_id: uuid.UUID) -> ApprovalRequest | None:
        async with self._session() as session:
            return await session.get(ApprovalRequest, request_id)

    async def find_by_subject(
        self,
        subject_id: uuid.UUID,
        statuses: Collection[RequestStatus] | None = None,
        kind: RequestKind | None = None,
    ) -> list[ApprovalRequest]:
        return await self.list_requests(kind=kind, statuses=statuses, subject_id=subject_id)

    async def list_requests(
        self,
        kind: RequestKind | None = None,
        statuses: Collection[RequestStatus] | None = None,
        subject_id: uuid.UUID | None = None,
    ) -> list[ApprovalRequest]:
        filters: list[Any] = []
        if kind is not None:
            filters.append(col(ApprovalRequest.kind) == kind.value)
        if statuses is not None:
            filters.append(col(ApprovalRequest.status).in_([s.value for s in statuses]))
        if subject_id is not None:
            filters.append(col(ApprovalRequest.subject_id) == subject_id)

        async with self._session() as session:
            result = await session.execute(
                select(ApprovalRequest).where(*filters).order_by(col(ApprovalRequest.created_at).desc())
            )
            return list(result.scalars().all())

    async def compare_and_swap_status(
        self,
        request_id: uuid.UUID,
        expected_status: RequestStatus,
        change: StatusChange,
        posting: LedgerPosting | None = None,
        audit: AuditLog | None = None,
    ) -> bool:
        values: dict[str, Any] = {
            "status": change.new_status.value,
            "reviewed_by": change.reviewed_by,
            "updated_at": change.updated_at,
            "version": col(ApprovalRequest.version) + 1,
        }
        if change.reviewer_comment is not None:
            values["reviewer_comment"] = change.reviewer_comment

        try:
            async with self._transaction() as session:
                result = await session.execute(
                    update(ApprovalRequest)
                    .where(
                        col(ApprovalRequest.id) == request_id,
                        col(ApprovalRequest.status) == expected_status.value,
                    )
                    .values(**values)
                )
                if result.rowcount != 1:  # type: ignore[attr-defined]
                    raise _StaleWriteError
                if posting is not None:
                    await self._apply_posting(session, posting)
                if audit is not None:
                    session.add(audit)
        except _StaleWriteError:
            return False
        return True

    async def delete(
        self,
        request_id: uuid.UUID,
        expected_status: RequestStatus,
        posting: LedgerPosting | None = None,
        audit: AuditLog | None = None,
    ) -> bool:
        try:
            async with self._transaction() as session:
                result = await session.execute(
                    delete(ApprovalRequest).where(
                        col(ApprovalRequest.id) == request_id,
                        col(ApprovalRequest.status) == expected_status.value,
                    )
                )
                if result.rowcount != 1:  # type: ignore[attr-defined]
                    raise _StaleWriteError
                if posting is not None:
                    await self._apply_posting(session, posting)
                if audit is not None:
                    session.add(audit)
        except _StaleWriteError:
            return False
        return True

    async def insert_subject(self, subject: Subject, opening: LedgerEntry | None = None) -> Subject:
        try:
            async with self._transaction() as session:
                session.add(subject)
                await session.flush()
                if opening is not None:
                    session.add(opening)
        except IntegrityError:
            raise AppError("Subject already exists", status_code=409) from None
        return subject

    async def get_subject(self, subject_id: uuid.UUID) -> Subject | None:
        async with self._session() as session:
            return await session.get(Subject, subject_id)

    async def list_subjects(self) -> list[Subject]:
        async with self._session() as session:
            result = await session.execute(select(Subject).order_by(col(Subject.created_at)))
            return list(result.scalars().all())

    async def apply_posting(self, posting: LedgerPosting, audit: AuditLog | None = None) -> bool:
        try:
            async with self._transaction() as session:
                await self._apply_posting(session, posting)
                if audit is not None:
                    session.add(audit)
        except _StaleWriteError:
            return False
        return True

    async def list_ledger_entries(self, subject_id: uuid.UUID) -> list[LedgerEntry]:
        async with self._session() as session:
            result = await session.execute(
                select(LedgerEntry)
                .where(col(LedgerEntry.subject_id) == subject_id)
                .order_by(col(LedgerEntry.created_at))
            )
            return list(result.scalars().all())

    async def list_audit_logs(self, entity_id: uuid.UUID | None = None) -> list[AuditLog]:
        query = select(AuditLog).order_by(col(AuditLog.created_at))
        if entity_id is not None:
            query = query.where(col(AuditLog.entity_id) == entity_id)
        async with self._session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    @staticmethod
    async def _apply_posting(session: AsyncSession, posting: LedgerPosting) -> None:
        """Move the subject balance, conditioned on its version, and append the entry."""
        stmt = update(Subject).where(
            col(Subject.id) == posting.subject_id,
            col(Subject.version) == posting.expected_version,
        )
        if posting.days < 0:
            stmt = stmt.where(col(Subject.leave_balance) >= -posting.days)
        result = await session.execute(
            stmt.values(leave_balance=posting.balance_after, version=col(Subject.version) + 1)
        )
        if result.rowcount != 1:  # type: ignore[attr-defined]
            raise _StaleWriteError
        session.add(posting.to_entry())


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


def _clone(model: _ModelT) -> _ModelT:
    return type(model).model_validate(model.model_dump())


class InMemoryRequestRepository:
    """In-memory implementation for development and tests.

    Guarded writes check and apply without awaiting, so they are atomic
    with respect to other tasks on the event loop. Reads yield to the loop
    first, which lets concurrent callers interleave between read and write.
    """

    def __init__(self) -> None:
        self._requests: dict[uuid.UUID, ApprovalRequest] = {}
        self._subjects: dict[uuid.UUID, Subject] = {}
        self._ledger: list[LedgerEntry] = []
        self._audit: list[AuditLog] = []

    def seed(self, subject: Subject) -> None:
        """Seed a subject for testing, with its opening ledger entry."""
        self._subjects[subject.id] = _clone(subject)
        self._ledger.append(
            LedgerEntry(
                subject_id=subject.id,
                entry_type=LedgerEntryType.OPENING.value,
                days=subject.leave_balance,
                balance_after=subject.leave_balance,
            )
        )

    async def insert(
        self,
        request: ApprovalRequest,
        subject_version: int | None = None,
        audit: AuditLog | None = None,
    ) -> uuid.UUID | None:
        if subject_version is not None:
            subject = self._subjects.get(request.subject_id)
            if subject is None or subject.version != subject_version:
                return None
            subject.version += 1
        self._requests[request.id] = _clone(request)
        self._record(audit)
        return request.id

    async def find_by_id(self, request_id: uuid.UUID) -> ApprovalRequest | None:
        await asyncio.sleep(0)
        stored = self._requests.get(request_id)
        return _clone(stored) if stored is not None else None

    async def find_by_subject(
        self,
        subject_id: uuid.UUID,
        statuses: Collection[RequestStatus] | None = None,
        kind: RequestKind | None = None,
    ) -> list[ApprovalRequest]:
        return await self.list_requests(kind=kind, statuses=statuses, subject_id=subject_id)

    async def list_requests(
        self,
        kind: RequestKind | None = None,
        statuses: Collection[RequestStatus] | None = None,
        subject_id: uuid.UUID | None = None,
    ) -> list[ApprovalRequest]:
        await asyncio.sleep(0)
        wanted = {s.value for s in statuses} if statuses is not None else None
        matches = [
            _clone(r)
            for r in self._requests.values()
            if (kind is None or r.kind == kind.value)
            and (wanted is None or r.status in wanted)
            and (subject_id is None or r.subject_id == subject_id)
        ]
        return sorted(matches, key=lambda r: r.created_at, reverse=True)

    async def compare_and_swap_status(
        self,
        request_id: uuid.UUID,
        expected_status: RequestStatus,
        change: StatusChange,
        posting: LedgerPosting | None = None,
        audit: AuditLog | None = None,
    ) -> bool:
        stored = self._requests.get(request_id)
        if stored is None or stored.status != expected_status.value:
            return False
        if posting is not None and not self._posting_applies(posting):
            return False
        change.apply_to(stored)
        if posting is not None:
            self._apply_posting(posting)
        self._record(audit)
        return True

    async def delete(
        self,
        request_id: uuid.UUID,
        expected_status: RequestStatus,
        posting: LedgerPosting | None = None,
        audit: AuditLog | None = None,
    ) -> bool:
        stored = self._requests.get(request_id)
        if stored is None or stored.status != expected_status.value:
            return False
        if posting is not None and not self._posting_applies(posting):
            return False
        del self._requests[request_id]
        if posting is not None:
            self._apply_posting(posting)
        self._record(audit)
        return True

    async def insert_subject(self, subject: Subject, opening: LedgerEntry | None = None) -> Subject:
        if any(s.email == subject.email for s in self._subjects.values()):
            raise AppError("Subject already exists", status_code=409)
        self._subjects[subject.id] = _clone(subject)
        if opening is not None:
            self._ledger.append(_clone(opening))
        return subject

    async def get_subject(self, subject_id: uuid.UUID) -> Subject | None:
        await asyncio.sleep(0)
        stored = self._subjects.get(subject_id)
        return _clone(stored) if stored is not None else None

    async def list_subjects(self) -> list[Subject]:
        return sorted((_clone(s) for s in self._subjects.values()), key=lambda s: s.created_at)

    async def apply_posting(self, posting: LedgerPosting, audit: AuditLog | None = None) -> bool:
        if not self._posting_applies(posting):
            return False
        self._apply_posting(posting)
        self._record(audit)
        return True

    async def list_ledger_entries(self, subject_id: uuid.UUID) -> list[LedgerEntry]:
        return [_clone(e) for e in self._ledger if e.subject_id == subject_id]

    async def list_audit_logs(self, entity_id: uuid.UUID | None = None) -> list[AuditLog]:
        return [_clone(a) for a in self._audit if entity_id is None or a.entity_id == entity_id]

    def _posting_applies(self, posting: LedgerPosting) -> bool:
        subject = self._subjects.get(posting.subject_id)
        if subject is None or subject.version != posting.expected_version:
            return False
        return subject.leave_balance + posting.days >= 0

    def _apply_posting(self, posting: LedgerPosting) -> None:
        subject = self._subjects[posting.subject_id]
        subject.leave_balance = posting.balance_after
        subject.version += 1
        self._ledger.append(posting.to_entry())

    def _record(self, audit: AuditLog | None) -> None:
        if audit is not None:
            self._audit.append(_clone(audit))


_repository: RequestRepository | None = None


def get_repository() -> RequestRepository:
    """FastAPI dependency for the request repository."""
    global _repository
    if _repository is None:
        from leavedesk.db import get_session_factory

        _repository = SqlRequestRepository(get_session_factory())
    return _repository


def set_repository(repository: RequestRepository | None) -> None:
    """Override the repository (for testing or production wiring)."""
    global _repository
    _repository = repository
