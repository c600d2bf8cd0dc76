# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from leavedesk.api.deps import ActorDep, AdminDep, RepositoryDep
from leavedesk.exceptions import NotFoundError
from leavedesk.models.enums import Role
from leavedesk.models.subject import Subject
from leavedesk.schemas.subject import (
    AdjustmentPayload,
    CreateSubjectPayload,
    LedgerListResponse,
    SubjectListResponse,
    SubjectResponse,
)
from leavedesk.services import subject as subject_service

subjects_router = APIRouter(prefix="/subjects", tags=["subjects"])


def _ensure_visible(actor: Subject, subject_id: uuid.UUID) -> None:
    if actor.role == Role.EMPLOYEE and actor.id != subject_id:
        msg = "Subject not found"
        raise NotFoundError(msg)


@subjects_router.post("", response_model=SubjectResponse, status_code=status.HTTP_201_CREATED)
async def register_subject(
    payload: CreateSubjectPayload,
    actor: AdminDep,
    repository: RepositoryDep,
) -> SubjectResponse:
    """Register an employee, manager or admin (admin only)."""
    return await subject_service.register_subject(repository, payload, actor_id=actor.id)


@subjects_router.get("", response_model=SubjectListResponse)
async def list_subjects(
    _actor: AdminDep,
    repository: RepositoryDep,
) -> SubjectListResponse:
    """List all subjects (admin only)."""
    return await subject_service.list_subjects(repository)


@subjects_router.get("/{subject_id}", response_model=SubjectResponse)
async def get_subject(
    subject_id: uuid.UUID,
    actor: ActorDep,
    repository: RepositoryDep,
) -> SubjectResponse:
    """Get a subject and its current balance. Employees may only read themselves."""
    _ensure_visible(actor, subject_id)
    subject = await subject_service.get_subject_or_404(repository, subject_id)
    return subject_service.build_subject_response(subject)


@subjects_router.post("/{subject_id}/adjustments", response_model=SubjectResponse)
async def adjust_balance(
    subject_id: uuid.UUID,
    payload: AdjustmentPayload,
    actor: AdminDep,
    repository: RepositoryDep,
) -> SubjectResponse:
    """Correct a subject's leave balance through the ledger (admin only)."""
    return await subject_service.adjust_balance(repository, actor, subject_id, payload)


@subjects_router.get("/{subject_id}/ledger", response_model=LedgerListResponse)
async def get_ledger(
    subject_id: uuid.UUID,
    actor: ActorDep,
    repository: RepositoryDep,
) -> LedgerListResponse:
    """Get a subject's balance ledger."""
    _ensure_visible(actor, subject_id)
    return await subject_service.get_ledger(repository, subject_id)
