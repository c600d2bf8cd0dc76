# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from leavedesk.models.enums import LedgerEntryType, Role


class CreateSubjectPayload(BaseModel):
    """Request body for registering a subject."""

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    role: Role = Role.EMPLOYEE
    department: str | None = Field(default=None, max_length=255)
    leave_balance: int | None = Field(default=None, ge=0)


class AdjustmentPayload(BaseModel):
    """Request body for an administrative balance correction."""

    days: int
    note: str = Field(min_length=1, max_length=1000)


class SubjectResponse(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    role: Role
    department: str | None
    leave_balance: int
    created_at: datetime


class SubjectListResponse(BaseModel):
    items: list[SubjectResponse]
    total: int


class LedgerEntryResponse(BaseModel):
    """Response schema for a single ledger entry."""

    id: uuid.UUID
    request_id: uuid.UUID | None
    entry_type: LedgerEntryType
    days: int
    balance_after: int
    actor_id: uuid.UUID | None
    note: str | None
    created_at: datetime


class LedgerListResponse(BaseModel):
    """A subject's ledger in posting order, with the reconciled total."""

    items: list[LedgerEntryResponse]
    total: int
    balance: int
    consistent: bool
