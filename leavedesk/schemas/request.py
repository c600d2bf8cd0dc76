# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Self

from pydantic import BaseModel, Field, model_validator

from leavedesk.models.enums import RequestKind, RequestStatus

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class LeavePayload(BaseModel):
    """Request body for applying for leave."""

    leave_type: str = Field(min_length=1, max_length=100)
    from_date: date
    to_date: date
    reason: str = Field(min_length=1)
    attachment_ref: str | None = Field(default=None, max_length=1024)

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.from_date > self.to_date:
            msg = "to_date must be on or after from_date"
            raise ValueError(msg)
        return self


class ReimbursementPayload(BaseModel):
    """Request body for claiming an expense."""

    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    expense_date: date
    description: str = Field(min_length=1)
    attachment_ref: str | None = Field(default=None, max_length=1024)


class TransitionPayload(BaseModel):
    """Request body for moving a request to a new status."""

    status: RequestStatus
    comment: str | None = Field(default=None, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class RequestResponse(BaseModel):
    """Response schema for a single leave or reimbursement request."""

    id: uuid.UUID
    subject_id: uuid.UUID
    kind: RequestKind
    status: RequestStatus
    leave_type: str | None = None
    from_date: date | None = None
    to_date: date | None = None
    reason: str | None = None
    day_count: int | None = None
    risk_flag: bool | None = None
    amount: Decimal | None = None
    expense_date: date | None = None
    description: str | None = None
    attachment_ref: str | None = None
    reviewer_comment: str | None = None
    reviewed_by: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime


class RequestListResponse(BaseModel):
    """List of requests, newest first."""

    items: list[RequestResponse]
    total: int
