# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leavedesk.models.base import TimestampMixin, UUIDBase, utc_timestamp_field
from leavedesk.models.enums import RequestStatus


class ApprovalRequest(UUIDBase, TimestampMixin, table=True):
    """A leave or reimbursement request moving through the approval workflow.

    Leave rows fill the ``leave_type``/``from_date``/``to_date``/``reason``
    columns, reimbursement rows fill ``amount``/``expense_date``/``description``.
    """

    __tablename__ = "approval_request"
    __table_args__ = (
        sa.Index("ix_request_subject_kind_status", "subject_id", "kind", "status"),
        sa.CheckConstraint("from_date IS NULL OR from_date <= to_date", name="ck_request_date_order"),
        sa.CheckConstraint("amount IS NULL OR amount > 0", name="ck_request_amount_positive"),
    )

    subject_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("subject.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    kind: str = Field(max_length=50)
    status: str = Field(
        default=RequestStatus.PENDING, max_length=50, index=True, sa_column_kwargs={"server_default": "Pending"}
    )

    # Leave payload.
    leave_type: str | None = Field(default=None, max_length=100)
    from_date: date | None = None
    to_date: date | None = None
    reason: str | None = None
    day_count: int | None = None
    risk_flag: bool | None = None

    # Reimbursement payload.
    amount: Decimal | None = Field(default=None, sa_type=sa.Numeric(12, 2))  # ty: ignore[invalid-argument-type]
    expense_date: date | None = None
    description: str | None = None

    attachment_ref: str | None = Field(default=None, max_length=1024)
    reviewer_comment: str | None = None
    reviewed_by: uuid.UUID | None = None
    updated_at: datetime = utc_timestamp_field()
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
