# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from leavedesk.models.base import UUIDBase, utc_timestamp_field


class LedgerEntry(UUIDBase, table=True):
    """Append-only record of every change to a subject's leave balance.

    The subject's ``leave_balance`` always equals the sum of ``days`` over
    its entries; ``balance_after`` is the running total at write time.
    """

    __tablename__ = "balance_ledger_entry"
    __table_args__ = (sa.Index("ix_ledger_subject_created", "subject_id", "created_at"),)

    subject_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("subject.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    request_id: uuid.UUID | None = Field(default=None, index=True)
    entry_type: str = Field(max_length=50)
    days: int
    balance_after: int
    actor_id: uuid.UUID | None = None
    note: str | None = None
    created_at: datetime = utc_timestamp_field()
