from __future__ import annotations

import sqlalchemy as sa
from sqlmodel import Field

from leavedesk.models.base import TimestampMixin, UUIDBase
from leavedesk.models.enums import Role


class Subject(UUIDBase, TimestampMixin, table=True):
    """An employee, manager or admin who owns requests and a leave balance.

    ``leave_balance`` is written only through ledger postings. ``version``
    is bumped on every posting and every leave creation so that concurrent
    writers for the same subject serialize optimistically.
    """

    __tablename__ = "subject"
    __table_args__ = (sa.CheckConstraint("leave_balance >= 0", name="ck_subject_balance_non_negative"),)

    name: str = Field(max_length=255)
    email: str = Field(max_length=255, unique=True, index=True)
    role: str = Field(default=Role.EMPLOYEE, max_length=50)
    department: str | None = Field(default=None, max_length=255)
    leave_balance: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
