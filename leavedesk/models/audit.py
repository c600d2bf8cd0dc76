# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from leavedesk.models.base import UUIDBase, utc_timestamp_field
from leavedesk.models.enums import AuditEntityType


class AuditLog(UUIDBase, table=True):
    """Activity trail of request creates, transitions and deletes and of balance adjustments.

    Rows are written in the same transaction as the change they describe
    and are never updated. ``details`` is the human-readable line shown in
    an activity feed; the JSON snapshots are for forensics.
    """

    __tablename__ = "activity_log"
    __table_args__ = (sa.Index("ix_activity_entity", "entity_type", "entity_id", "created_at"),)

    entity_type: str = Field(default=AuditEntityType.REQUEST, max_length=20)
    entity_id: uuid.UUID
    action: str = Field(max_length=20)
    # Null for system actions such as seeding.
    actor_id: uuid.UUID | None = Field(default=None, index=True)
    details: str | None = Field(default=None, max_length=1000)
    before_json: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    after_json: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    created_at: datetime = utc_timestamp_field()
