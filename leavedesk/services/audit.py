"""Audit trail rows for request and subject mutations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from leavedesk.models.audit import AuditLog

if TYPE_CHECKING:
    import uuid

    from sqlmodel import SQLModel

    from leavedesk.models.enums import AuditAction, AuditEntityType


def model_to_audit_dict(model: SQLModel) -> dict[str, Any]:
    """Snapshot a model as JSON-safe data (UUIDs, dates and decimals become strings)."""
    return model.model_dump(mode="json")


def build_audit_log(
    *,
    actor_id: uuid.UUID | None,
    entity_type: AuditEntityType,
    entity_id: uuid.UUID,
    action: AuditAction,
    details: str | None = None,
    before_json: dict[str, Any] | None = None,
    after_json: dict[str, Any] | None = None,
) -> AuditLog:
    """Build an audit row; the repository writes it in the same transaction as the change."""
    return AuditLog(
        actor_id=actor_id,
        entity_type=entity_type.value,
        entity_id=entity_id,
        action=action.value,
        details=details,
        before_json=before_json,
        after_json=after_json,
    )
