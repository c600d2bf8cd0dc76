from sqlmodel import SQLModel

from leavedesk.models.audit import AuditLog
from leavedesk.models.base import TimestampMixin, UUIDBase
from leavedesk.models.enums import (
    BLOCKING_STATUSES,
    AuditAction,
    AuditEntityType,
    LedgerEntryType,
    RequestKind,
    RequestStatus,
    Role,
)
from leavedesk.models.ledger import LedgerEntry
from leavedesk.models.request import ApprovalRequest
from leavedesk.models.subject import Subject

__all__ = [
    "BLOCKING_STATUSES",
    "ApprovalRequest",
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "LedgerEntry",
    "LedgerEntryType",
    "RequestKind",
    "RequestStatus",
    "Role",
    "SQLModel",
    "Subject",
    "TimestampMixin",
    "UUIDBase",
]
