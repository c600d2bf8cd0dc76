from __future__ import annotations

import enum


class Role(enum.StrEnum):
    """Role a subject holds in the approval hierarchy."""

    EMPLOYEE = "Employee"
    MANAGER = "Manager"
    ADMIN = "Admin"


class RequestKind(enum.StrEnum):
    """The two kinds of request sharing one approval workflow."""

    LEAVE = "Leave"
    REIMBURSEMENT = "Reimbursement"


class RequestStatus(enum.StrEnum):
    """State machine for leave and reimbursement requests."""

    PENDING = "Pending"
    MANAGER_APPROVED = "ManagerApproved"
    APPROVED = "Approved"
    REJECTED = "Rejected"


# Statuses that block an overlapping leave request. Rejected never blocks.
BLOCKING_STATUSES = frozenset(
    {RequestStatus.PENDING, RequestStatus.MANAGER_APPROVED, RequestStatus.APPROVED},
)


class LedgerEntryType(enum.StrEnum):
    """Type of ledger entry affecting a leave balance."""

    OPENING = "OPENING"
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"
    ADJUSTMENT = "ADJUSTMENT"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    REQUEST = "REQUEST"
    SUBJECT = "SUBJECT"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    TRANSITION = "TRANSITION"
    DELETE = "DELETE"
    ADJUST = "ADJUST"
