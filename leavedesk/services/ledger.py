"""Balance ledger: the only producer of leave balance changes.

Every change is expressed as a :class:`LedgerPosting` computed against a
subject snapshot. The repository applies a posting in the same transaction
as the status write it belongs to, conditioned on the subject ``version``
still matching the snapshot, so concurrent postings for one subject are
serialized without any global lock.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from leavedesk.exceptions import InsufficientBalanceError, ValidationError
from leavedesk.models.enums import LedgerEntryType
from leavedesk.models.ledger import LedgerEntry

if TYPE_CHECKING:
    from collections.abc import Iterable

    from leavedesk.models.subject import Subject

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerPosting:
    """A balance change waiting to be applied atomically with a status write."""

    subject_id: uuid.UUID
    entry_type: LedgerEntryType
    days: int
    expected_version: int
    balance_after: int
    request_id: uuid.UUID | None = None
    actor_id: uuid.UUID | None = None
    note: str | None = None

    def to_entry(self) -> LedgerEntry:
        """Build the append-only ledger row for this posting."""
        return LedgerEntry(
            subject_id=self.subject_id,
            request_id=self.request_id,
            entry_type=self.entry_type.value,
            days=self.days,
            balance_after=self.balance_after,
            actor_id=self.actor_id,
            note=self.note,
        )


class BalanceLedger:
    """Computes debit, credit and adjustment postings for a subject."""

    def debit(
        self,
        subject: Subject,
        days: int,
        request_id: uuid.UUID | None = None,
        actor_id: uuid.UUID | None = None,
    ) -> LedgerPosting:
        """Take ``days`` off the balance. Fails if the balance cannot cover it."""
        _require_positive(days)
        if subject.leave_balance < days:
            msg = f"Insufficient leave balance: {subject.leave_balance} days left, {days} requested"
            raise InsufficientBalanceError(msg)
        return self._posting(subject, LedgerEntryType.DEBIT, -days, request_id, actor_id)

    def credit(
        self,
        subject: Subject,
        days: int,
        request_id: uuid.UUID | None = None,
        actor_id: uuid.UUID | None = None,
    ) -> LedgerPosting:
        """Give ``days`` back, reversing a prior debit. Always succeeds."""
        _require_positive(days)
        return self._posting(subject, LedgerEntryType.CREDIT, days, request_id, actor_id)

    def adjust(
        self,
        subject: Subject,
        days: int,
        actor_id: uuid.UUID | None = None,
        note: str | None = None,
    ) -> LedgerPosting:
        """Administrative correction by a signed number of days."""
        if days == 0:
            msg = "Adjustment must change the balance"
            raise ValidationError(msg)
        if subject.leave_balance + days < 0:
            msg = f"Adjustment would leave a negative balance ({subject.leave_balance} + {days})"
            raise InsufficientBalanceError(msg)
        return self._posting(subject, LedgerEntryType.ADJUSTMENT, days, None, actor_id, note)

    def opening(self, subject: Subject, actor_id: uuid.UUID | None = None) -> LedgerPosting:
        """Record the starting balance of a newly registered subject."""
        return LedgerPosting(
            subject_id=subject.id,
            entry_type=LedgerEntryType.OPENING,
            days=subject.leave_balance,
            expected_version=subject.version,
            balance_after=subject.leave_balance,
            actor_id=actor_id,
        )

    @staticmethod
    def _posting(
        subject: Subject,
        entry_type: LedgerEntryType,
        signed_days: int,
        request_id: uuid.UUID | None,
        actor_id: uuid.UUID | None,
        note: str | None = None,
    ) -> LedgerPosting:
        posting = LedgerPosting(
            subject_id=subject.id,
            entry_type=entry_type,
            days=signed_days,
            expected_version=subject.version,
            balance_after=subject.leave_balance + signed_days,
            request_id=request_id,
            actor_id=actor_id,
            note=note,
        )
        logger.debug(
            "Prepared %s of %d days for subject %s (balance %d -> %d)",
            entry_type.value,
            signed_days,
            subject.id,
            subject.leave_balance,
            posting.balance_after,
        )
        return posting


def ledger_total(entries: Iterable[LedgerEntry]) -> int:
    """Sum the signed day amounts of ledger entries."""
    return sum(entry.days for entry in entries)


def verify_balance(subject: Subject, entries: Iterable[LedgerEntry]) -> bool:
    """Check that a subject's balance matches its ledger."""
    return subject.leave_balance == ledger_total(entries)


def _require_positive(days: int) -> None:
    if days <= 0:
        msg = f"Day count must be positive, got {days}"
        raise ValidationError(msg)
