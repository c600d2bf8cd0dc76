"""Per-kind accounting for the shared approval workflow.

Both request kinds run through the same state machine; a descriptor says
how many leave days a request charges against the balance and what money
amount it carries.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from leavedesk.models.enums import RequestKind

if TYPE_CHECKING:
    from collections.abc import Callable

    from leavedesk.models.request import ApprovalRequest


@dataclass(frozen=True)
class KindDescriptor:
    kind: RequestKind
    charged_days: Callable[[ApprovalRequest], int]
    charged_amount: Callable[[ApprovalRequest], Decimal]

    @property
    def affects_balance(self) -> bool:
        return self.kind is RequestKind.LEAVE


def _leave_days(request: ApprovalRequest) -> int:
    return request.day_count or 0


def _no_days(_request: ApprovalRequest) -> int:
    return 0


def _no_amount(_request: ApprovalRequest) -> Decimal:
    return Decimal(0)


def _reimbursed_amount(request: ApprovalRequest) -> Decimal:
    return request.amount if request.amount is not None else Decimal(0)


LEAVE = KindDescriptor(kind=RequestKind.LEAVE, charged_days=_leave_days, charged_amount=_no_amount)
REIMBURSEMENT = KindDescriptor(
    kind=RequestKind.REIMBURSEMENT,
    charged_days=_no_days,
    charged_amount=_reimbursed_amount,
)

_DESCRIPTORS = {d.kind: d for d in (LEAVE, REIMBURSEMENT)}


def descriptor_for(kind: RequestKind | str) -> KindDescriptor:
    """Look up the accounting descriptor for a request kind."""
    return _DESCRIPTORS[RequestKind(kind)]
