"""Dashboard figures over leave requests."""

from __future__ import annotations

import calendar
from collections import Counter
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from leavedesk.models.enums import RequestKind, RequestStatus
from leavedesk.schemas.analytics import AnalyticsResponse, TrendData

if TYPE_CHECKING:
    from leavedesk.services.repository import RequestRepository


async def get_analytics(repository: RequestRepository) -> AnalyticsResponse:
    """Summarize leave requests: totals, approval rate, top leave type, monthly trend."""
    leaves = await repository.list_requests(kind=RequestKind.LEAVE)

    total = len(leaves)
    approved = sum(1 for r in leaves if r.status == RequestStatus.APPROVED)
    pending = sum(1 for r in leaves if r.status == RequestStatus.PENDING)
    rate = Decimal(0) if total == 0 else Decimal(approved * 100) / Decimal(total)

    type_counts = Counter(r.leave_type for r in leaves if r.leave_type)
    common = type_counts.most_common(1)[0][0] if type_counts else "N/A"

    # Trend buckets by the calendar month the leave starts in.
    months = Counter(r.from_date.month for r in leaves if r.from_date is not None)
    ordered = sorted(months)

    return AnalyticsResponse(
        total_leaves=total,
        approved_leaves=approved,
        pending_leaves=pending,
        approval_rate=rate.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        common_leave_type=common,
        trend_data=TrendData(
            labels=[calendar.month_abbr[m] for m in ordered],
            data=[months[m] for m in ordered],
        ),
    )
