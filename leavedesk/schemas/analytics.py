from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel


class TrendData(BaseModel):
    """Leave counts per start month, shaped for a chart."""

    labels: list[str]
    data: list[int]


class AnalyticsResponse(BaseModel):
    total_leaves: int
    approved_leaves: int
    pending_leaves: int
    approval_rate: Decimal
    common_leave_type: str
    trend_data: TrendData
