"""Tests for the leave analytics endpoint and service."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from leavedesk.models.enums import RequestKind, RequestStatus
from leavedesk.models.request import ApprovalRequest
from leavedesk.seed import ADMIN_ID, ALICE_ID, MANAGER_ID
from leavedesk.services.analytics import get_analytics
from leavedesk.services.repository import InMemoryRequestRepository

if TYPE_CHECKING:
    from httpx import AsyncClient

    from leavedesk.models.subject import Subject

SUBJECT_ID = uuid.uuid4()


def _leave(leave_type: str, start: date, status: RequestStatus) -> ApprovalRequest:
    return ApprovalRequest(
        subject_id=SUBJECT_ID,
        kind=RequestKind.LEAVE.value,
        status=status.value,
        leave_type=leave_type,
        from_date=start,
        to_date=start,
        reason="r",
        day_count=1,
        risk_flag=False,
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


async def test_analytics_with_no_leaves() -> None:
    result = await get_analytics(InMemoryRequestRepository())
    assert result.total_leaves == 0
    assert result.approval_rate == Decimal("0.00")
    assert result.common_leave_type == "N/A"
    assert result.trend_data.labels == []


async def test_analytics_figures() -> None:
    repository = InMemoryRequestRepository()
    for request in (
        _leave("Vacation", date(2024, 1, 10), RequestStatus.APPROVED),
        _leave("Vacation", date(2024, 3, 4), RequestStatus.PENDING),
        _leave("Sick", date(2024, 3, 11), RequestStatus.REJECTED),
    ):
        await repository.insert(request)
    await repository.insert(
        ApprovalRequest(
            subject_id=SUBJECT_ID,
            kind=RequestKind.REIMBURSEMENT.value,
            status=RequestStatus.APPROVED.value,
            amount=Decimal("5.00"),
            expense_date=date(2024, 3, 4),
            description="Coffee",
        )
    )

    result = await get_analytics(repository)

    assert result.total_leaves == 3
    assert result.approved_leaves == 1
    assert result.pending_leaves == 1
    assert result.approval_rate == Decimal("33.33")
    assert result.common_leave_type == "Vacation"
    assert result.trend_data.labels == ["Jan", "Mar"]
    assert result.trend_data.data == [1, 2]


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------


async def test_analytics_endpoint(async_client: AsyncClient, seeded: list[Subject]) -> None:
    await async_client.post(
        "/leaves",
        json={"leave_type": "Vacation", "from_date": "2024-05-06", "to_date": "2024-05-07", "reason": "x"},
        headers={"X-User-Id": str(ALICE_ID)},
    )
    response = await async_client.get("/analytics", headers={"X-User-Id": str(MANAGER_ID)})
    assert response.status_code == 200
    data = response.json()
    assert data["total_leaves"] == 1
    assert data["pending_leaves"] == 1
    assert data["common_leave_type"] == "Vacation"
    assert data["trend_data"] == {"labels": ["May"], "data": [1]}

    assert (await async_client.get("/analytics", headers={"X-User-Id": str(ADMIN_ID)})).status_code == 200


async def test_analytics_forbidden_for_employees(async_client: AsyncClient, seeded: list[Subject]) -> None:
    response = await async_client.get("/analytics", headers={"X-User-Id": str(ALICE_ID)})
    assert response.status_code == 403
