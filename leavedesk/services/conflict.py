# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

from leavedesk.models.enums import BLOCKING_STATUSES, RequestKind

if TYPE_CHECKING:
    from collections.abc import Iterable

    from leavedesk.models.request import ApprovalRequest
    from leavedesk.services.repository import RequestRepository


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Closed-interval overlap: ranges sharing even a single day overlap."""
    return a_start <= b_end and a_end >= b_start


def find_overlapping(
    requests: Iterable[ApprovalRequest],
    from_date: date,
    to_date: date,
    exclude_request_id: uuid.UUID | None = None,
) -> ApprovalRequest | None:
    """Return the first blocking leave request that overlaps the range, if any."""
    for existing in requests:
        if existing.kind != RequestKind.LEAVE or existing.status not in BLOCKING_STATUSES:
            continue
        if exclude_request_id is not None and existing.id == exclude_request_id:
            continue
        if existing.from_date is None or existing.to_date is None:
            continue
        if ranges_overlap(existing.from_date, existing.to_date, from_date, to_date):
            return existing
    return None


async def has_overlap(
    repository: RequestRepository,
    subject_id: uuid.UUID,
    from_date: date,
    to_date: date,
    exclude_request_id: uuid.UUID | None = None,
) -> bool:
    """Whether the subject already has a Pending, ManagerApproved or Approved leave in the range.

    Rejected requests never block.
    """
    candidates = await repository.find_by_subject(subject_id, statuses=BLOCKING_STATUSES, kind=RequestKind.LEAVE)
    return find_overlapping(candidates, from_date, to_date, exclude_request_id) is not None
