"""Heuristic flag for leave requests that look like long-weekend extensions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import date

_MONDAY = 0
_FRIDAY = 4
_WEEKEND_ADJACENT_DAYS = frozenset({_MONDAY, _FRIDAY})
_SHORT_LEAVE_MAX_DAYS = 2


def is_risky(from_date: date, to_date: date, day_count: int) -> bool:
    """Return True for a short leave that starts or ends next to a weekend.

    Flags when ``day_count`` is at most two days and either endpoint falls
    on a Monday or a Friday. The flag only annotates the request for
    reviewers; it never blocks creation.
    """
    if day_count > _SHORT_LEAVE_MAX_DAYS:
        return False
    return from_date.weekday() in _WEEKEND_ADJACENT_DAYS or to_date.weekday() in _WEEKEND_ADJACENT_DAYS
