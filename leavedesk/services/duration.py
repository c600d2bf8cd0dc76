from __future__ import annotations

from typing import TYPE_CHECKING

from leavedesk.exceptions import ValidationError

if TYPE_CHECKING:
    from datetime import date


def whole_days_inclusive(from_date: date, to_date: date) -> int:
    """Count calendar days between two dates, both endpoints included.

    Weekends and holidays are not excluded: a Friday-to-Monday leave is
    four days.
    """
    if from_date > to_date:
        msg = "End date must be on or after start date"
        raise ValidationError(msg)
    return (to_date - from_date).days + 1
