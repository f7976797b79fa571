"""Due dates for newly created or edited fee structures."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from ..academics.model import AcademicYear
from ..common.datetime_utils import end_of_month
from ..core.constants import ONE_TIME_FEE_DUE_DAYS, QUARTER_END_MIN_DAYS_LEFT
from ..core.enums import FeeFrequency

_QUARTER_ENDS = ((3, 31), (6, 30), (9, 30), (12, 31))


def _quarter_end(day: date) -> date:
    quarter = (day.month - 1) // 3
    month, last = _QUARTER_ENDS[quarter]
    return date(day.year, month, last)


def generate_due_date(frequency, academic_year: Optional[AcademicYear], today: date) -> date:
    """Pick a structure due date from the fee type frequency.

    ``frequency`` may be a :class:`FeeFrequency` or its raw value; unknown
    values are treated as monthly.
    """
    try:
        frequency = FeeFrequency(frequency)
    except ValueError:
        frequency = FeeFrequency.MONTHLY

    start_year = academic_year.start_year if academic_year else None

    if frequency == FeeFrequency.QUARTERLY:
        if start_year:
            for month, last in _QUARTER_ENDS:
                candidate = date(start_year, month, last)
                if today < candidate:
                    return candidate
            return date(start_year + 1, 3, 31)

        current = _quarter_end(today)
        if (current - today).days < QUARTER_END_MIN_DAYS_LEFT:
            return _quarter_end(current + timedelta(days=1))
        return current

    if frequency == FeeFrequency.YEARLY:
        return date(start_year or today.year, 12, 31)

    if frequency == FeeFrequency.ONE_TIME:
        return today + timedelta(days=ONE_TIME_FEE_DUE_DAYS)

    return end_of_month(today.year, today.month)
