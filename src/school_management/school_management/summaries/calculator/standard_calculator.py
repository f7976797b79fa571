from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping

from ...core.enums import AttendanceStatus
from .base import PercentageCalculator

TWO_PLACES = Decimal("0.01")


class StandardPercentageCalculator(PercentageCalculator):
    """Standard rule: present days / recorded days x 100, 0 when nothing is recorded."""

    def percentage(self, counts: Mapping[AttendanceStatus, int], total: int) -> Decimal:
        if total <= 0:
            return Decimal("0.00")
        present = Decimal(counts.get(AttendanceStatus.PRESENT, 0))
        return (present / Decimal(total) * 100).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
