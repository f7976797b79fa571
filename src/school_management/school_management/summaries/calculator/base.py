from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Mapping

from ...core.enums import AttendanceStatus


class PercentageCalculator(ABC):
    """Calculator interface (Strategy Pattern for attendance percentage)."""

    @abstractmethod
    def percentage(self, counts: Mapping[AttendanceStatus, int], total: int) -> Decimal:
        raise NotImplementedError
