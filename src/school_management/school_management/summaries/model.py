from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class AttendanceSummary:
    student_id: int
    class_id: int
    academic_year_id: int
    month: int
    year: int
    total_days: int = 0
    present_days: int = 0
    absent_days: int = 0
    late_days: int = 0
    half_days: int = 0
    attendance_percentage: Decimal = Decimal("0")
    id: Optional[int] = None
    student_name: Optional[str] = None


@dataclass(frozen=True)
class ClassStats:
    total_students: int
    average_percentage: Decimal
    high_attendance: int
    low_attendance: int
