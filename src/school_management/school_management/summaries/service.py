from __future__ import annotations

import logging
from collections import Counter
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..academics.repository import AcademicRepository
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import end_of_month
from ..common.validators import FieldErrors
from ..core.constants import DEFAULT_PAGE_SIZE, HIGH_ATTENDANCE_PERCENTAGE, LOW_ATTENDANCE_PERCENTAGE
from ..core.enums import AttendanceStatus, SubjectKind
from ..core.exceptions import NotFoundError
from ..people.repository import PeopleRepository
from .calculator.base import PercentageCalculator
from .calculator.standard_calculator import TWO_PLACES, StandardPercentageCalculator
from .model import AttendanceSummary, ClassStats
from .repository import SummaryRepository

logger = logging.getLogger(__name__)


class AttendanceSummaryService:
    """Use case: monthly attendance summaries per student and per class."""

    def __init__(
        self,
        summaries: SummaryRepository,
        attendance: AttendanceRepository,
        people: PeopleRepository,
        academics: AcademicRepository,
        *,
        calculator: Optional[PercentageCalculator] = None,
    ):
        self._summaries = summaries
        self._attendance = attendance
        self._people = people
        self._academics = academics
        self._calculator = calculator or StandardPercentageCalculator()

    def _period(self, data: dict, errors: FieldErrors) -> tuple[Optional[int], Optional[int]]:
        month = errors.integer_in(data, "month", range(1, 13), required=True)
        year = errors.required(data, "year")
        if year is not None:
            try:
                year = int(year)
                if year < 2000:
                    errors.add("year", "The year must be at least 2000.")
            except (TypeError, ValueError):
                errors.add("year", "The year must be an integer.")
                year = None
        return month, year

    def summarize(self, *, student_id: int, class_id: int, academic_year_id: int, month: int, year: int) -> AttendanceSummary:
        records = self._attendance.list_for_subject(
            SubjectKind.STUDENT,
            student_id,
            start=date(year, month, 1),
            end=end_of_month(year, month),
        )
        counts = Counter(r.status for r in records)
        total = len(records)
        return AttendanceSummary(
            student_id=student_id,
            class_id=class_id,
            academic_year_id=academic_year_id,
            month=month,
            year=year,
            total_days=total,
            present_days=counts.get(AttendanceStatus.PRESENT, 0),
            absent_days=counts.get(AttendanceStatus.ABSENT, 0),
            late_days=counts.get(AttendanceStatus.LATE, 0),
            half_days=counts.get(AttendanceStatus.HALF_DAY, 0),
            attendance_percentage=self._calculator.percentage(counts, total),
        )

    def generate(self, data: dict) -> list[AttendanceSummary]:
        errors = FieldErrors()
        class_id = errors.integer(data, "class_id", required=True)
        academic_year_id = errors.integer(data, "academic_year_id", required=True)
        month, year = self._period(data, errors)
        errors.raise_if_any()

        if not self._academics.get_year(academic_year_id):
            raise NotFoundError("Academic year not found")

        students = self._people.list_active_students(academic_year_id=academic_year_id, class_id=class_id)
        generated = []
        for student in students:
            summary = self.summarize(
                student_id=student.id,
                class_id=class_id,
                academic_year_id=academic_year_id,
                month=month,
                year=year,
            )
            self._summaries.upsert(summary)
            generated.append(summary)

        logger.info(
            "Attendance summary generated for class %s, %04d-%02d: %s students",
            class_id,
            year,
            month,
            len(generated),
        )
        return generated

    def list(self, *, class_id=None, academic_year_id=None, month=None, year=None) -> list[dict]:
        rows = self._summaries.list(
            class_id=class_id,
            academic_year_id=academic_year_id,
            month=month,
            year=year,
            limit=DEFAULT_PAGE_SIZE,
        )
        return [summary_to_dict(s) for s in rows]

    def for_student(self, student_id: int) -> list[dict]:
        return [summary_to_dict(s) for s in self._summaries.list_for_student(int(student_id))]

    def class_view(self, data: dict) -> dict:
        errors = FieldErrors()
        class_id = errors.integer(data, "class_id", required=True)
        month, year = self._period(data, errors)
        errors.raise_if_any()

        rows = self._summaries.list(class_id=class_id, month=month, year=year, limit=10_000)
        stats = class_stats(rows)
        return {
            "summaries": [summary_to_dict(s) for s in rows],
            "stats": {
                "total_students": stats.total_students,
                "average_percentage": str(stats.average_percentage),
                "high_attendance": stats.high_attendance,
                "low_attendance": stats.low_attendance,
            },
        }

    def delete(self, summary_id: int) -> None:
        if not self._summaries.delete(int(summary_id)):
            raise NotFoundError("Attendance summary not found")


def class_stats(rows) -> ClassStats:
    percentages = [Decimal(r.attendance_percentage) for r in rows]
    average = Decimal("0")
    if percentages:
        average = (sum(percentages) / len(percentages)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    return ClassStats(
        total_students=len(percentages),
        average_percentage=average,
        high_attendance=sum(1 for p in percentages if p >= HIGH_ATTENDANCE_PERCENTAGE),
        low_attendance=sum(1 for p in percentages if p < LOW_ATTENDANCE_PERCENTAGE),
    )


def summary_to_dict(s: AttendanceSummary) -> dict:
    return {
        "id": s.id,
        "student_id": s.student_id,
        "student_name": s.student_name,
        "class_id": s.class_id,
        "academic_year_id": s.academic_year_id,
        "month": s.month,
        "year": s.year,
        "total_days": s.total_days,
        "present_days": s.present_days,
        "absent_days": s.absent_days,
        "late_days": s.late_days,
        "half_days": s.half_days,
        "attendance_percentage": str(s.attendance_percentage),
    }
