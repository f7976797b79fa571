from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import AttendanceSummary


class SummaryRepository(Protocol):
    def upsert(self, summary: AttendanceSummary) -> None:
        """Insert or replace the row for (student, month, year)."""

        raise NotImplementedError

    def list(
        self,
        *,
        class_id: Optional[int] = None,
        academic_year_id: Optional[int] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
        limit: int = 50,
    ) -> Sequence[AttendanceSummary]:
        raise NotImplementedError

    def list_for_student(self, student_id: int) -> Sequence[AttendanceSummary]:
        raise NotImplementedError

    def delete(self, summary_id: int) -> bool:
        raise NotImplementedError
