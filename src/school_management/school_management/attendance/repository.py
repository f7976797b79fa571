from __future__ import annotations

from datetime import date
from typing import Callable, Optional, Protocol, Sequence

from ..core.enums import SubjectKind
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    """Teacher and student attendance rows, keyed by (kind, subject_id, date)."""

    def get(self, kind: SubjectKind, subject_id: int, day: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def update_or_create(
        self,
        template: AttendanceRecord,
        change: Callable[[AttendanceRecord], AttendanceRecord],
    ) -> AttendanceRecord:
        """Find-or-insert the (person, date) row, apply ``change`` and store the result.

        ``template`` supplies the defaults for a new row. The row stays locked
        from the read until the write, so concurrent punches for the same
        person and date are applied one after the other.
        """

        raise NotImplementedError

    def create_if_absent(self, record: AttendanceRecord) -> bool:
        """Insert ``record`` unless a row exists for its (person, date)."""

        raise NotImplementedError

    def list_for_date(
        self,
        kind: SubjectKind,
        day: date,
        *,
        class_id: Optional[int] = None,
        section_id: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_subject(
        self,
        kind: SubjectKind,
        subject_id: int,
        *,
        start: date,
        end: date,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
