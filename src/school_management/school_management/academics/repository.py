from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AcademicYear, SchoolClass, Section


class AcademicRepository(Protocol):
    def get_current_year(self) -> Optional[AcademicYear]:
        raise NotImplementedError

    def get_year(self, year_id: int) -> Optional[AcademicYear]:
        raise NotImplementedError

    def list_years(self) -> Sequence[AcademicYear]:
        raise NotImplementedError

    def create_year(self, *, year: str, start_date: date, end_date: date) -> int:
        raise NotImplementedError

    def set_current_year(self, year_id: int) -> bool:
        """Mark one year current and clear the flag on all others."""

        raise NotImplementedError

    def list_classes(self) -> Sequence[SchoolClass]:
        raise NotImplementedError

    def list_sections(self, class_id: int) -> Sequence[Section]:
        raise NotImplementedError
