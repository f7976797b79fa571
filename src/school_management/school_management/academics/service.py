from __future__ import annotations

from datetime import date

from ..common.validators import require_non_empty
from ..core.exceptions import NotFoundError, ValidationError
from .repository import AcademicRepository


class AcademicService:
    """Use case: maintain academic years (admin)."""

    def __init__(self, academics: AcademicRepository):
        self._academics = academics

    def create_year(self, *, year: str, start_date: date, end_date: date) -> int:
        year = require_non_empty(year, "year")
        parts = year.split("-")
        if len(parts) != 2 or not all(p.strip().isdigit() for p in parts):
            raise ValidationError("Academic year must look like 2024-2025", {"year": ["The year format is invalid."]})
        if end_date <= start_date:
            raise ValidationError("End date must be after start date", {"end_date": ["The end date must be after start date."]})
        return self._academics.create_year(year=year, start_date=start_date, end_date=end_date)

    def set_current(self, year_id: int) -> None:
        if not self._academics.set_current_year(int(year_id)):
            raise NotFoundError("Academic year not found")
