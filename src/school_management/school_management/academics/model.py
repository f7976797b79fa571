from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import RecordStatus


@dataclass(frozen=True)
class AcademicYear:
    id: int
    year: str
    start_date: date
    end_date: date
    is_current: bool = False

    @property
    def start_year(self) -> Optional[int]:
        """First year of a label like ``2024-2025``."""
        head = (self.year or "").split("-")[0].strip()
        return int(head) if head.isdigit() else None

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class SchoolClass:
    id: int
    name: str
    numeric_value: int
    status: RecordStatus = RecordStatus.ACTIVE


@dataclass(frozen=True)
class Section:
    id: int
    class_id: int
    name: str
    status: RecordStatus = RecordStatus.ACTIVE
