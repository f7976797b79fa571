from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import RecordStatus


@dataclass(frozen=True)
class Teacher:
    id: int
    employee_id: Optional[str]
    first_name: str
    last_name: Optional[str] = None
    status: RecordStatus = RecordStatus.ACTIVE
    user_id: Optional[int] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE


@dataclass(frozen=True)
class Student:
    id: int
    admission_number: Optional[str]
    first_name: str
    class_id: int
    academic_year_id: int
    section_id: Optional[int] = None
    last_name: Optional[str] = None
    status: RecordStatus = RecordStatus.ACTIVE
    user_id: Optional[int] = None
    parent_user_id: Optional[int] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE
