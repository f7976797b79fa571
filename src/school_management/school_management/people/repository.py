from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Student, Teacher


class PeopleRepository(Protocol):
    def get_teacher(self, teacher_id: int) -> Optional[Teacher]:
        raise NotImplementedError

    def get_teacher_by_employee_id(self, employee_id: str) -> Optional[Teacher]:
        raise NotImplementedError

    def get_student(self, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def get_student_by_admission_number(self, admission_number: str) -> Optional[Student]:
        raise NotImplementedError

    def list_active_teachers(self) -> Sequence[Teacher]:
        """Active teachers that have an employee id (device roster)."""

        raise NotImplementedError

    def list_active_students(
        self,
        *,
        academic_year_id: Optional[int] = None,
        class_id: Optional[int] = None,
    ) -> Sequence[Student]:
        raise NotImplementedError

    def list_students_for_user(self, user_id: int) -> Sequence[Student]:
        """Students linked to a login: the student's own account or a parent's children."""

        raise NotImplementedError
