from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .model import Student, Teacher
from .repository import PeopleRepository


@dataclass(frozen=True)
class ResolvedTeacher:
    teacher: Teacher


@dataclass(frozen=True)
class ResolvedStudent:
    student: Student


@dataclass(frozen=True)
class Unresolved:
    device_id: str


Resolved = Union[ResolvedTeacher, ResolvedStudent, Unresolved]


class SubjectResolver:
    """Map a device user id to the person it belongs to.

    Precedence rule: a teacher employee id wins over a student admission
    number when both share the same value.
    """

    def __init__(self, people: PeopleRepository):
        self._people = people

    def resolve(self, device_id: str) -> Resolved:
        device_id = str(device_id).strip()

        teacher = self._people.get_teacher_by_employee_id(device_id)
        if teacher:
            return ResolvedTeacher(teacher)

        student = self._people.get_student_by_admission_number(device_id)
        if student:
            return ResolvedStudent(student)

        return Unresolved(device_id)
