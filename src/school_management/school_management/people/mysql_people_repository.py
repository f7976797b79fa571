from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import RecordStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Student, Teacher
from .repository import PeopleRepository

_TEACHER_COLUMNS = "id, employee_id, first_name, last_name, status, user_id"
_STUDENT_COLUMNS = (
    "id, admission_number, first_name, last_name, class_id, section_id, "
    "academic_year_id, status, user_id, parent_user_id"
)


def _to_teacher(r: dict) -> Teacher:
    return Teacher(
        id=int(r["id"]),
        employee_id=r.get("employee_id"),
        first_name=r["first_name"],
        last_name=r.get("last_name"),
        status=RecordStatus(r["status"]),
        user_id=r.get("user_id"),
    )


def _to_student(r: dict) -> Student:
    return Student(
        id=int(r["id"]),
        admission_number=r.get("admission_number"),
        first_name=r["first_name"],
        last_name=r.get("last_name"),
        class_id=int(r["class_id"]),
        section_id=r.get("section_id"),
        academic_year_id=int(r["academic_year_id"]),
        status=RecordStatus(r["status"]),
        user_id=r.get("user_id"),
        parent_user_id=r.get("parent_user_id"),
    )


class MySQLPeopleRepository(PeopleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_teacher(self, teacher_id: int) -> Optional[Teacher]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_TEACHER_COLUMNS} FROM teachers WHERE id=%s", (int(teacher_id),))
            r = fetchone(cur)
            return _to_teacher(r) if r else None

    def get_teacher_by_employee_id(self, employee_id: str) -> Optional[Teacher]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_TEACHER_COLUMNS} FROM teachers WHERE employee_id=%s", (employee_id,))
            r = fetchone(cur)
            return _to_teacher(r) if r else None

    def get_student(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_STUDENT_COLUMNS} FROM students WHERE id=%s", (int(student_id),))
            r = fetchone(cur)
            return _to_student(r) if r else None

    def get_student_by_admission_number(self, admission_number: str) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_STUDENT_COLUMNS} FROM students WHERE admission_number=%s", (admission_number,))
            r = fetchone(cur)
            return _to_student(r) if r else None

    def list_active_teachers(self) -> Sequence[Teacher]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_TEACHER_COLUMNS} FROM teachers
                WHERE employee_id IS NOT NULL AND status='active'
                ORDER BY id
                """
            )
            return [_to_teacher(r) for r in fetchall(cur)]

    def list_active_students(
        self,
        *,
        academic_year_id: Optional[int] = None,
        class_id: Optional[int] = None,
    ) -> Sequence[Student]:
        clauses = ["status='active'"]
        params: list[object] = []
        if academic_year_id is not None:
            clauses.append("academic_year_id=%s")
            params.append(int(academic_year_id))
        if class_id is not None:
            clauses.append("class_id=%s")
            params.append(int(class_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_STUDENT_COLUMNS} FROM students WHERE {' AND '.join(clauses)} ORDER BY id",
                tuple(params),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def list_students_for_user(self, user_id: int) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_STUDENT_COLUMNS} FROM students WHERE user_id=%s OR parent_user_id=%s ORDER BY id",
                (int(user_id), int(user_id)),
            )
            return [_to_student(r) for r in fetchall(cur)]
