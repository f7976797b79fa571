from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, to_decimal
from .model import AttendanceSummary
from .repository import SummaryRepository

_SELECT = """
    SELECT a.*, TRIM(CONCAT(s.first_name, ' ', COALESCE(s.last_name, ''))) AS student_name
    FROM attendance_summary a
    JOIN students s ON s.id = a.student_id
"""


def _to_summary(r: dict) -> AttendanceSummary:
    return AttendanceSummary(
        id=int(r["id"]),
        student_id=int(r["student_id"]),
        class_id=int(r["class_id"]),
        academic_year_id=int(r["academic_year_id"]),
        month=int(r["month"]),
        year=int(r["year"]),
        total_days=int(r["total_days"]),
        present_days=int(r["present_days"]),
        absent_days=int(r["absent_days"]),
        late_days=int(r["late_days"]),
        half_days=int(r["half_days"]),
        attendance_percentage=to_decimal(r["attendance_percentage"]),
        student_name=r.get("student_name"),
    )


class MySQLSummaryRepository(SummaryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def upsert(self, s: AttendanceSummary) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_summary(
                    student_id, class_id, academic_year_id, month, year,
                    total_days, present_days, absent_days, late_days, half_days, attendance_percentage
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    class_id=VALUES(class_id),
                    academic_year_id=VALUES(academic_year_id),
                    total_days=VALUES(total_days),
                    present_days=VALUES(present_days),
                    absent_days=VALUES(absent_days),
                    late_days=VALUES(late_days),
                    half_days=VALUES(half_days),
                    attendance_percentage=VALUES(attendance_percentage)
                """,
                (
                    s.student_id,
                    s.class_id,
                    s.academic_year_id,
                    s.month,
                    s.year,
                    s.total_days,
                    s.present_days,
                    s.absent_days,
                    s.late_days,
                    s.half_days,
                    s.attendance_percentage,
                ),
            )

    def list(
        self,
        *,
        class_id: Optional[int] = None,
        academic_year_id: Optional[int] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
        limit: int = 50,
    ) -> Sequence[AttendanceSummary]:
        where = ["1=1"]
        params: list = []
        for column, value in (
            ("a.class_id", class_id),
            ("a.academic_year_id", academic_year_id),
            ("a.month", month),
            ("a.year", year),
        ):
            if value:
                where.append(f"{column}=%s")
                params.append(int(value))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + f" WHERE {' AND '.join(where)} ORDER BY a.attendance_percentage DESC, a.id LIMIT %s",
                tuple(params) + (int(limit),),
            )
            return [_to_summary(r) for r in fetchall(cur)]

    def list_for_student(self, student_id: int) -> Sequence[AttendanceSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE a.student_id=%s ORDER BY a.year DESC, a.month DESC",
                (int(student_id),),
            )
            return [_to_summary(r) for r in fetchall(cur)]

    def delete(self, summary_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_summary WHERE id=%s", (int(summary_id),))
            return cur.rowcount > 0
