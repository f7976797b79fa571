from __future__ import annotations

from datetime import date
from typing import Callable, Optional, Sequence

from mysql.connector import errors as mysql_errors

from ..core.enums import AttendanceStatus, SubjectKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_date, normalize_mysql_time
from .model import AttendanceRecord
from .repository import AttendanceRepository

_TABLES = {
    SubjectKind.TEACHER: ("teacher_attendance", "teacher_id"),
    SubjectKind.STUDENT: ("student_attendance", "student_id"),
}

_COMMON_COLUMNS = (
    "status",
    "in_time",
    "out_time",
    "punch_time",
    "punch_state",
    "punch_type",
    "device_sn",
    "employee_id",
    "marked_by",
    "reason",
)

_STUDENT_COLUMNS = ("class_id", "section_id", "academic_year_id")


def _columns(kind: SubjectKind) -> tuple[str, ...]:
    return _COMMON_COLUMNS + (_STUDENT_COLUMNS if kind == SubjectKind.STUDENT else ())


def _values(record: AttendanceRecord) -> tuple:
    values = []
    for column in _columns(record.kind):
        value = getattr(record, column)
        if isinstance(value, AttendanceStatus):
            value = value.value
        values.append(value)
    return tuple(values)


def _to_record(kind: SubjectKind, r: dict) -> AttendanceRecord:
    _, subject_col = _TABLES[kind]
    extra = {}
    if kind == SubjectKind.STUDENT:
        extra = {
            "class_id": r.get("class_id"),
            "section_id": r.get("section_id"),
            "academic_year_id": r.get("academic_year_id"),
        }
    return AttendanceRecord(
        id=int(r["id"]),
        kind=kind,
        subject_id=int(r[subject_col]),
        attendance_date=normalize_mysql_date(r["date"]),
        status=AttendanceStatus(r["status"]),
        in_time=normalize_mysql_time(r.get("in_time")),
        out_time=normalize_mysql_time(r.get("out_time")),
        punch_time=r.get("punch_time"),
        punch_state=r.get("punch_state"),
        punch_type=r.get("punch_type"),
        device_sn=r.get("device_sn"),
        employee_id=r.get("employee_id"),
        marked_by=r.get("marked_by"),
        reason=r.get("reason"),
        **extra,
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, cur, kind: SubjectKind, subject_id: int, day: date, *, lock: bool = False):
        table, subject_col = _TABLES[kind]
        sql = f"SELECT * FROM {table} WHERE {subject_col}=%s AND date=%s"
        if lock:
            sql += " FOR UPDATE"
        cur.execute(sql, (int(subject_id), day))
        return fetchone(cur)

    def _insert(self, cur, record: AttendanceRecord) -> None:
        table, subject_col = _TABLES[record.kind]
        columns = (subject_col, "date") + _columns(record.kind)
        placeholders = ",".join(["%s"] * len(columns))
        cur.execute(
            f"INSERT INTO {table}({','.join(columns)}) VALUES({placeholders})",
            (int(record.subject_id), record.attendance_date) + _values(record),
        )

    def get(self, kind: SubjectKind, subject_id: int, day: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            r = self._select(cur, kind, subject_id, day)
            return _to_record(kind, r) if r else None

    def _update(self, cur, record: AttendanceRecord) -> None:
        table, subject_col = _TABLES[record.kind]
        assignments = ", ".join(f"{c}=%s" for c in _columns(record.kind))
        cur.execute(
            f"UPDATE {table} SET {assignments} WHERE {subject_col}=%s AND date=%s",
            _values(record) + (int(record.subject_id), record.attendance_date),
        )

    def update_or_create(
        self,
        template: AttendanceRecord,
        change: Callable[[AttendanceRecord], AttendanceRecord],
    ) -> AttendanceRecord:
        kind = template.kind
        with db_cursor(self._conn_factory) as (_, cur):
            r = self._select(cur, kind, template.subject_id, template.attendance_date, lock=True)
            if not r:
                try:
                    self._insert(cur, template)
                except mysql_errors.IntegrityError:
                    # A concurrent request created the row first.
                    pass
                r = self._select(cur, kind, template.subject_id, template.attendance_date, lock=True)
            updated = change(_to_record(kind, r))
            self._update(cur, updated)
            return updated

    def create_if_absent(self, record: AttendanceRecord) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            if self._select(cur, record.kind, record.subject_id, record.attendance_date):
                return False
            try:
                self._insert(cur, record)
            except mysql_errors.IntegrityError:
                return False
            return True

    def list_for_date(
        self,
        kind: SubjectKind,
        day: date,
        *,
        class_id: Optional[int] = None,
        section_id: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        table, subject_col = _TABLES[kind]
        where = ["date=%s"]
        params: list = [day]
        if kind == SubjectKind.STUDENT and class_id:
            where.append("class_id=%s")
            params.append(int(class_id))
        if kind == SubjectKind.STUDENT and section_id:
            where.append("section_id=%s")
            params.append(int(section_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT * FROM {table} WHERE {' AND '.join(where)} ORDER BY {subject_col}",
                tuple(params),
            )
            return [_to_record(kind, r) for r in fetchall(cur)]

    def list_for_subject(
        self,
        kind: SubjectKind,
        subject_id: int,
        *,
        start: date,
        end: date,
    ) -> Sequence[AttendanceRecord]:
        table, subject_col = _TABLES[kind]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT * FROM {table}
                WHERE {subject_col}=%s AND date BETWEEN %s AND %s
                ORDER BY date
                """,
                (int(subject_id), start, end),
            )
            return [_to_record(kind, r) for r in fetchall(cur)]
