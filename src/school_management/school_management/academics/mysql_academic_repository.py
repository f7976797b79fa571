from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import RecordStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, insert_id, normalize_mysql_date
from .model import AcademicYear, SchoolClass, Section
from .repository import AcademicRepository

_YEAR_COLUMNS = "id, year, start_date, end_date, is_current"


def _to_year(r: dict) -> AcademicYear:
    return AcademicYear(
        id=int(r["id"]),
        year=r["year"],
        start_date=normalize_mysql_date(r["start_date"]),
        end_date=normalize_mysql_date(r["end_date"]),
        is_current=bool(r.get("is_current")),
    )


class MySQLAcademicRepository(AcademicRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_current_year(self) -> Optional[AcademicYear]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_YEAR_COLUMNS} FROM academic_years WHERE is_current=1 LIMIT 1")
            r = fetchone(cur)
            return _to_year(r) if r else None

    def get_year(self, year_id: int) -> Optional[AcademicYear]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_YEAR_COLUMNS} FROM academic_years WHERE id=%s", (int(year_id),))
            r = fetchone(cur)
            return _to_year(r) if r else None

    def list_years(self) -> Sequence[AcademicYear]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_YEAR_COLUMNS} FROM academic_years ORDER BY start_date DESC")
            return [_to_year(r) for r in fetchall(cur)]

    def create_year(self, *, year: str, start_date: date, end_date: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO academic_years(year, start_date, end_date, is_current) VALUES(%s,%s,%s,0)",
                (year, start_date, end_date),
            )
            return insert_id(cur)

    def set_current_year(self, year_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id FROM academic_years WHERE id=%s FOR UPDATE", (int(year_id),))
            if not fetchone(cur):
                return False
            cur.execute("UPDATE academic_years SET is_current = (id = %s)", (int(year_id),))
            return True

    def list_classes(self) -> Sequence[SchoolClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, name, numeric_value, status FROM classes ORDER BY numeric_value")
            return [
                SchoolClass(
                    id=int(r["id"]),
                    name=r["name"],
                    numeric_value=int(r["numeric_value"]),
                    status=RecordStatus(r["status"]),
                )
                for r in fetchall(cur)
            ]

    def list_sections(self, class_id: int) -> Sequence[Section]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, class_id, name, status FROM sections WHERE class_id=%s ORDER BY name",
                (int(class_id),),
            )
            return [
                Section(
                    id=int(r["id"]),
                    class_id=int(r["class_id"]),
                    name=r["name"],
                    status=RecordStatus(r["status"]),
                )
                for r in fetchall(cur)
            ]
