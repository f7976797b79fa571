from __future__ import annotations

import json
from datetime import date, datetime, time
from typing import Optional, Sequence

from ..core.enums import SyncStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    fetchall,
    fetchone,
    insert_id,
    normalize_mysql_date,
    normalize_mysql_time,
)
from .model import DeviceSettings, DeviceStatus, Holiday
from .repository import DeviceRepository

SETTINGS_COLUMNS = (
    "device_name",
    "device_ip",
    "device_port",
    "teacher_in_time",
    "teacher_out_time",
    "teacher_late_time",
    "student_in_time",
    "student_out_time",
    "student_late_time",
    "student_late_threshold",
    "weekend_days",
    "auto_mark_present",
    "auto_mark_absent",
    "auto_mark_late",
    "auto_mark_early_leave",
)

_HOLIDAY_COLUMNS = "id, name, date, type, description, is_active"


def _parse_weekend_days(value) -> tuple[int, ...]:
    if value is None or value == "":
        return ()
    days = json.loads(value) if isinstance(value, str) else value
    return tuple(int(d) for d in days)


def _to_holiday(r: dict) -> Holiday:
    return Holiday(
        id=int(r["id"]),
        name=r["name"],
        date=normalize_mysql_date(r["date"]),
        type=r.get("type"),
        description=r.get("description"),
        is_active=bool(r.get("is_active")),
    )


def _db_value(column: str, value):
    if column == "weekend_days":
        return json.dumps(sorted(int(d) for d in value))
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    if isinstance(value, bool):
        return int(value)
    return value


class MySQLDeviceRepository(DeviceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _ensure_row(self, cur) -> dict:
        cur.execute("SELECT * FROM device_settings ORDER BY id LIMIT 1")
        row = fetchone(cur)
        if row:
            return row
        cur.execute("INSERT INTO device_settings(device_name) VALUES('ZKTeco F10')")
        cur.execute("SELECT * FROM device_settings WHERE id=%s", (insert_id(cur),))
        return fetchone(cur)

    def get_settings(self) -> DeviceSettings:
        with db_cursor(self._conn_factory) as (_, cur):
            r = self._ensure_row(cur)
            cur.execute("SELECT date FROM holidays WHERE is_active=1")
            holidays = frozenset(normalize_mysql_date(h["date"]) for h in fetchall(cur))

        threshold = r.get("student_late_threshold")
        return DeviceSettings(
            device_name=r["device_name"],
            device_ip=r["device_ip"],
            device_port=int(r["device_port"]),
            teacher_in_time=normalize_mysql_time(r.get("teacher_in_time")),
            teacher_out_time=normalize_mysql_time(r.get("teacher_out_time")),
            teacher_late_time=normalize_mysql_time(r.get("teacher_late_time")),
            student_in_time=normalize_mysql_time(r.get("student_in_time")),
            student_out_time=normalize_mysql_time(r.get("student_out_time")),
            student_late_time=normalize_mysql_time(r.get("student_late_time")),
            student_late_threshold=int(threshold) if threshold is not None else None,
            weekend_days=_parse_weekend_days(r.get("weekend_days")),
            auto_mark_present=bool(r.get("auto_mark_present")),
            auto_mark_absent=bool(r.get("auto_mark_absent")),
            auto_mark_late=bool(r.get("auto_mark_late")),
            auto_mark_early_leave=bool(r.get("auto_mark_early_leave")),
            holidays=holidays,
        )

    def update_settings(self, fields: dict) -> None:
        unknown = set(fields) - set(SETTINGS_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown device setting(s): {sorted(unknown)}")
        if not fields:
            return

        assignments = ", ".join(f"{col}=%s" for col in fields)
        params = [_db_value(col, value) for col, value in fields.items()]

        with db_cursor(self._conn_factory) as (_, cur):
            row = self._ensure_row(cur)
            cur.execute(f"UPDATE device_settings SET {assignments} WHERE id=%s", (*params, int(row["id"])))

    def get_status(self) -> DeviceStatus:
        with db_cursor(self._conn_factory) as (_, cur):
            r = self._ensure_row(cur)
        return DeviceStatus(
            device_name=r["device_name"],
            device_ip=r["device_ip"],
            device_port=int(r["device_port"]),
            last_sync_at=r.get("last_sync_at"),
            last_sync_status=SyncStatus(r["last_sync_status"]) if r.get("last_sync_status") else None,
            last_sync_records=int(r.get("last_sync_records") or 0),
            last_sync_message=r.get("last_sync_message"),
        )

    def record_sync(
        self,
        *,
        at: datetime,
        status: SyncStatus,
        records: int,
        message: str,
        device_name: Optional[str] = None,
        device_ip: Optional[str] = None,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            row = self._ensure_row(cur)
            cur.execute(
                """
                UPDATE device_settings
                SET device_name=COALESCE(%s, device_name),
                    device_ip=COALESCE(%s, device_ip),
                    last_sync_at=%s, last_sync_status=%s, last_sync_records=%s, last_sync_message=%s
                WHERE id=%s
                """,
                (device_name, device_ip, at, status.value, int(records), message, int(row["id"])),
            )

    def list_active_holidays(self) -> Sequence[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_HOLIDAY_COLUMNS} FROM holidays WHERE is_active=1 ORDER BY date")
            return [_to_holiday(r) for r in fetchall(cur)]

    def get_holiday(self, holiday_id: int) -> Optional[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_HOLIDAY_COLUMNS} FROM holidays WHERE id=%s", (int(holiday_id),))
            r = fetchone(cur)
            return _to_holiday(r) if r else None

    def get_holiday_on(self, day: date) -> Optional[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_HOLIDAY_COLUMNS} FROM holidays WHERE date=%s AND is_active=1 LIMIT 1",
                (day,),
            )
            r = fetchone(cur)
            return _to_holiday(r) if r else None

    def create_holiday(
        self,
        *,
        name: str,
        day: date,
        type: Optional[str],
        description: Optional[str],
        is_active: bool,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO holidays(name, date, type, description, is_active) VALUES(%s,%s,%s,%s,%s)",
                (name, day, type, description, int(is_active)),
            )
            return insert_id(cur)

    def update_holiday(
        self,
        *,
        holiday_id: int,
        name: str,
        day: date,
        type: Optional[str],
        description: Optional[str],
        is_active: bool,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE holidays SET name=%s, date=%s, type=%s, description=%s, is_active=%s WHERE id=%s",
                (name, day, type, description, int(is_active), int(holiday_id)),
            )
            return cur.rowcount > 0

    def delete_holiday(self, holiday_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM holidays WHERE id=%s", (int(holiday_id),))
            return cur.rowcount > 0
