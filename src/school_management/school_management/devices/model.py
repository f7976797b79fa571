from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import FrozenSet, Optional, Tuple

from ..common.datetime_utils import carbon_weekday
from ..core.constants import DEFAULT_WEEKEND_DAYS
from ..core.enums import SyncStatus


@dataclass(frozen=True)
class Holiday:
    id: int
    name: str
    date: date
    type: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class DeviceSettings:
    """Attendance rules for one institution, passed explicitly to the reconciler.

    ``weekend_days`` uses 0=Sunday ... 6=Saturday. ``holidays`` holds the
    active holiday dates known when the settings were loaded.
    """

    device_name: str = "ZKTeco F10"
    device_ip: str = "192.168.0.21"
    device_port: int = 4370

    teacher_in_time: Optional[time] = None
    teacher_out_time: Optional[time] = None
    teacher_late_time: Optional[time] = None

    student_in_time: Optional[time] = None
    student_out_time: Optional[time] = None
    student_late_time: Optional[time] = None
    student_late_threshold: Optional[int] = None

    weekend_days: Tuple[int, ...] = DEFAULT_WEEKEND_DAYS
    auto_mark_present: bool = True
    auto_mark_absent: bool = False
    auto_mark_late: bool = False
    auto_mark_early_leave: bool = False

    holidays: FrozenSet[date] = field(default_factory=frozenset)

    def is_weekend(self, day: date) -> bool:
        return carbon_weekday(day) in self.weekend_days

    def is_holiday(self, day: date) -> bool:
        return day in self.holidays

    def is_working_day(self, day: date) -> bool:
        return not self.is_weekend(day) and not self.is_holiday(day)


@dataclass(frozen=True)
class DeviceStatus:
    device_name: str
    device_ip: str
    device_port: int
    last_sync_at: Optional[datetime] = None
    last_sync_status: Optional[SyncStatus] = None
    last_sync_records: int = 0
    last_sync_message: Optional[str] = None

    def last_sync_formatted(self, now: datetime) -> str:
        if not self.last_sync_at:
            return "Never"
        return humanize_since(self.last_sync_at, now)


def humanize_since(then: datetime, now: datetime) -> str:
    seconds = int((now - then).total_seconds())
    if seconds < 0:
        return "just now"
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            n = seconds // size
            return f"{n} {unit}{'s' if n != 1 else ''} ago"
    return f"{seconds} second{'s' if seconds != 1 else ''} ago"
