from __future__ import annotations

import calendar
from datetime import date, datetime, time
from typing import Protocol


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_timestamp(value: str) -> datetime:
    """Parse a device/form timestamp.

    Accepts ``YYYY-MM-DD HH:MM[:SS]`` and the ISO ``T`` separator. Timezone
    suffixes are dropped; device clocks are local time.
    """
    v = (value or "").strip().replace("T", " ")
    if v.endswith("Z"):
        v = v[:-1]
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S.%f"):
        try:
            return datetime.strptime(v, fmt)
        except ValueError:
            continue
    return datetime.fromisoformat(v).replace(tzinfo=None)


def parse_clock_time(value: str) -> time:
    """Parse HH:MM or HH:MM:SS."""
    v = (value or "").strip()
    fmt = "%H:%M:%S" if v.count(":") == 2 else "%H:%M"
    return datetime.strptime(v, fmt).time()


def end_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def clamp_day(year: int, month: int, day: int) -> date:
    """date(year, month, day) with day capped to the month length."""
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


def carbon_weekday(d: date) -> int:
    """Day of week with 0=Sunday ... 6=Saturday (the device settings convention)."""
    return (d.weekday() + 1) % 7


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


class Clock(Protocol):
    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock:
    def now(self) -> datetime:
        return now_local()
