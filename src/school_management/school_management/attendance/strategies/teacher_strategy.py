from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

from ...core.constants import EARLY_LEAVE_TOLERANCE_MINUTES
from ...core.enums import AttendanceStatus
from ...devices.model import DeviceSettings
from ..model import AttendanceRecord, PunchEvent
from .base import AttendanceStrategy, StatusDecision


class TeacherStrategy(AttendanceStrategy):
    """In/out window: earliest inbound punch and latest outbound punch.

    A single punch only ever sets ``in_time``. When an earlier inbound punch
    arrives after a later one, the displaced in-time becomes an out candidate.
    """

    def merge_times(self, record: AttendanceRecord, punch: PunchEvent) -> AttendanceRecord:
        at = punch.punch_time.time().replace(microsecond=0)
        in_time, out_time = record.in_time, record.out_time
        had_in = in_time is not None

        candidate = None
        if punch.is_check_in or not had_in:
            if in_time is None or at < in_time:
                candidate = in_time
                in_time = at
            else:
                candidate = at
        elif had_in:
            candidate = at

        if candidate is not None and (out_time is None or candidate > out_time):
            out_time = candidate

        return replace(record, in_time=in_time, out_time=out_time)

    def decide_status(self, record: AttendanceRecord, settings: DeviceSettings) -> StatusDecision:
        status = AttendanceStatus.PRESENT
        day = record.attendance_date

        if record.out_time and settings.teacher_out_time and settings.auto_mark_early_leave:
            expected_out = datetime.combine(day, settings.teacher_out_time) - timedelta(
                minutes=EARLY_LEAVE_TOLERANCE_MINUTES
            )
            if record.at(record.out_time) < expected_out:
                status = AttendanceStatus.EARLY_LEAVE

        # Late is evaluated last and wins over early leave.
        if record.in_time and settings.teacher_late_time and settings.auto_mark_late:
            if record.at(record.in_time) > datetime.combine(day, settings.teacher_late_time):
                status = AttendanceStatus.LATE

        return StatusDecision(status=status)
