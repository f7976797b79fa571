from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

from ...core.constants import DEFAULT_STUDENT_LATE_THRESHOLD_MINUTES
from ...core.enums import AttendanceStatus
from ...devices.model import DeviceSettings
from ..model import AttendanceRecord, PunchEvent
from .base import AttendanceStrategy, StatusDecision


class StudentStrategy(AttendanceStrategy):
    """Students are judged on arrival only: the first punch of the day counts."""

    def apply(self, record: AttendanceRecord, punch: PunchEvent, settings: DeviceSettings) -> AttendanceRecord:
        if record.in_time is not None:
            return replace(
                record,
                punch_time=punch.punch_time,
                punch_state=punch.state,
                punch_type=punch.punch_type,
                device_sn=punch.device_sn,
                employee_id=punch.device_id,
            )
        return super().apply(record, punch, settings)

    def merge_times(self, record: AttendanceRecord, punch: PunchEvent) -> AttendanceRecord:
        if record.in_time is not None:
            return record
        return replace(record, in_time=punch.punch_time.time().replace(microsecond=0))

    def decide_status(self, record: AttendanceRecord, settings: DeviceSettings) -> StatusDecision:
        if not record.in_time or not settings.student_in_time:
            return StatusDecision(status=AttendanceStatus.PRESENT)

        threshold = settings.student_late_threshold
        if threshold is None:
            threshold = DEFAULT_STUDENT_LATE_THRESHOLD_MINUTES
        cutoff = datetime.combine(record.attendance_date, settings.student_in_time) + timedelta(minutes=int(threshold))
        if record.at(record.in_time) > cutoff:
            return StatusDecision(status=AttendanceStatus.LATE)
        return StatusDecision(status=AttendanceStatus.PRESENT)
