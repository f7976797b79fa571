from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Optional

from ...core.enums import AttendanceStatus
from ...devices.model import DeviceSettings
from ..model import AttendanceRecord, PunchEvent


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    note: Optional[str] = None


class AttendanceStrategy(ABC):
    """Strategy Pattern: encapsulate how a punch changes one attendance row.

    ``apply`` is a pure function of (record, punch, settings) and returns a
    new record; persistence is the caller's job.
    """

    def apply(self, record: AttendanceRecord, punch: PunchEvent, settings: DeviceSettings) -> AttendanceRecord:
        updated = replace(
            record,
            punch_time=punch.punch_time,
            punch_state=punch.state,
            punch_type=punch.punch_type,
            device_sn=punch.device_sn,
            employee_id=punch.device_id,
        )
        updated = self.merge_times(updated, punch)
        decision = self.decide_status(updated, settings)
        return replace(updated, status=decision.status)

    @abstractmethod
    def merge_times(self, record: AttendanceRecord, punch: PunchEvent) -> AttendanceRecord:
        raise NotImplementedError

    @abstractmethod
    def decide_status(self, record: AttendanceRecord, settings: DeviceSettings) -> StatusDecision:
        raise NotImplementedError
