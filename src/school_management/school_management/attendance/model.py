from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional

from ..core.enums import AttendanceStatus, PunchState, SubjectKind


@dataclass(frozen=True)
class PunchEvent:
    """One raw punch as reported by the device (or a legacy batch item)."""

    device_id: str
    punch_time: datetime
    state: int = PunchState.CHECK_IN.value
    punch_type: str = "fingerprint"
    device_sn: Optional[str] = None

    @property
    def is_check_in(self) -> bool:
        return self.state == PunchState.CHECK_IN.value

    @property
    def is_check_out(self) -> bool:
        return self.state == PunchState.CHECK_OUT.value


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance row per person per date."""

    kind: SubjectKind
    subject_id: int
    attendance_date: date
    status: AttendanceStatus = AttendanceStatus.PRESENT
    in_time: Optional[time] = None
    out_time: Optional[time] = None
    punch_time: Optional[datetime] = None
    punch_state: Optional[int] = None
    punch_type: Optional[str] = None
    device_sn: Optional[str] = None
    employee_id: Optional[str] = None
    marked_by: Optional[int] = None
    reason: Optional[str] = None
    class_id: Optional[int] = None
    section_id: Optional[int] = None
    academic_year_id: Optional[int] = None
    id: Optional[int] = None

    def at(self, t: Optional[time]) -> Optional[datetime]:
        return datetime.combine(self.attendance_date, t) if t else None


@dataclass(frozen=True)
class RecordError:
    employee_id: str
    error: str

    def to_dict(self) -> dict:
        return {"employee_id": self.employee_id, "error": self.error}


@dataclass(frozen=True)
class SyncRequest:
    device_id: str
    device_name: str
    device_ip: str
    serial_number: Optional[str] = None
    attendance_data: list = field(default_factory=list)
    absent_teachers: list = field(default_factory=list)
    absent_students: list = field(default_factory=list)
    sync_date: Optional[date] = None


@dataclass
class SyncResult:
    processed: int = 0
    total: int = 0
    absent_marked: int = 0
    errors: list[RecordError] = field(default_factory=list)
    absent_errors: list[RecordError] = field(default_factory=list)

    @property
    def all_errors(self) -> list[RecordError]:
        return self.errors + self.absent_errors

    @property
    def message(self) -> str:
        return f"Processed {self.processed} attendance records, marked {self.absent_marked} absent"


@dataclass
class BatchResult:
    processed: int = 0
    errors: list[RecordError] = field(default_factory=list)


@dataclass(frozen=True)
class LegacyPunch:
    """Item of the legacy ``attendance`` batch payload."""

    punch: PunchEvent
    kind: Optional[SubjectKind] = None
