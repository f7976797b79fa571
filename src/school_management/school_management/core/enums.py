from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for access control."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"
    PARENT = "parent"


class AttendanceStatus(str, Enum):
    """Normalized attendance status stored per person per day."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    HALF_DAY = "half_day"
    EARLY_LEAVE = "early_leave"
    EXCUSED = "excused"
    LEAVE = "leave"
    HOLIDAY = "holiday"


class PunchState(int, Enum):
    """Raw punch state as reported by the device."""

    CHECK_IN = 0
    CHECK_OUT = 1


class SubjectKind(str, Enum):
    """Who an attendance row belongs to."""

    TEACHER = "teacher"
    STUDENT = "student"


class FeeFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    ONE_TIME = "one_time"


class FeeStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class SyncStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class RecordStatus(str, Enum):
    """Active flag used by reference tables (teachers, students, fee types...)."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class WaiverType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


class WaiverReason(str, Enum):
    MERIT = "merit"
    FINANCIAL = "financial"
    SPORTS = "sports"
    OTHER = "other"


class WaiverStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
