from datetime import date, datetime, time

import pytest

from src.school_management.school_management.attendance.factory import AttendanceStrategyFactory, apply_punch
from src.school_management.school_management.attendance.model import AttendanceRecord, PunchEvent
from src.school_management.school_management.attendance.strategies.student_strategy import StudentStrategy
from src.school_management.school_management.attendance.strategies.teacher_strategy import TeacherStrategy
from src.school_management.school_management.core.enums import AttendanceStatus, SubjectKind
from src.school_management.school_management.devices.model import DeviceSettings

DAY = date(2024, 3, 4)


def _teacher_row(**kwargs):
    return AttendanceRecord(kind=SubjectKind.TEACHER, subject_id=1, attendance_date=DAY, **kwargs)


def _student_row(**kwargs):
    return AttendanceRecord(kind=SubjectKind.STUDENT, subject_id=7, attendance_date=DAY, **kwargs)


def _punch(hh, mm, state=0, device_id="T100"):
    return PunchEvent(device_id=device_id, punch_time=datetime(2024, 3, 4, hh, mm), state=state)


def test_factory_picks_strategy_per_subject_kind():
    factory = AttendanceStrategyFactory()

    assert isinstance(factory.for_subject(SubjectKind.TEACHER), TeacherStrategy)
    assert isinstance(factory.for_subject(SubjectKind.STUDENT), StudentStrategy)
    with pytest.raises(ValueError):
        factory.for_subject("parent")


def test_teacher_single_punch_sets_only_in_time():
    rec = apply_punch(_teacher_row(), _punch(8, 5), DeviceSettings())

    assert rec.in_time == time(8, 5)
    assert rec.out_time is None
    assert rec.status == AttendanceStatus.PRESENT
    assert rec.punch_state == 0
    assert rec.employee_id == "T100"


def test_teacher_check_out_after_check_in_sets_out_time():
    settings = DeviceSettings()
    rec = apply_punch(_teacher_row(), _punch(8, 0), settings)
    rec = apply_punch(rec, _punch(16, 30, state=1), settings)

    assert rec.in_time == time(8, 0)
    assert rec.out_time == time(16, 30)


def test_teacher_earlier_punch_arriving_late_moves_in_time_to_out():
    settings = DeviceSettings()
    rec = apply_punch(_teacher_row(), _punch(16, 0), settings)
    rec = apply_punch(rec, _punch(8, 0), settings)

    assert rec.in_time == time(8, 0)
    assert rec.out_time == time(16, 0)


def test_teacher_out_time_keeps_latest_value():
    settings = DeviceSettings()
    rec = apply_punch(_teacher_row(), _punch(8, 0), settings)
    rec = apply_punch(rec, _punch(17, 0, state=1), settings)
    rec = apply_punch(rec, _punch(12, 0, state=1), settings)

    assert rec.out_time == time(17, 0)


def test_teacher_first_punch_with_check_out_state_still_counts_as_arrival():
    rec = apply_punch(_teacher_row(), _punch(8, 10, state=1), DeviceSettings())

    assert rec.in_time == time(8, 10)
    assert rec.out_time is None


def test_teacher_early_leave_when_enabled():
    settings = DeviceSettings(teacher_out_time=time(16, 0), auto_mark_early_leave=True)
    rec = apply_punch(_teacher_row(), _punch(8, 0), settings)
    rec = apply_punch(rec, _punch(15, 40, state=1), settings)

    assert rec.status == AttendanceStatus.EARLY_LEAVE


def test_teacher_leaving_within_tolerance_is_present():
    settings = DeviceSettings(teacher_out_time=time(16, 0), auto_mark_early_leave=True)
    rec = apply_punch(_teacher_row(), _punch(8, 0), settings)
    rec = apply_punch(rec, _punch(15, 50, state=1), settings)

    assert rec.status == AttendanceStatus.PRESENT


def test_teacher_late_wins_over_early_leave():
    settings = DeviceSettings(
        teacher_out_time=time(16, 0),
        teacher_late_time=time(8, 15),
        auto_mark_late=True,
        auto_mark_early_leave=True,
    )
    rec = apply_punch(_teacher_row(), _punch(9, 0), settings)
    rec = apply_punch(rec, _punch(14, 0, state=1), settings)

    assert rec.status == AttendanceStatus.LATE


def test_teacher_late_flag_disabled_keeps_present():
    settings = DeviceSettings(teacher_late_time=time(8, 15), auto_mark_late=False)
    rec = apply_punch(_teacher_row(), _punch(9, 0), settings)

    assert rec.status == AttendanceStatus.PRESENT


def test_student_late_after_threshold():
    settings = DeviceSettings(student_in_time=time(8, 0), student_late_threshold=10)

    on_time = apply_punch(_student_row(), _punch(8, 10, device_id="S1"), settings)
    late = apply_punch(_student_row(), _punch(8, 11, device_id="S1"), settings)

    assert on_time.status == AttendanceStatus.PRESENT
    assert late.status == AttendanceStatus.LATE


def test_student_default_threshold_is_fifteen_minutes():
    settings = DeviceSettings(student_in_time=time(8, 0))

    rec = apply_punch(_student_row(), _punch(8, 16, device_id="S1"), settings)

    assert rec.status == AttendanceStatus.LATE


def test_student_later_punch_only_updates_punch_metadata():
    settings = DeviceSettings(student_in_time=time(8, 0), student_late_threshold=5)
    rec = apply_punch(_student_row(), _punch(7, 55, device_id="S1"), settings)
    rec = apply_punch(rec, _punch(14, 0, state=1, device_id="S1"), settings)

    assert rec.in_time == time(7, 55)
    assert rec.out_time is None
    assert rec.status == AttendanceStatus.PRESENT
    assert rec.punch_state == 1
    assert rec.punch_time == datetime(2024, 3, 4, 14, 0)
