from datetime import date
from decimal import Decimal

import pytest

from src.school_management.school_management.academics.model import AcademicYear
from src.school_management.school_management.attendance.model import AttendanceRecord
from src.school_management.school_management.core.enums import AttendanceStatus, SubjectKind
from src.school_management.school_management.core.exceptions import NotFoundError, ValidationError
from src.school_management.school_management.people.model import Student
from src.school_management.school_management.summaries.model import AttendanceSummary
from src.school_management.school_management.summaries.service import AttendanceSummaryService, class_stats
from tests.fakes import InMemoryAcademics, InMemoryAttendance, InMemoryPeople, InMemorySummaries


def _service():
    attendance = InMemoryAttendance()
    people = InMemoryPeople(
        students=[
            Student(id=10, admission_number="S10", first_name="Bo", class_id=3, academic_year_id=1),
            Student(id=11, admission_number="S11", first_name="Cy", class_id=3, academic_year_id=1),
            Student(id=12, admission_number="S12", first_name="Di", class_id=4, academic_year_id=1),
        ]
    )
    academics = InMemoryAcademics(
        years={1: AcademicYear(id=1, year="2023-2024", start_date=date(2023, 6, 1), end_date=date(2024, 5, 31))}
    )
    summaries = InMemorySummaries()
    svc = AttendanceSummaryService(summaries, attendance, people, academics)
    return svc, attendance, summaries


def _mark(attendance, student_id, day, status):
    attendance.create_if_absent(
        AttendanceRecord(kind=SubjectKind.STUDENT, subject_id=student_id, attendance_date=day, status=status)
    )


def test_generate_counts_statuses_within_the_month():
    svc, attendance, summaries = _service()
    _mark(attendance, 10, date(2024, 3, 4), AttendanceStatus.PRESENT)
    _mark(attendance, 10, date(2024, 3, 5), AttendanceStatus.PRESENT)
    _mark(attendance, 10, date(2024, 3, 6), AttendanceStatus.LATE)
    _mark(attendance, 10, date(2024, 3, 7), AttendanceStatus.ABSENT)
    _mark(attendance, 10, date(2024, 4, 1), AttendanceStatus.ABSENT)

    generated = svc.generate({"class_id": 3, "academic_year_id": 1, "month": 3, "year": 2024})

    assert [s.student_id for s in generated] == [10, 11]
    bo = generated[0]
    assert (bo.total_days, bo.present_days, bo.late_days, bo.absent_days) == (4, 2, 1, 1)
    assert bo.attendance_percentage == Decimal("50.00")
    assert generated[1].total_days == 0
    assert generated[1].attendance_percentage == Decimal("0.00")
    assert len(summaries.rows) == 2


def test_regenerating_replaces_the_period_row():
    svc, attendance, summaries = _service()
    payload = {"class_id": 3, "academic_year_id": 1, "month": 3, "year": 2024}
    svc.generate(payload)
    _mark(attendance, 10, date(2024, 3, 4), AttendanceStatus.PRESENT)

    svc.generate(payload)

    assert len(summaries.rows) == 2
    assert summaries.rows[(10, 3, 2024)].attendance_percentage == Decimal("100.00")


def test_generate_validates_period_and_year():
    svc, _, _ = _service()

    with pytest.raises(ValidationError) as exc:
        svc.generate({"class_id": 3, "academic_year_id": 1, "month": 13, "year": 1999})
    assert set(exc.value.errors) == {"month", "year"}

    with pytest.raises(NotFoundError):
        svc.generate({"class_id": 3, "academic_year_id": 9, "month": 3, "year": 2024})


def test_class_view_rejects_non_numeric_class_id():
    svc, _, _ = _service()

    with pytest.raises(ValidationError) as exc:
        svc.class_view({"class_id": "3a", "month": "3", "year": "2024"})

    assert set(exc.value.errors) == {"class_id"}


def test_class_stats_buckets_high_and_low_attendance():
    rows = [
        AttendanceSummary(student_id=i, class_id=3, academic_year_id=1, month=3, year=2024, attendance_percentage=p)
        for i, p in enumerate([Decimal("95.00"), Decimal("90.00"), Decimal("80.00"), Decimal("60.00")])
    ]

    stats = class_stats(rows)

    assert stats.total_students == 4
    assert stats.average_percentage == Decimal("81.25")
    assert stats.high_attendance == 2
    assert stats.low_attendance == 1


def test_class_stats_empty_class():
    stats = class_stats([])

    assert stats.total_students == 0
    assert stats.average_percentage == Decimal("0")


def test_class_view_and_delete():
    svc, attendance, _ = _service()
    _mark(attendance, 10, date(2024, 3, 4), AttendanceStatus.PRESENT)
    svc.generate({"class_id": 3, "academic_year_id": 1, "month": 3, "year": 2024})

    view = svc.class_view({"class_id": "3", "month": "3", "year": "2024"})

    assert view["stats"] == {
        "total_students": 2,
        "average_percentage": "50.00",
        "high_attendance": 1,
        "low_attendance": 1,
    }
    assert view["summaries"][0]["student_id"] == 10

    summary_id = view["summaries"][0]["id"]
    svc.delete(summary_id)
    assert [s["student_id"] for s in svc.for_student(10)] == []
    with pytest.raises(NotFoundError):
        svc.delete(summary_id)
