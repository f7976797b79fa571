from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import date
from typing import Optional

from ..academics.model import AcademicYear
from ..academics.repository import AcademicRepository
from ..common.datetime_utils import Clock, SystemClock, parse_clock_time, parse_timestamp
from ..common.validators import FieldErrors
from ..core.constants import DEFAULT_PUNCH_TYPE, SYSTEM_USER_ID
from ..core.enums import AttendanceStatus, SubjectKind, SyncStatus
from ..core.exceptions import DomainError, NotFoundError
from ..devices.model import DeviceSettings
from ..devices.repository import DeviceRepository
from ..people.model import Student, Teacher
from ..people.repository import PeopleRepository
from ..people.resolver import ResolvedStudent, ResolvedTeacher, SubjectResolver
from .factory import AttendanceStrategyFactory
from .model import AttendanceRecord, BatchResult, LegacyPunch, PunchEvent, RecordError, SyncRequest, SyncResult
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class _CurrentYear:
    """Looks the current academic year up once per batch."""

    def __init__(self, academics: AcademicRepository):
        self._academics = academics
        self._loaded = False
        self._year: Optional[AcademicYear] = None

    def get(self) -> Optional[AcademicYear]:
        if not self._loaded:
            self._year = self._academics.get_current_year()
            self._loaded = True
        return self._year

    def require(self) -> AcademicYear:
        year = self.get()
        if not year:
            raise NotFoundError("No current academic year found")
        return year


class AttendanceService:
    """Use case: reconcile device punches, absentees and manual marks into daily rows."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        people: PeopleRepository,
        academics: AcademicRepository,
        devices: DeviceRepository,
        *,
        strategy_factory: AttendanceStrategyFactory | None = None,
        clock: Clock | None = None,
    ):
        self._attendance = attendance
        self._people = people
        self._academics = academics
        self._devices = devices
        self._resolver = SubjectResolver(people)
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._clock = clock or SystemClock()

    # Punch processing

    def _teacher_template(self, teacher: Teacher, day: date, punch: PunchEvent) -> AttendanceRecord:
        return AttendanceRecord(
            kind=SubjectKind.TEACHER,
            subject_id=teacher.id,
            attendance_date=day,
            status=AttendanceStatus.PRESENT,
            employee_id=punch.device_id,
            device_sn=punch.device_sn,
            marked_by=SYSTEM_USER_ID,
        )

    def _student_template(self, student: Student, year: AcademicYear, day: date, punch: PunchEvent) -> AttendanceRecord:
        return AttendanceRecord(
            kind=SubjectKind.STUDENT,
            subject_id=student.id,
            attendance_date=day,
            status=AttendanceStatus.PRESENT,
            employee_id=punch.device_id,
            device_sn=punch.device_sn,
            marked_by=SYSTEM_USER_ID,
            class_id=student.class_id,
            section_id=student.section_id,
            academic_year_id=year.id,
        )

    def _apply(self, template: AttendanceRecord, punch: PunchEvent, settings: DeviceSettings) -> AttendanceRecord:
        strategy = self._factory.for_subject(template.kind)
        return self._attendance.update_or_create(template, lambda record: strategy.apply(record, punch, settings))

    def record_teacher_punch(self, teacher: Teacher, punch: PunchEvent, settings: DeviceSettings) -> AttendanceRecord:
        day = punch.punch_time.date()
        return self._apply(self._teacher_template(teacher, day, punch), punch, settings)

    def record_student_punch(
        self,
        student: Student,
        punch: PunchEvent,
        settings: DeviceSettings,
        year: AcademicYear,
    ) -> AttendanceRecord:
        day = punch.punch_time.date()
        return self._apply(self._student_template(student, year, day, punch), punch, settings)

    def _record_by_kind(self, kind: SubjectKind, punch: PunchEvent, settings: DeviceSettings, years: _CurrentYear):
        if kind == SubjectKind.TEACHER:
            teacher = self._people.get_teacher_by_employee_id(punch.device_id)
            if not teacher:
                raise NotFoundError(f"Teacher not found with employee_id: {punch.device_id}")
            return self.record_teacher_punch(teacher, punch, settings)

        student = self._people.get_student_by_admission_number(punch.device_id)
        if not student:
            raise NotFoundError(f"Student not found with admission_number: {punch.device_id}")
        return self.record_student_punch(student, punch, settings, years.require())

    # Device sync

    def sync(self, request: SyncRequest) -> SyncResult:
        settings = self._devices.get_settings()
        years = _CurrentYear(self._academics)
        sync_date = request.sync_date or self._clock.now().date()
        result = SyncResult(total=len(request.attendance_data))

        for item in request.attendance_data:
            device_id = item.get("id") or item.get("uid")
            timestamp = item.get("timestamp")
            if not device_id or not timestamp:
                continue
            device_id = str(device_id).strip()

            try:
                punch = PunchEvent(
                    device_id=device_id,
                    punch_time=parse_timestamp(str(timestamp)),
                    state=int(item.get("state") or 0),
                    punch_type=item.get("type") or DEFAULT_PUNCH_TYPE,
                    device_sn=request.serial_number,
                )
                resolved = self._resolver.resolve(device_id)
                if isinstance(resolved, ResolvedTeacher):
                    self.record_teacher_punch(resolved.teacher, punch, settings)
                elif isinstance(resolved, ResolvedStudent):
                    self.record_student_punch(resolved.student, punch, settings, years.require())
                else:
                    result.errors.append(RecordError(device_id, "No teacher or student found with this ID"))
                    continue
                result.processed += 1
            except (DomainError, ValueError, TypeError) as e:
                result.errors.append(RecordError(device_id, str(e)))
            except Exception as e:
                logger.exception("Sync record %s failed", device_id)
                result.errors.append(RecordError(device_id, str(e)))

        self._mark_absentees(request, sync_date, settings, years, result)

        self._devices.record_sync(
            at=self._clock.now(),
            status=SyncStatus.SUCCESS if result.processed > 0 else SyncStatus.FAILED,
            records=result.processed,
            message=f"Processed with {len(result.errors)} errors" if result.errors else "Sync successful",
            device_name=request.device_name,
            device_ip=request.device_ip,
        )
        logger.info(
            "Device %s sync: processed=%s total=%s absent=%s errors=%s",
            request.device_id,
            result.processed,
            result.total,
            result.absent_marked,
            len(result.all_errors),
        )
        return result

    def _mark_absentees(
        self,
        request: SyncRequest,
        day: date,
        settings: DeviceSettings,
        years: _CurrentYear,
        result: SyncResult,
    ) -> None:
        if not request.absent_teachers and not request.absent_students:
            return
        if not settings.is_working_day(day):
            logger.info("Skipping absence marking for %s: not a working day", day)
            return

        for employee_id in request.absent_teachers:
            try:
                teacher = self._people.get_teacher_by_employee_id(employee_id)
                if not teacher or not teacher.is_active:
                    continue
                created = self._attendance.create_if_absent(
                    AttendanceRecord(
                        kind=SubjectKind.TEACHER,
                        subject_id=teacher.id,
                        attendance_date=day,
                        status=AttendanceStatus.ABSENT,
                        employee_id=employee_id,
                        device_sn=request.serial_number,
                        marked_by=SYSTEM_USER_ID,
                    )
                )
                if created:
                    result.absent_marked += 1
            except Exception as e:
                logger.exception("Absent marking failed for teacher %s", employee_id)
                result.absent_errors.append(RecordError(employee_id, str(e)))

        for admission_number in request.absent_students:
            try:
                student = self._people.get_student_by_admission_number(admission_number)
                if not student or not student.is_active:
                    continue
                year = years.get()
                if not year:
                    logger.warning("No current academic year; student %s not marked absent", admission_number)
                    continue
                created = self._attendance.create_if_absent(
                    AttendanceRecord(
                        kind=SubjectKind.STUDENT,
                        subject_id=student.id,
                        attendance_date=day,
                        status=AttendanceStatus.ABSENT,
                        employee_id=admission_number,
                        device_sn=request.serial_number,
                        marked_by=SYSTEM_USER_ID,
                        class_id=student.class_id,
                        section_id=student.section_id,
                        academic_year_id=year.id,
                    )
                )
                if created:
                    result.absent_marked += 1
            except Exception as e:
                logger.exception("Absent marking failed for student %s", admission_number)
                result.absent_errors.append(RecordError(admission_number, str(e)))

    def store_batch(
        self,
        items: list[LegacyPunch],
        *,
        kind: Optional[SubjectKind] = None,
        update_device_status: bool = False,
    ) -> BatchResult:
        """Process a legacy batch; ``kind`` forces every item to one subject type."""
        settings = self._devices.get_settings()
        years = _CurrentYear(self._academics)
        result = BatchResult()

        for item in items:
            punch = item.punch
            try:
                self._record_by_kind(kind or item.kind, punch, settings, years)
                result.processed += 1
            except DomainError as e:
                result.errors.append(RecordError(punch.device_id, str(e)))
            except Exception as e:
                logger.exception("Attendance record %s failed", punch.device_id)
                result.errors.append(RecordError(punch.device_id, str(e)))

        if update_device_status:
            self._devices.record_sync(
                at=self._clock.now(),
                status=SyncStatus.SUCCESS if result.processed > 0 else SyncStatus.FAILED,
                records=result.processed,
                message=_errors_message(result.errors),
            )
        return result

    # Manual marking

    def mark_manual(self, kind: SubjectKind, subject_id: int, data: dict, *, marked_by: int) -> AttendanceRecord:
        errors = FieldErrors()
        day = errors.iso_date(data, "date", required=True)
        raw_status = errors.choice(data, "status", [s.value for s in AttendanceStatus], required=True)
        in_time = _optional_time(errors, data, "in_time")
        out_time = _optional_time(errors, data, "out_time")
        if in_time and out_time and out_time < in_time:
            errors.add("out_time", "The out_time must be after in_time.")
        errors.raise_if_any()

        if kind == SubjectKind.TEACHER:
            teacher = self._people.get_teacher(int(subject_id))
            if not teacher:
                raise NotFoundError("Teacher not found")
            template = AttendanceRecord(
                kind=kind,
                subject_id=teacher.id,
                attendance_date=day,
                employee_id=teacher.employee_id,
            )
        else:
            student = self._people.get_student(int(subject_id))
            if not student:
                raise NotFoundError("Student not found")
            template = AttendanceRecord(
                kind=kind,
                subject_id=student.id,
                attendance_date=day,
                employee_id=student.admission_number,
                class_id=student.class_id,
                section_id=student.section_id,
                academic_year_id=student.academic_year_id,
            )

        reason = (data.get("reason") or "").strip() or None
        updated = self._attendance.update_or_create(
            template,
            lambda record: replace(
                record,
                status=AttendanceStatus(raw_status),
                in_time=in_time,
                out_time=out_time,
                reason=reason,
                marked_by=int(marked_by),
            ),
        )
        logger.info("User %s marked %s %s on %s as %s", marked_by, kind.value, subject_id, day, raw_status)
        return updated

    # Read side

    def list_for_date(
        self,
        kind: SubjectKind,
        day: date,
        *,
        class_id: Optional[int] = None,
        section_id: Optional[int] = None,
    ) -> list[dict]:
        rows = self._attendance.list_for_date(kind, day, class_id=class_id, section_id=section_id)
        return [record_to_dict(r) for r in rows]

    def history(self, kind: SubjectKind, subject_id: int, *, start: date, end: date) -> list[dict]:
        rows = self._attendance.list_for_subject(kind, int(subject_id), start=start, end=end)
        return [record_to_dict(r) for r in rows]

    def teacher_roster(self) -> list[dict]:
        return [
            {"id": t.id, "employee_id": t.employee_id, "name": t.full_name, "type": SubjectKind.TEACHER.value}
            for t in self._people.list_active_teachers()
            if t.employee_id
        ]

    def student_roster(self) -> list[dict]:
        year = self._academics.get_current_year()
        students = self._people.list_active_students(academic_year_id=year.id if year else None)
        return [
            {
                "id": s.id,
                "employee_id": s.admission_number,
                "name": s.full_name,
                "class_id": s.class_id,
                "section_id": s.section_id,
                "type": SubjectKind.STUDENT.value,
            }
            for s in students
            if s.admission_number
        ]


def _optional_time(errors: FieldErrors, data: dict, field: str):
    value = data.get(field)
    if value in (None, ""):
        return None
    try:
        return parse_clock_time(str(value))
    except ValueError:
        errors.add(field, f"The {field} must be a time (HH:MM).")
        return None


def _errors_message(errors: list[RecordError]) -> str:
    if not errors:
        return "Sync successful"
    return json.dumps([e.to_dict() for e in errors])


def record_to_dict(r: AttendanceRecord) -> dict:
    def _t(value) -> Optional[str]:
        return value.strftime("%H:%M:%S") if value else None

    data = {
        "id": r.id,
        "type": r.kind.value,
        "subject_id": r.subject_id,
        "date": r.attendance_date.isoformat(),
        "status": r.status.value,
        "in_time": _t(r.in_time),
        "out_time": _t(r.out_time),
        "punch_time": r.punch_time.isoformat(sep=" ") if r.punch_time else None,
        "punch_state": r.punch_state,
        "punch_type": r.punch_type,
        "device_sn": r.device_sn,
        "employee_id": r.employee_id,
        "marked_by": r.marked_by,
        "reason": r.reason,
    }
    if r.kind == SubjectKind.STUDENT:
        data.update(class_id=r.class_id, section_id=r.section_id, academic_year_id=r.academic_year_id)
    return data
