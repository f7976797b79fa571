from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Optional

from src.school_management.school_management.academics.model import AcademicYear, SchoolClass, Section
from src.school_management.school_management.attendance.model import AttendanceRecord
from src.school_management.school_management.container import assemble_container
from src.school_management.school_management.core.enums import FeeFrequency, SubjectKind
from src.school_management.school_management.devices.model import DeviceSettings, DeviceStatus, Holiday
from src.school_management.school_management.fees.model import FeeCollection, FeeStructure, FeeType, FeeWaiver
from src.school_management.school_management.people.model import Student, Teacher
from src.school_management.school_management.summaries.model import AttendanceSummary
from src.school_management.school_management.users.model import User


class FixedClock:
    def __init__(self, now: datetime):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    def advance(self, **kwargs) -> None:
        self._now = self._now + timedelta(**kwargs)


@dataclass
class InMemoryAcademics:
    years: dict[int, AcademicYear] = field(default_factory=dict)
    classes: list[SchoolClass] = field(default_factory=list)
    sections: list[Section] = field(default_factory=list)

    def get_current_year(self) -> Optional[AcademicYear]:
        return next((y for y in self.years.values() if y.is_current), None)

    def get_year(self, year_id: int) -> Optional[AcademicYear]:
        return self.years.get(int(year_id))

    def list_years(self):
        return list(self.years.values())

    def create_year(self, *, year: str, start_date: date, end_date: date) -> int:
        new_id = max(self.years, default=0) + 1
        self.years[new_id] = AcademicYear(id=new_id, year=year, start_date=start_date, end_date=end_date)
        return new_id

    def set_current_year(self, year_id: int) -> bool:
        if int(year_id) not in self.years:
            return False
        self.years = {k: replace(v, is_current=(k == int(year_id))) for k, v in self.years.items()}
        return True

    def list_classes(self):
        return list(self.classes)

    def list_sections(self, class_id: int):
        return [s for s in self.sections if s.class_id == int(class_id)]


@dataclass
class InMemoryPeople:
    teachers: list[Teacher] = field(default_factory=list)
    students: list[Student] = field(default_factory=list)

    def get_teacher(self, teacher_id: int):
        return next((t for t in self.teachers if t.id == int(teacher_id)), None)

    def get_teacher_by_employee_id(self, employee_id: str):
        return next((t for t in self.teachers if t.employee_id == employee_id), None)

    def get_student(self, student_id: int):
        return next((s for s in self.students if s.id == int(student_id)), None)

    def get_student_by_admission_number(self, admission_number: str):
        return next((s for s in self.students if s.admission_number == admission_number), None)

    def list_active_teachers(self):
        return [t for t in self.teachers if t.is_active and t.employee_id]

    def list_active_students(self, *, academic_year_id=None, class_id=None):
        return [
            s
            for s in self.students
            if s.is_active
            and (academic_year_id is None or s.academic_year_id == academic_year_id)
            and (class_id is None or s.class_id == class_id)
        ]

    def list_students_for_user(self, user_id: int):
        return [s for s in self.students if int(user_id) in (s.user_id, s.parent_user_id)]


class InMemoryDevices:
    def __init__(self, settings: Optional[DeviceSettings] = None, holidays: Optional[list[Holiday]] = None):
        self.settings = settings or DeviceSettings()
        self.holidays: dict[int, Holiday] = {h.id: h for h in holidays or []}
        self.syncs: list[dict] = []
        self.status = DeviceStatus(
            device_name=self.settings.device_name,
            device_ip=self.settings.device_ip,
            device_port=self.settings.device_port,
        )

    def get_settings(self) -> DeviceSettings:
        active = frozenset(h.date for h in self.holidays.values() if h.is_active)
        return replace(self.settings, holidays=self.settings.holidays | active)

    def update_settings(self, fields: dict) -> None:
        if "weekend_days" in fields:
            fields = {**fields, "weekend_days": tuple(fields["weekend_days"])}
        self.settings = replace(self.settings, **fields)

    def get_status(self) -> DeviceStatus:
        return self.status

    def record_sync(self, *, at, status, records, message, device_name=None, device_ip=None) -> None:
        self.syncs.append(
            {
                "at": at,
                "status": status,
                "records": records,
                "message": message,
                "device_name": device_name,
                "device_ip": device_ip,
            }
        )
        self.status = replace(
            self.status,
            device_name=device_name or self.status.device_name,
            device_ip=device_ip or self.status.device_ip,
            last_sync_at=at,
            last_sync_status=status,
            last_sync_records=records,
            last_sync_message=message,
        )

    def list_active_holidays(self):
        return sorted((h for h in self.holidays.values() if h.is_active), key=lambda h: h.date)

    def get_holiday(self, holiday_id: int):
        return self.holidays.get(int(holiday_id))

    def get_holiday_on(self, day: date):
        return next((h for h in self.holidays.values() if h.date == day and h.is_active), None)

    def create_holiday(self, *, name, day, type, description, is_active) -> int:
        new_id = max(self.holidays, default=0) + 1
        self.holidays[new_id] = Holiday(
            id=new_id, name=name, date=day, type=type, description=description, is_active=is_active
        )
        return new_id

    def update_holiday(self, *, holiday_id, name, day, type, description, is_active) -> bool:
        self.holidays[int(holiday_id)] = Holiday(
            id=int(holiday_id), name=name, date=day, type=type, description=description, is_active=is_active
        )
        return True

    def delete_holiday(self, holiday_id: int) -> bool:
        return self.holidays.pop(int(holiday_id), None) is not None


class InMemoryAttendance:
    def __init__(self):
        self.rows: dict[tuple[SubjectKind, int, date], AttendanceRecord] = {}
        self._id = 0

    def get(self, kind, subject_id, day):
        return self.rows.get((kind, int(subject_id), day))

    def update_or_create(self, template: AttendanceRecord, change) -> AttendanceRecord:
        key = (template.kind, template.subject_id, template.attendance_date)
        if key not in self.rows:
            self._id += 1
            self.rows[key] = replace(template, id=self._id)
        self.rows[key] = replace(change(self.rows[key]), id=self.rows[key].id)
        return self.rows[key]

    def create_if_absent(self, record: AttendanceRecord) -> bool:
        key = (record.kind, record.subject_id, record.attendance_date)
        if key in self.rows:
            return False
        self._id += 1
        self.rows[key] = replace(record, id=self._id)
        return True

    def list_for_date(self, kind, day, *, class_id=None, section_id=None):
        return [
            r
            for (k, _, d), r in sorted(self.rows.items(), key=lambda kv: kv[0][1])
            if k == kind
            and d == day
            and (class_id is None or r.class_id == class_id)
            and (section_id is None or r.section_id == section_id)
        ]

    def list_for_subject(self, kind, subject_id, *, start, end):
        return sorted(
            (r for (k, s, d), r in self.rows.items() if k == kind and s == int(subject_id) and start <= d <= end),
            key=lambda r: r.attendance_date,
        )


class InMemoryFees:
    def __init__(self, fee_types=None, structures=None, student_classes=None, waivers=None):
        self.fee_types: dict[int, FeeType] = {t.id: t for t in fee_types or []}
        self.structures: dict[int, FeeStructure] = {s.id: s for s in structures or []}
        self.collections: dict[int, FeeCollection] = {}
        self.student_classes: dict[int, int] = dict(student_classes or {})
        self.waivers: dict[int, FeeWaiver] = {w.id: w for w in waivers or []}
        self.transactions = 0
        self._id = 0

    def _with_frequency(self, s: FeeStructure) -> FeeStructure:
        fee_type = self.fee_types.get(s.fee_type_id)
        return replace(s, frequency=fee_type.frequency if fee_type else None)

    def list_fee_types(self):
        return list(self.fee_types.values())

    def get_fee_type(self, fee_type_id):
        return self.fee_types.get(int(fee_type_id))

    def get_structure(self, structure_id):
        s = self.structures.get(int(structure_id))
        return self._with_frequency(s) if s else None

    def find_structure(self, *, class_id, fee_type_id, academic_year_id):
        for s in self.structures.values():
            if (s.class_id, s.fee_type_id, s.academic_year_id) == (class_id, fee_type_id, academic_year_id):
                return self._with_frequency(s)
        return None

    def list_structures(self, *, academic_year_id=None):
        return [
            self._with_frequency(s)
            for s in self.structures.values()
            if academic_year_id is None or s.academic_year_id == academic_year_id
        ]

    def list_monthly_structures(self, *, class_id, academic_year_id):
        return [
            s
            for s in self.list_structures(academic_year_id=academic_year_id)
            if s.class_id == class_id and s.frequency == FeeFrequency.MONTHLY and s.status.value == "active"
        ]

    def create_structure(self, structure):
        new_id = max(self.structures, default=0) + 1
        self.structures[new_id] = replace(structure, id=new_id)
        return new_id

    def update_structure(self, structure):
        self.structures[structure.id] = structure
        return True

    def list_waivers(self, *, student_id=None):
        return [w for w in self.waivers.values() if student_id is None or w.student_id == student_id]

    def list_active_waivers(self, *, academic_year_id, on):
        return [
            w
            for w in self.waivers.values()
            if w.academic_year_id == academic_year_id
            and w.status.value == "active"
            and w.valid_from <= on
            and (w.valid_to is None or on <= w.valid_to)
        ]

    def get_waiver(self, waiver_id):
        return self.waivers.get(int(waiver_id))

    def create_waiver(self, waiver):
        new_id = max(self.waivers, default=0) + 1
        self.waivers[new_id] = replace(waiver, id=new_id)
        return new_id

    def update_waiver(self, waiver):
        self.waivers[waiver.id] = waiver
        return True

    def delete_waiver(self, waiver_id):
        return self.waivers.pop(int(waiver_id), None) is not None

    # FeeBatch

    def exists(self, *, student_id, fee_type_id, month, year):
        return any(
            (c.student_id, c.fee_type_id, c.month, c.year) == (student_id, fee_type_id, month, year)
            for c in self.collections.values()
        )

    def count_created_on(self, day):
        return sum(1 for c in self.collections.values() if c.created_at and c.created_at.date() == day)

    def insert(self, collection):
        self._id += 1
        self.collections[self._id] = replace(collection, id=self._id)
        return self._id

    @contextmanager
    def transaction(self):
        self.transactions += 1
        yield self

    def add_collection(self, collection: FeeCollection, *, class_id: int) -> int:
        self.student_classes[collection.student_id] = class_id
        return self.insert(collection)

    def _with_class(self, c: FeeCollection) -> FeeCollection:
        return replace(c, class_id=self.student_classes.get(c.student_id, c.class_id))

    def list_billable(self, statuses):
        statuses = set(statuses)
        return [
            self._with_class(c)
            for c in self.collections.values()
            if c.status in statuses and c.month is not None and c.year is not None
        ]

    def update_aging(self, *, fee_id, status, late_fee, total_amount):
        self.collections[fee_id] = replace(
            self.collections[fee_id], status=status, late_fee=late_fee, total_amount=total_amount
        )
        return True

    def get_collection(self, fee_id):
        c = self.collections.get(int(fee_id))
        return self._with_class(c) if c else None

    def record_payment(
        self, *, fee_id, paid_amount, discount, total_amount, status, payment_date, collected_by, remarks=None
    ):
        c = self.collections[int(fee_id)]
        self.collections[int(fee_id)] = replace(
            c,
            paid_amount=paid_amount,
            discount=discount,
            total_amount=total_amount,
            status=status,
            payment_date=payment_date,
            collected_by=collected_by,
            remarks=remarks or c.remarks,
        )
        return True

    def list_by_status(self, statuses, *, limit):
        statuses = set(statuses)
        return [self._with_class(c) for c in self.collections.values() if c.status in statuses][:limit]

    def list_for_students(self, student_ids):
        ids = set(student_ids)
        return [self._with_class(c) for c in self.collections.values() if c.student_id in ids]


class InMemorySummaries:
    def __init__(self):
        self.rows: dict[tuple[int, int, int], AttendanceSummary] = {}
        self._id = 0

    def upsert(self, summary: AttendanceSummary) -> None:
        key = (summary.student_id, summary.month, summary.year)
        existing = self.rows.get(key)
        if existing:
            self.rows[key] = replace(summary, id=existing.id)
        else:
            self._id += 1
            self.rows[key] = replace(summary, id=self._id)

    def list(self, *, class_id=None, academic_year_id=None, month=None, year=None, limit=50):
        rows = [
            s
            for s in self.rows.values()
            if (class_id is None or s.class_id == class_id)
            and (academic_year_id is None or s.academic_year_id == academic_year_id)
            and (month is None or s.month == month)
            and (year is None or s.year == year)
        ]
        rows.sort(key=lambda s: s.attendance_percentage, reverse=True)
        return rows[:limit]

    def list_for_student(self, student_id: int):
        return [s for s in self.rows.values() if s.student_id == int(student_id)]

    def delete(self, summary_id: int) -> bool:
        for key, s in list(self.rows.items()):
            if s.id == int(summary_id):
                del self.rows[key]
                return True
        return False


class InMemoryUsers:
    def __init__(self, users=None):
        self.users: dict[int, User] = {u.id: u for u in users or []}

    def get_by_id(self, user_id):
        return self.users.get(int(user_id))

    def get_by_username(self, username):
        return next((u for u in self.users.values() if u.username == username), None)

    def create_user(self, *, full_name, username, password_hash, role):
        new_id = max(self.users, default=0) + 1
        self.users[new_id] = User(
            id=new_id, full_name=full_name, username=username, password_hash=password_hash, role=role
        )
        return new_id

    def set_active(self, user_id, *, is_active):
        user = self.users.get(int(user_id))
        if not user:
            return False
        self.users[int(user_id)] = replace(user, is_active=is_active)
        return True

    def list_all(self):
        return list(self.users.values())


def build_test_container(*, clock: FixedClock, fee_autogenerate: bool = False, **repos):
    defaults = dict(
        users_repo=InMemoryUsers(),
        academic_repo=InMemoryAcademics(),
        people_repo=InMemoryPeople(),
        device_repo=InMemoryDevices(),
        attendance_repo=InMemoryAttendance(),
        fee_repo=InMemoryFees(),
        summary_repo=InMemorySummaries(),
    )
    defaults.update(repos)
    return assemble_container(clock=clock, fee_autogenerate=fee_autogenerate, **defaults)