from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .academics.mysql_academic_repository import MySQLAcademicRepository
from .academics.repository import AcademicRepository
from .academics.service import AcademicService
from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import Clock, SystemClock
from .common.idempotency import IdempotencyStore, InMemoryIdempotencyStore
from .database.connection import DBConfig, DatabaseConnection
from .devices.mysql_device_repository import MySQLDeviceRepository
from .devices.repository import DeviceRepository
from .devices.service import DeviceService
from .fees.maintenance import FeeMaintenance
from .fees.mysql_fee_repository import MySQLFeeRepository
from .fees.repository import FeeRepository
from .fees.service import (
    FeeCollectionService,
    FeeGenerationService,
    FeeStructureService,
    FeeWaiverService,
    OverdueService,
)
from .people.mysql_people_repository import MySQLPeopleRepository
from .people.repository import PeopleRepository
from .summaries.mysql_summary_repository import MySQLSummaryRepository
from .summaries.repository import SummaryRepository
from .summaries.service import AttendanceSummaryService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    clock: Clock

    users_repo: UserRepository
    academic_repo: AcademicRepository
    people_repo: PeopleRepository
    device_repo: DeviceRepository
    attendance_repo: AttendanceRepository
    fee_repo: FeeRepository
    summary_repo: SummaryRepository

    auth_service: AuthService
    user_service: UserService
    academic_service: AcademicService
    device_service: DeviceService
    attendance_service: AttendanceService
    fee_generation_service: FeeGenerationService
    overdue_service: OverdueService
    fee_structure_service: FeeStructureService
    fee_waiver_service: FeeWaiverService
    fee_collection_service: FeeCollectionService
    summary_service: AttendanceSummaryService
    fee_maintenance: FeeMaintenance

    conn: Optional[DatabaseConnection] = None


def assemble_container(
    *,
    users_repo: UserRepository,
    academic_repo: AcademicRepository,
    people_repo: PeopleRepository,
    device_repo: DeviceRepository,
    attendance_repo: AttendanceRepository,
    fee_repo: FeeRepository,
    summary_repo: SummaryRepository,
    clock: Optional[Clock] = None,
    idempotency_store: Optional[IdempotencyStore] = None,
    fee_autogenerate: bool = True,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services over the given repositories (MySQL in the app, fakes in tests)."""
    clock = clock or SystemClock()

    fee_generation_service = FeeGenerationService(fee_repo, people_repo, academic_repo, clock=clock)
    overdue_service = OverdueService(fee_repo, clock=clock)
    fee_maintenance = FeeMaintenance(
        fee_generation_service,
        overdue_service,
        idempotency_store or InMemoryIdempotencyStore(clock),
        clock=clock,
        enabled=fee_autogenerate,
    )

    return Container(
        clock=clock,
        users_repo=users_repo,
        academic_repo=academic_repo,
        people_repo=people_repo,
        device_repo=device_repo,
        attendance_repo=attendance_repo,
        fee_repo=fee_repo,
        summary_repo=summary_repo,
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo),
        academic_service=AcademicService(academic_repo),
        device_service=DeviceService(device_repo, clock=clock),
        attendance_service=AttendanceService(
            attendance_repo,
            people_repo,
            academic_repo,
            device_repo,
            strategy_factory=AttendanceStrategyFactory(),
            clock=clock,
        ),
        fee_generation_service=fee_generation_service,
        overdue_service=overdue_service,
        fee_structure_service=FeeStructureService(fee_repo, academic_repo, clock=clock),
        fee_waiver_service=FeeWaiverService(fee_repo, people_repo, academic_repo),
        fee_collection_service=FeeCollectionService(fee_repo, people_repo, clock=clock),
        summary_service=AttendanceSummaryService(summary_repo, attendance_repo, people_repo, academic_repo),
        fee_maintenance=fee_maintenance,
        conn=conn,
    )


def build_container(*, db_config: dict, fee_autogenerate: bool = True) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return assemble_container(
        users_repo=MySQLUserRepository(conn),
        academic_repo=MySQLAcademicRepository(conn),
        people_repo=MySQLPeopleRepository(conn),
        device_repo=MySQLDeviceRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        fee_repo=MySQLFeeRepository(conn),
        summary_repo=MySQLSummaryRepository(conn),
        fee_autogenerate=fee_autogenerate,
        conn=conn,
    )
