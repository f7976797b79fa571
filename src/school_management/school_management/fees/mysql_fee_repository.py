from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterable, Iterator, Optional, Sequence

from ..core.enums import FeeFrequency, FeeStatus, RecordStatus, WaiverReason, WaiverStatus, WaiverType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, insert_id, normalize_mysql_date, to_decimal
from .model import FeeCollection, FeeStructure, FeeType, FeeWaiver
from .repository import FeeBatch, FeeRepository

_STRUCTURE_SELECT = """
    SELECT fs.id, fs.class_id, fs.fee_type_id, fs.academic_year_id, fs.amount, fs.due_date,
           fs.late_fee, fs.late_fee_days, fs.status, ft.frequency
    FROM fee_structures fs
    JOIN fee_types ft ON ft.id = fs.fee_type_id
"""

_WAIVER_COLUMNS = (
    "student_id",
    "fee_type_id",
    "academic_year_id",
    "waiver_type",
    "waiver_value",
    "reason",
    "description",
    "valid_from",
    "valid_to",
    "status",
    "approved_by",
)

_COLLECTION_SELECT = """
    SELECT fc.*, s.class_id AS student_class_id
    FROM fee_collections fc
    JOIN students s ON s.id = fc.student_id
"""


def _to_fee_type(r: dict) -> FeeType:
    return FeeType(
        id=int(r["id"]),
        name=r["name"],
        frequency=FeeFrequency(r["frequency"]),
        status=RecordStatus(r.get("status") or RecordStatus.ACTIVE.value),
    )


def _to_structure(r: dict) -> FeeStructure:
    return FeeStructure(
        id=int(r["id"]),
        class_id=int(r["class_id"]),
        fee_type_id=int(r["fee_type_id"]),
        academic_year_id=int(r["academic_year_id"]),
        amount=to_decimal(r["amount"]),
        due_date=normalize_mysql_date(r.get("due_date")),
        late_fee=to_decimal(r.get("late_fee")),
        late_fee_days=int(r["late_fee_days"]) if r.get("late_fee_days") is not None else None,
        status=RecordStatus(r.get("status") or RecordStatus.ACTIVE.value),
        frequency=FeeFrequency(r["frequency"]) if r.get("frequency") else None,
    )


def _to_collection(r: dict) -> FeeCollection:
    return FeeCollection(
        id=int(r["id"]),
        receipt_number=r["receipt_number"],
        student_id=int(r["student_id"]),
        fee_type_id=int(r["fee_type_id"]),
        academic_year_id=int(r["academic_year_id"]),
        month=int(r["month"]) if r.get("month") is not None else None,
        year=int(r["year"]) if r.get("year") is not None else None,
        amount=to_decimal(r["amount"]),
        late_fee=to_decimal(r.get("late_fee")),
        discount=to_decimal(r.get("discount")),
        total_amount=to_decimal(r["total_amount"]),
        paid_amount=to_decimal(r.get("paid_amount")),
        payment_date=normalize_mysql_date(r["payment_date"]),
        status=FeeStatus(r["status"]),
        remarks=r.get("remarks"),
        collected_by=r.get("collected_by"),
        created_at=r.get("created_at"),
        class_id=r.get("student_class_id"),
    )


def _to_waiver(r: dict) -> FeeWaiver:
    return FeeWaiver(
        id=int(r["id"]),
        student_id=int(r["student_id"]),
        fee_type_id=int(r["fee_type_id"]) if r.get("fee_type_id") is not None else None,
        academic_year_id=int(r["academic_year_id"]),
        waiver_type=WaiverType(r["waiver_type"]),
        waiver_value=to_decimal(r["waiver_value"]),
        reason=WaiverReason(r.get("reason") or WaiverReason.MERIT.value),
        description=r.get("description"),
        valid_from=normalize_mysql_date(r["valid_from"]),
        valid_to=normalize_mysql_date(r.get("valid_to")),
        status=WaiverStatus(r.get("status") or WaiverStatus.ACTIVE.value),
        approved_by=r.get("approved_by"),
    )


def _waiver_values(w: FeeWaiver) -> tuple:
    return (
        w.student_id,
        w.fee_type_id,
        w.academic_year_id,
        w.waiver_type.value,
        w.waiver_value,
        w.reason.value,
        w.description,
        w.valid_from,
        w.valid_to,
        w.status.value,
        w.approved_by,
    )


def _in_clause(values: Sequence) -> str:
    return ",".join(["%s"] * len(values))


class _MySQLFeeBatch(FeeBatch):
    def __init__(self, cur):
        self._cur = cur

    def exists(self, *, student_id: int, fee_type_id: int, month: int, year: int) -> bool:
        self._cur.execute(
            """
            SELECT id FROM fee_collections
            WHERE student_id=%s AND fee_type_id=%s AND month=%s AND year=%s
            LIMIT 1
            """,
            (int(student_id), int(fee_type_id), int(month), int(year)),
        )
        return fetchone(self._cur) is not None

    def count_created_on(self, day: date) -> int:
        start = datetime.combine(day, time.min)
        self._cur.execute(
            "SELECT COUNT(*) AS n FROM fee_collections WHERE created_at >= %s AND created_at < %s",
            (start, start + timedelta(days=1)),
        )
        r = fetchone(self._cur)
        return int(r["n"]) if r else 0

    def insert(self, c: FeeCollection) -> int:
        self._cur.execute(
            """
            INSERT INTO fee_collections(
                receipt_number, student_id, fee_type_id, academic_year_id, month, year,
                amount, late_fee, discount, total_amount, paid_amount, payment_date,
                status, remarks, collected_by, created_at
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                c.receipt_number,
                c.student_id,
                c.fee_type_id,
                c.academic_year_id,
                c.month,
                c.year,
                c.amount,
                c.late_fee,
                c.discount,
                c.total_amount,
                c.paid_amount,
                c.payment_date,
                c.status.value,
                c.remarks,
                c.collected_by,
                c.created_at or datetime.now(),
            ),
        )
        return insert_id(self._cur)


class MySQLFeeRepository(FeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_fee_types(self) -> Sequence[FeeType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, name, frequency, status FROM fee_types ORDER BY name")
            return [_to_fee_type(r) for r in fetchall(cur)]

    def get_fee_type(self, fee_type_id: int) -> Optional[FeeType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, name, frequency, status FROM fee_types WHERE id=%s", (int(fee_type_id),))
            r = fetchone(cur)
            return _to_fee_type(r) if r else None

    def get_structure(self, structure_id: int) -> Optional[FeeStructure]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_STRUCTURE_SELECT + " WHERE fs.id=%s", (int(structure_id),))
            r = fetchone(cur)
            return _to_structure(r) if r else None

    def find_structure(self, *, class_id: int, fee_type_id: int, academic_year_id: int) -> Optional[FeeStructure]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _STRUCTURE_SELECT + " WHERE fs.class_id=%s AND fs.fee_type_id=%s AND fs.academic_year_id=%s",
                (int(class_id), int(fee_type_id), int(academic_year_id)),
            )
            r = fetchone(cur)
            return _to_structure(r) if r else None

    def list_structures(self, *, academic_year_id: Optional[int] = None) -> Sequence[FeeStructure]:
        with db_cursor(self._conn_factory) as (_, cur):
            if academic_year_id:
                cur.execute(
                    _STRUCTURE_SELECT + " WHERE fs.academic_year_id=%s ORDER BY fs.class_id, fs.fee_type_id",
                    (int(academic_year_id),),
                )
            else:
                cur.execute(_STRUCTURE_SELECT + " ORDER BY fs.academic_year_id, fs.class_id, fs.fee_type_id")
            return [_to_structure(r) for r in fetchall(cur)]

    def list_monthly_structures(self, *, class_id: int, academic_year_id: int) -> Sequence[FeeStructure]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _STRUCTURE_SELECT
                + """
                WHERE fs.class_id=%s AND fs.academic_year_id=%s
                  AND fs.status='active' AND ft.frequency='monthly'
                ORDER BY fs.fee_type_id
                """,
                (int(class_id), int(academic_year_id)),
            )
            return [_to_structure(r) for r in fetchall(cur)]

    def create_structure(self, s: FeeStructure) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO fee_structures(
                    class_id, fee_type_id, academic_year_id, amount, due_date, late_fee, late_fee_days, status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    s.class_id,
                    s.fee_type_id,
                    s.academic_year_id,
                    s.amount,
                    s.due_date,
                    s.late_fee,
                    s.late_fee_days,
                    s.status.value,
                ),
            )
            return insert_id(cur)

    def update_structure(self, s: FeeStructure) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE fee_structures
                SET class_id=%s, fee_type_id=%s, academic_year_id=%s, amount=%s, due_date=%s,
                    late_fee=%s, late_fee_days=%s, status=%s
                WHERE id=%s
                """,
                (
                    s.class_id,
                    s.fee_type_id,
                    s.academic_year_id,
                    s.amount,
                    s.due_date,
                    s.late_fee,
                    s.late_fee_days,
                    s.status.value,
                    s.id,
                ),
            )
            return cur.rowcount > 0

    def list_waivers(self, *, student_id: Optional[int] = None) -> Sequence[FeeWaiver]:
        with db_cursor(self._conn_factory) as (_, cur):
            if student_id:
                cur.execute(
                    "SELECT * FROM fee_waivers WHERE student_id=%s ORDER BY valid_from DESC, id DESC",
                    (int(student_id),),
                )
            else:
                cur.execute("SELECT * FROM fee_waivers ORDER BY valid_from DESC, id DESC")
            return [_to_waiver(r) for r in fetchall(cur)]

    def list_active_waivers(self, *, academic_year_id: int, on: date) -> Sequence[FeeWaiver]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT * FROM fee_waivers
                WHERE academic_year_id=%s AND status='active'
                  AND valid_from <= %s AND (valid_to IS NULL OR valid_to >= %s)
                ORDER BY student_id, id
                """,
                (int(academic_year_id), on, on),
            )
            return [_to_waiver(r) for r in fetchall(cur)]

    def get_waiver(self, waiver_id: int) -> Optional[FeeWaiver]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM fee_waivers WHERE id=%s", (int(waiver_id),))
            r = fetchone(cur)
            return _to_waiver(r) if r else None

    def create_waiver(self, waiver: FeeWaiver) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO fee_waivers({','.join(_WAIVER_COLUMNS)}) VALUES({_in_clause(_WAIVER_COLUMNS)})",
                _waiver_values(waiver),
            )
            return insert_id(cur)

    def update_waiver(self, waiver: FeeWaiver) -> bool:
        assignments = ", ".join(f"{c}=%s" for c in _WAIVER_COLUMNS)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE fee_waivers SET {assignments} WHERE id=%s", _waiver_values(waiver) + (waiver.id,))
            return cur.rowcount > 0

    def delete_waiver(self, waiver_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM fee_waivers WHERE id=%s", (int(waiver_id),))
            return cur.rowcount > 0

    @contextmanager
    def transaction(self) -> Iterator[FeeBatch]:
        with db_cursor(self._conn_factory) as (_, cur):
            yield _MySQLFeeBatch(cur)

    def list_billable(self, statuses: Iterable[FeeStatus]) -> Sequence[FeeCollection]:
        values = [s.value for s in statuses]
        if not values:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _COLLECTION_SELECT
                + f"""
                WHERE fc.status IN ({_in_clause(values)})
                  AND fc.month IS NOT NULL AND fc.year IS NOT NULL
                ORDER BY fc.id
                """,
                tuple(values),
            )
            return [_to_collection(r) for r in fetchall(cur)]

    def update_aging(self, *, fee_id: int, status: FeeStatus, late_fee: Decimal, total_amount: Decimal) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE fee_collections SET status=%s, late_fee=%s, total_amount=%s WHERE id=%s",
                (status.value, late_fee, total_amount, int(fee_id)),
            )
            return cur.rowcount > 0

    def get_collection(self, fee_id: int) -> Optional[FeeCollection]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_COLLECTION_SELECT + " WHERE fc.id=%s", (int(fee_id),))
            r = fetchone(cur)
            return _to_collection(r) if r else None

    def record_payment(
        self,
        *,
        fee_id: int,
        paid_amount: Decimal,
        discount: Decimal,
        total_amount: Decimal,
        status: FeeStatus,
        payment_date: date,
        collected_by: int,
        remarks: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE fee_collections
                SET paid_amount=%s, discount=%s, total_amount=%s, status=%s, payment_date=%s,
                    collected_by=%s, remarks=COALESCE(%s, remarks)
                WHERE id=%s
                """,
                (
                    paid_amount,
                    discount,
                    total_amount,
                    status.value,
                    payment_date,
                    int(collected_by),
                    remarks,
                    int(fee_id),
                ),
            )
            return cur.rowcount > 0

    def list_by_status(self, statuses: Iterable[FeeStatus], *, limit: int) -> Sequence[FeeCollection]:
        values = [s.value for s in statuses]
        if not values:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _COLLECTION_SELECT
                + f" WHERE fc.status IN ({_in_clause(values)}) ORDER BY fc.payment_date, fc.id LIMIT %s",
                tuple(values) + (int(limit),),
            )
            return [_to_collection(r) for r in fetchall(cur)]

    def list_for_students(self, student_ids: Iterable[int]) -> Sequence[FeeCollection]:
        ids = [int(i) for i in student_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _COLLECTION_SELECT + f" WHERE fc.student_id IN ({_in_clause(ids)}) ORDER BY fc.year, fc.month, fc.id",
                tuple(ids),
            )
            return [_to_collection(r) for r in fetchall(cur)]
