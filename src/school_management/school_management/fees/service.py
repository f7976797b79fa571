from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from ..academics.repository import AcademicRepository
from ..common.datetime_utils import Clock, SystemClock, clamp_day
from ..common.validators import FieldErrors
from ..core.constants import (
    AUTO_GENERATED_FEE_REMARK,
    DEFAULT_FEE_DUE_DAY,
    DEFAULT_PAGE_SIZE,
    RECEIPT_COUNTER_WIDTH,
    RECEIPT_PREFIX,
    SYSTEM_USER_ID,
)
from ..core.enums import FeeStatus, RecordStatus, WaiverReason, WaiverStatus, WaiverType
from ..core.exceptions import NotFoundError, ValidationError
from ..people.repository import PeopleRepository
from .due_dates import generate_due_date
from .model import AgingReport, FeeCollection, FeeStructure, FeeWaiver, GenerationReport
from .repository import FeeRepository

logger = logging.getLogger(__name__)

_OPEN_STATUSES = (FeeStatus.PENDING, FeeStatus.PARTIAL, FeeStatus.OVERDUE)


def receipt_number(day: date, sequence: int) -> str:
    return f"{RECEIPT_PREFIX}-{day:%Y%m%d}-{sequence:0{RECEIPT_COUNTER_WIDTH}d}"


def period_due_date(structure: FeeStructure, *, month: int, year: int) -> date:
    """Due date of a billing period: the structure's day of month (or the 10th) in that month."""
    day = structure.due_date.day if structure.due_date else DEFAULT_FEE_DUE_DAY
    return clamp_day(year, month, day)


def waiver_discount(waivers: Iterable[FeeWaiver], *, fee_type_id: int, amount: Decimal, on: date) -> Decimal:
    """Largest discount among the waivers covering a fee; waivers do not stack."""
    return max(
        (w.discount_on(amount) for w in waivers if w.applies_to(fee_type_id=fee_type_id, on=on)),
        default=Decimal("0"),
    )


class FeeGenerationService:
    """Use case: materialize monthly fee collections from fee structures."""

    def __init__(
        self,
        fees: FeeRepository,
        people: PeopleRepository,
        academics: AcademicRepository,
        *,
        clock: Clock | None = None,
    ):
        self._fees = fees
        self._people = people
        self._academics = academics
        self._clock = clock or SystemClock()

    def generate(
        self,
        *,
        month: Optional[int] = None,
        year: Optional[int] = None,
        within_academic_year_only: bool = False,
    ) -> GenerationReport:
        """Create missing collections for (month, year), default the current month.

        With ``within_academic_year_only`` nothing happens when today falls
        outside the current academic year; otherwise a target month outside
        it only adds a warning.
        """
        now = self._clock.now()
        today = now.date()
        month = int(month or today.month)
        year = int(year or today.year)
        report = GenerationReport(month=month, year=year)

        if not 1 <= month <= 12:
            raise ValidationError("Invalid month", {"month": ["The month must be between 1 and 12."]})

        academic_year = self._academics.get_current_year()
        if not academic_year:
            report.ran = False
            report.warnings.append("No active academic year found!")
            logger.warning("Fee generation skipped: no current academic year")
            return report

        if within_academic_year_only and not academic_year.contains(today):
            report.ran = False
            logger.info("Fee generation skipped: %s is outside academic year %s", today, academic_year.year)
            return report

        target = date(year, month, 1)
        if not academic_year.contains(target):
            report.warnings.append(f"Target date {target.isoformat()} is outside academic year period.")

        students = self._people.list_active_students(academic_year_id=academic_year.id)
        report.students = len(students)
        if not students:
            report.warnings.append("No active students found!")
            return report

        waivers_by_student: dict[int, list[FeeWaiver]] = defaultdict(list)
        for waiver in self._fees.list_active_waivers(academic_year_id=academic_year.id, on=target):
            waivers_by_student[waiver.student_id].append(waiver)

        structures_by_class: dict[int, list[FeeStructure]] = {}
        with self._fees.transaction() as batch:
            for student in students:
                try:
                    if student.class_id not in structures_by_class:
                        structures_by_class[student.class_id] = list(
                            self._fees.list_monthly_structures(
                                class_id=student.class_id,
                                academic_year_id=academic_year.id,
                            )
                        )

                    for structure in structures_by_class[student.class_id]:
                        if batch.exists(
                            student_id=student.id,
                            fee_type_id=structure.fee_type_id,
                            month=month,
                            year=year,
                        ):
                            report.skipped += 1
                            continue

                        discount = waiver_discount(
                            waivers_by_student.get(student.id, ()),
                            fee_type_id=structure.fee_type_id,
                            amount=structure.amount,
                            on=target,
                        )
                        sequence = batch.count_created_on(today) + 1
                        batch.insert(
                            FeeCollection(
                                receipt_number=receipt_number(today, sequence),
                                student_id=student.id,
                                fee_type_id=structure.fee_type_id,
                                academic_year_id=academic_year.id,
                                month=month,
                                year=year,
                                amount=structure.amount,
                                discount=discount,
                                total_amount=structure.amount - discount,
                                payment_date=structure.due_date or date(year, month, DEFAULT_FEE_DUE_DAY),
                                status=FeeStatus.PENDING,
                                remarks=AUTO_GENERATED_FEE_REMARK,
                                collected_by=SYSTEM_USER_ID,
                                created_at=now,
                            )
                        )
                        report.generated += 1
                except Exception:
                    logger.exception("Fee generation failed for student %s", student.id)
                    report.errors += 1

        logger.info(
            "Fee generation %04d-%02d: generated=%s skipped=%s errors=%s",
            year,
            month,
            report.generated,
            report.skipped,
            report.errors,
        )
        return report


class OverdueService:
    """Use case: move pending fees past their due date to overdue and apply late fees.

    Only pending rows are aged. A row that went overdue inside the grace
    period keeps a zero late fee; the total is recomputed from amount,
    discount and the late fee, so it never compounds.
    """

    def __init__(self, fees: FeeRepository, *, clock: Clock | None = None):
        self._fees = fees
        self._clock = clock or SystemClock()

    def update_overdue(self) -> AgingReport:
        today = self._clock.now().date()
        report = AgingReport()

        for fee in self._fees.list_billable((FeeStatus.PENDING,)):
            try:
                if fee.month is None or fee.year is None or fee.class_id is None:
                    report.skipped += 1
                    continue

                structure = self._fees.find_structure(
                    class_id=fee.class_id,
                    fee_type_id=fee.fee_type_id,
                    academic_year_id=fee.academic_year_id,
                )
                if not structure:
                    report.skipped += 1
                    continue

                due = period_due_date(structure, month=fee.month, year=fee.year)
                if today <= due:
                    report.skipped += 1
                    continue

                days_overdue = (today - due).days
                late_fee = Decimal("0")
                if structure.late_fee and structure.late_fee_days and days_overdue > structure.late_fee_days:
                    late_fee = structure.late_fee
                total = fee.total_with(late_fee)

                self._fees.update_aging(fee_id=fee.id, status=FeeStatus.OVERDUE, late_fee=late_fee, total_amount=total)
                report.updated += 1
            except Exception:
                logger.exception("Overdue update failed for fee %s", fee.id)
                report.errors += 1

        logger.info("Overdue update: updated=%s skipped=%s errors=%s", report.updated, report.skipped, report.errors)
        return report


def _decimal(errors: FieldErrors, data: dict, field: str, *, required: bool = False) -> Optional[Decimal]:
    value = data.get(field)
    if value in (None, ""):
        if required:
            errors.add(field, f"The {field} field is required.")
        return None
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        errors.add(field, f"The {field} must be a number.")
        return None
    if number < 0:
        errors.add(field, f"The {field} must be at least 0.")
        return None
    return number


def _int(errors: FieldErrors, data: dict, field: str, *, required: bool = False) -> Optional[int]:
    value = data.get(field)
    if value in (None, ""):
        if required:
            errors.add(field, f"The {field} field is required.")
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        errors.add(field, f"The {field} must be an integer.")
        return None


class FeeStructureService:
    """Use case: manage fee types and structures (admin)."""

    def __init__(self, fees: FeeRepository, academics: AcademicRepository, *, clock: Clock | None = None):
        self._fees = fees
        self._academics = academics
        self._clock = clock or SystemClock()

    def list_fee_types(self) -> list[dict]:
        return [
            {"id": t.id, "name": t.name, "frequency": t.frequency.value, "status": t.status.value}
            for t in self._fees.list_fee_types()
        ]

    def list_structures(self, academic_year_id: Optional[int] = None) -> list[dict]:
        return [structure_to_dict(s) for s in self._fees.list_structures(academic_year_id=academic_year_id)]

    def _parse(self, data: dict) -> FeeStructure:
        errors = FieldErrors()
        class_id = _int(errors, data, "class_id", required=True)
        fee_type_id = _int(errors, data, "fee_type_id", required=True)
        academic_year_id = _int(errors, data, "academic_year_id", required=True)
        amount = _decimal(errors, data, "amount", required=True)
        late_fee = _decimal(errors, data, "late_fee")
        late_fee_days = _int(errors, data, "late_fee_days")
        due_date = errors.iso_date(data, "due_date")
        status = errors.choice(data, "status", [s.value for s in RecordStatus]) or RecordStatus.ACTIVE.value
        errors.raise_if_any()

        fee_type = self._fees.get_fee_type(fee_type_id)
        if not fee_type:
            raise ValidationError("Invalid fee type", {"fee_type_id": ["The selected fee_type_id is invalid."]})
        academic_year = self._academics.get_year(academic_year_id)
        if not academic_year:
            raise ValidationError(
                "Invalid academic year", {"academic_year_id": ["The selected academic_year_id is invalid."]}
            )

        if due_date is None:
            due_date = generate_due_date(fee_type.frequency, academic_year, self._clock.now().date())

        return FeeStructure(
            id=0,
            class_id=class_id,
            fee_type_id=fee_type_id,
            academic_year_id=academic_year_id,
            amount=amount,
            due_date=due_date,
            late_fee=late_fee or Decimal("0"),
            late_fee_days=late_fee_days,
            status=RecordStatus(status),
            frequency=fee_type.frequency,
        )

    def create_structure(self, data: dict) -> int:
        structure = self._parse(data)
        if self._fees.find_structure(
            class_id=structure.class_id,
            fee_type_id=structure.fee_type_id,
            academic_year_id=structure.academic_year_id,
        ):
            raise ValidationError(
                "Fee structure already exists for this class, fee type and academic year",
                {"fee_type_id": ["A fee structure for this class and academic year already exists."]},
            )
        structure_id = self._fees.create_structure(structure)
        logger.info("Fee structure %s created (due %s)", structure_id, structure.due_date)
        return structure_id

    def update_structure(self, structure_id: int, data: dict) -> None:
        if not self._fees.get_structure(int(structure_id)):
            raise NotFoundError("Fee structure not found")
        structure = replace(self._parse(data), id=int(structure_id))
        other = self._fees.find_structure(
            class_id=structure.class_id,
            fee_type_id=structure.fee_type_id,
            academic_year_id=structure.academic_year_id,
        )
        if other and other.id != structure.id:
            raise ValidationError(
                "Fee structure already exists for this class, fee type and academic year",
                {"fee_type_id": ["A fee structure for this class and academic year already exists."]},
            )
        self._fees.update_structure(structure)


class FeeWaiverService:
    """Use case: manage standing fee waivers (admin).

    Waivers only affect collections generated after they are saved.
    """

    def __init__(self, fees: FeeRepository, people: PeopleRepository, academics: AcademicRepository):
        self._fees = fees
        self._people = people
        self._academics = academics

    def list_waivers(self, student_id: Optional[int] = None) -> list[dict]:
        return [waiver_to_dict(w) for w in self._fees.list_waivers(student_id=student_id)]

    def _parse(self, data: dict, *, approved_by: int) -> FeeWaiver:
        errors = FieldErrors()
        student_id = _int(errors, data, "student_id", required=True)
        academic_year_id = _int(errors, data, "academic_year_id", required=True)
        fee_type_id = _int(errors, data, "fee_type_id")
        waiver_type = errors.choice(data, "waiver_type", [t.value for t in WaiverType], required=True)
        waiver_value = _decimal(errors, data, "waiver_value", required=True)
        if waiver_type == WaiverType.PERCENTAGE.value and waiver_value is not None and waiver_value > 100:
            errors.add("waiver_value", "The waiver_value may not be greater than 100.")
        reason = errors.choice(data, "reason", [r.value for r in WaiverReason]) or WaiverReason.MERIT.value
        description = errors.string(data, "description")
        valid_from = errors.iso_date(data, "valid_from", required=True)
        valid_to = errors.iso_date(data, "valid_to")
        if valid_from and valid_to and valid_to < valid_from:
            errors.add("valid_to", "The valid_to must be a date after or equal to valid_from.")
        status = errors.choice(data, "status", [s.value for s in WaiverStatus]) or WaiverStatus.ACTIVE.value
        errors.raise_if_any()

        if not self._people.get_student(student_id):
            raise ValidationError("Invalid student", {"student_id": ["The selected student_id is invalid."]})
        if not self._academics.get_year(academic_year_id):
            raise ValidationError(
                "Invalid academic year", {"academic_year_id": ["The selected academic_year_id is invalid."]}
            )
        if fee_type_id is not None and not self._fees.get_fee_type(fee_type_id):
            raise ValidationError("Invalid fee type", {"fee_type_id": ["The selected fee_type_id is invalid."]})

        return FeeWaiver(
            id=0,
            student_id=student_id,
            academic_year_id=academic_year_id,
            fee_type_id=fee_type_id,
            waiver_type=WaiverType(waiver_type),
            waiver_value=waiver_value,
            reason=WaiverReason(reason),
            description=description or None,
            valid_from=valid_from,
            valid_to=valid_to,
            status=WaiverStatus(status),
            approved_by=int(approved_by),
        )

    def create_waiver(self, data: dict, *, approved_by: int) -> int:
        waiver = self._parse(data, approved_by=approved_by)
        waiver_id = self._fees.create_waiver(waiver)
        logger.info("Fee waiver %s created for student %s by user %s", waiver_id, waiver.student_id, approved_by)
        return waiver_id

    def update_waiver(self, waiver_id: int, data: dict, *, approved_by: int) -> None:
        if not self._fees.get_waiver(int(waiver_id)):
            raise NotFoundError("Fee waiver not found")
        self._fees.update_waiver(replace(self._parse(data, approved_by=approved_by), id=int(waiver_id)))

    def delete_waiver(self, waiver_id: int) -> None:
        if not self._fees.delete_waiver(int(waiver_id)):
            raise NotFoundError("Fee waiver not found")


class FeeCollectionService:
    """Use case: payments and fee listings for admins and the portal."""

    def __init__(self, fees: FeeRepository, people: PeopleRepository, *, clock: Clock | None = None):
        self._fees = fees
        self._people = people
        self._clock = clock or SystemClock()

    def record_payment(self, fee_id: int, data: dict, *, collected_by: int) -> FeeCollection:
        errors = FieldErrors()
        amount = _decimal(errors, data, "amount", required=True)
        if amount is not None and amount <= 0:
            errors.add("amount", "The amount must be greater than 0.")
        discount = _decimal(errors, data, "discount")
        payment_date = errors.iso_date(data, "payment_date")
        errors.raise_if_any()

        fee = self._fees.get_collection(int(fee_id))
        if not fee:
            raise NotFoundError("Fee collection not found")
        if fee.status in (FeeStatus.PAID, FeeStatus.CANCELLED):
            raise ValidationError(f"Fee is already {fee.status.value}")

        if discount is None:
            discount = fee.discount
        elif discount > fee.amount + fee.late_fee:
            raise ValidationError(
                "Invalid discount", {"discount": ["The discount may not be greater than the fee amount."]}
            )
        total = replace(fee, discount=discount).total_with(fee.late_fee)

        paid = fee.paid_amount + amount
        status = FeeStatus.PAID if paid >= total else FeeStatus.PARTIAL
        payment_date = payment_date or self._clock.now().date()
        remarks = (data.get("remarks") or "").strip() or None

        self._fees.record_payment(
            fee_id=fee.id,
            paid_amount=paid,
            discount=discount,
            total_amount=total,
            status=status,
            payment_date=payment_date,
            collected_by=int(collected_by),
            remarks=remarks,
        )
        logger.info("Payment %s recorded on fee %s by user %s (%s)", amount, fee.id, collected_by, status.value)
        return replace(
            fee,
            paid_amount=paid,
            discount=discount,
            total_amount=total,
            status=status,
            payment_date=payment_date,
            collected_by=int(collected_by),
            remarks=remarks or fee.remarks,
        )

    def list_overdue(self, *, limit: int = DEFAULT_PAGE_SIZE) -> list[dict]:
        return [collection_to_dict(c) for c in self._fees.list_by_status((FeeStatus.OVERDUE,), limit=limit)]

    def dues_for_user(self, user_id: int) -> list[dict]:
        """Open fees of the students linked to a portal login."""
        students = {s.id: s for s in self._people.list_students_for_user(int(user_id))}
        rows = []
        for c in self._fees.list_for_students(students.keys()):
            if c.status not in _OPEN_STATUSES:
                continue
            row = collection_to_dict(c)
            row["student_name"] = students[c.student_id].full_name
            rows.append(row)
        return rows


def structure_to_dict(s: FeeStructure) -> dict:
    return {
        "id": s.id,
        "class_id": s.class_id,
        "fee_type_id": s.fee_type_id,
        "academic_year_id": s.academic_year_id,
        "amount": str(s.amount),
        "due_date": s.due_date.isoformat() if s.due_date else None,
        "late_fee": str(s.late_fee),
        "late_fee_days": s.late_fee_days,
        "status": s.status.value,
        "frequency": s.frequency.value if s.frequency else None,
    }


def collection_to_dict(c: FeeCollection) -> dict:
    return {
        "id": c.id,
        "receipt_number": c.receipt_number,
        "student_id": c.student_id,
        "fee_type_id": c.fee_type_id,
        "academic_year_id": c.academic_year_id,
        "month": c.month,
        "year": c.year,
        "amount": str(c.amount),
        "late_fee": str(c.late_fee),
        "discount": str(c.discount),
        "total_amount": str(c.total_amount),
        "paid_amount": str(c.paid_amount),
        "balance": str(c.balance),
        "payment_date": c.payment_date.isoformat(),
        "status": c.status.value,
        "remarks": c.remarks,
    }


def waiver_to_dict(w: FeeWaiver) -> dict:
    return {
        "id": w.id,
        "student_id": w.student_id,
        "fee_type_id": w.fee_type_id,
        "academic_year_id": w.academic_year_id,
        "waiver_type": w.waiver_type.value,
        "waiver_value": str(w.waiver_value),
        "reason": w.reason.value,
        "description": w.description,
        "valid_from": w.valid_from.isoformat(),
        "valid_to": w.valid_to.isoformat() if w.valid_to else None,
        "status": w.status.value,
        "approved_by": w.approved_by,
    }
