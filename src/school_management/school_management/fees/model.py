from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..core.enums import FeeFrequency, FeeStatus, RecordStatus, WaiverReason, WaiverStatus, WaiverType


@dataclass(frozen=True)
class FeeType:
    id: int
    name: str
    frequency: FeeFrequency
    status: RecordStatus = RecordStatus.ACTIVE


@dataclass(frozen=True)
class FeeStructure:
    """Template for one class x fee type x academic year.

    Edits only affect collections generated afterwards.
    """

    id: int
    class_id: int
    fee_type_id: int
    academic_year_id: int
    amount: Decimal
    due_date: Optional[date] = None
    late_fee: Decimal = Decimal("0")
    late_fee_days: Optional[int] = None
    status: RecordStatus = RecordStatus.ACTIVE
    frequency: Optional[FeeFrequency] = None


@dataclass(frozen=True)
class FeeCollection:
    receipt_number: str
    student_id: int
    fee_type_id: int
    academic_year_id: int
    amount: Decimal
    total_amount: Decimal
    payment_date: date
    month: Optional[int] = None
    year: Optional[int] = None
    late_fee: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    paid_amount: Decimal = Decimal("0")
    status: FeeStatus = FeeStatus.PENDING
    remarks: Optional[str] = None
    collected_by: Optional[int] = None
    created_at: Optional[datetime] = None
    id: Optional[int] = None
    # Class of the student at query time; filled by listings that join students.
    class_id: Optional[int] = None

    @property
    def balance(self) -> Decimal:
        return self.total_amount - self.paid_amount

    def total_with(self, late_fee: Decimal) -> Decimal:
        return self.amount - self.discount + late_fee


@dataclass(frozen=True)
class FeeWaiver:
    """Standing discount for one student in one academic year.

    Without a fee type it covers every fee of the student. Generation applies
    it to rows whose billing month starts inside the validity window.
    """

    id: int
    student_id: int
    academic_year_id: int
    waiver_type: WaiverType
    waiver_value: Decimal
    valid_from: date
    valid_to: Optional[date] = None
    fee_type_id: Optional[int] = None
    reason: WaiverReason = WaiverReason.MERIT
    description: Optional[str] = None
    status: WaiverStatus = WaiverStatus.ACTIVE
    approved_by: Optional[int] = None

    def applies_to(self, *, fee_type_id: int, on: date) -> bool:
        if self.status != WaiverStatus.ACTIVE:
            return False
        if self.fee_type_id is not None and self.fee_type_id != fee_type_id:
            return False
        return self.valid_from <= on and (self.valid_to is None or on <= self.valid_to)

    def discount_on(self, amount: Decimal) -> Decimal:
        if self.waiver_type == WaiverType.PERCENTAGE:
            discount = (amount * min(self.waiver_value, Decimal("100")) / 100).quantize(
                Decimal("0.01"), rounding=ROUND_HALF_UP
            )
        else:
            discount = self.waiver_value
        return min(discount, amount)


@dataclass
class GenerationReport:
    month: int
    year: int
    generated: int = 0
    skipped: int = 0
    errors: int = 0
    students: int = 0
    warnings: list[str] = field(default_factory=list)
    ran: bool = True


@dataclass
class AgingReport:
    updated: int = 0
    skipped: int = 0
    errors: int = 0
