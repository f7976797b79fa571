from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal

import pytest

from src.school_management.school_management.academics.model import AcademicYear
from src.school_management.school_management.core.enums import (
    FeeFrequency,
    FeeStatus,
    RecordStatus,
    WaiverStatus,
    WaiverType,
)
from src.school_management.school_management.core.exceptions import NotFoundError, ValidationError
from src.school_management.school_management.fees.model import FeeStructure, FeeType, FeeWaiver
from src.school_management.school_management.fees.service import (
    FeeCollectionService,
    FeeGenerationService,
    FeeStructureService,
    FeeWaiverService,
    OverdueService,
    receipt_number,
)
from src.school_management.school_management.people.model import Student
from tests.fakes import InMemoryAcademics, InMemoryFees, InMemoryPeople

FEE_TYPES = [
    FeeType(id=1, name="Tuition", frequency=FeeFrequency.MONTHLY),
    FeeType(id=2, name="Annual", frequency=FeeFrequency.YEARLY),
]


def _academics():
    year = AcademicYear(
        id=1, year="2023-2024", start_date=date(2023, 6, 1), end_date=date(2024, 5, 31), is_current=True
    )
    return InMemoryAcademics(years={1: year})


def _people():
    return InMemoryPeople(
        students=[
            Student(id=10, admission_number="S10", first_name="Bo", class_id=3, academic_year_id=1, parent_user_id=50),
            Student(id=11, admission_number="S11", first_name="Cy", class_id=3, academic_year_id=1),
            Student(id=12, admission_number="S12", first_name="Di", class_id=4, academic_year_id=1),
            Student(
                id=13,
                admission_number="S13",
                first_name="Ed",
                class_id=3,
                academic_year_id=1,
                status=RecordStatus.INACTIVE,
            ),
        ]
    )


def _fees():
    structures = [
        FeeStructure(
            id=1,
            class_id=3,
            fee_type_id=1,
            academic_year_id=1,
            amount=Decimal("500.00"),
            due_date=date(2023, 6, 15),
            late_fee=Decimal("50.00"),
            late_fee_days=5,
        ),
        FeeStructure(id=2, class_id=3, fee_type_id=2, academic_year_id=1, amount=Decimal("1000.00")),
    ]
    return InMemoryFees(fee_types=FEE_TYPES, structures=structures, student_classes={10: 3, 11: 3, 12: 4})


def test_receipt_number_format():
    assert receipt_number(date(2024, 3, 1), 7) == "FEE-20240301-000007"


def test_generate_creates_one_row_per_student_and_monthly_structure(clock, fixed_now):
    fees = _fees()
    svc = FeeGenerationService(fees, _people(), _academics(), clock=clock)

    report = svc.generate()

    assert (report.month, report.year) == (3, 2024)
    assert report.generated == 2
    assert report.students == 3
    rows = sorted(fees.collections.values(), key=lambda c: c.id)
    assert [r.student_id for r in rows] == [10, 11]
    assert [r.receipt_number for r in rows] == ["FEE-20240301-000001", "FEE-20240301-000002"]
    assert all(r.payment_date == date(2023, 6, 15) for r in rows)
    assert all(r.discount == Decimal("0") for r in rows)
    assert all(r.status == FeeStatus.PENDING and r.collected_by == 1 for r in rows)
    assert rows[0].created_at == fixed_now
    assert rows[0].total_amount == Decimal("500.00")


def test_generate_is_idempotent_per_period(clock):
    fees = _fees()
    svc = FeeGenerationService(fees, _people(), _academics(), clock=clock)

    svc.generate(month=3, year=2024)
    again = svc.generate(month=3, year=2024)
    april = svc.generate(month=4, year=2024)

    assert again.generated == 0
    assert again.skipped == 2
    assert april.generated == 2
    assert len(fees.collections) == 4
    assert fees.transactions == 3


def test_generate_due_date_defaults_to_tenth_of_billed_month(clock):
    fees = _fees()
    fees.structures[1] = FeeStructure(id=1, class_id=3, fee_type_id=1, academic_year_id=1, amount=Decimal("500"))
    svc = FeeGenerationService(fees, _people(), _academics(), clock=clock)

    svc.generate(month=2, year=2024)

    assert {c.payment_date for c in fees.collections.values()} == {date(2024, 2, 10)}


def test_generate_without_current_year_does_nothing(clock):
    fees = _fees()
    svc = FeeGenerationService(fees, _people(), InMemoryAcademics(), clock=clock)

    report = svc.generate()

    assert report.ran is False
    assert report.warnings == ["No active academic year found!"]
    assert fees.collections == {}


def test_generate_outside_year_warns_or_skips(clock):
    fees = _fees()
    svc = FeeGenerationService(fees, _people(), _academics(), clock=clock)

    report = svc.generate(month=8, year=2024)
    assert report.generated == 2
    assert report.warnings == ["Target date 2024-08-01 is outside academic year period."]

    clock.set(datetime(2024, 7, 1, 9, 0))
    skipped = svc.generate(within_academic_year_only=True)
    assert skipped.ran is False
    assert skipped.generated == 0


def test_generate_rejects_invalid_month(clock):
    svc = FeeGenerationService(_fees(), _people(), _academics(), clock=clock)

    with pytest.raises(ValidationError):
        svc.generate(month=13, year=2024)


def _generated(clock):
    fees = _fees()
    FeeGenerationService(fees, _people(), _academics(), clock=clock).generate()
    return fees


def test_overdue_not_applied_before_due_date(clock):
    fees = _generated(clock)
    clock.set(datetime(2024, 3, 15, 23, 0))

    report = OverdueService(fees, clock=clock).update_overdue()

    assert report.updated == 0
    assert report.skipped == 2
    assert {c.status for c in fees.collections.values()} == {FeeStatus.PENDING}


def test_overdue_within_grace_has_no_late_fee(clock):
    fees = _generated(clock)
    clock.set(datetime(2024, 3, 20, 9, 0))

    report = OverdueService(fees, clock=clock).update_overdue()

    assert report.updated == 2
    for c in fees.collections.values():
        assert c.status == FeeStatus.OVERDUE
        assert c.late_fee == Decimal("0")
        assert c.total_amount == Decimal("500.00")


def test_overdue_late_fee_applied_once(clock):
    fees = _generated(clock)
    service = OverdueService(fees, clock=clock)
    clock.set(datetime(2024, 3, 21, 9, 0))

    first = service.update_overdue()
    clock.advance(days=3)
    second = service.update_overdue()

    assert first.updated == 2
    assert (second.updated, second.skipped) == (0, 0)
    for c in fees.collections.values():
        assert c.status == FeeStatus.OVERDUE
        assert c.late_fee == Decimal("50.00")
        assert c.total_amount == Decimal("550.00")


def test_overdue_inside_grace_keeps_zero_late_fee_on_later_passes(clock):
    fees = _generated(clock)
    service = OverdueService(fees, clock=clock)
    clock.set(datetime(2024, 3, 18, 9, 0))
    service.update_overdue()

    clock.set(datetime(2024, 3, 25, 9, 0))
    later = service.update_overdue()

    assert later.updated == 0
    for c in fees.collections.values():
        assert (c.status, c.late_fee, c.total_amount) == (FeeStatus.OVERDUE, Decimal("0"), Decimal("500.00"))


def test_overdue_without_grace_days_charges_no_late_fee(clock):
    fees = _fees()
    fees.structures[1] = replace(fees.structures[1], late_fee_days=None)
    FeeGenerationService(fees, _people(), _academics(), clock=clock).generate()
    clock.set(datetime(2024, 3, 17, 9, 0))

    report = OverdueService(fees, clock=clock).update_overdue()

    assert report.updated == 2
    for c in fees.collections.values():
        assert (c.status, c.late_fee, c.total_amount) == (FeeStatus.OVERDUE, Decimal("0"), Decimal("500.00"))


def test_overdue_due_day_is_clamped_to_month_length(clock):
    fees = _fees()
    fees.structures[1] = replace(fees.structures[1], due_date=date(2024, 1, 31))
    FeeGenerationService(fees, _people(), _academics(), clock=clock).generate(month=2, year=2024)

    report = OverdueService(fees, clock=clock).update_overdue()

    assert report.updated == 2
    assert {c.late_fee for c in fees.collections.values()} == {Decimal("0")}


def _waiver(**kwargs):
    defaults = dict(
        id=1,
        student_id=10,
        academic_year_id=1,
        waiver_type=WaiverType.PERCENTAGE,
        waiver_value=Decimal("10"),
        valid_from=date(2024, 1, 1),
    )
    defaults.update(kwargs)
    return FeeWaiver(**defaults)


def test_generate_applies_largest_matching_waiver(clock):
    fees = _fees()
    fees.waivers = {
        1: _waiver(),
        2: _waiver(id=2, waiver_type=WaiverType.FIXED_AMOUNT, waiver_value=Decimal("80"), fee_type_id=1),
        3: _waiver(id=3, waiver_value=Decimal("50"), fee_type_id=2),
        4: _waiver(id=4, waiver_value=Decimal("90"), status=WaiverStatus.CANCELLED),
        5: _waiver(id=5, student_id=11, waiver_value=Decimal("50"), valid_from=date(2024, 4, 1)),
    }

    FeeGenerationService(fees, _people(), _academics(), clock=clock).generate()

    by_student = {c.student_id: c for c in fees.collections.values()}
    assert (by_student[10].discount, by_student[10].total_amount) == (Decimal("80"), Decimal("420.00"))
    assert (by_student[11].discount, by_student[11].total_amount) == (Decimal("0"), Decimal("500.00"))


def test_waiver_discount_never_exceeds_amount():
    assert _waiver(waiver_value=Decimal("150")).discount_on(Decimal("500")) == Decimal("500")
    assert _waiver(waiver_value=Decimal("12.5")).discount_on(Decimal("333")) == Decimal("41.63")
    fixed = _waiver(waiver_type=WaiverType.FIXED_AMOUNT, waiver_value=Decimal("700"))
    assert fixed.discount_on(Decimal("500")) == Decimal("500")


def test_overdue_total_keeps_waiver_discount(clock):
    fees = _fees()
    fees.waivers = {1: _waiver()}
    FeeGenerationService(fees, _people(), _academics(), clock=clock).generate()
    clock.set(datetime(2024, 3, 21, 9, 0))

    OverdueService(fees, clock=clock).update_overdue()

    by_student = {c.student_id: c for c in fees.collections.values()}
    assert by_student[10].discount == Decimal("50.00")
    assert by_student[10].total_amount == Decimal("500.00")
    assert by_student[11].total_amount == Decimal("550.00")


def test_payment_discount_reduces_total(clock):
    fees = _generated(clock)
    svc = FeeCollectionService(fees, _people(), clock=clock)

    fee = svc.record_payment(1, {"amount": "400", "discount": "100"}, collected_by=2)

    assert fee.status == FeeStatus.PAID
    assert fee.balance == Decimal("0")
    assert fees.collections[1].discount == Decimal("100")
    assert fees.collections[1].total_amount == Decimal("400.00")

    with pytest.raises(ValidationError) as exc:
        svc.record_payment(2, {"amount": "10", "discount": "600"}, collected_by=2)
    assert "discount" in exc.value.errors


def test_waiver_crud_and_validation(clock):
    fees = _fees()
    svc = FeeWaiverService(fees, _people(), _academics())

    waiver_id = svc.create_waiver(
        {
            "student_id": 10,
            "academic_year_id": 1,
            "waiver_type": "fixed_amount",
            "waiver_value": "75",
            "reason": "financial",
            "valid_from": "2024-03-01",
        },
        approved_by=1,
    )
    created = fees.get_waiver(waiver_id)
    assert (created.waiver_type, created.waiver_value, created.approved_by) == (
        WaiverType.FIXED_AMOUNT,
        Decimal("75"),
        1,
    )
    assert svc.list_waivers(10)[0]["reason"] == "financial"

    with pytest.raises(ValidationError) as exc:
        svc.create_waiver(
            {
                "student_id": 10,
                "academic_year_id": 1,
                "waiver_type": "percentage",
                "waiver_value": "120",
                "valid_from": "2024-03-01",
                "valid_to": "2024-02-01",
            },
            approved_by=1,
        )
    assert set(exc.value.errors) == {"waiver_value", "valid_to"}

    with pytest.raises(ValidationError) as exc:
        svc.create_waiver(
            {
                "student_id": 99,
                "academic_year_id": 1,
                "waiver_type": "percentage",
                "waiver_value": "5",
                "valid_from": "2024-03-01",
            },
            approved_by=1,
        )
    assert "student_id" in exc.value.errors

    svc.update_waiver(
        waiver_id,
        {
            "student_id": 10,
            "academic_year_id": 1,
            "waiver_type": "fixed_amount",
            "waiver_value": "75",
            "valid_from": "2024-03-01",
            "status": "cancelled",
        },
        approved_by=1,
    )
    assert fees.get_waiver(waiver_id).status == WaiverStatus.CANCELLED

    svc.delete_waiver(waiver_id)
    assert svc.list_waivers() == []
    with pytest.raises(NotFoundError):
        svc.delete_waiver(waiver_id)


def test_overdue_ignores_paid_fees(clock):
    fees = _generated(clock)
    FeeCollectionService(fees, _people(), clock=clock).record_payment(1, {"amount": "500"}, collected_by=2)
    clock.set(datetime(2024, 4, 1, 9, 0))

    OverdueService(fees, clock=clock).update_overdue()

    assert fees.collections[1].status == FeeStatus.PAID
    assert fees.collections[2].status == FeeStatus.OVERDUE


def test_payments_move_fee_to_partial_then_paid(clock):
    fees = _generated(clock)
    svc = FeeCollectionService(fees, _people(), clock=clock)

    partial = svc.record_payment(1, {"amount": "200", "remarks": "cash"}, collected_by=2)
    paid = svc.record_payment(1, {"amount": "300.00", "payment_date": "2024-03-05"}, collected_by=2)

    assert partial.status == FeeStatus.PARTIAL
    assert partial.balance == Decimal("300.00")
    assert paid.status == FeeStatus.PAID
    assert fees.collections[1].paid_amount == Decimal("500.00")
    assert fees.collections[1].payment_date == date(2024, 3, 5)
    assert fees.collections[1].remarks == "cash"

    with pytest.raises(ValidationError):
        svc.record_payment(1, {"amount": "1"}, collected_by=2)


def test_payment_validation(clock):
    fees = _generated(clock)
    svc = FeeCollectionService(fees, _people(), clock=clock)

    with pytest.raises(ValidationError) as exc:
        svc.record_payment(1, {"amount": "0"}, collected_by=2)
    assert "amount" in exc.value.errors

    with pytest.raises(NotFoundError):
        svc.record_payment(99, {"amount": "10"}, collected_by=2)


def test_dues_for_parent_lists_open_fees_of_linked_children(clock):
    fees = _generated(clock)
    svc = FeeCollectionService(fees, _people(), clock=clock)

    rows = svc.dues_for_user(50)

    assert [r["student_id"] for r in rows] == [10]
    assert rows[0]["student_name"] == "Bo"
    assert rows[0]["balance"] == "500.00"


def test_create_structure_generates_due_date_from_frequency(clock):
    fees = InMemoryFees(fee_types=FEE_TYPES)
    svc = FeeStructureService(fees, _academics(), clock=clock)

    structure_id = svc.create_structure({"class_id": 3, "fee_type_id": 1, "academic_year_id": 1, "amount": "450"})

    created = fees.get_structure(structure_id)
    assert created.due_date == date(2024, 3, 31)
    assert created.amount == Decimal("450")
    assert created.frequency == FeeFrequency.MONTHLY


def test_create_structure_rejects_duplicates_and_unknown_types(clock):
    fees = _fees()
    svc = FeeStructureService(fees, _academics(), clock=clock)

    with pytest.raises(ValidationError):
        svc.create_structure({"class_id": 3, "fee_type_id": 1, "academic_year_id": 1, "amount": "450"})

    with pytest.raises(ValidationError) as exc:
        svc.create_structure({"class_id": 3, "fee_type_id": 9, "academic_year_id": 1, "amount": "450"})
    assert "fee_type_id" in exc.value.errors

    with pytest.raises(ValidationError) as exc:
        svc.create_structure({"class_id": 3, "fee_type_id": 1, "academic_year_id": 1, "amount": "-1"})
    assert "amount" in exc.value.errors


def test_update_structure_keeps_existing_collections(clock):
    fees = _generated(clock)
    svc = FeeStructureService(fees, _academics(), clock=clock)

    svc.update_structure(
        1, {"class_id": 3, "fee_type_id": 1, "academic_year_id": 1, "amount": "600", "due_date": "2023-06-15"}
    )

    assert fees.get_structure(1).amount == Decimal("600")
    assert {c.amount for c in fees.collections.values()} == {Decimal("500.00")}
    with pytest.raises(NotFoundError):
        svc.update_structure(42, {"class_id": 3, "fee_type_id": 1, "academic_year_id": 1, "amount": "1"})
