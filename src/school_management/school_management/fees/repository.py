from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import FeeStatus
from .model import FeeCollection, FeeStructure, FeeType, FeeWaiver


class FeeBatch(Protocol):
    """Unit of work for fee generation: every call shares one transaction."""

    def exists(self, *, student_id: int, fee_type_id: int, month: int, year: int) -> bool:
        raise NotImplementedError

    def count_created_on(self, day: date) -> int:
        raise NotImplementedError

    def insert(self, collection: FeeCollection) -> int:
        raise NotImplementedError


class FeeRepository(Protocol):
    # Fee types and structures

    def list_fee_types(self) -> Sequence[FeeType]:
        raise NotImplementedError

    def get_fee_type(self, fee_type_id: int) -> Optional[FeeType]:
        raise NotImplementedError

    def get_structure(self, structure_id: int) -> Optional[FeeStructure]:
        raise NotImplementedError

    def find_structure(self, *, class_id: int, fee_type_id: int, academic_year_id: int) -> Optional[FeeStructure]:
        raise NotImplementedError

    def list_structures(self, *, academic_year_id: Optional[int] = None) -> Sequence[FeeStructure]:
        raise NotImplementedError

    def list_monthly_structures(self, *, class_id: int, academic_year_id: int) -> Sequence[FeeStructure]:
        """Active structures of the class/year whose fee type is billed monthly."""

        raise NotImplementedError

    def create_structure(self, structure: FeeStructure) -> int:
        raise NotImplementedError

    def update_structure(self, structure: FeeStructure) -> bool:
        raise NotImplementedError

    # Waivers

    def list_waivers(self, *, student_id: Optional[int] = None) -> Sequence[FeeWaiver]:
        raise NotImplementedError

    def list_active_waivers(self, *, academic_year_id: int, on: date) -> Sequence[FeeWaiver]:
        """Active waivers of the year whose validity window contains ``on``."""

        raise NotImplementedError

    def get_waiver(self, waiver_id: int) -> Optional[FeeWaiver]:
        raise NotImplementedError

    def create_waiver(self, waiver: FeeWaiver) -> int:
        raise NotImplementedError

    def update_waiver(self, waiver: FeeWaiver) -> bool:
        raise NotImplementedError

    def delete_waiver(self, waiver_id: int) -> bool:
        raise NotImplementedError

    # Collections

    def transaction(self) -> AbstractContextManager[FeeBatch]:
        raise NotImplementedError

    def list_billable(self, statuses: Iterable[FeeStatus]) -> Sequence[FeeCollection]:
        """Collections with a billing month/year in the given statuses, with the student's class."""

        raise NotImplementedError

    def update_aging(self, *, fee_id: int, status: FeeStatus, late_fee: Decimal, total_amount: Decimal) -> bool:
        raise NotImplementedError

    def get_collection(self, fee_id: int) -> Optional[FeeCollection]:
        raise NotImplementedError

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
        raise NotImplementedError

    def list_by_status(self, statuses: Iterable[FeeStatus], *, limit: int) -> Sequence[FeeCollection]:
        raise NotImplementedError

    def list_for_students(self, student_ids: Iterable[int]) -> Sequence[FeeCollection]:
        raise NotImplementedError
