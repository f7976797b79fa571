from datetime import date

from src.school_management.school_management.academics.model import AcademicYear
from src.school_management.school_management.core.enums import FeeFrequency
from src.school_management.school_management.fees.due_dates import generate_due_date

YEAR = AcademicYear(id=1, year="2024-2025", start_date=date(2024, 4, 1), end_date=date(2025, 3, 31))


def test_quarterly_uses_next_quarter_end_of_the_start_year():
    assert generate_due_date(FeeFrequency.QUARTERLY, YEAR, date(2024, 5, 1)) == date(2024, 6, 30)


def test_quarterly_after_last_quarter_rolls_into_next_march():
    assert generate_due_date("quarterly", YEAR, date(2025, 1, 10)) == date(2025, 3, 31)


def test_quarterly_without_year_skips_a_quarter_ending_too_soon():
    assert generate_due_date(FeeFrequency.QUARTERLY, None, date(2024, 3, 20)) == date(2024, 6, 30)
    assert generate_due_date(FeeFrequency.QUARTERLY, None, date(2024, 2, 1)) == date(2024, 3, 31)


def test_yearly_is_end_of_start_year():
    assert generate_due_date(FeeFrequency.YEARLY, YEAR, date(2025, 2, 1)) == date(2024, 12, 31)
    assert generate_due_date(FeeFrequency.YEARLY, None, date(2025, 2, 1)) == date(2025, 12, 31)


def test_one_time_is_thirty_days_out():
    assert generate_due_date(FeeFrequency.ONE_TIME, YEAR, date(2024, 5, 1)) == date(2024, 5, 31)


def test_monthly_and_unknown_frequencies_use_end_of_month():
    assert generate_due_date(FeeFrequency.MONTHLY, YEAR, date(2024, 2, 10)) == date(2024, 2, 29)
    assert generate_due_date("weekly", YEAR, date(2024, 4, 3)) == date(2024, 4, 30)
