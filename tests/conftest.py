from datetime import datetime

import pytest

from tests.fakes import FixedClock


@pytest.fixture
def fixed_now():
    # Friday; a weekend day under the default Friday/Saturday weekend.
    return datetime(2024, 3, 1, 8, 5, 0)


@pytest.fixture
def clock(fixed_now):
    return FixedClock(fixed_now)
