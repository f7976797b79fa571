from datetime import datetime

from src.school_management.school_management.common.idempotency import InMemoryIdempotencyStore
from src.school_management.school_management.fees.maintenance import FeeMaintenance
from src.school_management.school_management.fees.model import AgingReport, GenerationReport


class RecordingGeneration:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def generate(self, **kwargs):
        self.calls.append(kwargs)
        if self.fail:
            raise RuntimeError("database went away")
        return GenerationReport(month=3, year=2024, generated=1)


class RecordingOverdue:
    def __init__(self):
        self.calls = 0

    def update_overdue(self):
        self.calls += 1
        return AgingReport()


def _maintenance(clock, **kwargs):
    generation = kwargs.pop("generation", RecordingGeneration())
    overdue = RecordingOverdue()
    store = InMemoryIdempotencyStore(clock)
    return FeeMaintenance(generation, overdue, store, clock=clock, **kwargs), generation, overdue, store


def test_next_hour_bucket_runs_again(clock):
    maintenance, generation, _, _ = _maintenance(clock)

    assert maintenance.run_if_due() is True
    clock.advance(minutes=50)
    assert maintenance.run_if_due() is False
    clock.advance(minutes=5)
    assert maintenance.run_if_due() is True
    assert len(generation.calls) == 2


def test_same_hour_is_skipped(clock):
    clock.set(datetime(2024, 3, 1, 9, 0))
    maintenance, generation, overdue, store = _maintenance(clock)

    assert maintenance.run_if_due() is True
    clock.advance(minutes=59)
    assert maintenance.run_if_due() is False
    clock.advance(minutes=1)
    assert maintenance.run_if_due() is True

    assert generation.calls == [{"within_academic_year_only": True}] * 2
    assert overdue.calls == 2
    assert store.has("fee_generation_check_2024-03-01-10")


def test_failure_is_swallowed_and_not_retried_within_the_hour(clock):
    maintenance, generation, overdue, _ = _maintenance(clock, generation=RecordingGeneration(fail=True))

    assert maintenance.run_if_due() is True
    assert maintenance.run_if_due() is False
    assert len(generation.calls) == 1
    assert overdue.calls == 0


def test_disabled_never_runs(clock):
    maintenance, generation, _, store = _maintenance(clock, enabled=False)

    assert maintenance.run_if_due() is False
    assert generation.calls == []
    assert not store.has(maintenance.guard_key())


def test_guard_key_uses_hour_bucket(clock):
    maintenance, _, _, _ = _maintenance(clock)

    assert maintenance.guard_key() == "fee_generation_check_2024-03-01-08"
