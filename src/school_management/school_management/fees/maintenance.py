from __future__ import annotations

import logging

from ..common.datetime_utils import Clock, SystemClock
from ..common.idempotency import IdempotencyStore
from ..core.constants import FEE_GUARD_KEY_PREFIX, FEE_GUARD_TTL_SECONDS
from .service import FeeGenerationService, OverdueService

logger = logging.getLogger(__name__)


class FeeMaintenance:
    """Request-driven fee upkeep: generation then aging, at most once per hour.

    The hour bucket is claimed in the key store before the work runs, so a
    failing run is not retried until the next hour.
    """

    def __init__(
        self,
        generation: FeeGenerationService,
        overdue: OverdueService,
        store: IdempotencyStore,
        *,
        clock: Clock | None = None,
        enabled: bool = True,
    ):
        self._generation = generation
        self._overdue = overdue
        self._store = store
        self._clock = clock or SystemClock()
        self._enabled = bool(enabled)

    def guard_key(self) -> str:
        return f"{FEE_GUARD_KEY_PREFIX}{self._clock.now():%Y-%m-%d-%H}"

    def run_if_due(self) -> bool:
        """Returns True when this call claimed the current hour and ran the pass."""
        if not self._enabled:
            return False
        if not self._store.add(self.guard_key(), ttl_seconds=FEE_GUARD_TTL_SECONDS):
            return False

        try:
            report = self._generation.generate(within_academic_year_only=True)
            if report.generated:
                logger.info("Auto-generated %s fee records for %04d-%02d", report.generated, report.year, report.month)
            self._overdue.update_overdue()
        except Exception:
            logger.exception("Automatic fee maintenance failed")
        return True
