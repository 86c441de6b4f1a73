from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

from roster.domain import SchedulingCycle
from roster.errors import CycleLocked

logger = logging.getLogger(__name__)


class CycleLockGate:
    """Answers whether a date sits inside a confirmed scheduling cycle."""

    def __init__(self, cycles: Iterable[SchedulingCycle]):
        self._confirmed = [cycle for cycle in cycles if cycle.confirmed]

    def is_locked(self, day: date) -> bool:
        return any(cycle.covers(day) for cycle in self._confirmed)

    def check_range(self, start: date, end: date) -> None:
        for cycle in sorted(self._confirmed, key=lambda c: c.start_date):
            if cycle.overlaps(start, end):
                logger.warning(
                    "Rejected write to %s..%s: cycle %s is confirmed",
                    start.isoformat(), end.isoformat(), cycle.name or cycle.cycle_id,
                )
                raise CycleLocked(cycle.name, cycle.start_date, cycle.end_date)
