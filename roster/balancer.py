from __future__ import annotations

import logging
import random
from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from typing import Protocol, TypeVar

from roster.domain import SYSTEM_MARKERS, ShiftRecord
from roster.errors import NoEligibleCandidate

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RandomSource(Protocol):
    def choice(self, seq: Sequence[T]) -> T: ...


def slots_held(record: ShiftRecord) -> set[str]:
    """Station and roles a record counts toward; off/unassigned markers don't count."""
    held = set(record.role_names)
    if record.station_name not in SYSTEM_MARKERS:
        held.add(record.station_name)
    return held


def count_slots(records: Iterable[ShiftRecord]) -> dict[str, Counter]:
    """Per staff member, how many records put them on each slot."""
    counts: dict[str, Counter] = defaultdict(Counter)
    for record in records:
        for slot in slots_held(record):
            counts[record.staff_id][slot] += 1
    return counts


class LoadBalancer:
    """Least-loaded pick over the whole known shift history.

    Ties are broken by a uniform draw from ``rng``; this is the only random
    decision in an assignment run.
    """

    def __init__(self, history: Iterable[ShiftRecord], rng: RandomSource | None = None):
        self._counts = count_slots(history)
        self._rng = rng if rng is not None else random.Random()

    def count(self, staff_id: str, slot_name: str) -> int:
        return self._counts[staff_id][slot_name]

    def record(self, staff_id: str, slot_name: str) -> None:
        self._counts[staff_id][slot_name] += 1

    def discount(self, staff_id: str, slot_name: str) -> None:
        if self._counts[staff_id][slot_name] > 0:
            self._counts[staff_id][slot_name] -= 1

    def pick_candidate(self, slot_name: str, candidates: Iterable[str]) -> str:
        pool = sorted(set(candidates))
        if not pool:
            raise NoEligibleCandidate(slot_name)
        lowest = min(self.count(staff_id, slot_name) for staff_id in pool)
        least_loaded = [staff_id for staff_id in pool if self.count(staff_id, slot_name) == lowest]
        winner = least_loaded[0] if len(least_loaded) == 1 else self._rng.choice(least_loaded)
        logger.debug("Picked %s for %s (count=%d, tied=%d)", winner, slot_name, lowest, len(least_loaded))
        return winner
