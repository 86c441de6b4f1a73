from __future__ import annotations

import logging
import os
import random
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from roster.availability import AvailabilityPredicate
from roster.balancer import LoadBalancer, RandomSource, count_slots
from roster.conflicts import toggle
from roster.domain import OFF, SPECIAL_ROLES, UNASSIGNED, Manual, RosterSnapshot, ShiftRecord, daterange
from roster.errors import DateClosed, InvalidRange, UnknownSlot, UnknownStaff
from roster.gate import CycleLockGate
from roster.scheduler import AssignmentReport, assign_roles, assign_stations
from roster.store import ShiftStore

logger = logging.getLogger(__name__)


def default_random_source() -> random.Random:
    seed = os.getenv("ROSTER_RANDOM_SEED", "")
    return random.Random(int(seed)) if seed else random.Random()


@dataclass
class StaffStatistics:
    staff_id: str
    name: str
    work_days: int
    off_days: int
    slots: dict[str, int] = field(default_factory=dict)


def _check_range(start: date, end: date) -> None:
    if start > end:
        raise InvalidRange(start, end)


class RosterService:
    """Commands and queries over the shift store.

    Commands read a snapshot, plan against it, and commit the planned writes as
    one batch. A rejected command writes nothing.
    """

    def __init__(self, store: ShiftStore, rng: RandomSource | None = None):
        self.store = store
        self.rng = rng if rng is not None else default_random_source()

    def _checked_snapshot(self, start: date, end: date) -> RosterSnapshot:
        _check_range(start, end)
        snapshot = self.store.snapshot()
        CycleLockGate(snapshot.cycles).check_range(start, end)
        return snapshot

    def auto_assign_stations(self, start: date, end: date, regenerate: bool = False) -> AssignmentReport:
        snapshot = self._checked_snapshot(start, end)
        balancer = LoadBalancer(snapshot.shifts.values(), self.rng)
        report = assign_stations(snapshot, start, end, balancer, regenerate=regenerate)
        self.store.upsert_many(report.written)
        return report

    def auto_assign_roles(self, start: date, end: date, roles: Iterable[str]) -> AssignmentReport:
        selected = set(roles)
        for role in selected:
            if role not in SPECIAL_ROLES:
                raise UnknownSlot(role)
        snapshot = self._checked_snapshot(start, end)
        balancer = LoadBalancer(snapshot.shifts.values(), self.rng)
        report = assign_roles(snapshot, start, end, selected, balancer)
        self.store.upsert_many(report.written)
        return report

    def _editable_record(self, snapshot: RosterSnapshot, staff_id: str, day: date) -> ShiftRecord:
        if staff_id not in {member.staff_id for member in snapshot.staff}:
            raise UnknownStaff(staff_id)
        CycleLockGate(snapshot.cycles).check_range(day, day)
        if snapshot.is_closed(day):
            raise DateClosed(day)
        return snapshot.shift_for(staff_id, day) or ShiftRecord(staff_id=staff_id, date=day)

    def set_station(self, staff_id: str, day: date, station: str) -> ShiftRecord:
        snapshot = self.store.snapshot()
        if station not in (OFF, UNASSIGNED) and station not in {s.name for s in snapshot.stations}:
            raise UnknownSlot(station)
        record = self._editable_record(snapshot, staff_id, day).with_station(Manual(station))
        self.store.upsert_shift(record)
        logger.info("Manual station %s for %s on %s", station, staff_id, day.isoformat())
        return record

    def toggle_role(self, staff_id: str, day: date, role: str) -> ShiftRecord:
        if role not in SPECIAL_ROLES:
            raise UnknownSlot(role)
        snapshot = self.store.snapshot()
        record = self._editable_record(snapshot, staff_id, day)
        record = record.with_roles(Manual(toggle(record.role_names, role)))
        self.store.upsert_shift(record)
        logger.info("Manual role toggle %s for %s on %s", role, staff_id, day.isoformat())
        return record

    def slot_counts(self, start: date, end: date) -> dict[str, dict[str, int]]:
        _check_range(start, end)
        counts = count_slots(self.store.list_shifts(start, end))
        return {staff_id: dict(sorted(slots.items())) for staff_id, slots in sorted(counts.items())}

    def staff_statistics(self, start: date, end: date) -> list[StaffStatistics]:
        """Per roster member: working days, off days and slots held in range."""
        _check_range(start, end)
        snapshot = self.store.snapshot()
        availability = AvailabilityPredicate(snapshot)
        in_range = [r for r in snapshot.shifts.values() if start <= r.date <= end]
        counts = count_slots(in_range)
        days = daterange(start, end)
        result = []
        for member in snapshot.staff:
            work_days = sum(1 for day in days if availability.is_available(member.staff_id, day))
            result.append(
                StaffStatistics(
                    staff_id=member.staff_id,
                    name=member.name,
                    work_days=work_days,
                    off_days=len(days) - work_days,
                    slots=dict(sorted(counts.get(member.staff_id, {}).items())),
                )
            )
        return result
