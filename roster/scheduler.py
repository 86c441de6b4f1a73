from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import date

from roster.availability import AvailabilityPredicate
from roster.balancer import LoadBalancer
from roster.capability import CapabilityIndex
from roster.conflicts import can_merge, ordered, reconcile
from roster.domain import (
    SYSTEM_MARKERS,
    UNASSIGNED,
    Generated,
    RosterSnapshot,
    ShiftKey,
    ShiftRecord,
    Station,
    daterange,
    is_manual,
)
from roster.errors import NoEligibleCandidate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnfilledSlot:
    date: date
    slot: str


@dataclass
class AssignmentReport:
    written: list[ShiftRecord] = field(default_factory=list)
    unfilled: list[UnfilledSlot] = field(default_factory=list)


class _Workspace:
    """Working copy of a snapshot; availability sees writes made earlier in the run."""

    def __init__(self, snapshot: RosterSnapshot):
        self.snapshot = replace(snapshot, shifts=dict(snapshot.shifts))
        self.staff_ids = [member.staff_id for member in snapshot.staff]
        self.capability = CapabilityIndex(snapshot.staff)
        self.availability = AvailabilityPredicate(self.snapshot)
        self.changed: dict[ShiftKey, ShiftRecord] = {}

    def get(self, staff_id: str, day: date) -> ShiftRecord | None:
        return self.snapshot.shifts.get((staff_id, day))

    def get_or_new(self, staff_id: str, day: date) -> ShiftRecord:
        return self.get(staff_id, day) or ShiftRecord(staff_id=staff_id, date=day)

    def on_day(self, day: date) -> list[ShiftRecord]:
        shifts = self.snapshot.shifts
        return [shifts[(staff_id, day)] for staff_id in self.staff_ids if (staff_id, day) in shifts]

    def write(self, record: ShiftRecord) -> None:
        key = (record.staff_id, record.date)
        self.snapshot.shifts[key] = record
        self.changed[key] = record

    def report(self, unfilled: list[UnfilledSlot]) -> AssignmentReport:
        written = sorted(self.changed.values(), key=lambda r: (r.date, r.staff_id))
        return AssignmentReport(written=written, unfilled=unfilled)


def general_stations(stations: Iterable[Station]) -> list[Station]:
    return sorted(
        (s for s in stations if s.name not in SYSTEM_MARKERS),
        key=lambda s: (s.priority, s.name),
    )


def _station_open_to(ws: _Workspace, staff_id: str, day: date, station: Station) -> bool:
    if not ws.availability.is_available(staff_id, day):
        return False
    record = ws.get(staff_id, day)
    if record is None:
        return True
    if is_manual(record.station):
        return False
    if not record.is_unassigned:
        return False
    return not (record.role_names & station.blocked_roles)


def _overflow_open_to(ws: _Workspace, staff_id: str, day: date, station: Station) -> bool:
    """Leftover placement: pools take anyone capable; other stations take a
    learner alongside anyone, or a newcomer when no certified holder is there."""
    capability = ws.capability
    learning = capability.is_learning(staff_id, station.name)
    if not (learning or capability.is_certified(staff_id, station.name)):
        return False
    if not _station_open_to(ws, staff_id, day, station):
        return False
    if station.is_pool or learning:
        return True
    holders = [r.staff_id for r in ws.on_day(day) if r.station_name == station.name]
    return not any(capability.is_certified(holder, station.name) for holder in holders)


def assign_stations(
    snapshot: RosterSnapshot,
    start: date,
    end: date,
    balancer: LoadBalancer,
    regenerate: bool = False,
) -> AssignmentReport:
    """Fill open station slots in ``start..end`` without touching manual cells.

    The caller is responsible for range validation and the cycle-lock check;
    this function only plans writes against the snapshot.
    """
    ws = _Workspace(snapshot)
    stations = general_stations(snapshot.stations)
    days = daterange(start, end)
    unfilled: list[UnfilledSlot] = []

    if regenerate:
        for day in days:
            if snapshot.is_closed(day):
                continue
            for record in ws.on_day(day):
                if is_manual(record.station) or record.station_name in SYSTEM_MARKERS:
                    continue
                balancer.discount(record.staff_id, record.station_name)
                ws.write(record.with_station(Generated(UNASSIGNED)))

    for day in days:
        if snapshot.is_closed(day):
            continue
        for station in stations:
            occupied = sum(1 for r in ws.on_day(day) if r.station_name == station.name)
            for _ in range(station.required_on(day) - occupied):
                candidates = {
                    staff_id
                    for staff_id in ws.capability.eligible_staff(station.name)
                    if _station_open_to(ws, staff_id, day, station)
                }
                try:
                    winner = balancer.pick_candidate(station.name, candidates)
                except NoEligibleCandidate:
                    logger.debug("Station %s left open on %s", station.name, day.isoformat())
                    unfilled.append(UnfilledSlot(date=day, slot=station.name))
                    break
                ws.write(ws.get_or_new(winner, day).with_station(Generated(station.name)))
                balancer.record(winner, station.name)

        overflow = [s for s in stations if s.is_pool] + [s for s in stations if not s.is_pool]
        for staff_id in ws.staff_ids:
            for station in overflow:
                if _overflow_open_to(ws, staff_id, day, station):
                    ws.write(ws.get_or_new(staff_id, day).with_station(Generated(station.name)))
                    balancer.record(staff_id, station.name)
                    break

    report = ws.report(unfilled)
    logger.info(
        "Station pass %s..%s wrote %d record(s), %d slot(s) unfilled",
        start.isoformat(), end.isoformat(), len(report.written), len(report.unfilled),
    )
    return report


def _role_open_to(ws: _Workspace, staff_id: str, day: date, role: str, stations: dict[str, Station]) -> bool:
    if not ws.availability.is_available(staff_id, day):
        return False
    record = ws.get(staff_id, day)
    if record is None:
        return True
    if role in record.role_names:
        return False
    if is_manual(record.roles) and record.role_names:
        return False
    if not can_merge(record.role_names, role):
        return False
    station = stations.get(record.station_name)
    return station is None or role not in station.blocked_roles


def assign_roles(
    snapshot: RosterSnapshot,
    start: date,
    end: date,
    roles: Iterable[str],
    balancer: LoadBalancer,
) -> AssignmentReport:
    """Fill special-role vacancies for the selected roles.

    Each role has a single holder per day: a day where anyone already holds
    the role, manually or not, is left alone.
    """
    ws = _Workspace(snapshot)
    stations = {s.name: s for s in snapshot.stations}
    selected = ordered(set(roles))
    unfilled: list[UnfilledSlot] = []

    for day in daterange(start, end):
        if snapshot.is_closed(day):
            continue
        for role in selected:
            if any(role in r.role_names for r in ws.on_day(day)):
                continue
            candidates = {
                staff_id
                for staff_id in ws.capability.eligible_staff(role)
                if _role_open_to(ws, staff_id, day, role, stations)
            }
            try:
                winner = balancer.pick_candidate(role, candidates)
            except NoEligibleCandidate:
                logger.debug("Role %s left open on %s", role, day.isoformat())
                unfilled.append(UnfilledSlot(date=day, slot=role))
                continue
            record = ws.get_or_new(winner, day)
            ws.write(record.with_roles(Generated(reconcile(record.role_names, role))))
            balancer.record(winner, role)

    report = ws.report(unfilled)
    logger.info(
        "Role pass %s..%s for %s wrote %d record(s), %d slot(s) unfilled",
        start.isoformat(), end.isoformat(), ",".join(selected), len(report.written), len(report.unfilled),
    )
    return report
