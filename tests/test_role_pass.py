import random
from collections import Counter
from datetime import date, timedelta

from roster.balancer import LoadBalancer
from roster.domain import (
    ASSIST,
    LATE,
    OFF,
    OPENING,
    UNASSIGNED,
    CalendarEvent,
    Generated,
    Manual,
    RosterSnapshot,
    ShiftRecord,
    StaffMember,
    Station,
)
from roster.scheduler import UnfilledSlot, assign_roles

ALL_WORKING = date(2030, 1, 1)
DAY = date(2024, 6, 10)


def _staff(staff_id, certified=(), excluded=()):
    return StaffMember(
        staff_id=staff_id,
        name=staff_id.title(),
        certified=frozenset(certified),
        excluded=frozenset(excluded),
    )


def _snapshot(staff, shifts=(), stations=(), events=()):
    return RosterSnapshot(
        staff=list(staff),
        stations=list(stations),
        shifts={(s.staff_id, s.date): s for s in shifts},
        events={e.date: e for e in events},
        cycle_start_date=ALL_WORKING,
    )


def _run(snapshot, roles, start=DAY, end=DAY, seed=5):
    balancer = LoadBalancer(snapshot.shifts.values(), random.Random(seed))
    return assign_roles(snapshot, start, end, roles, balancer)


def test_manually_held_role_is_left_alone():
    snapshot = _snapshot(
        [_staff("a", certified=[OPENING, LATE]), _staff("c", certified=[OPENING, LATE])],
        shifts=[ShiftRecord("c", DAY, roles=Manual(frozenset({OPENING})))],
    )
    report = _run(snapshot, [OPENING, LATE])
    assert [(r.staff_id, r.roles) for r in report.written] == [("a", Generated(frozenset({LATE})))]
    assert report.unfilled == []


def test_vacancy_creates_record_with_unassigned_station():
    snapshot = _snapshot([_staff("a", certified=[OPENING])])
    (record,) = _run(snapshot, [OPENING]).written
    assert record.station == Generated(UNASSIGNED)
    assert record.roles == Generated(frozenset({OPENING}))


def test_existing_station_is_kept_when_role_is_added():
    snapshot = _snapshot(
        [_staff("a", certified=[LATE])],
        shifts=[ShiftRecord("a", DAY, station=Manual("CT"))],
    )
    (record,) = _run(snapshot, [LATE]).written
    assert record.station == Manual("CT")
    assert record.roles == Generated(frozenset({LATE}))


def test_opening_merges_with_generated_assist():
    snapshot = _snapshot(
        [_staff("a", certified=[OPENING])],
        shifts=[ShiftRecord("a", DAY, roles=Generated(frozenset({ASSIST})))],
    )
    (record,) = _run(snapshot, [OPENING]).written
    assert record.roles == Generated(frozenset({OPENING, ASSIST}))


def test_exclusive_role_never_displaces_a_held_role():
    snapshot = _snapshot(
        [_staff("a", certified=[LATE])],
        shifts=[ShiftRecord("a", DAY, roles=Generated(frozenset({OPENING})))],
    )
    report = _run(snapshot, [LATE])
    assert report.written == []
    assert report.unfilled == [UnfilledSlot(date=DAY, slot=LATE)]


def test_manual_role_set_is_never_extended():
    snapshot = _snapshot(
        [_staff("a", certified=[OPENING])],
        shifts=[ShiftRecord("a", DAY, roles=Manual(frozenset({ASSIST})))],
    )
    report = _run(snapshot, [OPENING])
    assert report.written == []
    assert report.unfilled == [UnfilledSlot(date=DAY, slot=OPENING)]


def test_opening_and_late_go_to_different_people():
    snapshot = _snapshot([_staff(s, certified=[OPENING, LATE]) for s in "ab"])
    written = {r.staff_id: r.role_names for r in _run(snapshot, [LATE, OPENING]).written}
    assert sorted(written) == ["a", "b"]
    assert sorted(next(iter(roles)) for roles in written.values()) == [LATE, OPENING]


def test_off_and_blocked_staff_are_skipped():
    snapshot = _snapshot(
        [_staff(s, certified=[OPENING]) for s in "abc"],
        shifts=[
            ShiftRecord("a", DAY, station=Manual(OFF)),
            ShiftRecord("b", DAY, station=Generated("FLOOR")),
        ],
        stations=[Station("FLOOR", blocked_roles=frozenset({OPENING, LATE}))],
    )
    report = _run(snapshot, [OPENING])
    assert [r.staff_id for r in report.written] == ["c"]


def test_excluded_staff_are_not_candidates():
    snapshot = _snapshot([_staff("a", certified=[OPENING], excluded=[OPENING])])
    report = _run(snapshot, [OPENING])
    assert report.written == []
    assert report.unfilled == [UnfilledSlot(date=DAY, slot=OPENING)]


def test_closed_day_gets_no_roles():
    snapshot = _snapshot(
        [_staff("a", certified=[OPENING])],
        events=[CalendarEvent(date=DAY, type="DEPARTMENT_CLOSED")],
    )
    report = _run(snapshot, [OPENING])
    assert report.written == []
    assert report.unfilled == []


def test_roles_are_spread_evenly_over_a_range():
    snapshot = _snapshot([_staff(s, certified=[OPENING]) for s in "abc"])
    report = _run(snapshot, [OPENING], start=DAY, end=DAY + timedelta(days=29))
    counts = Counter(r.staff_id for r in report.written)
    assert sum(counts.values()) == 30
    assert set(counts.values()) == {10}
