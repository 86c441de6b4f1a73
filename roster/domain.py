from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Generic, Literal, TypeVar, Union

OFF = "OFF"
UNASSIGNED = "UNASSIGNED"
SYSTEM_MARKERS = frozenset({OFF, UNASSIGNED})

OPENING = "OPENING"
LATE = "LATE"
ASSIST = "ASSIST"
SCHEDULER = "SCHEDULER"
SPECIAL_ROLES = (OPENING, LATE, ASSIST, SCHEDULER)

Role = Literal["OPENING", "LATE", "ASSIST", "SCHEDULER"]
GroupId = Literal["A", "B", "C"]
EventType = Literal["NATIONAL_HOLIDAY", "DEPARTMENT_CLOSED", "MEETING"]
DEPARTMENT_CLOSED = "DEPARTMENT_CLOSED"

DEFAULT_CYCLE_START = date(2024, 1, 1)

T = TypeVar("T")


@dataclass(frozen=True)
class Manual(Generic[T]):
    """A facet value set by a person. The engine never overwrites it."""

    value: T


@dataclass(frozen=True)
class Generated(Generic[T]):
    """A facet value produced by an assignment run; later runs may replace it."""

    value: T


StationFacet = Union[Manual[str], Generated[str]]
RolesFacet = Union[Manual[frozenset], Generated[frozenset]]


def is_manual(facet: StationFacet | RolesFacet) -> bool:
    return isinstance(facet, Manual)


@dataclass(frozen=True)
class StaffMember:
    staff_id: str
    name: str
    group_id: GroupId = "A"
    certified: frozenset[str] = frozenset()
    learning: frozenset[str] = frozenset()
    excluded: frozenset[str] = frozenset()


@dataclass(frozen=True)
class Station:
    name: str
    priority: int = 0
    requirements: tuple[int, ...] = (1, 1, 1, 1, 1, 1, 1)
    is_pool: bool = False
    blocked_roles: frozenset[str] = frozenset()

    def required_on(self, day: date) -> int:
        return self.requirements[day.weekday()]


@dataclass(frozen=True)
class ShiftRecord:
    staff_id: str
    date: date
    station: StationFacet = Generated(UNASSIGNED)
    roles: RolesFacet = Generated(frozenset())

    @property
    def station_name(self) -> str:
        return self.station.value

    @property
    def role_names(self) -> frozenset[str]:
        return self.roles.value

    @property
    def is_off(self) -> bool:
        return self.station.value == OFF

    @property
    def is_unassigned(self) -> bool:
        return self.station.value == UNASSIGNED

    def with_station(self, facet: StationFacet) -> ShiftRecord:
        return replace(self, station=facet)

    def with_roles(self, facet: RolesFacet) -> ShiftRecord:
        return replace(self, roles=facet)


@dataclass(frozen=True)
class CalendarEvent:
    date: date
    type: EventType
    name: str = ""

    @property
    def closes_department(self) -> bool:
        return self.type == DEPARTMENT_CLOSED


@dataclass(frozen=True)
class SchedulingCycle:
    cycle_id: int
    start_date: date
    end_date: date
    confirmed: bool = False
    name: str = ""

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def overlaps(self, start: date, end: date) -> bool:
        return self.start_date <= end and start <= self.end_date


ShiftKey = tuple[str, date]


@dataclass
class RosterSnapshot:
    """Everything one assignment run reads, captured before it starts.

    ``shifts`` holds the full known history, not only the requested range, since
    the load balancer counts past assignments.
    """

    staff: list[StaffMember]
    stations: list[Station]
    shifts: dict[ShiftKey, ShiftRecord] = field(default_factory=dict)
    events: dict[date, CalendarEvent] = field(default_factory=dict)
    cycles: list[SchedulingCycle] = field(default_factory=list)
    cycle_start_date: date = DEFAULT_CYCLE_START

    def shift_for(self, staff_id: str, day: date) -> ShiftRecord | None:
        return self.shifts.get((staff_id, day))

    def is_closed(self, day: date) -> bool:
        event = self.events.get(day)
        return event is not None and event.closes_department


def daterange(start: date, end: date) -> list[date]:
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]
