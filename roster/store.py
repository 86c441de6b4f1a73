from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from roster.availability import base_status
from roster.domain import (
    DEFAULT_CYCLE_START,
    CalendarEvent,
    Generated,
    Manual,
    RosterSnapshot,
    SchedulingCycle,
    ShiftRecord,
    StaffMember,
    Station,
    is_manual,
)
from roster.models import (
    CalendarEventRecord,
    RosterSettings,
    SchedulingCycleRecord,
    ShiftRow,
    StaffRecord,
    StationRecord,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShiftsChanged:
    records: tuple[ShiftRecord, ...]


Listener = Callable[[ShiftsChanged], None]


class ShiftEventBus:
    """Publishes committed shift writes to whoever subscribed."""

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: ShiftsChanged) -> None:
        for listener in list(self._listeners):
            listener(event)


shift_events = ShiftEventBus()


def staff_from_record(record: StaffRecord) -> StaffMember:
    return StaffMember(
        staff_id=record.staff_id,
        name=record.name,
        group_id=record.group_id,
        certified=frozenset(record.certified or []),
        learning=frozenset(record.learning or []),
        excluded=frozenset(record.excluded or []),
    )


def station_from_record(record: StationRecord) -> Station:
    return Station(
        name=record.name,
        priority=record.priority,
        requirements=tuple(record.requirements),
        is_pool=record.is_pool,
        blocked_roles=frozenset(record.blocked_roles or []),
    )


def shift_from_row(row: ShiftRow) -> ShiftRecord:
    station_facet = Generated if row.station_auto_generated else Manual
    roles_facet = Generated if row.role_auto_generated else Manual
    return ShiftRecord(
        staff_id=row.staff_id,
        date=row.date,
        station=station_facet(row.station),
        roles=roles_facet(frozenset(row.special_roles or [])),
    )


def _apply_to_row(row: ShiftRow, record: ShiftRecord) -> None:
    row.station = record.station_name
    row.station_auto_generated = not is_manual(record.station)
    row.special_roles = sorted(record.role_names)
    row.role_auto_generated = not is_manual(record.roles)


class ShiftStore:
    """SQLAlchemy-backed shift store: the engine's only view of persisted data."""

    def __init__(self, db: Session, events: ShiftEventBus | None = None):
        self.db = db
        self.events = events if events is not None else shift_events

    def list_staff(self) -> list[StaffMember]:
        records = self.db.scalars(select(StaffRecord).order_by(StaffRecord.sort_order, StaffRecord.id)).all()
        return [staff_from_record(record) for record in records]

    def list_stations(self) -> list[Station]:
        records = self.db.scalars(select(StationRecord).order_by(StationRecord.priority, StationRecord.name)).all()
        return [station_from_record(record) for record in records]

    def list_station_names(self) -> list[str]:
        return [station.name for station in self.list_stations()]

    def list_calendar_events(self) -> list[CalendarEvent]:
        records = self.db.scalars(select(CalendarEventRecord).order_by(CalendarEventRecord.date)).all()
        return [CalendarEvent(date=r.date, type=r.type, name=r.name) for r in records]

    def list_cycles(self) -> list[SchedulingCycle]:
        records = self.db.scalars(select(SchedulingCycleRecord).order_by(SchedulingCycleRecord.start_date.desc())).all()
        return [
            SchedulingCycle(cycle_id=r.id, start_date=r.start_date, end_date=r.end_date, confirmed=r.confirmed, name=r.name)
            for r in records
        ]

    def cycle_start_date(self) -> date:
        settings = self.db.get(RosterSettings, 1)
        return settings.cycle_start_date if settings else DEFAULT_CYCLE_START

    def base_status(self, day: date, group_id: str) -> str:
        return base_status(day, group_id, self.cycle_start_date())

    def list_shifts(self, start: date | None = None, end: date | None = None) -> list[ShiftRecord]:
        query = select(ShiftRow)
        if start is not None:
            query = query.where(ShiftRow.date >= start)
        if end is not None:
            query = query.where(ShiftRow.date <= end)
        rows = self.db.scalars(query.order_by(ShiftRow.date, ShiftRow.staff_id)).all()
        return [shift_from_row(row) for row in rows]

    def snapshot(self) -> RosterSnapshot:
        shifts = self.list_shifts()
        return RosterSnapshot(
            staff=self.list_staff(),
            stations=self.list_stations(),
            shifts={(s.staff_id, s.date): s for s in shifts},
            events={e.date: e for e in self.list_calendar_events()},
            cycles=self.list_cycles(),
            cycle_start_date=self.cycle_start_date(),
        )

    def _stage(self, record: ShiftRecord) -> None:
        row = self.db.scalar(
            select(ShiftRow).where(ShiftRow.staff_id == record.staff_id, ShiftRow.date == record.date)
        )
        if row is None:
            row = ShiftRow(staff_id=record.staff_id, date=record.date)
            self.db.add(row)
        _apply_to_row(row, record)

    def upsert_shift(self, record: ShiftRecord) -> None:
        self.upsert_many([record])

    def upsert_many(self, records: Iterable[ShiftRecord]) -> None:
        """Write every record in one transaction, then notify subscribers.

        Records sharing a (staff_id, date) key collapse to the last one.
        """
        batch = tuple({(r.staff_id, r.date): r for r in records}.values())
        if not batch:
            return
        try:
            for record in batch:
                self._stage(record)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Shift batch of %d record(s) rolled back", len(batch))
            raise
        self.events.publish(ShiftsChanged(records=batch))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.events.subscribe(listener)
