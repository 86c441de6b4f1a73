from __future__ import annotations

import logging
import os
import sys
from dataclasses import asdict
from datetime import date

from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from roster.conflicts import ordered
from roster.db import get_db
from roster.domain import DEFAULT_CYCLE_START, SYSTEM_MARKERS, EventType, GroupId, Role, ShiftRecord, is_manual
from roster.errors import EngineError, InvalidRange, status_for
from roster.models import CalendarEventRecord, RosterSettings, SchedulingCycleRecord, StaffRecord, StationRecord
from roster.scheduler import AssignmentReport
from roster.service import RosterService, default_random_source
from roster.store import ShiftStore

roster_logger = logging.getLogger("roster")
roster_logger.setLevel(os.getenv("ROSTER_LOG_LEVEL", "INFO").upper())
# Prevent duplicate handlers on reload
if not roster_logger.handlers:
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s"))
    roster_logger.addHandler(stream_handler)
logger = logging.getLogger(__name__)

app = FastAPI(title="Department Roster Engine")

_RNG = default_random_source()


@app.middleware("http")
async def disable_cache_for_api(request: Request, call_next):
    response = await call_next(request)
    if request.url.path.startswith("/api/"):
        response.headers["Cache-Control"] = "no-store, no-cache, max-age=0, must-revalidate"
        response.headers["Pragma"] = "no-cache"
    return response


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    return JSONResponse(
        status_code=status_for(exc),
        content={"detail": str(exc), "error": type(exc).__name__},
    )


class Staff(BaseModel):
    id: str
    name: str
    group_id: GroupId = "A"
    certified: list[str] = Field(default_factory=list)
    learning: list[str] = Field(default_factory=list)
    excluded: list[str] = Field(default_factory=list)


class StationPayload(BaseModel):
    name: str
    priority: int = 0
    requirements: list[int] = Field(default_factory=lambda: [1] * 7, min_length=7, max_length=7)
    is_pool: bool = False
    blocked_roles: list[Role] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def name_is_not_a_marker(cls, value: str) -> str:
        if value in SYSTEM_MARKERS:
            raise ValueError(f"{value} is reserved")
        return value

    @field_validator("requirements")
    @classmethod
    def requirements_not_negative(cls, value: list[int]) -> list[int]:
        if any(count < 0 for count in value):
            raise ValueError("requirements must be zero or more")
        return value


class CalendarEventPayload(BaseModel):
    date: date
    type: EventType
    name: str = ""


class CyclePayload(BaseModel):
    name: str = ""
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def validate_range(self) -> CyclePayload:
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class CycleOut(CyclePayload):
    id: int
    confirmed: bool


class SettingsPayload(BaseModel):
    cycle_start_date: date


class ShiftOut(BaseModel):
    staff_id: str
    date: date
    station: str
    station_auto_generated: bool
    special_roles: list[str]
    role_auto_generated: bool

    @classmethod
    def from_record(cls, record: ShiftRecord) -> ShiftOut:
        return cls(
            staff_id=record.staff_id,
            date=record.date,
            station=record.station_name,
            station_auto_generated=not is_manual(record.station),
            special_roles=ordered(record.role_names),
            role_auto_generated=not is_manual(record.roles),
        )


class StationAssignPayload(BaseModel):
    station: str


class AutoAssignStationsPayload(BaseModel):
    start: date
    end: date
    regenerate: bool = False


class AutoAssignRolesPayload(BaseModel):
    start: date
    end: date
    roles: list[Role] = Field(default_factory=lambda: ["OPENING", "LATE"], min_length=1)


class UnfilledOut(BaseModel):
    date: date
    slot: str


class AssignmentReportOut(BaseModel):
    written: list[ShiftOut]
    unfilled: list[UnfilledOut]

    @classmethod
    def from_report(cls, report: AssignmentReport) -> AssignmentReportOut:
        return cls(
            written=[ShiftOut.from_record(r) for r in report.written],
            unfilled=[UnfilledOut(date=u.date, slot=u.slot) for u in report.unfilled],
        )


class StaffStatisticsOut(BaseModel):
    staff_id: str
    name: str
    work_days: int
    off_days: int
    slots: dict[str, int]


def get_service(db: Session = Depends(get_db)) -> RosterService:
    return RosterService(ShiftStore(db), rng=_RNG)


def serialize_staff(record: StaffRecord) -> Staff:
    return Staff(
        id=record.staff_id,
        name=record.name,
        group_id=record.group_id,
        certified=record.certified,
        learning=record.learning,
        excluded=record.excluded,
    )


def serialize_station(record: StationRecord) -> StationPayload:
    return StationPayload(
        name=record.name,
        priority=record.priority,
        requirements=record.requirements,
        is_pool=record.is_pool,
        blocked_roles=record.blocked_roles,
    )


def serialize_cycle(record: SchedulingCycleRecord) -> CycleOut:
    return CycleOut(
        id=record.id,
        name=record.name,
        start_date=record.start_date,
        end_date=record.end_date,
        confirmed=record.confirmed,
    )


@app.get("/api/staff", response_model=list[Staff])
def get_staff(db: Session = Depends(get_db)) -> list[Staff]:
    records = db.scalars(select(StaffRecord).order_by(StaffRecord.sort_order, StaffRecord.id)).all()
    return [serialize_staff(record) for record in records]


@app.put("/api/staff", response_model=list[Staff])
def put_staff(staff: list[Staff] = Body(...), db: Session = Depends(get_db)) -> list[Staff]:
    staff_ids = [member.id for member in staff]
    if len(staff_ids) != len(set(staff_ids)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Staff ids must be unique")
    db.execute(delete(StaffRecord))
    for index, member in enumerate(staff):
        db.add(
            StaffRecord(
                staff_id=member.id,
                name=member.name,
                group_id=member.group_id,
                certified=member.certified,
                learning=member.learning,
                excluded=member.excluded,
                sort_order=index,
            )
        )
    db.commit()
    return staff


@app.get("/api/stations", response_model=list[StationPayload])
def get_stations(db: Session = Depends(get_db)) -> list[StationPayload]:
    records = db.scalars(select(StationRecord).order_by(StationRecord.priority, StationRecord.name)).all()
    return [serialize_station(record) for record in records]


@app.put("/api/stations", response_model=list[StationPayload])
def put_stations(stations: list[StationPayload] = Body(...), db: Session = Depends(get_db)) -> list[StationPayload]:
    names = [station.name for station in stations]
    if len(names) != len(set(names)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Station names must be unique")
    db.execute(delete(StationRecord))
    for station in stations:
        db.add(
            StationRecord(
                name=station.name,
                priority=station.priority,
                requirements=station.requirements,
                is_pool=station.is_pool,
                blocked_roles=list(station.blocked_roles),
            )
        )
    db.commit()
    return stations


@app.get("/api/events", response_model=list[CalendarEventPayload])
def list_events(db: Session = Depends(get_db)) -> list[CalendarEventPayload]:
    records = db.scalars(select(CalendarEventRecord).order_by(CalendarEventRecord.date)).all()
    return [CalendarEventPayload(date=r.date, type=r.type, name=r.name) for r in records]


@app.post("/api/events", response_model=CalendarEventPayload, status_code=status.HTTP_201_CREATED)
def create_event(payload: CalendarEventPayload, db: Session = Depends(get_db)) -> CalendarEventPayload:
    existing = db.scalar(select(CalendarEventRecord).where(CalendarEventRecord.date == payload.date))
    if existing is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="An event already exists on that date")
    db.add(CalendarEventRecord(date=payload.date, type=payload.type, name=payload.name))
    db.commit()
    return payload


@app.delete("/api/events/{event_date}")
def delete_event(event_date: date, db: Session = Depends(get_db)) -> dict[str, bool]:
    record = db.scalar(select(CalendarEventRecord).where(CalendarEventRecord.date == event_date))
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    db.delete(record)
    db.commit()
    return {"ok": True}


@app.get("/api/cycles", response_model=list[CycleOut])
def list_cycles(db: Session = Depends(get_db)) -> list[CycleOut]:
    records = db.scalars(select(SchedulingCycleRecord).order_by(SchedulingCycleRecord.start_date.desc())).all()
    return [serialize_cycle(record) for record in records]


@app.post("/api/cycles", response_model=CycleOut, status_code=status.HTTP_201_CREATED)
def create_cycle(payload: CyclePayload, db: Session = Depends(get_db)) -> CycleOut:
    record = SchedulingCycleRecord(name=payload.name, start_date=payload.start_date, end_date=payload.end_date, confirmed=False)
    db.add(record)
    db.commit()
    db.refresh(record)
    return serialize_cycle(record)


def _set_cycle_confirmed(db: Session, cycle_id: int, confirmed: bool) -> CycleOut:
    record = db.get(SchedulingCycleRecord, cycle_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cycle not found")
    record.confirmed = confirmed
    db.commit()
    db.refresh(record)
    logger.info("Cycle %s %s", record.name or record.id, "confirmed" if confirmed else "unlocked")
    return serialize_cycle(record)


@app.post("/api/cycles/{cycle_id}/confirm", response_model=CycleOut)
def confirm_cycle(cycle_id: int, db: Session = Depends(get_db)) -> CycleOut:
    return _set_cycle_confirmed(db, cycle_id, True)


@app.post("/api/cycles/{cycle_id}/unlock", response_model=CycleOut)
def unlock_cycle(cycle_id: int, db: Session = Depends(get_db)) -> CycleOut:
    return _set_cycle_confirmed(db, cycle_id, False)


@app.delete("/api/cycles/{cycle_id}")
def delete_cycle(cycle_id: int, db: Session = Depends(get_db)) -> dict[str, bool]:
    record = db.get(SchedulingCycleRecord, cycle_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cycle not found")
    db.delete(record)
    db.commit()
    return {"ok": True}


@app.get("/api/settings", response_model=SettingsPayload)
def get_settings(db: Session = Depends(get_db)) -> SettingsPayload:
    settings = db.get(RosterSettings, 1)
    return SettingsPayload(cycle_start_date=settings.cycle_start_date if settings else DEFAULT_CYCLE_START)


@app.put("/api/settings", response_model=SettingsPayload)
def put_settings(payload: SettingsPayload, db: Session = Depends(get_db)) -> SettingsPayload:
    settings = db.get(RosterSettings, 1)
    if settings is None:
        settings = RosterSettings(id=1, cycle_start_date=payload.cycle_start_date)
        db.add(settings)
    else:
        settings.cycle_start_date = payload.cycle_start_date
    db.commit()
    return payload


@app.get("/api/shifts", response_model=list[ShiftOut])
def list_shifts(
    start: date = Query(...),
    end: date = Query(...),
    service: RosterService = Depends(get_service),
) -> list[ShiftOut]:
    if start > end:
        raise InvalidRange(start, end)
    return [ShiftOut.from_record(r) for r in service.store.list_shifts(start, end)]


@app.put("/api/shifts/{staff_id}/{shift_date}/station", response_model=ShiftOut)
def put_station(
    staff_id: str,
    shift_date: date,
    payload: StationAssignPayload,
    service: RosterService = Depends(get_service),
) -> ShiftOut:
    return ShiftOut.from_record(service.set_station(staff_id, shift_date, payload.station))


@app.post("/api/shifts/{staff_id}/{shift_date}/roles/{role}", response_model=ShiftOut)
def post_role_toggle(
    staff_id: str,
    shift_date: date,
    role: str,
    service: RosterService = Depends(get_service),
) -> ShiftOut:
    return ShiftOut.from_record(service.toggle_role(staff_id, shift_date, role))


@app.post("/api/auto-assign/stations", response_model=AssignmentReportOut)
def auto_assign_stations(
    payload: AutoAssignStationsPayload,
    service: RosterService = Depends(get_service),
) -> AssignmentReportOut:
    report = service.auto_assign_stations(payload.start, payload.end, regenerate=payload.regenerate)
    return AssignmentReportOut.from_report(report)


@app.post("/api/auto-assign/roles", response_model=AssignmentReportOut)
def auto_assign_roles(
    payload: AutoAssignRolesPayload,
    service: RosterService = Depends(get_service),
) -> AssignmentReportOut:
    report = service.auto_assign_roles(payload.start, payload.end, payload.roles)
    return AssignmentReportOut.from_report(report)


@app.get("/api/statistics", response_model=list[StaffStatisticsOut])
def statistics(
    start: date = Query(...),
    end: date = Query(...),
    service: RosterService = Depends(get_service),
) -> list[StaffStatisticsOut]:
    return [StaffStatisticsOut(**asdict(row)) for row in service.staff_statistics(start, end)]


@app.get("/health")
def health() -> dict[str, bool | str]:
    return {"ok": True, "env": os.getenv("ENVIRONMENT", "local")}
