from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from roster.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StaffRecord(Base):
    __tablename__ = "staff"
    __table_args__ = (
        CheckConstraint("group_id IN ('A', 'B', 'C')", name="ck_staff_group"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    staff_id: Mapped[str] = mapped_column(String(120), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    group_id: Mapped[str] = mapped_column(String(1), nullable=False, default="A")
    certified: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    learning: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    excluded: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class StationRecord(Base):
    __tablename__ = "stations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Head count per weekday, Monday first.
    requirements: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    is_pool: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    blocked_roles: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)


class ShiftRow(Base):
    __tablename__ = "shifts"
    __table_args__ = (
        UniqueConstraint("staff_id", "date", name="uq_shifts_staff_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    staff_id: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    station: Mapped[str] = mapped_column(String(120), nullable=False)
    station_auto_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    special_roles: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    role_auto_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class CalendarEventRecord(Base):
    __tablename__ = "calendar_events"
    __table_args__ = (
        CheckConstraint(
            "type IN ('NATIONAL_HOLIDAY', 'DEPARTMENT_CLOSED', 'MEETING')",
            name="ck_calendar_events_type",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    date: Mapped[date] = mapped_column(Date, nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    type: Mapped[str] = mapped_column(String(40), nullable=False)


class SchedulingCycleRecord(Base):
    __tablename__ = "scheduling_cycles"
    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_scheduling_cycles_date_range"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class RosterSettings(Base):
    __tablename__ = "roster_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cycle_start_date: Mapped[date] = mapped_column(Date, nullable=False)
