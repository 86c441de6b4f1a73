from __future__ import annotations

from datetime import date


class EngineError(Exception):
    """Base class for every failure the roster engine reports to callers."""


class InvalidRange(EngineError):
    """Raised when a requested date range starts after it ends."""

    def __init__(self, start: date, end: date):
        super().__init__(f"Start date {start.isoformat()} is after end date {end.isoformat()}")
        self.start = start
        self.end = end


class CycleLocked(EngineError):
    """Raised when a write touches a date inside a confirmed scheduling cycle."""

    def __init__(self, cycle_name: str, start: date, end: date):
        label = cycle_name or f"{start.isoformat()}..{end.isoformat()}"
        super().__init__(f"Scheduling cycle {label} is confirmed and locked")
        self.cycle_name = cycle_name
        self.start = start
        self.end = end


class NoEligibleCandidate(EngineError):
    """Raised by the load balancer when nobody can take a slot.

    The assignment passes absorb it and leave the slot open.
    """

    def __init__(self, slot_name: str):
        super().__init__(f"No eligible candidate for {slot_name}")
        self.slot_name = slot_name


class DateClosed(EngineError):
    """Raised when a manual edit targets a department-closed date."""

    def __init__(self, day: date):
        super().__init__(f"Department is closed on {day.isoformat()}")
        self.day = day


class UnknownStaff(EngineError):
    def __init__(self, staff_id: str):
        super().__init__(f"Unknown staff member {staff_id}")
        self.staff_id = staff_id


class UnknownSlot(EngineError):
    def __init__(self, slot_name: str):
        super().__init__(f"Unknown station or role {slot_name}")
        self.slot_name = slot_name


# Mapping of engine errors to HTTP status codes
ERROR_STATUS = {
    InvalidRange: 400,
    UnknownSlot: 400,
    UnknownStaff: 404,
    CycleLocked: 409,
    DateClosed: 409,
    NoEligibleCandidate: 422,
}


def status_for(exc: EngineError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 400
