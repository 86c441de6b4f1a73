from __future__ import annotations

from datetime import date

from roster.domain import OFF, RosterSnapshot

ROTATION_DAYS = 6
REST_DAYS_FROM = 4
GROUP_OFFSETS = {"A": 0, "B": 2, "C": 4}


def base_status(day: date, group_id: str, cycle_start: date) -> str:
    """Rest-day pattern: each group works four days then rests two.

    Groups are staggered by two days so at most one group rests on any given
    day. Dates before ``cycle_start`` are always working days.
    """
    diff_days = (day - cycle_start).days
    if diff_days < 0:
        return "working"
    cycle_day = (diff_days + GROUP_OFFSETS.get(group_id, 0)) % ROTATION_DAYS
    return "off" if cycle_day >= REST_DAYS_FROM else "working"


class AvailabilityPredicate:
    def __init__(self, snapshot: RosterSnapshot):
        self._snapshot = snapshot
        self._groups = {member.staff_id: member.group_id for member in snapshot.staff}

    def is_available(self, staff_id: str, day: date) -> bool:
        if staff_id not in self._groups:
            return False
        if self._snapshot.is_closed(day):
            return False
        shift = self._snapshot.shift_for(staff_id, day)
        if shift is not None:
            # An explicit record overrides the rotation in either direction.
            return not shift.is_off
        return base_status(day, self._groups[staff_id], self._snapshot.cycle_start_date) == "working"

    def available_on(self, day: date) -> set[str]:
        return {staff_id for staff_id in self._groups if self.is_available(staff_id, day)}
