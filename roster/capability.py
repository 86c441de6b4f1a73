from __future__ import annotations

from collections.abc import Iterable

from roster.domain import StaffMember


class CapabilityIndex:
    """Who may work a station or role, from the roster snapshot it was built with."""

    def __init__(self, staff: Iterable[StaffMember]):
        self._staff = {member.staff_id: member for member in staff}

    def eligible_staff(self, slot_name: str) -> set[str]:
        return {
            staff_id
            for staff_id, member in self._staff.items()
            if (slot_name in member.certified or slot_name in member.learning)
            and slot_name not in member.excluded
        }

    def is_eligible(self, staff_id: str, slot_name: str) -> bool:
        member = self._staff.get(staff_id)
        if member is None or slot_name in member.excluded:
            return False
        return slot_name in member.certified or slot_name in member.learning

    def is_certified(self, staff_id: str, slot_name: str) -> bool:
        member = self._staff.get(staff_id)
        return member is not None and slot_name in member.certified and slot_name not in member.excluded

    def is_learning(self, staff_id: str, slot_name: str) -> bool:
        member = self._staff.get(staff_id)
        return member is not None and slot_name in member.learning and slot_name not in member.excluded
