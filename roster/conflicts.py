from __future__ import annotations

from collections.abc import Iterable

from roster.domain import ASSIST, OPENING, SPECIAL_ROLES

# The only roles allowed to share a day.
COMPATIBLE_ROLES = frozenset({OPENING, ASSIST})


def reconcile(current_roles: Iterable[str], toggled_role: str) -> frozenset[str]:
    """Return the role set after selecting ``toggled_role``.

    OPENING and ASSIST may be held together. Selecting any other role clears
    everything else, and selecting OPENING or ASSIST drops any third role.
    """
    if toggled_role in COMPATIBLE_ROLES:
        kept = {role for role in current_roles if role in COMPATIBLE_ROLES}
        return frozenset(kept | {toggled_role})
    return frozenset({toggled_role})


def toggle(current_roles: Iterable[str], role: str) -> frozenset[str]:
    current = frozenset(current_roles)
    if role in current:
        return current - {role}
    return reconcile(current, role)


def can_merge(current_roles: Iterable[str], role: str) -> bool:
    """True when adding ``role`` keeps every role already held."""
    current = frozenset(current_roles)
    return current <= reconcile(current, role)


def ordered(roles: Iterable[str]) -> list[str]:
    known = [role for role in SPECIAL_ROLES if role in roles]
    return known + sorted(role for role in roles if role not in SPECIAL_ROLES)
