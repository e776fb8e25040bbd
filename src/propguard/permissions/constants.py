"""Closed enumerations for the capability matrix.

Provides:
- ``Module`` — business entity categories subject to permission checks.
- ``Action`` — the four capability verbs (view / add / edit / delete).
- ``Role`` — well-known subject roles (``pg_admin`` bypasses every check).
- ``GLOBAL_SCOPE`` — the scope key for grants across all buildings.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

GLOBAL_SCOPE = "global"


def normalize_scope(scope: Any) -> str | None:
    """Convert a scope identifier to its canonical string form.

    Building ids compare by string, so ``12``, ``12.0`` and ``"12"`` are
    the same scope. ``None`` and blank values mean the building is not
    known yet: they return None, which matches no stored entry.

    Example::

        normalize_scope("global")  # "global"
        normalize_scope(12.0)      # "12"
        normalize_scope(" 12 ")    # "12"
        normalize_scope(None)      # None
    """
    if scope is None:
        return None
    if isinstance(scope, float) and scope.is_integer():
        return str(int(scope))
    value = scope.value if isinstance(scope, Enum) else scope
    text = str(value).strip()
    return text or None


class Module(str, Enum):
    """Business entity category a grant applies to.

    The set is closed: a permissions structure may carry other keys, but
    they are never consulted.
    """

    BUILDINGS = "buildings"
    FLOORS = "floors"
    ROOMS = "rooms"
    BEDS = "beds"
    TENANTS = "tenants"
    BOOKINGS = "bookings"
    PAYMENTS = "payments"
    INVOICES = "invoices"
    EXPENSES = "expenses"

    @classmethod
    def parse(cls, value: Module | str) -> Module | None:
        """Return the member for ``value``, or None if it is not in the set."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class Action(str, Enum):
    """Capability verb.

    Format in the permissions structure: ``{scope: {module: {action: bool}}}``.
    """

    VIEW = "view"
    ADD = "add"
    EDIT = "edit"
    DELETE = "delete"

    @classmethod
    def parse(cls, value: Action | str) -> Action | None:
        """Return the member for ``value``, or None if it is not in the set."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class Role(str, Enum):
    """Subject roles issued by the backend.

    Roles outside this enum are valid; they simply carry no bypass.
    """

    ADMIN = "pg_admin"  # Bypass: every check passes
    STAFF = "pg_staff"  # Checked against the matrix


MODULES: tuple[str, ...] = tuple(m.value for m in Module)
ACTIONS: tuple[str, ...] = tuple(a.value for a in Action)


__all__ = [
    "ACTIONS",
    "GLOBAL_SCOPE",
    "MODULES",
    "Action",
    "Module",
    "Role",
    "normalize_scope",
]
