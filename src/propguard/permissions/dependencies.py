"""Module dependency rules for building-scoped grants.

Provides:
- ``MODULE_DEPENDENCIES`` — child → parents it cannot be used without.
- ``MODULE_CHILDREN`` — parent → direct children (derived).
- ``required_parents()`` — resolve the transitive parent chain.
- ``normalize_dependencies()`` — make a scope entry consistent with the rules.

A grant on beds is useless if the subject cannot see the room, floor and
building the bed lives in, so any grant on a module implies ``view`` on
every ancestor. Conversely, without ``view`` on a parent every
descendant is cleared.
"""

from __future__ import annotations

from typing import Any

from .constants import Action, Module
from .matrix import Matrix, normalize_entry

# ── Module Dependencies ─────────────────────────────────
# Child requires view on each parent.

MODULE_DEPENDENCIES: dict[Module, tuple[Module, ...]] = {
    Module.BUILDINGS: (),
    Module.FLOORS: (Module.BUILDINGS,),
    Module.ROOMS: (Module.FLOORS, Module.BUILDINGS),
    Module.BEDS: (Module.ROOMS, Module.FLOORS, Module.BUILDINGS),
    Module.TENANTS: (Module.BUILDINGS,),
    Module.BOOKINGS: (Module.BUILDINGS,),
    Module.PAYMENTS: (Module.BUILDINGS,),
    Module.INVOICES: (Module.BUILDINGS,),
    Module.EXPENSES: (Module.BUILDINGS,),
}


def _build_children() -> dict[Module, tuple[Module, ...]]:
    children: dict[Module, list[Module]] = {}
    for child, parents in MODULE_DEPENDENCIES.items():
        for parent in parents:
            children.setdefault(parent, []).append(child)
    return {parent: tuple(kids) for parent, kids in children.items()}


MODULE_CHILDREN: dict[Module, tuple[Module, ...]] = _build_children()


def required_parents(module: Module | str) -> tuple[Module, ...]:
    """Resolve every module whose ``view`` the given module depends on.

    Returns:
        Deduplicated tuple sorted by declaration order of :class:`Module`.

    Example::

        >>> required_parents(Module.BEDS)
        (<Module.BUILDINGS: 'buildings'>, <Module.FLOORS: 'floors'>, <Module.ROOMS: 'rooms'>)
    """
    mod = Module.parse(module)
    if mod is None:
        return ()

    found: set[Module] = set()
    queue = list(MODULE_DEPENDENCIES.get(mod, ()))
    while queue:
        parent = queue.pop()
        if parent not in found:
            found.add(parent)
            queue.extend(MODULE_DEPENDENCIES.get(parent, ()))

    return tuple(m for m in Module if m in found)


def descendants(module: Module | str) -> tuple[Module, ...]:
    """Every module that (transitively) depends on ``module``."""
    mod = Module.parse(module)
    if mod is None:
        return ()

    found: set[Module] = set()
    queue = list(MODULE_CHILDREN.get(mod, ()))
    while queue:
        child = queue.pop()
        if child not in found:
            found.add(child)
            queue.extend(MODULE_CHILDREN.get(child, ()))

    return tuple(m for m in Module if m in found)


def ensure_parents_view(matrix: Matrix, module: Module | str) -> None:
    """Turn on ``view`` for every ancestor of ``module`` (in place)."""
    for parent in required_parents(module):
        matrix[parent.value][Action.VIEW.value] = True


def clear_descendants(matrix: Matrix, module: Module | str) -> None:
    """Revoke every action on every descendant of ``module`` (in place)."""
    for child in descendants(module):
        for action in Action:
            matrix[child.value][action.value] = False


def normalize_dependencies(entry: Any) -> Matrix:
    """Return a full matrix for ``entry`` that satisfies the dependency rules.

    Two passes:
    1. Upward — any grant on a module turns on ``view`` for its ancestors.
    2. Downward — a parent without ``view`` clears all its descendants.

    The input is not modified.
    """
    matrix = normalize_entry(entry)

    for module in Module:
        if any(matrix[module.value].values()):
            ensure_parents_view(matrix, module)

    for parent in MODULE_CHILDREN:
        if not matrix[parent.value][Action.VIEW.value]:
            clear_descendants(matrix, parent)

    return matrix


__all__ = [
    "MODULE_CHILDREN",
    "MODULE_DEPENDENCIES",
    "clear_descendants",
    "descendants",
    "ensure_parents_view",
    "normalize_dependencies",
    "required_parents",
]
