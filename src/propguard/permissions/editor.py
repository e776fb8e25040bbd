"""Grant editing for the staff-permissions settings screen.

The evaluator only ever reads a permissions structure. Writing a new one
is the settings screen's job; these helpers give it the same shape and
dependency rules the evaluator expects. Every function returns a new
structure and leaves its input untouched.

Provides:
- ``set_permission()`` — toggle one module:action cell.
- ``set_module_permissions()`` — toggle a whole module row.
- ``set_action_column()`` — toggle one action for every module.
- ``set_all()`` — grant or revoke everything in a scope.
- ``apply_profile()`` — apply a preset (read-only / manager / admin / none) to every module.
- ``classify_row()`` — label a module row (none / read-only / manager / admin / custom).
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from enum import Enum
from typing import Any

from .constants import Action, Module, normalize_scope
from .dependencies import clear_descendants, normalize_dependencies
from .matrix import Matrix, normalize_entry, scope_entry


class GrantProfile(str, Enum):
    """Summary label for one module row of a matrix."""

    NONE = "none"
    READ_ONLY = "read_only"
    MANAGER = "manager"  # view + add + edit, no delete
    ADMIN = "admin"  # every action
    CUSTOM = "custom"


def _require_module(module: Module | str) -> Module:
    mod = Module.parse(module)
    if mod is None:
        raise ValueError(f"Unknown module: {module!r}. Must be one of {[m.value for m in Module]}")
    return mod


def _require_action(action: Action | str) -> Action:
    act = Action.parse(action)
    if act is None:
        raise ValueError(f"Unknown action: {action!r}. Must be one of {[a.value for a in Action]}")
    return act


def _require_scope(scope: Any) -> str:
    key = normalize_scope(scope)
    if key is None:
        raise ValueError(f"Unknown scope: {scope!r}. Pass \"global\" or a building id")
    return key


def _edit(permissions: Any, scope: Any, matrix: Matrix) -> dict[str, Any]:
    """Copy ``permissions`` with the entry for ``scope`` replaced by ``matrix``."""
    key = _require_scope(scope)
    result: dict[str, Any] = {}
    if isinstance(permissions, Mapping):
        for existing, entry in permissions.items():
            existing_key = normalize_scope(existing)
            if existing_key is not None and existing_key != key:
                result[existing_key] = copy.deepcopy(entry)
    result[key] = normalize_dependencies(matrix)
    return result


def _current(permissions: Any, scope: Any) -> Matrix:
    return normalize_entry(scope_entry(permissions, _require_scope(scope)))


def set_permission(
    permissions: Any,
    scope: Any,
    module: Module | str,
    action: Action | str,
    value: bool,
) -> dict[str, Any]:
    """Set one cell and re-apply the dependency rules for that scope.

    Granting anything turns on ``view`` for the module's ancestors.
    Revoking ``view`` clears every descendant module.

    Example::

        perms = set_permission({}, 12, Module.BEDS, Action.EDIT, True)
        perms["12"]["rooms"]["view"]  # True
    """
    mod = _require_module(module)
    act = _require_action(action)

    matrix = _current(permissions, scope)
    matrix[mod.value][act.value] = bool(value)
    if not value and act is Action.VIEW:
        clear_descendants(matrix, mod)
    return _edit(permissions, scope, matrix)


def set_module_permissions(
    permissions: Any,
    scope: Any,
    module: Module | str,
    value: bool,
) -> dict[str, Any]:
    """Grant or revoke every action on one module."""
    mod = _require_module(module)

    matrix = _current(permissions, scope)
    for action in Action:
        matrix[mod.value][action.value] = bool(value)
    if not value:
        clear_descendants(matrix, mod)
    return _edit(permissions, scope, matrix)


def set_action_column(
    permissions: Any,
    scope: Any,
    action: Action | str,
    value: bool,
) -> dict[str, Any]:
    """Grant or revoke one action across every module.

    Revoking ``view`` everywhere leaves only non-view grants on top-level
    modules; everything below them is cleared.
    """
    act = _require_action(action)

    matrix = _current(permissions, scope)
    for module in Module:
        matrix[module.value][act.value] = bool(value)
    if not value and act is Action.VIEW:
        for parent in (Module.BUILDINGS, Module.FLOORS, Module.ROOMS):
            clear_descendants(matrix, parent)
    return _edit(permissions, scope, matrix)


def set_all(permissions: Any, scope: Any, value: bool) -> dict[str, Any]:
    """Grant or revoke every action on every module in one scope."""
    matrix = _current(permissions, scope)
    for module in Module:
        for action in Action:
            matrix[module.value][action.value] = bool(value)
    return _edit(permissions, scope, matrix)


_PROFILE_ACTIONS: dict[GrantProfile, tuple[Action, ...]] = {
    GrantProfile.NONE: (),
    GrantProfile.READ_ONLY: (Action.VIEW,),
    GrantProfile.MANAGER: (Action.VIEW, Action.ADD, Action.EDIT),
    GrantProfile.ADMIN: tuple(Action),
}


def apply_profile(permissions: Any, scope: Any, profile: GrantProfile | str) -> dict[str, Any]:
    """Replace every module row in one scope with a preset.

    ``read_only`` grants view only, ``manager`` view/add/edit without
    delete, ``admin`` every action and ``none`` nothing. ``custom`` is a
    label, not a preset, and is rejected.

    Example::

        perms = apply_profile({}, 12, GrantProfile.MANAGER)
        perms["12"]["beds"]  # {"view": True, "add": True, "edit": True, "delete": False}
    """
    try:
        preset = GrantProfile(profile.value if isinstance(profile, GrantProfile) else profile)
    except ValueError:
        preset = None
    if preset not in _PROFILE_ACTIONS:
        raise ValueError(
            f"Unknown profile: {profile!r}. Must be one of {[p.value for p in _PROFILE_ACTIONS]}"
        )

    _require_scope(scope)
    granted = _PROFILE_ACTIONS[preset]
    matrix = normalize_entry(None)
    for module in Module:
        for action in granted:
            matrix[module.value][action.value] = True
    return _edit(permissions, scope, matrix)


def classify_row(row: Any) -> GrantProfile:
    """Label a module row by the actions it grants."""
    if not isinstance(row, Mapping):
        return GrantProfile.NONE

    view, add, edit, delete = (row.get(a.value) is True for a in Action)
    if not (view or add or edit or delete):
        return GrantProfile.NONE
    if view and add and edit and delete:
        return GrantProfile.ADMIN
    if view and add and edit:
        return GrantProfile.MANAGER
    if view and not (add or edit or delete):
        return GrantProfile.READ_ONLY
    return GrantProfile.CUSTOM


__all__ = [
    "GrantProfile",
    "apply_profile",
    "classify_row",
    "set_action_column",
    "set_all",
    "set_module_permissions",
    "set_permission",
]
