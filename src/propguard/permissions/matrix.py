"""Capability matrix normalization.

Turns a sparse, possibly malformed scope entry into a complete
module → action → bool table. Absence is always ``False``; only the
boolean ``True`` counts as a grant.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .constants import ACTIONS, MODULES, normalize_scope

Matrix = dict[str, dict[str, bool]]


def empty_matrix() -> Matrix:
    """All modules × all actions, every cell ``False``."""
    return {module: {action: False for action in ACTIONS} for module in MODULES}


def full_matrix() -> Matrix:
    """All modules × all actions, every cell ``True`` (bypass role)."""
    return {module: {action: True for action in ACTIONS} for module in MODULES}


def scope_entry(permissions: Any, scope: str | None) -> Any:
    """Look up the raw entry for ``scope``, comparing normalized keys.

    Stored keys go through :func:`normalize_scope`, so ``12.0`` and
    ``" 12 "`` both match ``"12"``. Returns None when the structure is not
    a mapping, the scope is unknown, or there is no such key.
    """
    if scope is None or not isinstance(permissions, Mapping):
        return None
    if scope in permissions:
        return permissions[scope]
    for key, entry in permissions.items():
        if normalize_scope(key) == scope:
            return entry
    return None


def normalize_entry(entry: Any) -> Matrix:
    """Normalize one scope entry into a full matrix.

    Args:
        entry: Raw ``{module: {action: bool}}`` mapping. Anything else
            (None, a list, a string) is treated as an empty entry.

    Returns:
        A fresh matrix; the input is never modified.

    Example::

        normalize_entry({"beds": {"edit": True}})["beds"]
        # {"view": False, "add": False, "edit": True, "delete": False}
    """
    matrix = empty_matrix()
    if not isinstance(entry, Mapping):
        return matrix

    for module in MODULES:
        row = entry.get(module)
        if not isinstance(row, Mapping):
            continue
        for action in ACTIONS:
            if row.get(action) is True:
                matrix[module][action] = True
    return matrix


def normalize(permissions: Any, scope: str | None) -> Matrix:
    """Normalize the entry stored under a concrete scope key.

    No fallback between scopes happens here; a missing entry or an
    unknown (None) scope yields :func:`empty_matrix`. Idempotent: normalizing a structure whose entry
    is already a full matrix returns an equal matrix.
    """
    return normalize_entry(scope_entry(permissions, scope))


__all__ = [
    "Matrix",
    "empty_matrix",
    "full_matrix",
    "normalize",
    "normalize_entry",
    "scope_entry",
]
