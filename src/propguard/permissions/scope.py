"""Scope resolution for capability queries.

Three modes:

1. ``global`` — read the ``global`` entry.
2. exact building scope — read that building's entry only. There is no
   silent fallback to ``global``: a building grant and a global grant are
   different guarantees.
3. any granted scope (:func:`has_any_scope`) — true if *some* building
   entry grants the capability. Visibility only: it decides whether an
   entry point renders, never whether an operation may run.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .constants import GLOBAL_SCOPE, Action, Module, normalize_scope
from .matrix import normalize, normalize_entry

logger = logging.getLogger(__name__)


def resolve(
    permissions: Any,
    module: Module | str,
    action: Action | str,
    requested_scope: Any = GLOBAL_SCOPE,
) -> bool:
    """Answer one capability query against the exact requested scope.

    Args:
        permissions: Raw ``{scope: {module: {action: bool}}}`` structure.
        module: Module to check. Values outside :class:`Module` resolve
            to False.
        action: Action to check. Values outside :class:`Action` resolve
            to False.
        requested_scope: ``"global"`` or a building id. An explicit None or
            blank value means the building is not known yet and denies.

    Returns:
        True only if the entry for that scope explicitly grants it.
    """
    mod = Module.parse(module)
    act = Action.parse(action)
    if mod is None or act is None:
        logger.debug("Unknown capability %s:%s resolves to False", module, action)
        return False

    scope = normalize_scope(requested_scope)
    if scope is None:
        logger.debug("Unknown scope %r resolves %s:%s to False", requested_scope, module, action)
        return False

    matrix = normalize(permissions, scope)
    return matrix[mod.value][act.value]


def _building_entries(permissions: Any):
    if not isinstance(permissions, Mapping):
        return
    for key, entry in permissions.items():
        scope = normalize_scope(key)
        if scope is None or scope == GLOBAL_SCOPE:
            continue
        yield scope, entry


def has_any_scope(permissions: Any, module: Module | str, action: Action | str) -> bool:
    """True if any building scope grants ``module:action``.

    The ``global`` entry is not scanned. Use this only to decide whether
    an entry point is shown; the operation behind it must still be
    checked with :func:`resolve` once the building is known.
    """
    mod = Module.parse(module)
    act = Action.parse(action)
    if mod is None or act is None:
        return False
    return any(
        normalize_entry(entry)[mod.value][act.value]
        for _, entry in _building_entries(permissions)
    )


def granted_scopes(
    permissions: Any,
    module: Module | str | None = None,
    action: Action | str | None = None,
) -> list[str]:
    """List building scopes that grant a capability.

    With ``module`` and ``action`` given, returns the buildings granting
    exactly that. With only ``module``, any action on it counts.

    With no capability given, returns the buildings the subject is
    assigned to: ``buildings:view`` in that scope, or otherwise any grant
    at all in it.

    Order follows the permissions structure; ``global`` is never listed.
    """
    mod = Module.parse(module) if module is not None else None
    act = Action.parse(action) if action is not None else None
    if (module is not None and mod is None) or (action is not None and act is None):
        return []

    scopes: list[str] = []
    for scope, entry in _building_entries(permissions):
        matrix = normalize_entry(entry)
        if mod is None:
            granted = matrix[Module.BUILDINGS.value][Action.VIEW.value] or any(
                any(row.values()) for row in matrix.values()
            )
        elif act is None:
            granted = any(matrix[mod.value].values())
        else:
            granted = matrix[mod.value][act.value]
        if granted and scope not in scopes:
            scopes.append(scope)
    return scopes


__all__ = [
    "granted_scopes",
    "has_any_scope",
    "normalize_scope",
    "resolve",
]
