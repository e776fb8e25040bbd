"""Permission evaluator — the single predicate every screen asks.

One evaluator is built per subject session. It applies the bypass rule
first and otherwise delegates to the exact-scope resolver. Every method
is total: unknown values and missing data answer ``False``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from .constants import GLOBAL_SCOPE, Action, Module, Role
from .matrix import Matrix, empty_matrix, full_matrix, normalize
from .scope import granted_scopes, has_any_scope, normalize_scope, resolve

if TYPE_CHECKING:
    from ..subject import Subject


def _as_list(actions: Iterable[Action | str] | Action | str) -> list[Action | str]:
    if isinstance(actions, str):
        return [actions]
    return list(actions)


class PermissionEvaluator:
    """Evaluates capability queries for one subject.

    Args:
        subject: The signed-in subject, or None while the session is
            loading / signed out. Without a subject the evaluator is
            *unresolved* and denies everything.
        bypass_role: Role that passes every check without consulting the
            matrix.

    Example::

        evaluator = PermissionEvaluator(subject)
        evaluator.can("beds", "edit", 12)
        evaluator.can_all(Module.ROOMS, [Action.VIEW, Action.EDIT], "7")
    """

    __slots__ = ("_subject", "_bypass_role")

    def __init__(self, subject: Subject | None, *, bypass_role: Role | str = Role.ADMIN) -> None:
        self._subject = subject
        self._bypass_role = bypass_role.value if isinstance(bypass_role, Role) else bypass_role

    @property
    def subject(self) -> Subject | None:
        return self._subject

    @property
    def resolved(self) -> bool:
        """False while no subject is known (loading or signed out)."""
        return self._subject is not None

    @property
    def is_bypass(self) -> bool:
        """Whether the subject holds the bypass role."""
        return self._subject is not None and self._subject.has_role(self._bypass_role)

    @property
    def permissions(self) -> dict[str, Any]:
        if self._subject is None:
            return {}
        return self._subject.permissions

    def can(self, module: Module | str, action: Action | str, scope: Any = GLOBAL_SCOPE) -> bool:
        """Check one capability in exactly the requested scope."""
        if self._subject is None:
            return False
        if self.is_bypass:
            return True
        return resolve(self._subject.permissions, module, action, scope)

    def can_any(
        self,
        module: Module | str,
        actions: Iterable[Action | str] | Action | str,
        scope: Any = GLOBAL_SCOPE,
    ) -> bool:
        """True if at least one action is allowed. Empty → False."""
        return any(self.can(module, action, scope) for action in _as_list(actions))

    def can_all(
        self,
        module: Module | str,
        actions: Iterable[Action | str] | Action | str,
        scope: Any = GLOBAL_SCOPE,
    ) -> bool:
        """True if every action is allowed. Empty → True."""
        if self._subject is None:
            return False
        return all(self.can(module, action, scope) for action in _as_list(actions))

    def has_any_scope(self, module: Module | str, action: Action | str) -> bool:
        """Visibility-only check: granted in *some* building scope.

        Never use this to gate an operation; see
        :func:`propguard.permissions.scope.has_any_scope`.
        """
        if self._subject is None:
            return False
        if self.is_bypass:
            return True
        return has_any_scope(self._subject.permissions, module, action)

    def scope_permissions(self, scope: Any = GLOBAL_SCOPE) -> Matrix:
        """Effective matrix for a scope (all True for the bypass role)."""
        if self._subject is None:
            return empty_matrix()
        if self.is_bypass:
            return full_matrix()
        return normalize(self._subject.permissions, normalize_scope(scope))

    def granted_scopes(
        self,
        module: Module | str | None = None,
        action: Action | str | None = None,
    ) -> list[str]:
        """Building scopes granting a capability (see ``scope.granted_scopes``)."""
        return granted_scopes(self.permissions, module, action)

    def __repr__(self) -> str:
        if self._subject is None:
            return "PermissionEvaluator(unresolved)"
        return f"PermissionEvaluator(subject_id={self._subject.id!r}, role={self._subject.role!r})"


__all__ = ["PermissionEvaluator"]
