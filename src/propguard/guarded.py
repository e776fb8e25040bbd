"""Guarded operations — permission check and call in one place.

Provides:
- ``Capability`` / ``AnyOf`` — what an operation requires.
- ``infer_capability()`` — map an operation name to its capability by convention.
- ``require_permission()`` — raise :class:`AuthorizationDenied` if a check fails.
- ``GuardedApi`` / ``guarded()`` — wrap an API layer so no operation can
  run without its check.
- Operation tables and factories for the console's API groups
  (properties, bookings, tenants, payments, expenses).

Name convention (module taken from the rest of the name)::

    get_* / list_*       → view
    create_*             → add
    update_* / patch_*   → edit
    delete_*             → delete

The check runs when the wrapped method is *called*, before the real
operation is invoked. For async operations this means the error is
raised before a coroutine exists, so nothing is ever dispatched.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .exceptions import AuthorizationDenied, ConfigurationError
from .permissions.constants import GLOBAL_SCOPE, Action, Module
from .permissions.evaluator import PermissionEvaluator
from .permissions.constants import normalize_scope

logger = logging.getLogger(__name__)


# ── Capabilities ────────────────────────────────────────────────


@dataclass(frozen=True)
class Capability:
    """A single module:action requirement."""

    module: Module
    action: Action

    @classmethod
    def of(cls, module: Module | str, action: Action | str) -> Capability:
        """Build from raw values; unknown values are a configuration error."""
        mod = Module.parse(module)
        act = Action.parse(action)
        if mod is None or act is None:
            raise ConfigurationError(f"Unknown capability {module}:{action}", module=module, action=action)
        return cls(mod, act)

    @property
    def primary(self) -> Capability:
        return self

    def allowed(self, evaluator: PermissionEvaluator, scope: Any) -> bool:
        return evaluator.can(self.module, self.action, scope)

    def __str__(self) -> str:
        return f"{self.module.value}:{self.action.value}"


class AnyOf:
    """Requirement satisfied by any one of several capabilities.

    On denial the first capability is the one reported.

    Example::

        # Merged payment listing falls back to bookings data
        AnyOf(Capability.of("payments", "view"), Capability.of("bookings", "view"))
    """

    __slots__ = ("capabilities",)

    def __init__(self, *capabilities: Capability) -> None:
        if not capabilities:
            raise ConfigurationError("AnyOf requires at least one capability")
        self.capabilities = capabilities

    @property
    def primary(self) -> Capability:
        return self.capabilities[0]

    def allowed(self, evaluator: PermissionEvaluator, scope: Any) -> bool:
        return any(cap.allowed(evaluator, scope) for cap in self.capabilities)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, AnyOf) and self.capabilities == other.capabilities

    def __hash__(self) -> int:
        return hash(self.capabilities)

    def __str__(self) -> str:
        return " | ".join(str(cap) for cap in self.capabilities)

    def __repr__(self) -> str:
        return f"AnyOf({', '.join(repr(cap) for cap in self.capabilities)})"


Requirement = Capability | AnyOf


# ── Name convention ─────────────────────────────────────────────

_PREFIX_ACTIONS: tuple[tuple[str, Action], ...] = (
    ("get_", Action.VIEW),
    ("list_", Action.VIEW),
    ("create_", Action.ADD),
    ("update_", Action.EDIT),
    ("patch_", Action.EDIT),
    ("delete_", Action.DELETE),
)


def _module_from_noun(noun: str) -> Module | None:
    head = noun.split("_", 1)[0]
    for candidate in (noun, f"{noun}s", head, f"{head}s"):
        module = Module.parse(candidate)
        if module is not None:
            return module
    return None


def infer_capability(operation_name: str) -> Capability:
    """Map an operation name to the capability it requires.

    Example::

        infer_capability("create_room")       # rooms:add
        infer_capability("get_bed_history")   # beds:view
        infer_capability("patch_building")    # buildings:edit

    Raises:
        ConfigurationError: If the name follows no known convention.
    """
    for prefix, action in _PREFIX_ACTIONS:
        if operation_name.startswith(prefix):
            module = _module_from_noun(operation_name[len(prefix) :])
            if module is not None:
                return Capability(module, action)
            break
    raise ConfigurationError(
        f"Cannot map operation '{operation_name}' to a capability",
        operation=operation_name,
    )


# ── Checks ──────────────────────────────────────────────────────


def require_permission(
    evaluator: PermissionEvaluator,
    module: Module | str,
    action: Action | str,
    scope: Any = GLOBAL_SCOPE,
    *,
    operation: str | None = None,
) -> None:
    """Raise :class:`AuthorizationDenied` unless ``module:action`` is allowed.

    Args:
        evaluator: Evaluator for the current subject.
        module: Module to check.
        action: Action to check.
        scope: ``"global"`` or a building id. None or blank denies.
        operation: Name of the operation being guarded (for the error).
    """
    if evaluator.can(module, action, scope):
        return

    mod = Module.parse(module)
    act = Action.parse(action)
    denied_scope = normalize_scope(scope)
    logger.warning(
        "DENIED '%s' — missing %s:%s (scope=%s)",
        operation or "operation",
        module,
        action,
        denied_scope,
    )
    raise AuthorizationDenied(
        mod.value if mod is not None else str(module),
        act.value if act is not None else str(action),
        denied_scope,
        operation=operation,
    )


# ── Guarded API ─────────────────────────────────────────────────


class GuardedApi:
    """An API layer bound to one evaluator and one scope.

    Every exposed operation is wrapped: calling it checks its requirement
    against the scope fixed at construction and either raises
    :class:`AuthorizationDenied` or returns the real operation's result
    unchanged. Operations the API does not expose are not reachable.

    A None or blank scope means the building is not known yet: every
    operation is denied unless the subject holds the bypass role.

    Use :func:`guarded` (or one of the ``guarded_*`` factories) to build one.
    """

    def __init__(
        self,
        evaluator: PermissionEvaluator,
        scope: Any,
        operations: Mapping[str, Callable[..., Any]],
        requirements: Mapping[str, Requirement],
    ) -> None:
        self._evaluator = evaluator
        self._scope = normalize_scope(scope)
        self._requirements = dict(requirements)
        self._wrapped = {
            name: self._guard(name, operation, self._requirements[name])
            for name, operation in operations.items()
        }

    @property
    def scope(self) -> str | None:
        """Normalized scope, or None when the building was not known."""
        return self._scope

    @property
    def operations(self) -> tuple[str, ...]:
        return tuple(self._wrapped)

    def requirement_for(self, name: str) -> Requirement:
        """Requirement an operation is checked against."""
        try:
            return self._requirements[name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__} has no operation '{name}'") from None

    def allows(self, name: str) -> bool:
        """Whether calling ``name`` right now would pass its check."""
        return self.requirement_for(name).allowed(self._evaluator, self._scope)

    def _guard(self, name: str, operation: Callable[..., Any], requirement: Requirement) -> Callable[..., Any]:
        @functools.wraps(operation)
        def guarded_operation(*args: Any, **kwargs: Any) -> Any:
            if not requirement.allowed(self._evaluator, self._scope):
                denied = requirement.primary
                logger.warning(
                    "DENIED '%s' — missing %s (scope=%s)",
                    name,
                    requirement,
                    self._scope,
                )
                raise AuthorizationDenied(
                    denied.module.value,
                    denied.action.value,
                    self._scope,
                    operation=name,
                )
            logger.debug("ALLOWED '%s' (scope=%s)", name, self._scope)
            return operation(*args, **kwargs)

        return guarded_operation

    def __getattr__(self, name: str) -> Callable[..., Any]:
        wrapped = self.__dict__.get("_wrapped", {})
        try:
            return wrapped[name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__} has no operation '{name}'") from None

    def __contains__(self, name: object) -> bool:
        return name in self._wrapped

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self._wrapped))

    def __repr__(self) -> str:
        return f"GuardedApi(scope={self._scope!r}, operations={len(self._wrapped)})"


def _lookup(api: Any, name: str) -> Callable[..., Any] | None:
    if isinstance(api, Mapping):
        operation = api.get(name)
    else:
        operation = getattr(api, name, None)
    return operation if callable(operation) else None


def _conventional_names(api: Any) -> list[str]:
    names = api.keys() if isinstance(api, Mapping) else (n for n in dir(api) if not n.startswith("_"))
    return [n for n in names if any(n.startswith(prefix) for prefix, _ in _PREFIX_ACTIONS)]


def guarded(
    evaluator: PermissionEvaluator,
    scope: Any,
    api: Any,
    operations: Iterable[str] | None = None,
    overrides: Mapping[str, Requirement] | None = None,
) -> GuardedApi:
    """Wrap an API layer so every operation is checked before it runs.

    Args:
        evaluator: Evaluator for the current subject.
        scope: Scope fixed for every call (``"global"`` or a building id).
        api: Object or mapping exposing plain CRUD callables.
        operations: Names to expose. Defaults to every callable on ``api``
            whose name starts with a conventional prefix, plus ``overrides``.
        overrides: Explicit requirements for names the convention does not
            cover or maps differently.

    Raises:
        ConfigurationError: If a requested operation is missing from
            ``api`` or cannot be mapped to a capability.

    Example::

        rooms_api = guarded(evaluator, building_id, properties_client)
        await rooms_api.create_room({"number": "101"})   # rooms:add
    """
    overrides = dict(overrides or {})
    if operations is None:
        names = _conventional_names(api) + [n for n in overrides if _lookup(api, n) is not None]
    else:
        names = list(operations)

    resolved: dict[str, Callable[..., Any]] = {}
    requirements: dict[str, Requirement] = {}
    for name in names:
        if name in resolved:
            continue
        operation = _lookup(api, name)
        if operation is None:
            raise ConfigurationError(f"API has no callable operation '{name}'", operation=name)
        resolved[name] = operation
        requirements[name] = overrides[name] if name in overrides else infer_capability(name)

    return GuardedApi(evaluator, scope, resolved, requirements)


# ── Console API groups ──────────────────────────────────────────


def _crud(singular: str, plural: str, *, listing: str = "get", patch: bool = True) -> tuple[str, ...]:
    names = [
        f"{listing}_{plural}",
        f"get_{singular}",
        f"create_{singular}",
        f"update_{singular}",
    ]
    if patch:
        names.append(f"patch_{singular}")
    names.append(f"delete_{singular}")
    return tuple(names)


PROPERTY_OPERATIONS: tuple[str, ...] = (
    *_crud("building", "buildings"),
    *_crud("floor", "floors"),
    *_crud("room", "rooms"),
    *_crud("bed", "beds", patch=False),
    "get_bed_history",
)

BOOKING_OPERATIONS: tuple[str, ...] = _crud("booking", "bookings", listing="list")

TENANT_OPERATIONS: tuple[str, ...] = (
    *_crud("tenant", "tenants", listing="list"),
    "list_bed_history",
    "list_stays",
    "create_stay",
    "patch_stay",
)

# Bed history and stays belong to the tenant record, not the bed.
TENANT_OVERRIDES: dict[str, Requirement] = {
    "list_bed_history": Capability(Module.TENANTS, Action.VIEW),
    "list_stays": Capability(Module.TENANTS, Action.VIEW),
    "create_stay": Capability(Module.TENANTS, Action.ADD),
    "patch_stay": Capability(Module.TENANTS, Action.EDIT),
}

PAYMENT_OPERATIONS: tuple[str, ...] = (
    "get_payments",
    "get_payments_any",
    "get_payments_merged",
    "create_payment",
    "update_payment",
    "delete_payment",
    "get_invoices",
    "get_invoice",
    "create_invoice",
    "open_invoice",
)

PAYMENT_OVERRIDES: dict[str, Requirement] = {
    "get_payments_any": AnyOf(
        Capability(Module.PAYMENTS, Action.VIEW),
        Capability(Module.BOOKINGS, Action.VIEW),
    ),
    "get_payments_merged": AnyOf(
        Capability(Module.PAYMENTS, Action.VIEW),
        Capability(Module.BOOKINGS, Action.VIEW),
    ),
    "open_invoice": Capability(Module.INVOICES, Action.EDIT),
}

EXPENSE_OPERATIONS: tuple[str, ...] = (
    *_crud("expense", "expenses", listing="list", patch=False),
    "list_expense_categories",
    "create_expense_category",
    "update_expense_category",
    "delete_expense_category",
)


def _group(
    evaluator: PermissionEvaluator,
    scope: Any,
    api: Any,
    table: tuple[str, ...],
    overrides: Mapping[str, Requirement] | None = None,
) -> GuardedApi:
    available = [name for name in table if _lookup(api, name) is not None]
    if not available:
        raise ConfigurationError("API exposes none of the expected operations", expected=table)
    return guarded(evaluator, scope, api, available, overrides)


def guarded_properties(evaluator: PermissionEvaluator, scope: Any, api: Any) -> GuardedApi:
    """Buildings, floors, rooms, beds and bed history."""
    return _group(evaluator, scope, api, PROPERTY_OPERATIONS)


def guarded_bookings(evaluator: PermissionEvaluator, scope: Any, api: Any) -> GuardedApi:
    return _group(evaluator, scope, api, BOOKING_OPERATIONS)


def guarded_tenants(evaluator: PermissionEvaluator, scope: Any, api: Any) -> GuardedApi:
    """Tenants plus their bed history and stays (all checked as tenants)."""
    return _group(evaluator, scope, api, TENANT_OPERATIONS, TENANT_OVERRIDES)


def guarded_payments(evaluator: PermissionEvaluator, scope: Any, api: Any) -> GuardedApi:
    """Payments and invoices; merged listings accept bookings:view too."""
    return _group(evaluator, scope, api, PAYMENT_OPERATIONS, PAYMENT_OVERRIDES)


def guarded_expenses(evaluator: PermissionEvaluator, scope: Any, api: Any) -> GuardedApi:
    return _group(evaluator, scope, api, EXPENSE_OPERATIONS)


__all__ = [
    "BOOKING_OPERATIONS",
    "EXPENSE_OPERATIONS",
    "PAYMENT_OPERATIONS",
    "PAYMENT_OVERRIDES",
    "PROPERTY_OPERATIONS",
    "TENANT_OPERATIONS",
    "TENANT_OVERRIDES",
    "AnyOf",
    "Capability",
    "GuardedApi",
    "Requirement",
    "guarded",
    "guarded_bookings",
    "guarded_expenses",
    "guarded_payments",
    "guarded_properties",
    "guarded_tenants",
    "infer_capability",
    "require_permission",
]
