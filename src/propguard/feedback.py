"""Deny feedback — what a user sees when a capability is missing.

A denied control stays on screen, is inert and says why. Activating it
shows exactly one non-blocking notification and does nothing else.

Provides:
- ``deny_reason()`` — the human-readable explanation.
- ``ControlState`` / ``PermissionControl`` — the contract for one control.
- ``entry_point_visible()`` — visibility for entry points whose building
  is not known yet.
- ``deny_feedback()`` — decorator turning :class:`AuthorizationDenied`
  from a guarded call into a notification.
"""

from __future__ import annotations

import functools
import inspect
import logging
from typing import Any, Callable, Optional

from pydantic import BaseModel

from .config import EngineConfig
from .exceptions import AuthorizationDenied
from .interfaces import Notification, NotificationKind, NotificationSink
from .permissions.constants import GLOBAL_SCOPE, Action, Module
from .permissions.evaluator import PermissionEvaluator
from .permissions.constants import normalize_scope

logger = logging.getLogger(__name__)

BLOCKED_REASON = "This action is currently unavailable."


def _value(item: Any) -> str:
    return item.value if isinstance(item, (Module, Action)) else str(item)


def deny_reason(
    module: Module | str,
    action: Action | str,
    scope: Any = GLOBAL_SCOPE,
    override: Optional[str] = None,
) -> str:
    """Explain a denial.

    Example::

        deny_reason("rooms", "add", 12)
        # "You lack rooms:add permission for building 12."
        deny_reason("expenses", "delete")
        # "You lack expenses:delete permission."
        deny_reason("rooms", "add", None)
        # "You lack rooms:add permission (building not known)."
    """
    if override:
        return override
    normalized = normalize_scope(scope)
    if normalized is None:
        return f"You lack {_value(module)}:{_value(action)} permission (building not known)."
    if normalized == GLOBAL_SCOPE:
        return f"You lack {_value(module)}:{_value(action)} permission."
    return f"You lack {_value(module)}:{_value(action)} permission for building {normalized}."


class ControlState(BaseModel):
    """How a gated control should render.

    ``visible`` is always True: denied controls are shown inert, never hidden.
    """

    model_config = {"frozen": True}

    visible: bool = True
    enabled: bool
    reason: Optional[str] = None
    blocked: bool = False


class PermissionControl:
    """One interactive control gated by a ``module:action`` capability.

    The permission check runs first; a control that passes it can still
    be *blocked* for a non-permission reason (e.g. an inactive building).

    Args:
        evaluator: Evaluator for the current subject.
        module: Module the control acts on.
        action: Action the control performs.
        scope: Building id or ``"global"``.
        sink: Where deny notifications go.
        reason: Tooltip text override for the denied state.
        deny_message: Notification text override for a denied activation.
        deny_kind: Notification kind for denials (default from config).
        notify_on_deny: Emit a notification on denied activation (default from config).
        blocked: Block the control even if permitted.
        blocked_reason: Tooltip text for the blocked state.
        blocked_message: Notification text for a blocked activation.
        config: Engine config supplying defaults.
    """

    def __init__(
        self,
        evaluator: PermissionEvaluator,
        module: Module | str,
        action: Action | str,
        scope: Any = GLOBAL_SCOPE,
        *,
        sink: NotificationSink,
        reason: Optional[str] = None,
        deny_message: Optional[str] = None,
        deny_kind: Optional[NotificationKind | str] = None,
        notify_on_deny: Optional[bool] = None,
        blocked: bool = False,
        blocked_reason: Optional[str] = None,
        blocked_message: Optional[str] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        config = config or EngineConfig()
        self.evaluator = evaluator
        self.module = module
        self.action = action
        self.scope = normalize_scope(scope)
        self.sink = sink
        self.reason = reason
        self.deny_message = deny_message
        self.deny_kind = NotificationKind(deny_kind or config.deny_notification_kind)
        self.notify_on_deny = config.notify_on_deny if notify_on_deny is None else notify_on_deny
        self.blocked = blocked
        self.blocked_reason = blocked_reason
        self.blocked_message = blocked_message

    @property
    def allowed(self) -> bool:
        return self.evaluator.can(self.module, self.action, self.scope)

    def state(self) -> ControlState:
        """Render state for the control right now."""
        if not self.allowed:
            return ControlState(
                enabled=False,
                reason=deny_reason(self.module, self.action, self.scope, self.reason),
            )
        if self.blocked:
            return ControlState(
                enabled=False,
                reason=self.blocked_reason or BLOCKED_REASON,
                blocked=True,
            )
        return ControlState(enabled=True)

    def activate(self, handler: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run ``handler`` if the control is enabled.

        Otherwise emit one notification (if configured) and return None
        without calling the handler.
        """
        if not self.allowed:
            logger.info(
                "Denied control %s:%s (scope=%s)",
                _value(self.module),
                _value(self.action),
                self.scope,
            )
            if self.notify_on_deny:
                message = self.deny_message or deny_reason(self.module, self.action, self.scope, self.reason)
                self.sink.notify(Notification(message=message, kind=self.deny_kind))
            return None

        if self.blocked:
            message = self.blocked_message or self.blocked_reason or BLOCKED_REASON
            self.sink.notify(Notification(message=message, kind=NotificationKind.WARNING))
            return None

        return handler(*args, **kwargs)

    def __repr__(self) -> str:
        return (
            f"PermissionControl({_value(self.module)}:{_value(self.action)}, "
            f"scope={self.scope!r}, blocked={self.blocked})"
        )


def entry_point_visible(
    evaluator: PermissionEvaluator,
    module: Module | str,
    action: Action | str = Action.VIEW,
) -> bool:
    """Whether to show an entry point whose building is not known yet.

    Visible when granted globally or in at least one building. Never a
    substitute for the exact-scope check once the building is known.
    """
    return evaluator.can(module, action, GLOBAL_SCOPE) or evaluator.has_any_scope(module, action)


def deny_feedback(
    sink: NotificationSink,
    kind: NotificationKind | str = NotificationKind.WARNING,
    message: Optional[str] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator for action handlers that call guarded operations.

    Catches :class:`AuthorizationDenied`, notifies ``sink`` once and
    returns None. Other exceptions propagate. Denials are never retried.

    ``message`` replaces the generated :func:`deny_reason` text, the same
    way a control's deny message does.

    Usage:
        @deny_feedback(toasts)
        async def on_add_room(form):
            return await rooms_api.create_room(form)
    """
    notification_kind = NotificationKind(kind)

    def _notify(func: Callable[..., Any], error: AuthorizationDenied) -> None:
        logger.info(
            "%s denied: %s:%s (scope=%s)",
            getattr(func, "__name__", "handler"),
            error.module,
            error.action,
            error.scope,
            extra={"error_code": error.code},
        )
        sink.notify(
            Notification(
                message=message or deny_reason(error.module, error.action, error.scope),
                kind=notification_kind,
            )
        )

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                try:
                    return await func(*args, **kwargs)
                except AuthorizationDenied as e:
                    _notify(func, e)
                    return None

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except AuthorizationDenied as e:
                _notify(func, e)
                return None

        return wrapper

    return decorator


__all__ = [
    "BLOCKED_REASON",
    "ControlState",
    "PermissionControl",
    "deny_feedback",
    "deny_reason",
    "entry_point_visible",
]
