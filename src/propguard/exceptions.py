"""Exception hierarchy for propguard.

Everything raised by the package inherits from :class:`PropguardError`,
which carries a stable ``code`` for mapping to UI messages or HTTP
statuses.

Usage:
    from propguard.exceptions import AuthorizationDenied

    try:
        api.create_room(payload)
    except AuthorizationDenied as e:
        show_deny_feedback(e.module, e.action, e.scope)
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "PropguardError",
    "ConfigurationError",
    "AuthorizationDenied",
    "SessionError",
]


# ---- Exception Hierarchy ----------------------------------------------------


class PropguardError(Exception):
    """Base exception for propguard.

    Attributes:
        code: Stable error code string (e.g. "PERMISSION_DENIED").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(PropguardError):
    """Invalid configuration, or an operation that maps to no capability."""

    code: str = "CONFIGURATION_ERROR"


class SessionError(PropguardError):
    """The subject could not be loaded or refreshed."""

    code: str = "SESSION_ERROR"


class AuthorizationDenied(PropguardError):
    """A guarded operation was refused before it was invoked.

    Expected and user-facing: the triggering control shows deny feedback.
    Never retried, since a denial is not transient.

    Attributes:
        module: Module value that was checked (e.g. ``"rooms"``).
        action: Action value that was checked (e.g. ``"add"``).
        scope: Normalized scope the check ran against, or None when the
            building was not known.
        operation: Name of the refused operation, if known.
    """

    code: str = "PERMISSION_DENIED"
    message: str = "Permission denied"
    status: int = 403

    def __init__(
        self,
        module: str,
        action: str,
        scope: str | None,
        *,
        operation: str | None = None,
        message: str | None = None,
    ) -> None:
        super().__init__(message, module=module, action=action, scope=scope, operation=operation)
        self.module = module
        self.action = action
        self.scope = scope
        self.operation = operation

    @property
    def meta(self) -> dict[str, str | None]:
        return {"module": self.module, "action": self.action, "scope": self.scope}

    def __repr__(self) -> str:
        return (
            f"AuthorizationDenied(module={self.module!r}, action={self.action!r}, "
            f"scope={self.scope!r}, operation={self.operation!r})"
        )
