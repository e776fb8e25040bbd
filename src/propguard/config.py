"""Configuration for the propguard authorization engine.

Pydantic-validated settings shared by the evaluator, the deny-feedback
helpers and logging. ``load_config_from_env()`` is the only place that
reads the environment; everything else receives an ``EngineConfig``.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from .interfaces import NotificationKind
from .permissions.constants import Role


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EngineConfig(BaseModel):
    """Settings for one authorization engine instance."""

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    # Authorization
    bypass_role: str = Field(
        default=Role.ADMIN.value,
        description="Role that passes every capability check",
    )

    # Deny feedback
    deny_notification_kind: str = Field(
        default="warning",
        description="Notification kind emitted when a gated control is denied",
    )
    notify_on_deny: bool = Field(
        default=True,
        description="Emit a notification when a denied control is activated",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    @field_validator("bypass_role")
    @classmethod
    def validate_bypass_role(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("bypass_role must not be empty")
        return v.strip()

    @field_validator("deny_notification_kind")
    @classmethod
    def validate_deny_kind(cls, v: str) -> str:
        try:
            return NotificationKind(v.lower()).value
        except ValueError:
            raise ValueError(
                f"Invalid notification kind: {v}. Must be one of {[k.value for k in NotificationKind]}"
            )

    model_config = {
        "use_enum_values": True,
        "extra": "forbid",
    }


_TRUTHY = ("true", "1", "yes", "on")


def load_config_from_env() -> EngineConfig:
    """Load engine configuration from environment variables.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_JSON: Use JSON log format (true/false, default: false)
    - PROPGUARD_BYPASS_ROLE: Role that bypasses checks (default: pg_admin)
    - PROPGUARD_DENY_KIND: Notification kind for denials (default: warning)
    - PROPGUARD_NOTIFY_ON_DENY: Emit deny notifications (default: true)

    Returns:
        EngineConfig with values from environment or defaults.
    """
    import os

    return EngineConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in _TRUTHY,
        bypass_role=os.getenv("PROPGUARD_BYPASS_ROLE", Role.ADMIN.value),
        deny_notification_kind=os.getenv("PROPGUARD_DENY_KIND", "warning"),
        notify_on_deny=os.getenv("PROPGUARD_NOTIFY_ON_DENY", "true").lower() in _TRUTHY,
    )


__all__ = [
    "EngineConfig",
    "LogLevel",
    "load_config_from_env",
]
