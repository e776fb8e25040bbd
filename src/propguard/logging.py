"""Logging utilities for propguard.

This module provides:
- Logging configuration from EngineConfig
- Length-bounded previews of payloads for log lines
- Structured (JSON) or plain formatting with subject/scope context
- A logger adapter that stamps every record with the current subject
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from .config import EngineConfig, LogLevel
from .subject import Subject


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a single-line, length-bounded preview of a value for logging.

    Used for subject payloads and permission structures, which can be
    large: one line, whitespace collapsed, truncated with an ellipsis.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A truncated string representation ("" for None)
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list, tuple)):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False, sort_keys=True)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"
    return s


_RECORD_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName", "relativeCreated",
        "thread", "threadName", "taskName", "exc_info", "exc_text", "stack_info",
        "subject_id", "role", "scope",
    }
)


class PropguardFormatter(logging.Formatter):
    """Formatter that adds subject context and optionally emits JSON.

    Records produced through :class:`SubjectLoggerAdapter` carry
    ``subject_id``, ``role`` and ``scope``; any other ``extra`` keys are
    included as previews.
    """

    def __init__(
        self,
        include_subject: bool = True,
        json_format: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.include_subject = include_subject
        self.json_format = json_format

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_subject:
            for key in ("subject_id", "role", "scope"):
                value = getattr(record, key, None)
                if value is not None:
                    log_data[key] = str(value)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS:
                log_data[key] = safe_preview(value)

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            log_data["level"],
            log_data["logger"],
        ]
        if "subject_id" in log_data:
            parts.append(f"subject={log_data['subject_id']}")
        if "role" in log_data:
            parts.append(f"role={log_data['role']}")
        if "scope" in log_data:
            parts.append(f"scope={log_data['scope']}")
        parts.append(f": {log_data['message']}")
        text = " ".join(parts)
        if "exception" in log_data:
            text = f"{text}\n{log_data['exception']}"
        return text


class SubjectLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds subject_id and role (and optionally scope) to records.

    Usage:
        logger = get_subject_logger(__name__, subject)
        logger.info("Opened building", scope=building_id)
    """

    def __init__(
        self,
        logger: logging.Logger,
        subject_id: Optional[str] = None,
        role: Optional[str] = None,
        scope: Optional[str] = None,
    ):
        super().__init__(logger, {})
        self.subject_id = subject_id
        self.role = role
        self.scope = scope

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        subject_id = kwargs.pop("subject_id", self.subject_id)
        role = kwargs.pop("role", self.role)
        scope = kwargs.pop("scope", self.scope)

        subject = kwargs.pop("subject", None)
        if isinstance(subject, Subject):
            subject_id = subject_id or subject.id
            role = role or subject.role or None

        extra = dict(kwargs.get("extra") or {})
        if subject_id is not None:
            extra["subject_id"] = subject_id
        if role is not None:
            extra["role"] = role
        if scope is not None:
            extra["scope"] = scope
        kwargs["extra"] = extra

        return msg, kwargs


_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
}


def setup_logging(
    config: Optional[EngineConfig] = None,
    json_format: Optional[bool] = None,
) -> None:
    """Configure root logging for an application embedding propguard.

    Args:
        config: EngineConfig instance (if None, loads from environment)
        json_format: Force JSON (True) or plain (False); defaults to config.log_json
    """
    if config is None:
        from .config import load_config_from_env

        config = load_config_from_env()

    log_level = _LEVELS.get(LogLevel(config.log_level), logging.INFO)
    use_json = config.log_json if json_format is None else json_format

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(PropguardFormatter(include_subject=True, json_format=use_json))
    root_logger.addHandler(console_handler)

    logging.getLogger("propguard").setLevel(log_level)


def get_subject_logger(
    name: str,
    subject: Optional[Subject] = None,
    scope: Optional[str] = None,
) -> SubjectLoggerAdapter:
    """Get a logger adapter bound to a subject.

    Args:
        name: Logger name (typically __name__)
        subject: Subject whose id is added to every record
        scope: Optional scope added to every record

    Example:
        logger = get_subject_logger(__name__, session.evaluator.subject)
        logger.info("Loaded dashboard")
    """
    logger = logging.getLogger(name)
    if subject is None:
        return SubjectLoggerAdapter(logger, scope=scope)
    return SubjectLoggerAdapter(logger, subject_id=subject.id, role=subject.role or None, scope=scope)


__all__ = [
    "PropguardFormatter",
    "SubjectLoggerAdapter",
    "get_subject_logger",
    "safe_preview",
    "setup_logging",
]
