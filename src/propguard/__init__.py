from .permissions import (
    GLOBAL_SCOPE,
    Action,
    Module,
    PermissionEvaluator,
    Role,
)
from .subject import Subject
from .config import EngineConfig, LogLevel, load_config_from_env
from .exceptions import AuthorizationDenied, ConfigurationError, PropguardError, SessionError
from .interfaces import HierarchyLookup, Notification, NotificationKind, NotificationSink, SubjectFetcher
from .guarded import (
    AnyOf,
    Capability,
    GuardedApi,
    guarded,
    guarded_bookings,
    guarded_expenses,
    guarded_payments,
    guarded_properties,
    guarded_tenants,
    infer_capability,
    require_permission,
)
from .feedback import ControlState, PermissionControl, deny_feedback, deny_reason, entry_point_visible
from .session import SessionState, SubjectSession
from .hierarchy import ScopeLocator
from .logging import (
    safe_preview,
    PropguardFormatter,
    SubjectLoggerAdapter,
    setup_logging,
    get_subject_logger,
)

__all__ = [
    'GLOBAL_SCOPE',
    'Action',
    'Module',
    'Role',
    'PermissionEvaluator',
    'Subject',
    'EngineConfig',
    'LogLevel',
    'load_config_from_env',
    'PropguardError',
    'ConfigurationError',
    'AuthorizationDenied',
    'SessionError',
    'HierarchyLookup',
    'Notification',
    'NotificationKind',
    'NotificationSink',
    'SubjectFetcher',
    'AnyOf',
    'Capability',
    'GuardedApi',
    'guarded',
    'guarded_bookings',
    'guarded_expenses',
    'guarded_payments',
    'guarded_properties',
    'guarded_tenants',
    'infer_capability',
    'require_permission',
    'ControlState',
    'PermissionControl',
    'deny_feedback',
    'deny_reason',
    'entry_point_visible',
    'SessionState',
    'SubjectSession',
    'ScopeLocator',
    'safe_preview',
    'PropguardFormatter',
    'SubjectLoggerAdapter',
    'setup_logging',
    'get_subject_logger',
]
