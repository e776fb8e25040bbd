"""Capability model and evaluation for the property-management console.

Defines:
- Module / Action / Role: the closed vocabularies
- Matrix helpers: normalize a scope's grants to the full module × action table
- Scope resolution: exact-scope lookup, any-scope visibility, assigned buildings
- PermissionEvaluator: the single predicate every screen asks
- Module dependencies and the grant editor used by the settings screen
"""

from .constants import ACTIONS, GLOBAL_SCOPE, MODULES, Action, Module, Role
from .dependencies import (
    MODULE_CHILDREN,
    MODULE_DEPENDENCIES,
    clear_descendants,
    descendants,
    ensure_parents_view,
    normalize_dependencies,
    required_parents,
)
from .editor import (
    GrantProfile,
    apply_profile,
    classify_row,
    set_action_column,
    set_all,
    set_module_permissions,
    set_permission,
)
from .evaluator import PermissionEvaluator
from .matrix import Matrix, empty_matrix, full_matrix, normalize, normalize_entry, scope_entry
from .scope import granted_scopes, has_any_scope, normalize_scope, resolve

__all__ = [
    "ACTIONS",
    "GLOBAL_SCOPE",
    "MODULES",
    "MODULE_CHILDREN",
    "MODULE_DEPENDENCIES",
    "Action",
    "GrantProfile",
    "Matrix",
    "Module",
    "PermissionEvaluator",
    "Role",
    "apply_profile",
    "classify_row",
    "clear_descendants",
    "descendants",
    "empty_matrix",
    "ensure_parents_view",
    "full_matrix",
    "granted_scopes",
    "has_any_scope",
    "normalize",
    "normalize_dependencies",
    "normalize_entry",
    "normalize_scope",
    "required_parents",
    "resolve",
    "scope_entry",
    "set_action_column",
    "set_all",
    "set_module_permissions",
    "set_permission",
]
