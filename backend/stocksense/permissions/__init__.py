# Overview: Permission system package.
# Re-exports all public APIs for short imports.

from .categories import PermissionCategory
from .definitions import (
    Operation,
    PERMISSION_DEFINITIONS,
    USER_PERMISSIONS,
    CATALOG_PERMISSIONS,
    SALES_PERMISSIONS,
    ANALYTICS_PERMISSIONS,
    ALERT_PERMISSIONS,
)
from .roles import Role, DEFAULT_ROLE_PERMISSIONS
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    validate_permission_code,
)
from .policy import Actor, AccessPolicy, allowed

__all__ = [
    "PermissionCategory",
    "Operation",
    "PERMISSION_DEFINITIONS",
    "USER_PERMISSIONS",
    "CATALOG_PERMISSIONS",
    "SALES_PERMISSIONS",
    "ANALYTICS_PERMISSIONS",
    "ALERT_PERMISSIONS",
    "Role",
    "DEFAULT_ROLE_PERMISSIONS",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "validate_permission_code",
    "Actor",
    "AccessPolicy",
    "allowed",
]
