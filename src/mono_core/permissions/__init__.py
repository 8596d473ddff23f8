"""Role-based permissions with wildcard patterns."""

from mono_core.permissions.access import (
    ADMIN_ROLES,
    API_ACCESS_MATRIX,
    ROUTE_ACCESS_MATRIX,
    AccessRule,
    can_access_api,
    can_access_route,
    has_admin_access,
    match_api,
    match_route,
)
from mono_core.permissions.manager import (
    Permission,
    PermissionManager,
    PermissionSet,
    Role,
    RoleAssignment,
    expand_grants,
)
from mono_core.permissions.patterns import (
    SCOPE_HIERARCHY,
    PermissionPattern,
    find_match,
    format_permission,
    matches,
    parse_permission,
)
from mono_core.permissions.seeder import SeedReport, seed_permissions
from mono_core.permissions.service import PermissionResult, PermissionService, UserContext

__all__ = [
    "ADMIN_ROLES",
    "API_ACCESS_MATRIX",
    "AccessRule",
    "Permission",
    "PermissionManager",
    "PermissionPattern",
    "PermissionResult",
    "PermissionService",
    "PermissionSet",
    "ROUTE_ACCESS_MATRIX",
    "Role",
    "RoleAssignment",
    "SCOPE_HIERARCHY",
    "SeedReport",
    "UserContext",
    "can_access_api",
    "can_access_route",
    "expand_grants",
    "find_match",
    "format_permission",
    "has_admin_access",
    "match_api",
    "match_route",
    "matches",
    "parse_permission",
    "seed_permissions",
]
