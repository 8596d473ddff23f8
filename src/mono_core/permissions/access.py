"""Coarse role gates for admin UI routes and API endpoints.

These checks only look at role codes carried in the token. A passing
result sets requires_detailed_check so callers follow up with a
PermissionService check for the specific permission.
"""

from dataclasses import dataclass, field
from typing import Any

from mono_core.observability import log_security_event
from mono_core.permissions.service import PermissionResult, UserContext

ADMIN_ROLES: tuple[str, ...] = ("super_admin", "tenant_admin", "content_moderator")


@dataclass(frozen=True)
class AccessRule:
    """Roles allowed through a gate and the permissions to verify afterwards."""

    allowed_roles: tuple[str, ...]
    permissions: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowed_roles": list(self.allowed_roles),
            "permissions": list(self.permissions),
        }


_ALL_ADMINS = ADMIN_ROLES
_PLATFORM_AND_TENANT = ("super_admin", "tenant_admin")
_PLATFORM = ("super_admin",)


ROUTE_ACCESS_MATRIX: dict[str, AccessRule] = {
    "/admin": AccessRule(
        _ALL_ADMINS,
        ("platform.manage.global", "users.read.tenant", "analytics.read.tenant"),
    ),
    "/admin/users": AccessRule(_PLATFORM_AND_TENANT, ("users.manage.tenant", "users.read.tenant")),
    "/admin/applications": AccessRule(_ALL_ADMINS, ("profiles.moderate.tenant", "users.read.tenant")),
    "/admin/media-review": AccessRule(_ALL_ADMINS, ("media.moderate.tenant", "media.approve.tenant")),
    "/admin/analytics": AccessRule(
        _PLATFORM_AND_TENANT,
        ("analytics.read.tenant", "platform.analytics.global"),
    ),
    "/admin/settings": AccessRule(_PLATFORM, ("platform.manage.global",)),
    "/admin/translations": AccessRule(_PLATFORM_AND_TENANT, ("platform.manage.global",)),
    "/admin/workflows": AccessRule(
        _PLATFORM_AND_TENANT,
        ("platform.manage.global", "analytics.read.tenant"),
    ),
    "/admin/preferences": AccessRule(_ALL_ADMINS, ("users.read.tenant",)),
    "/admin/tenants": AccessRule(_PLATFORM, ("platform.manage.global",)),
    "/admin/audit": AccessRule(
        _PLATFORM_AND_TENANT,
        ("platform.analytics.global", "analytics.read.tenant"),
    ),
    "/admin/saved-searches": AccessRule(_PLATFORM_AND_TENANT, ("saved_searches.read.tenant",)),
}


API_ACCESS_MATRIX: dict[str, dict[str, AccessRule]] = {
    "/api/v1/admin/users": {
        "GET": AccessRule(_PLATFORM_AND_TENANT, ("users.read.tenant",)),
        "POST": AccessRule(_PLATFORM_AND_TENANT, ("users.create.tenant",)),
        "PUT": AccessRule(_PLATFORM_AND_TENANT, ("users.update.tenant",)),
        "DELETE": AccessRule(_PLATFORM, ("users.delete.tenant",)),
    },
    "/api/v1/admin/translations": {
        "GET": AccessRule(_ALL_ADMINS, ("platform.manage.global",)),
        "POST": AccessRule(_PLATFORM_AND_TENANT, ("platform.manage.global",)),
        "PUT": AccessRule(_PLATFORM_AND_TENANT, ("platform.manage.global",)),
        "DELETE": AccessRule(_PLATFORM, ("platform.manage.global",)),
    },
    "/api/v1/admin/translations/scan-strings": {
        "GET": AccessRule(_PLATFORM, ("platform.manage.global",)),
    },
    "/api/v1/workflows": {
        "GET": AccessRule(_PLATFORM_AND_TENANT, ("analytics.read.tenant",)),
        "POST": AccessRule(_PLATFORM, ("platform.manage.global",)),
        "PUT": AccessRule(_PLATFORM, ("platform.manage.global",)),
        "DELETE": AccessRule(_PLATFORM, ("platform.manage.global",)),
    },
    "/api/v1/admin/preferences": {
        "GET": AccessRule(_ALL_ADMINS, ("users.read.tenant",)),
        "PUT": AccessRule(_ALL_ADMINS, ("users.update.tenant",)),
    },
    "/api/v1/admin/categories": {
        "GET": AccessRule(_ALL_ADMINS, ("categories.read.tenant",)),
        "POST": AccessRule(_ALL_ADMINS, ("categories.create.tenant",)),
        "PUT": AccessRule(_ALL_ADMINS, ("categories.update.tenant",)),
        "DELETE": AccessRule(_PLATFORM_AND_TENANT, ("categories.delete.tenant",)),
    },
    "/api/v1/admin/tags": {
        "GET": AccessRule(_ALL_ADMINS, ("tags.read.tenant",)),
        "POST": AccessRule(_ALL_ADMINS, ("tags.create.tenant",)),
        "PUT": AccessRule(_ALL_ADMINS, ("tags.update.tenant",)),
        "DELETE": AccessRule(_PLATFORM_AND_TENANT, ("tags.delete.tenant",)),
    },
    "/api/v1/admin/saved-searches": {
        "GET": AccessRule(_PLATFORM_AND_TENANT, ("saved_searches.read.tenant",)),
        "POST": AccessRule(_PLATFORM_AND_TENANT, ("saved_searches.create.tenant",)),
    },
    "/api/v1/profiles": {
        "GET": AccessRule(_ALL_ADMINS, ("profiles.moderate.tenant",)),
        "POST": AccessRule(("individual_owner", "agency_owner"), ("profiles.create.own",)),
        "PUT": AccessRule(("individual_owner", "agency_owner"), ("profiles.update.own",)),
    },
    "/api/v1/media": {
        "GET": AccessRule(_ALL_ADMINS, ("media.moderate.tenant",)),
        "POST": AccessRule(("individual_owner",), ("media.upload.own",)),
        "PUT": AccessRule(("individual_owner",), ("media.manage.own",)),
        "DELETE": AccessRule(("individual_owner",), ("media.manage.own",)),
    },
    "/api/v1/jobs": {
        "GET": AccessRule(("job_poster", "individual_owner"), ("jobs.read.tenant",)),
        "POST": AccessRule(("job_poster",), ("jobs.create.own",)),
        "PUT": AccessRule(("job_poster",), ("jobs.manage.own",)),
    },
}


def has_admin_access(user: UserContext, admin_roles: tuple[str, ...] = ADMIN_ROLES) -> bool:
    """True if an authenticated user holds any admin role."""
    if not user.is_authenticated or not user.roles:
        return False
    return any(role in admin_roles for role in user.roles)


def _match_prefix(path: str, candidates: list[str]) -> str | None:
    """Exact match first, then the longest candidate ending on a path boundary."""
    path = path.split("#", 1)[0]
    bare = path.split("?", 1)[0].rstrip("/") or "/"
    if bare in candidates:
        return bare

    best: str | None = None
    for candidate in candidates:
        if path.startswith(candidate + "/") or path.startswith(candidate + "?"):
            if best is None or len(candidate) > len(best):
                best = candidate
    return best


def match_route(path: str) -> str | None:
    """Find the ROUTE_ACCESS_MATRIX entry governing a UI path."""
    return _match_prefix(path, list(ROUTE_ACCESS_MATRIX))


def match_api(path: str) -> str | None:
    """Find the API_ACCESS_MATRIX entry governing an API path."""
    return _match_prefix(path, list(API_ACCESS_MATRIX))


def can_access_route(user: UserContext, path: str) -> PermissionResult:
    """Role gate for an admin UI route."""
    if not user.is_authenticated:
        log_security_event(
            "route_access_denied", False, {"path": path, "reason": "User not authenticated"}
        )
        return PermissionResult(allowed=False, reason="User not authenticated")

    route = match_route(path)
    if route is None:
        return PermissionResult(allowed=True, reason="No specific restrictions for this route")

    rule = ROUTE_ACCESS_MATRIX[route]
    return _check_roles(user, rule, "route", {"path": path})


def can_access_api(user: UserContext, path: str, method: str = "GET") -> PermissionResult:
    """Role gate for an API endpoint and HTTP method."""
    method = method.upper()
    if not user.is_authenticated:
        log_security_event(
            "api_access_denied",
            False,
            {"path": path, "method": method, "reason": "User not authenticated"},
        )
        return PermissionResult(allowed=False, reason="User not authenticated")

    endpoint = match_api(path)
    if endpoint is None:
        return PermissionResult(allowed=True, reason="No specific restrictions for this API endpoint")

    rule = API_ACCESS_MATRIX[endpoint].get(method)
    if rule is None:
        log_security_event(
            "api_access_denied",
            False,
            {"path": path, "method": method, "subject": user.user_id, "reason": "Method not allowed"},
        )
        return PermissionResult(allowed=False, reason=f"Method {method} not allowed for this endpoint")

    return _check_roles(user, rule, "api", {"path": path, "method": method})


def _check_roles(
    user: UserContext,
    rule: AccessRule,
    kind: str,
    details: dict[str, Any],
) -> PermissionResult:
    details = details | {"subject": user.user_id, "roles": user.roles}

    if not any(role in rule.allowed_roles for role in user.roles):
        log_security_event(
            f"{kind}_access_denied",
            False,
            details | {"required_roles": list(rule.allowed_roles), "reason": "Insufficient role access"},
        )
        return PermissionResult(
            allowed=False,
            reason=f"Insufficient role access. Required: {', '.join(rule.allowed_roles)}",
        )

    log_security_event(f"{kind}_access_granted", True, details)
    return PermissionResult(
        allowed=True,
        reason="Role check passed",
        requires_detailed_check=True,
    )
