"""HTTP route handlers.

Handlers raise domain exceptions. handle_error maps them onto JSON
error responses, and create_app registers it with Starlette.
"""

import functools
import json
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from mono_core.auth.jwt_utils import create_jwks
from mono_core.auth.manager import User
from mono_core.exceptions import (
    AuthError,
    ConflictError,
    MonoError,
    NotFoundError,
    PermissionDeniedError,
)
from mono_core.observability import get_logger
from mono_core.permissions.access import can_access_api, can_access_route
from mono_core.permissions.service import UserContext

if TYPE_CHECKING:
    from mono_core.platform import Platform

logger = get_logger(__name__)

Handler = Callable[[Request], Awaitable[Response]]

CREATE_FIELDS = frozenset({
    "entity_type",
    "name",
    "filters",
    "scope",
    "description",
    "sort_by",
    "sort_order",
    "column_config",
    "search_value",
    "pagination_limit",
    "is_default",
    "is_public",
    "can_override",
    "is_template",
})


def error_status(exc: Exception) -> int:
    """HTTP status for a domain exception."""
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ConflictError):
        return 409
    if isinstance(exc, PermissionDeniedError):
        return 403
    if isinstance(exc, AuthError):
        return 401
    if isinstance(exc, (MonoError, ValueError)):
        return 400
    return 500


async def handle_error(request: Request, exc: Exception) -> Response:
    """Exception handler turning domain errors into JSON responses."""
    status = error_status(exc)
    logger.info(
        "Request failed",
        context={"path": request.url.path, "status": status, "error_type": type(exc).__name__},
    )
    return JSONResponse({"error": str(exc)}, status_code=status)


def require_permission(permission: str) -> Callable[[Handler], Handler]:
    """Decorator requiring a permission in the request's tenant context.

    Checks authentication first (401), then authorization (403).
    """

    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        async def wrapper(request: Request) -> Response:
            user: UserContext | None = getattr(request.state, "user", None)
            if user is None or not user.is_authenticated:
                return JSONResponse({"error": "Authentication required"}, status_code=401)

            platform: "Platform" = request.app.state.platform
            await platform._ensure_initialized()
            result = await platform.permissions.check_permission(
                user, permission, getattr(request.state, "tenant_id", None)
            )
            if not result.allowed:
                return JSONResponse(
                    {"error": "Permission denied", "required": permission, "reason": result.reason},
                    status_code=403,
                )
            return await handler(request)

        return wrapper

    return decorator


def require_auth(handler: Handler) -> Handler:
    """Decorator requiring an authenticated user (401 otherwise)."""

    @functools.wraps(handler)
    async def wrapper(request: Request) -> Response:
        user: UserContext | None = getattr(request.state, "user", None)
        if user is None or not user.is_authenticated:
            return JSONResponse({"error": "Authentication required"}, status_code=401)
        return await handler(request)

    return wrapper


async def read_json(request: Request) -> dict[str, Any]:
    """Parse a JSON object body.

    Raises:
        ValueError: If the body is not a JSON object
    """
    try:
        body = await request.json()
    except json.JSONDecodeError as e:
        raise ValueError("Invalid JSON body") from e
    if not isinstance(body, dict):
        raise ValueError("JSON body must be an object")
    return body


def _require_fields(body: dict[str, Any], *names: str) -> None:
    missing = [name for name in names if not body.get(name)]
    if missing:
        raise ValueError(f"Missing required fields: {', '.join(missing)}")


def _int_param(request: Request, name: str, default: int) -> int:
    raw = request.query_params.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Invalid integer for {name}: {raw}") from None


def _search_id(request: Request) -> int:
    try:
        return int(request.path_params["search_id"])
    except ValueError:
        raise ValueError("Invalid saved search id") from None


def create_routes(platform: "Platform") -> list[Route]:
    """Create HTTP routes for the platform.

    Args:
        platform: The configured Platform instance

    Returns:
        List of Starlette routes
    """

    def current_user(request: Request) -> UserContext:
        return request.state.user

    def request_tenant(request: Request) -> str | None:
        return getattr(request.state, "tenant_id", None)

    async def health(request: Request) -> Response:
        """Health check endpoint."""
        return JSONResponse({"status": "ok", "timestamp": time.time()})

    # Authentication

    async def auth_login(request: Request) -> Response:
        """Login with email and password.

        Body: { email, password, tenant_id? }
        """
        body = await read_json(request)
        _require_fields(body, "email", "password")
        await platform._ensure_initialized()

        tokens = await platform.auth.login(body["email"], body["password"], body.get("tenant_id"))
        return JSONResponse(tokens.to_dict())

    async def auth_refresh(request: Request) -> Response:
        """Exchange a refresh token for a new access token."""
        body = await read_json(request)
        _require_fields(body, "refresh_token")
        await platform._ensure_initialized()

        tokens = await platform.auth.refresh(body["refresh_token"])
        return JSONResponse(tokens.to_dict())

    @require_auth
    async def auth_me(request: Request) -> Response:
        """Current authenticated user."""
        return JSONResponse(current_user(request).to_dict())

    async def jwks(request: Request) -> Response:
        """Public keys for verifying tokens issued by this server."""
        await platform._ensure_initialized()
        return JSONResponse(create_jwks(platform.key_pair))

    # Permission checks

    @require_auth
    async def permissions_me(request: Request) -> Response:
        """Roles and effective permissions in the request's tenant context."""
        await platform._ensure_initialized()
        user = current_user(request)
        tenant_id = request_tenant(request)
        grants = await platform.permissions.get_grants(user.user_id, tenant_id)
        roles = await platform.permission_manager.get_user_roles(user.user_id, tenant_id)
        return JSONResponse(
            {
                "user_id": user.user_id,
                "tenant_id": tenant_id,
                "roles": roles,
                "direct": grants.direct,
                "permissions": grants.effective,
            }
        )

    @require_auth
    async def permissions_check(request: Request) -> Response:
        """Check one or more permissions.

        Body: { permission } or { permissions: [...], mode: "any" | "all" }
        """
        body = await read_json(request)
        await platform._ensure_initialized()
        user = current_user(request)
        tenant_id = request_tenant(request)

        if body.get("permission"):
            result = await platform.permissions.check_permission(user, body["permission"], tenant_id)
            return JSONResponse(result.to_dict())

        permissions = body.get("permissions")
        if not isinstance(permissions, list) or not permissions:
            raise ValueError("Missing required field: permission or permissions")
        mode = body.get("mode", "all")
        if mode == "any":
            allowed = await platform.permissions.has_any_permission(user, permissions, tenant_id)
        elif mode == "all":
            allowed = await platform.permissions.has_all_permissions(user, permissions, tenant_id)
        else:
            raise ValueError(f"Invalid mode: {mode}")

        results = {}
        for permission in permissions:
            result = await platform.permissions.check_permission(user, permission, tenant_id)
            results[permission] = result.allowed
        return JSONResponse({"allowed": allowed, "mode": mode, "results": results})

    async def access_route(request: Request) -> Response:
        """Role gate for an admin UI route. Body: { path }"""
        body = await read_json(request)
        _require_fields(body, "path")
        result = can_access_route(current_user(request), body["path"])
        return JSONResponse(result.to_dict())

    async def access_api(request: Request) -> Response:
        """Role gate for an API endpoint. Body: { path, method? }"""
        body = await read_json(request)
        _require_fields(body, "path")
        result = can_access_api(current_user(request), body["path"], body.get("method", "GET"))
        return JSONResponse(result.to_dict())

    # RBAC administration

    @require_permission("users.read.tenant")
    async def admin_permissions_list(request: Request) -> Response:
        """Permission catalogue. Query: resource?"""
        permissions = await platform.permission_manager.list_permissions(
            request.query_params.get("resource")
        )
        return JSONResponse(
            {"permissions": [p.to_dict() for p in permissions], "total": len(permissions)}
        )

    @require_permission("users.read.tenant")
    async def admin_roles_list(request: Request) -> Response:
        """Roles ordered by level."""
        roles = await platform.permission_manager.list_roles()
        return JSONResponse({"roles": [r.to_dict() for r in roles], "total": len(roles)})

    @require_permission("users.read.tenant")
    async def admin_role_detail(request: Request) -> Response:
        code = request.path_params["code"]
        role = await platform.permission_manager.get_role(code)
        permissions = await platform.permission_manager.get_role_permissions(code)
        return JSONResponse(role.to_dict() | {"permissions": permissions})

    @require_permission("platform.manage.global")
    async def admin_role_upsert(request: Request) -> Response:
        """Create or update a role. Body: { code, name, level?, description? }"""
        body = await read_json(request)
        _require_fields(body, "code", "name")
        role = await platform.permission_manager.upsert_role(
            code=body["code"],
            name=body["name"],
            level=int(body.get("level", 1)),
            description=body.get("description"),
        )
        return JSONResponse(role.to_dict(), status_code=201)

    @require_permission("platform.manage.global")
    async def admin_role_delete(request: Request) -> Response:
        await platform.permission_manager.delete_role(request.path_params["code"])
        await platform.permissions.clear_all()
        return JSONResponse({"deleted": True})

    @require_permission("platform.manage.global")
    async def admin_role_grant(request: Request) -> Response:
        """Grant a permission to a role. Body: { permission }"""
        body = await read_json(request)
        _require_fields(body, "permission")
        code = request.path_params["code"]
        await platform.permission_manager.grant_permission(code, body["permission"])
        await platform.permissions.clear_all()
        return JSONResponse(
            {"role": code, "permission": body["permission"], "granted": True}, status_code=201
        )

    @require_permission("platform.manage.global")
    async def admin_role_revoke(request: Request) -> Response:
        code = request.path_params["code"]
        permission = request.path_params["permission"]
        await platform.permission_manager.revoke_permission(code, permission)
        await platform.permissions.clear_all()
        return JSONResponse({"role": code, "permission": permission, "revoked": True})

    async def administered_user(request: Request, user_id: str) -> User:
        """Load a user the actor may administer.

        Users outside the request tenant need platform.manage.global.
        """
        user = await platform.auth.get_user(user_id)
        if user.tenant_id != request_tenant(request):
            await platform.permissions.require_permission(
                current_user(request), "platform.manage.global", request_tenant(request)
            )
        return user

    @require_permission("users.read.tenant")
    async def admin_user_roles(request: Request) -> Response:
        user_id = request.path_params["user_id"]
        await administered_user(request, user_id)
        tenant_id = request_tenant(request)
        assignments = await platform.permission_manager.get_user_assignments(user_id)
        if not await platform.permissions.has_permission(
            current_user(request), "platform.manage.global", tenant_id
        ):
            assignments = [a for a in assignments if a.tenant_id == tenant_id]
        return JSONResponse({"user_id": user_id, "assignments": [a.to_dict() for a in assignments]})

    async def ensure_can_assign(request: Request, role_code: str, tenant_id: str | None) -> None:
        """Refuse platform-wide grants and roles above the actor's own level."""
        actor = current_user(request)
        if tenant_id is None or tenant_id != actor.tenant_id:
            await platform.permissions.require_permission(actor, "platform.manage.global")
            return

        role = await platform.permission_manager.get_role(role_code)
        actor_roles = await platform.permission_manager.get_user_roles(actor.user_id, tenant_id)
        levels = {r.code: r.level for r in await platform.permission_manager.list_roles()}
        if role.level > max((levels.get(code, 0) for code in actor_roles), default=0):
            raise PermissionDeniedError(f"Cannot assign a role above your own level: {role_code}")

    @require_permission("users.manage.tenant")
    async def admin_user_role_assign(request: Request) -> Response:
        """Assign a role. Body: { role, platform_wide? }

        The assignment applies to the request tenant unless platform_wide
        is set, which needs platform.manage.global.
        """
        body = await read_json(request)
        _require_fields(body, "role")
        user_id = request.path_params["user_id"]
        await administered_user(request, user_id)

        tenant_id = None if body.get("platform_wide") else request_tenant(request)
        await ensure_can_assign(request, body["role"], tenant_id)
        await platform.permission_manager.assign_role(user_id, body["role"], tenant_id)
        await platform.permissions.clear_user_cache(user_id)
        return JSONResponse(
            {"user_id": user_id, "role": body["role"], "tenant_id": tenant_id, "assigned": True},
            status_code=201,
        )

    @require_permission("users.manage.tenant")
    async def admin_user_role_revoke(request: Request) -> Response:
        """Query: platform_wide=true to revoke a platform-wide assignment"""
        user_id = request.path_params["user_id"]
        role = request.path_params["role"]
        await administered_user(request, user_id)
        platform_wide = request.query_params.get("platform_wide", "").lower() == "true"
        tenant_id = None if platform_wide else request_tenant(request)
        await ensure_can_assign(request, role, tenant_id)
        await platform.permission_manager.revoke_role(user_id, role, tenant_id)
        await platform.permissions.clear_user_cache(user_id)
        return JSONResponse({"user_id": user_id, "role": role, "revoked": True})

    # Tenants

    @require_permission("tenants.read.global")
    async def admin_tenants_list(request: Request) -> Response:
        """Query: page, limit, search, status"""
        page = await platform.tenants.list_tenants(
            page=_int_param(request, "page", 1),
            limit=_int_param(request, "limit", 20),
            search=request.query_params.get("search"),
            status=request.query_params.get("status"),
        )
        return JSONResponse(page.to_dict())

    @require_permission("tenants.create.global")
    async def admin_tenant_create(request: Request) -> Response:
        """Body: { name, subdomain, admin_email, admin_name?, description?, ... }"""
        body = await read_json(request)
        _require_fields(body, "name", "subdomain", "admin_email")
        result = await platform.tenants.create_tenant(
            name=body["name"],
            subdomain=body["subdomain"],
            admin_email=body["admin_email"],
            admin_name=body.get("admin_name"),
            description=body.get("description"),
            tenant_type=body.get("tenant_type"),
            status=body.get("status"),
            plan_id=body.get("plan_id"),
            settings=body.get("settings"),
            limits=body.get("limits"),
            features=body.get("features"),
            metadata=body.get("metadata"),
        )
        return JSONResponse(result.to_dict(), status_code=201)

    @require_permission("tenants.read.global")
    async def admin_tenant_detail(request: Request) -> Response:
        tenant = await platform.tenants.get_tenant(request.path_params["tenant_id"])
        return JSONResponse(tenant.to_dict())

    @require_permission("tenants.update.global")
    async def admin_tenant_update(request: Request) -> Response:
        body = await read_json(request)
        tenant = await platform.tenants.update_tenant(
            request.path_params["tenant_id"],
            name=body.get("name"),
            description=body.get("description"),
            plan_id=body.get("plan_id"),
            settings=body.get("settings"),
            limits=body.get("limits"),
            metadata=body.get("metadata"),
        )
        return JSONResponse(tenant.to_dict())

    @require_permission("tenants.delete.global")
    async def admin_tenant_delete(request: Request) -> Response:
        """Query: hard=true for a permanent delete"""
        tenant_id = request.path_params["tenant_id"]
        hard = request.query_params.get("hard", "").lower() == "true"
        await platform.tenants.delete_tenant(tenant_id, soft_delete=not hard)
        return JSONResponse({"tenant_id": tenant_id, "deleted": True, "soft": not hard})

    @require_permission("tenants.manage.global")
    async def admin_tenant_suspend(request: Request) -> Response:
        body = await read_json(request) if await request.body() else {}
        tenant = await platform.tenants.suspend_tenant(
            request.path_params["tenant_id"], reason=body.get("reason")
        )
        return JSONResponse(tenant.to_dict())

    @require_permission("tenants.manage.global")
    async def admin_tenant_activate(request: Request) -> Response:
        tenant = await platform.tenants.activate_tenant(request.path_params["tenant_id"])
        return JSONResponse(tenant.to_dict())

    @require_permission("tenants.read.global")
    async def admin_tenant_settings(request: Request) -> Response:
        settings = await platform.tenants.get_settings(request.path_params["tenant_id"])
        return JSONResponse({"settings": settings})

    @require_permission("tenants.update.global")
    async def admin_tenant_settings_update(request: Request) -> Response:
        body = await read_json(request)
        settings = await platform.tenants.update_settings(request.path_params["tenant_id"], body)
        return JSONResponse({"settings": settings})

    @require_permission("tenants.read.global")
    async def admin_tenant_features(request: Request) -> Response:
        features = await platform.tenants.get_features(request.path_params["tenant_id"])
        return JSONResponse({"features": features})

    @require_permission("tenants.update.global")
    async def admin_tenant_feature_enable(request: Request) -> Response:
        features = await platform.tenants.enable_feature(
            request.path_params["tenant_id"], request.path_params["feature"]
        )
        return JSONResponse({"features": features})

    @require_permission("tenants.update.global")
    async def admin_tenant_feature_disable(request: Request) -> Response:
        features = await platform.tenants.disable_feature(
            request.path_params["tenant_id"], request.path_params["feature"]
        )
        return JSONResponse({"features": features})

    @require_permission("tenants.read.global")
    async def admin_tenant_subscription(request: Request) -> Response:
        subscription = await platform.tenants.get_subscription(request.path_params["tenant_id"])
        return JSONResponse(subscription)

    @require_permission("tenants.update.global")
    async def admin_tenant_subscription_update(request: Request) -> Response:
        """Body: { plan_id, expires_at?, custom_limits? }"""
        body = await read_json(request)
        _require_fields(body, "plan_id")
        subscription = await platform.tenants.update_subscription(
            request.path_params["tenant_id"],
            plan_id=body["plan_id"],
            expires_at=body.get("expires_at"),
            custom_limits=body.get("custom_limits"),
        )
        return JSONResponse(subscription)

    @require_permission("tenants.read.global")
    async def admin_tenant_stats(request: Request) -> Response:
        stats = await platform.tenants.get_tenant_stats(request.path_params["tenant_id"])
        return JSONResponse(stats.to_dict())

    @require_permission("tenants.create.global")
    async def admin_tenant_clone(request: Request) -> Response:
        """Body: { name, subdomain, admin_email, admin_name?, clone_settings? }"""
        body = await read_json(request)
        _require_fields(body, "name", "subdomain", "admin_email")
        result = await platform.tenants.clone_tenant(
            request.path_params["tenant_id"],
            name=body["name"],
            subdomain=body["subdomain"],
            admin_email=body["admin_email"],
            admin_name=body.get("admin_name"),
            clone_settings=bool(body.get("clone_settings", True)),
        )
        return JSONResponse(result.to_dict(), status_code=201)

    # Saved searches

    @require_permission("saved_searches.read.own")
    async def saved_searches_list(request: Request) -> Response:
        """Query: entity_type (required), scope, include_public, include_inherited"""
        entity_type = request.query_params.get("entity_type")
        if not entity_type:
            raise ValueError("Missing required query parameter: entity_type")
        params = request.query_params
        listing = await platform.saved_searches.list_available(
            request.state.user_id,
            request_tenant(request),
            entity_type,
            scope=params.get("scope", "all"),
            include_public=params.get("include_public", "false").lower() == "true",
            include_inherited=params.get("include_inherited", "true").lower() != "false",
        )
        return JSONResponse(listing.to_dict())

    @require_permission("saved_searches.create.own")
    async def saved_search_create(request: Request) -> Response:
        """Body: { entity_type, name, filters, scope?, ... }"""
        body = await read_json(request)
        _require_fields(body, "entity_type", "name")
        unknown = set(body) - CREATE_FIELDS
        if unknown:
            raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")
        scope = body.pop("scope", "user")
        if scope == "tenant":
            await platform.permissions.require_permission(
                current_user(request), "saved_searches.create.tenant", request_tenant(request)
            )
        elif scope == "system":
            await platform.permissions.require_permission(
                current_user(request), "saved_searches.create.global", request_tenant(request)
            )
        search = await platform.saved_searches.create(
            request.state.user_id,
            request_tenant(request),
            body.pop("entity_type"),
            body.pop("name"),
            body.pop("filters", {}),
            scope=scope,
            **body,
        )
        return JSONResponse(search.to_dict(), status_code=201)

    @require_permission("saved_searches.read.own")
    async def saved_search_detail(request: Request) -> Response:
        search = await platform.saved_searches.get(
            request.state.user_id, request_tenant(request), _search_id(request)
        )
        data = search.to_dict()
        if request.query_params.get("view") == "true":
            data["view_state"] = search.to_view_state().to_dict()
        return JSONResponse(data)

    @require_permission("saved_searches.update.own")
    async def saved_search_update(request: Request) -> Response:
        body = await read_json(request)
        search = await platform.saved_searches.update(
            request.state.user_id, request_tenant(request), _search_id(request), **body
        )
        return JSONResponse(search.to_dict())

    @require_permission("saved_searches.delete.own")
    async def saved_search_delete(request: Request) -> Response:
        search_id = _search_id(request)
        await platform.saved_searches.delete(request.state.user_id, request_tenant(request), search_id)
        return JSONResponse({"id": search_id, "deleted": True})

    @require_permission("saved_searches.create.own")
    async def saved_search_override(request: Request) -> Response:
        body = await read_json(request) if await request.body() else {}
        search = await platform.saved_searches.create_override(
            request.state.user_id, request_tenant(request), _search_id(request), **body
        )
        return JSONResponse(search.to_dict(), status_code=201)

    @require_permission("saved_searches.manage.tenant")
    async def saved_search_promote(request: Request) -> Response:
        tenant_id = request_tenant(request)
        if tenant_id is None:
            raise ValueError("A tenant context is required to promote a search")
        search = await platform.saved_searches.promote_to_tenant(
            _search_id(request), request.state.user_id, tenant_id
        )
        return JSONResponse(search.to_dict())

    @require_permission("saved_searches.read.tenant")
    async def admin_saved_searches(request: Request) -> Response:
        """Query: page, limit, search, entity_type, sort_by, sort_order"""
        params = request.query_params
        result = await platform.saved_searches.admin_list(
            page=_int_param(request, "page", 1),
            limit=_int_param(request, "limit", platform.config.saved_searches.default_page_size),
            search=params.get("search"),
            entity_type=params.get("entity_type"),
            sort_by=params.get("sort_by", "created_at"),
            sort_order=params.get("sort_order", "desc"),
            tenant_id=request_tenant(request),
        )
        return JSONResponse(result.to_dict())

    @require_permission("saved_searches.create.tenant")
    async def admin_saved_search_create(request: Request) -> Response:
        """Create a search for a user. Body: { user_id, entity_type, name, filters?, ... }"""
        body = await read_json(request)
        _require_fields(body, "user_id", "entity_type", "name")
        owner = await administered_user(request, body["user_id"])
        search = await platform.saved_searches.admin_create(
            request.state.user_id,
            owner.id,
            owner.tenant_id,
            body["entity_type"],
            body["name"],
            body.get("filters", {}),
            description=body.get("description"),
            sort_by=body.get("sort_by"),
            sort_order=body.get("sort_order"),
            column_config=body.get("column_config"),
            is_default=bool(body.get("is_default", False)),
            is_public=bool(body.get("is_public", False)),
        )
        return JSONResponse(search.to_dict(), status_code=201)

    return [
        Route("/health", health, methods=["GET"]),
        # Auth
        Route("/auth/login", auth_login, methods=["POST"]),
        Route("/auth/refresh", auth_refresh, methods=["POST"]),
        Route("/auth/me", auth_me, methods=["GET"]),
        Route("/.well-known/jwks.json", jwks, methods=["GET"]),
        # Permission checks
        Route("/permissions/me", permissions_me, methods=["GET"]),
        Route("/permissions/check", permissions_check, methods=["POST"]),
        Route("/access/route", access_route, methods=["POST"]),
        Route("/access/api", access_api, methods=["POST"]),
        # RBAC administration
        Route("/admin/permissions", admin_permissions_list, methods=["GET"]),
        Route("/admin/roles", admin_roles_list, methods=["GET"]),
        Route("/admin/roles", admin_role_upsert, methods=["POST"]),
        Route("/admin/roles/{code}", admin_role_detail, methods=["GET"]),
        Route("/admin/roles/{code}", admin_role_delete, methods=["DELETE"]),
        Route("/admin/roles/{code}/permissions", admin_role_grant, methods=["POST"]),
        Route("/admin/roles/{code}/permissions/{permission}", admin_role_revoke, methods=["DELETE"]),
        Route("/admin/users/{user_id}/roles", admin_user_roles, methods=["GET"]),
        Route("/admin/users/{user_id}/roles", admin_user_role_assign, methods=["POST"]),
        Route("/admin/users/{user_id}/roles/{role}", admin_user_role_revoke, methods=["DELETE"]),
        # Tenants
        Route("/admin/tenants", admin_tenants_list, methods=["GET"]),
        Route("/admin/tenants", admin_tenant_create, methods=["POST"]),
        Route("/admin/tenants/{tenant_id}", admin_tenant_detail, methods=["GET"]),
        Route("/admin/tenants/{tenant_id}", admin_tenant_update, methods=["PUT"]),
        Route("/admin/tenants/{tenant_id}", admin_tenant_delete, methods=["DELETE"]),
        Route("/admin/tenants/{tenant_id}/suspend", admin_tenant_suspend, methods=["POST"]),
        Route("/admin/tenants/{tenant_id}/activate", admin_tenant_activate, methods=["POST"]),
        Route("/admin/tenants/{tenant_id}/settings", admin_tenant_settings, methods=["GET"]),
        Route("/admin/tenants/{tenant_id}/settings", admin_tenant_settings_update, methods=["PUT"]),
        Route("/admin/tenants/{tenant_id}/features", admin_tenant_features, methods=["GET"]),
        Route("/admin/tenants/{tenant_id}/features/{feature}", admin_tenant_feature_enable, methods=["POST"]),
        Route("/admin/tenants/{tenant_id}/features/{feature}", admin_tenant_feature_disable, methods=["DELETE"]),
        Route("/admin/tenants/{tenant_id}/subscription", admin_tenant_subscription, methods=["GET"]),
        Route("/admin/tenants/{tenant_id}/subscription", admin_tenant_subscription_update, methods=["PUT"]),
        Route("/admin/tenants/{tenant_id}/stats", admin_tenant_stats, methods=["GET"]),
        Route("/admin/tenants/{tenant_id}/clone", admin_tenant_clone, methods=["POST"]),
        # Saved searches
        Route("/saved-searches", saved_searches_list, methods=["GET"]),
        Route("/saved-searches", saved_search_create, methods=["POST"]),
        Route("/saved-searches/{search_id}", saved_search_detail, methods=["GET"]),
        Route("/saved-searches/{search_id}", saved_search_update, methods=["PUT"]),
        Route("/saved-searches/{search_id}", saved_search_delete, methods=["DELETE"]),
        Route("/saved-searches/{search_id}/override", saved_search_override, methods=["POST"]),
        Route("/saved-searches/{search_id}/promote", saved_search_promote, methods=["POST"]),
        Route("/admin/saved-searches", admin_saved_searches, methods=["GET"]),
        Route("/admin/saved-searches", admin_saved_search_create, methods=["POST"]),
    ]
