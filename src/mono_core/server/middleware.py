"""Authentication and tenant middleware for the HTTP server."""

from typing import Any, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from mono_core.auth.jwt_utils import decode_token
from mono_core.exceptions import TokenExpiredError, TokenInvalidError
from mono_core.observability import RequestContext, get_logger, log_security_event
from mono_core.permissions.service import UserContext

logger = get_logger(__name__)

DEFAULT_PUBLIC_PATHS = ("/health", "/.well-known/jwks.json", "/auth/login", "/auth/refresh")


class JWTAuthMiddleware(BaseHTTPMiddleware):
    """Verifies RS256 bearer tokens.

    On success request.state carries user (a UserContext), user_id, roles
    and tenant_id, and the request runs inside a logging RequestContext.
    Public paths pass through with an anonymous user.
    """

    def __init__(
        self,
        app: Any,
        public_key: bytes,
        issuer: str | None = None,
        public_paths: list[str] | tuple[str, ...] | None = None,
    ) -> None:
        """Initialize authentication middleware.

        Args:
            app: The ASGI application
            public_key: PEM-encoded RSA public key
            issuer: Expected iss claim
            public_paths: Paths that don't require authentication
        """
        super().__init__(app)
        self.public_key = public_key
        self.issuer = issuer
        self.public_paths = set(public_paths or DEFAULT_PUBLIC_PATHS)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        request.state.user = UserContext.anonymous()
        request.state.user_id = None
        request.state.roles = []
        request.state.tenant_id = None

        if request.method == "OPTIONS" or request.url.path in self.public_paths:
            async with RequestContext(request_id=request.headers.get("X-Request-ID")):
                return await call_next(request)

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return JSONResponse(
                {"error": "Missing or invalid Authorization header"},
                status_code=401,
            )

        try:
            payload = decode_token(auth_header[7:], self.public_key, issuer=self.issuer)
        except TokenExpiredError:
            logger.info("Rejected expired token", context={"path": request.url.path})
            return JSONResponse({"error": "Token has expired"}, status_code=401)
        except TokenInvalidError as e:
            log_security_event("invalid_token", False, {"path": request.url.path, "reason": str(e)})
            return JSONResponse({"error": "Invalid token"}, status_code=401)

        if payload.token_type != "access":
            return JSONResponse({"error": "Invalid token type"}, status_code=401)

        user = UserContext.from_token(payload)
        request.state.user = user
        request.state.user_id = user.user_id
        request.state.roles = user.roles
        request.state.tenant_id = user.tenant_id

        async with RequestContext(
            request_id=request.headers.get("X-Request-ID"),
            tenant_id=user.tenant_id,
            user_id=user.user_id,
        ):
            return await call_next(request)


class TenantMiddleware(BaseHTTPMiddleware):
    """Resolves the tenant a request acts on.

    The tenant comes from a header or query parameter and falls back to
    the token's tenant. A tenant other than the user's own is refused
    with 403 unless the user holds one of the cross-tenant roles or the
    cross-tenant permission.
    """

    def __init__(
        self,
        app: Any,
        header_name: str = "X-Tenant-ID",
        query_param: str = "tenant_id",
        enforce_tenant_match: bool = True,
        permission_service: Any = None,
        cross_tenant_permission: str = "tenants.read.global",
        cross_tenant_roles: tuple[str, ...] = ("super_admin",),
        public_paths: list[str] | tuple[str, ...] | None = None,
    ) -> None:
        """Initialize tenant middleware.

        Args:
            app: The ASGI application
            header_name: Header to extract tenant ID from
            query_param: Query param to extract tenant ID from
            enforce_tenant_match: Whether to enforce tenant ID matches user's tenant
            permission_service: Object with an async has_permission(user,
                permission, tenant_id), used for the cross-tenant check
            cross_tenant_permission: Permission that allows acting on any tenant
            cross_tenant_roles: Roles that allow acting on any tenant
            public_paths: Paths passed through untouched
        """
        super().__init__(app)
        self.header_name = header_name
        self.query_param = query_param
        self.enforce_tenant_match = enforce_tenant_match
        self.permission_service = permission_service
        self.cross_tenant_permission = cross_tenant_permission
        self.cross_tenant_roles = cross_tenant_roles
        self.public_paths = set(public_paths or DEFAULT_PUBLIC_PATHS)

    async def _may_cross_tenants(self, user: UserContext) -> bool:
        if any(role in self.cross_tenant_roles for role in user.roles):
            return True
        if self.permission_service is None:
            return False
        return await self.permission_service.has_permission(
            user, self.cross_tenant_permission, user.tenant_id
        )

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        if request.url.path in self.public_paths:
            return await call_next(request)

        requested = request.headers.get(self.header_name) or request.query_params.get(
            self.query_param
        )
        user: UserContext = getattr(request.state, "user", None) or UserContext.anonymous()

        if requested and self.enforce_tenant_match and user.is_authenticated:
            if requested != user.tenant_id and not await self._may_cross_tenants(user):
                log_security_event(
                    "tenant_access_denied",
                    False,
                    {"subject": user.user_id, "user_tenant": user.tenant_id, "requested": requested},
                )
                return JSONResponse(
                    {"error": "Not authorized to access this tenant"},
                    status_code=403,
                )

        request.state.tenant_id = requested or user.tenant_id
        return await call_next(request)
