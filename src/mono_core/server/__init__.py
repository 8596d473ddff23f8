"""HTTP Server module."""

from mono_core.server.app import create_app
from mono_core.server.middleware import JWTAuthMiddleware, TenantMiddleware
from mono_core.server.routes import create_routes, handle_error, require_permission

__all__ = [
    "JWTAuthMiddleware",
    "TenantMiddleware",
    "create_app",
    "create_routes",
    "handle_error",
    "require_permission",
]
