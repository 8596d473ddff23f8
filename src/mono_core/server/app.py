"""ASGI application for standalone deployment."""

from typing import TYPE_CHECKING

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware

from mono_core.exceptions import MonoError
from mono_core.server.middleware import (
    DEFAULT_PUBLIC_PATHS,
    JWTAuthMiddleware,
    TenantMiddleware,
)

if TYPE_CHECKING:
    from mono_core.platform import Platform


def create_app(platform: "Platform") -> Starlette:
    """Create the ASGI application.

    Args:
        platform: The configured Platform instance

    Returns:
        Starlette application
    """
    from mono_core.server.routes import create_routes, handle_error

    routes = create_routes(platform)
    public_paths = list(DEFAULT_PUBLIC_PATHS)

    # Executed in reverse order: CORS -> Auth -> Tenant -> Route handler
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=platform.config.server.cors_origins or ["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        ),
        Middleware(
            JWTAuthMiddleware,
            public_key=platform.key_pair.public_key,
            issuer=platform.config.auth.jwt.issuer,
            public_paths=public_paths,
        ),
        Middleware(
            TenantMiddleware,
            header_name="X-Tenant-ID",
            query_param="tenant_id",
            enforce_tenant_match=True,
            permission_service=platform,
            public_paths=public_paths,
        ),
    ]

    app = Starlette(
        routes=routes,
        middleware=middleware,
        exception_handlers={MonoError: handle_error, ValueError: handle_error},
    )
    app.state.platform = platform
    return app
