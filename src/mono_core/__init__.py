"""Mono Core - multi-tenant RBAC, tenants and saved searches for marketplace platforms."""

from mono_core.caching import SingleFlight, TTLCache
from mono_core.config import Config
from mono_core.observability import (
    LogLevel,
    RequestContext,
    StructuredLogger,
    Timer,
    configure_logging,
    emit_counter,
    emit_metric,
    emit_timer,
    get_logger,
    register_metric_callback,
)
from mono_core.permissions import (
    PermissionManager,
    PermissionResult,
    PermissionService,
    UserContext,
    seed_permissions,
)
from mono_core.platform import Platform
from mono_core.saved_searches import SavedSearchService
from mono_core.tenants import TenantManager

__version__ = "0.1.0"
__all__ = [
    # Core
    "Config",
    "Platform",
    # Services
    "PermissionManager",
    "PermissionResult",
    "PermissionService",
    "SavedSearchService",
    "TenantManager",
    "UserContext",
    "seed_permissions",
    # Caching
    "SingleFlight",
    "TTLCache",
    # Observability
    "LogLevel",
    "RequestContext",
    "StructuredLogger",
    "Timer",
    "configure_logging",
    "emit_counter",
    "emit_metric",
    "emit_timer",
    "get_logger",
    "register_metric_callback",
]
