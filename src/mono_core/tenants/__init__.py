"""Tenant lifecycle management."""

from mono_core.tenants.manager import (
    TENANT_STATUSES,
    TENANT_TYPES,
    TenantManager,
    TenantPage,
    TenantProvisionResult,
    TenantRecord,
    TenantStats,
)

__all__ = [
    "TENANT_STATUSES",
    "TENANT_TYPES",
    "TenantManager",
    "TenantPage",
    "TenantProvisionResult",
    "TenantRecord",
    "TenantStats",
]
