"""Tenant lifecycle management."""

import copy
import json
import math
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from mono_core.auth.password import generate_temporary_password
from mono_core.caching import TTLCache
from mono_core.config import TenantDefaultsConfig
from mono_core.exceptions import TenantConflictError, TenantError, TenantNotFoundError
from mono_core.observability import emit_counter, get_logger
from mono_core.protocols import Database
from mono_core.utils.validation import validate_email, validate_identifier, validate_subdomain

if TYPE_CHECKING:
    from mono_core.auth.manager import AuthManager
    from mono_core.permissions.manager import PermissionManager

logger = get_logger(__name__)

TENANT_STATUSES = ("trial", "active", "suspended", "deleted")
TENANT_TYPES = ("standard", "enterprise", "partner")

DEFAULT_SETTINGS: dict[str, Any] = {
    "timezone": "UTC",
    "language": "en",
    "currency": "USD",
    "date_format": "YYYY-MM-DD",
    "max_accounts": 10,
    "max_users": 100,
    "storage_quota_mb": 10240,
    "features": [],
}

DEFAULT_LIMITS: dict[str, Any] = {
    "users": 100,
    "storage": 10240,
    "api_calls": 1000000,
    "custom_fields": 50,
}


@dataclass
class TenantRecord:
    """A tenant and its configuration."""

    tenant_id: str
    name: str
    subdomain: str
    status: str
    created_at: float
    updated_at: float
    description: str | None = None
    tenant_type: str = "standard"
    plan_id: str | None = None
    settings: dict[str, Any] = field(default_factory=dict)
    limits: dict[str, Any] = field(default_factory=dict)
    features: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.status in ("trial", "active")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "tenant_id": self.tenant_id,
            "name": self.name,
            "subdomain": self.subdomain,
            "description": self.description,
            "status": self.status,
            "tenant_type": self.tenant_type,
            "plan_id": self.plan_id,
            "settings": self.settings,
            "limits": self.limits,
            "features": self.features,
            "metadata": self.metadata,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_row(cls, row: Any) -> "TenantRecord":
        """Create from database row."""
        return cls(
            tenant_id=row.tenant_id,
            name=row.name,
            subdomain=row.subdomain,
            description=row.description,
            status=row.status,
            tenant_type=row.tenant_type,
            plan_id=row.plan_id,
            settings=json.loads(row.settings) if row.settings else {},
            limits=json.loads(row.limits) if row.limits else {},
            features=json.loads(row.features) if row.features else [],
            metadata=json.loads(row.metadata) if row.metadata else {},
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


@dataclass
class TenantProvisionResult:
    """Result of tenant provisioning.

    temp_password is only returned here, once. It is never stored in
    plaintext.
    """

    tenant: TenantRecord
    admin_user_id: str | None = None
    admin_email: str | None = None
    temp_password: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"tenant": self.tenant.to_dict()}
        if self.admin_user_id:
            data["admin"] = {
                "user_id": self.admin_user_id,
                "email": self.admin_email,
                "temp_password": self.temp_password,
            }
        return data


@dataclass
class TenantPage:
    """One page of a tenant listing."""

    items: list[TenantRecord]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [t.to_dict() for t in self.items],
            "pagination": {
                "page": self.page,
                "limit": self.limit,
                "total": self.total,
                "total_pages": self.total_pages,
            },
        }


@dataclass
class TenantStats:
    """Usage summary for a tenant."""

    tenant_id: str
    status: str
    users: int
    user_limit: int
    features: int
    created_at: float

    @property
    def user_limit_percentage(self) -> int:
        if not self.user_limit:
            return 0
        return round(self.users / self.user_limit * 100)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "status": self.status,
            "users": {
                "count": self.users,
                "limit": self.user_limit,
                "percentage": self.user_limit_percentage,
            },
            "features": self.features,
            "created_at": self.created_at,
        }


class TenantManager:
    """Manages tenant provisioning and lifecycle.

    Handles:
    - Creating tenants together with their first admin user
    - Updating settings, limits, features and subscription
    - Suspending, activating, deleting and cloning tenants
    - Listing and querying tenants

    Reads are cached per tenant and every mutation invalidates the
    tenant's cache tag.
    """

    def __init__(
        self,
        db: Database,
        permissions: "PermissionManager | None" = None,
        auth: "AuthManager | None" = None,
        cache_ttl_seconds: int = 300,
        defaults: TenantDefaultsConfig | None = None,
    ) -> None:
        """Initialize tenant manager.

        Args:
            db: Database backend for tenant records
            permissions: Used to give the first admin its role
            auth: Used to create the first admin user
            cache_ttl_seconds: TTL for cached tenant records
            defaults: Defaults merged into new tenants
        """
        self.db = db
        self.permissions = permissions
        self.auth = auth
        self.defaults = defaults or TenantDefaultsConfig()
        self._cache: TTLCache[TenantRecord] = TTLCache(ttl_seconds=cache_ttl_seconds)

    async def initialize_schema(self) -> None:
        """Initialize the tenants schema in the database."""
        schema = (Path(__file__).parent / "schema.sql").read_text()
        for statement in schema.split(";"):
            statement = statement.strip()
            if statement:
                await self.db.execute(statement)

    def _default_settings(self) -> dict[str, Any]:
        return {**DEFAULT_SETTINGS, "features": [], **self.defaults.settings}

    def _default_limits(self) -> dict[str, Any]:
        return {**DEFAULT_LIMITS, **self.defaults.limits}

    async def _invalidate(self, tenant_id: str) -> None:
        await self._cache.invalidate_tag(f"tenant:{tenant_id}")

    async def _ensure_unique(
        self,
        name: str | None = None,
        subdomain: str | None = None,
        exclude_id: str | None = None,
    ) -> None:
        if name is not None:
            rows = await self.db.execute(
                """
                SELECT tenant_id FROM tenants
                WHERE LOWER(name) = LOWER(:name) AND tenant_id IS NOT :exclude_id
                """,
                {"name": name, "exclude_id": exclude_id},
            )
            if rows:
                raise TenantConflictError("Tenant with this name already exists")
        if subdomain is not None:
            rows = await self.db.execute(
                """
                SELECT tenant_id FROM tenants
                WHERE subdomain = :subdomain AND tenant_id IS NOT :exclude_id
                """,
                {"subdomain": subdomain, "exclude_id": exclude_id},
            )
            if rows:
                raise TenantConflictError("Subdomain already in use")

    async def create_tenant(
        self,
        name: str,
        subdomain: str,
        admin_email: str,
        admin_name: str | None = None,
        description: str | None = None,
        tenant_type: str | None = None,
        status: str | None = None,
        plan_id: str | None = None,
        settings: dict[str, Any] | None = None,
        limits: dict[str, Any] | None = None,
        features: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> TenantProvisionResult:
        """Create a tenant and its first admin user.

        Args:
            name: Tenant display name (unique, case-insensitive)
            subdomain: Tenant subdomain (unique)
            admin_email: Email of the first tenant admin
            admin_name: Optional "First Last" name of the admin
            description: Optional description
            tenant_type: standard, enterprise or partner
            status: Initial status (defaults to the configured default)
            plan_id: Optional subscription plan
            settings: Settings merged over the defaults
            limits: Limits merged over the defaults
            features: Initially enabled feature flags
            metadata: Additional metadata

        Returns:
            Provisioning result with the admin's temporary password

        Raises:
            ValueError: If any input is invalid
            TenantConflictError: If the name or subdomain is taken
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Tenant name cannot be empty")
        subdomain = validate_subdomain(subdomain)
        admin_email = validate_email(admin_email)

        tenant_type = tenant_type or self.defaults.tenant_type
        if tenant_type not in TENANT_TYPES:
            raise ValueError(f"Invalid tenant type: {tenant_type}")
        status = status or self.defaults.status
        if status not in TENANT_STATUSES or status == "deleted":
            raise ValueError(f"Invalid tenant status: {status}")
        features = [validate_identifier(f, "feature") for f in features or []]

        await self._ensure_unique(name=name, subdomain=subdomain)

        now = time.time()
        record = TenantRecord(
            tenant_id=str(uuid4()),
            name=name,
            subdomain=subdomain,
            description=description,
            status=status,
            tenant_type=tenant_type,
            plan_id=plan_id,
            settings={**self._default_settings(), **(settings or {})},
            limits={**self._default_limits(), **(limits or {})},
            features=features,
            metadata=metadata or {},
            created_at=now,
            updated_at=now,
        )

        result = TenantProvisionResult(tenant=record, admin_email=admin_email)
        async with self.db.transaction():
            await self.db.execute(
                """
                INSERT INTO tenants
                (tenant_id, name, subdomain, description, status, tenant_type, plan_id,
                 settings, limits, features, metadata, created_at, updated_at)
                VALUES (:tenant_id, :name, :subdomain, :description, :status, :tenant_type,
                        :plan_id, :settings, :limits, :features, :metadata, :created_at,
                        :updated_at)
                """,
                {
                    "tenant_id": record.tenant_id,
                    "name": record.name,
                    "subdomain": record.subdomain,
                    "description": record.description,
                    "status": record.status,
                    "tenant_type": record.tenant_type,
                    "plan_id": record.plan_id,
                    "settings": json.dumps(record.settings),
                    "limits": json.dumps(record.limits),
                    "features": json.dumps(record.features),
                    "metadata": json.dumps(record.metadata),
                    "created_at": now,
                    "updated_at": now,
                },
            )
            if self.auth is not None:
                await self._create_admin(result, admin_name)

        logger.info(
            "Tenant created",
            context={"tenant": record.tenant_id, "subdomain": subdomain, "admin_user": result.admin_user_id},
        )
        emit_counter("tenants.created", {"type": tenant_type})
        return result

    async def _create_admin(self, result: TenantProvisionResult, admin_name: str | None) -> None:
        """Create the first admin user with a temporary password."""
        first_name, last_name = None, None
        if admin_name:
            first_name, _, rest = admin_name.strip().partition(" ")
            last_name = rest.strip() or None

        temp_password = generate_temporary_password(max(20, self.auth.config.password.min_length))
        user = await self.auth.create_user(
            email=result.admin_email,
            password=temp_password,
            tenant_id=result.tenant.tenant_id,
            first_name=first_name or None,
            last_name=last_name,
            must_change_password=True,
        )
        if self.permissions is not None:
            await self.permissions.assign_role(
                user.id,
                self.defaults.admin_role,
                tenant_id=result.tenant.tenant_id,
            )

        result.admin_user_id = user.id
        result.temp_password = temp_password

    async def get_tenant(self, tenant_id: str) -> TenantRecord:
        """Get a tenant.

        Raises:
            TenantNotFoundError: If the tenant doesn't exist
        """
        cached = await self._cache.get(tenant_id)
        if cached is not None:
            return cached

        rows = await self.db.execute(
            "SELECT * FROM tenants WHERE tenant_id = :tenant_id",
            {"tenant_id": tenant_id},
        )
        if not rows:
            raise TenantNotFoundError(f"Tenant not found: {tenant_id}")

        record = TenantRecord.from_row(rows[0])
        await self._cache.set(tenant_id, record, tags=[f"tenant:{tenant_id}"])
        return record

    async def list_tenants(
        self,
        page: int = 1,
        limit: int = 20,
        search: str | None = None,
        status: str | None = None,
    ) -> TenantPage:
        """List tenants, newest first.

        Args:
            page: 1-based page number
            limit: Page size (1-100)
            search: Case-insensitive substring of name or subdomain
            status: Status filter ("all" or None for every status)

        Returns:
            One page of tenants with totals
        """
        page = max(1, page)
        limit = min(max(1, limit), 100)

        conditions = []
        params: dict[str, Any] = {}
        if search:
            conditions.append("(LOWER(name) LIKE :search OR LOWER(subdomain) LIKE :search)")
            params["search"] = f"%{search.strip().lower()}%"
        if status and status != "all":
            conditions.append("status = :status")
            params["status"] = status
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        count_rows = await self.db.execute(f"SELECT COUNT(*) AS total FROM tenants {where}", params)
        total = count_rows[0].total if count_rows else 0

        rows = await self.db.execute(
            f"""
            SELECT * FROM tenants {where}
            ORDER BY created_at DESC, tenant_id
            LIMIT :limit OFFSET :offset
            """,
            params | {"limit": limit, "offset": (page - 1) * limit},
        )

        return TenantPage(
            items=[TenantRecord.from_row(row) for row in rows],
            page=page,
            limit=limit,
            total=total,
        )

    async def _save(self, record: TenantRecord) -> TenantRecord:
        record.updated_at = time.time()
        await self.db.execute(
            """
            UPDATE tenants
            SET name = :name, description = :description, status = :status,
                plan_id = :plan_id, settings = :settings, limits = :limits,
                features = :features, metadata = :metadata, updated_at = :updated_at
            WHERE tenant_id = :tenant_id
            """,
            {
                "tenant_id": record.tenant_id,
                "name": record.name,
                "description": record.description,
                "status": record.status,
                "plan_id": record.plan_id,
                "settings": json.dumps(record.settings),
                "limits": json.dumps(record.limits),
                "features": json.dumps(record.features),
                "metadata": json.dumps(record.metadata),
                "updated_at": record.updated_at,
            },
        )
        await self._invalidate(record.tenant_id)
        return record

    async def _load_for_update(self, tenant_id: str) -> TenantRecord:
        """Fetch a private copy of a tenant so cached records are never mutated."""
        return copy.deepcopy(await self.get_tenant(tenant_id))

    async def update_tenant(
        self,
        tenant_id: str,
        name: str | None = None,
        description: str | None = None,
        plan_id: str | None = None,
        settings: dict[str, Any] | None = None,
        limits: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> TenantRecord:
        """Update a tenant. Dict fields are merged.

        Raises:
            TenantNotFoundError: If the tenant doesn't exist
            TenantConflictError: If the new name is taken
        """
        record = await self._load_for_update(tenant_id)

        if name is not None:
            name = name.strip()
            if not name:
                raise ValueError("Tenant name cannot be empty")
            if name.lower() != record.name.lower():
                await self._ensure_unique(name=name, exclude_id=tenant_id)
            record.name = name
        if description is not None:
            record.description = description
        if plan_id is not None:
            record.plan_id = plan_id
        if settings:
            record.settings.update(settings)
        if limits:
            record.limits.update(limits)
        if metadata:
            record.metadata.update(metadata)

        await self._save(record)
        logger.info("Tenant updated", context={"tenant": tenant_id})
        return record

    async def suspend_tenant(self, tenant_id: str, reason: str | None = None) -> TenantRecord:
        """Suspend a tenant.

        Raises:
            TenantNotFoundError: If the tenant doesn't exist
            TenantError: If the tenant is deleted
        """
        record = await self._load_for_update(tenant_id)
        if record.status == "deleted":
            raise TenantError(f"Cannot suspend a deleted tenant: {tenant_id}")

        record.status = "suspended"
        record.settings.update(
            {"suspended": True, "suspended_at": time.time(), "suspend_reason": reason}
        )
        await self._save(record)
        logger.warning("Tenant suspended", context={"tenant": tenant_id, "reason": reason})
        emit_counter("tenants.suspended")
        return record

    async def activate_tenant(self, tenant_id: str) -> TenantRecord:
        """Activate a trial or suspended tenant.

        Raises:
            TenantNotFoundError: If the tenant doesn't exist
            TenantError: If the tenant is deleted
        """
        record = await self._load_for_update(tenant_id)
        if record.status == "deleted":
            raise TenantError(f"Cannot activate a deleted tenant: {tenant_id}")

        record.status = "active"
        record.settings.pop("suspend_reason", None)
        record.settings.update({"suspended": False, "activated_at": time.time()})
        await self._save(record)
        logger.info("Tenant activated", context={"tenant": tenant_id})
        return record

    async def delete_tenant(self, tenant_id: str, soft_delete: bool = True) -> None:
        """Delete a tenant.

        Args:
            tenant_id: Tenant ID
            soft_delete: If True, mark as deleted but keep data

        Raises:
            TenantNotFoundError: If the tenant doesn't exist
        """
        record = await self._load_for_update(tenant_id)

        if soft_delete:
            record.status = "deleted"
            record.settings["deleted_at"] = time.time()
            await self._save(record)
        else:
            await self.db.execute(
                "DELETE FROM tenants WHERE tenant_id = :tenant_id",
                {"tenant_id": tenant_id},
            )
            await self._invalidate(tenant_id)

        if self.auth is not None:
            await self.auth.deactivate_tenant_users(tenant_id)

        logger.warning("Tenant deleted", context={"tenant": tenant_id, "soft": soft_delete})
        emit_counter("tenants.deleted", {"soft": str(soft_delete).lower()})

    async def get_settings(self, tenant_id: str) -> dict[str, Any]:
        record = await self.get_tenant(tenant_id)
        return dict(record.settings)

    async def update_settings(self, tenant_id: str, settings: dict[str, Any]) -> dict[str, Any]:
        """Merge settings into the tenant's settings and return the result."""
        record = await self._load_for_update(tenant_id)
        record.settings.update(settings)
        await self._save(record)
        return dict(record.settings)

    async def get_features(self, tenant_id: str) -> list[str]:
        record = await self.get_tenant(tenant_id)
        return list(record.features)

    async def enable_feature(self, tenant_id: str, feature: str) -> list[str]:
        """Enable a feature flag. Idempotent."""
        feature = validate_identifier(feature, "feature")
        record = await self._load_for_update(tenant_id)
        if feature not in record.features:
            record.features.append(feature)
            await self._save(record)
            logger.info("Feature enabled", context={"tenant": tenant_id, "feature": feature})
        return list(record.features)

    async def disable_feature(self, tenant_id: str, feature: str) -> list[str]:
        """Disable a feature flag. Idempotent."""
        record = await self._load_for_update(tenant_id)
        if feature in record.features:
            record.features.remove(feature)
            await self._save(record)
            logger.info("Feature disabled", context={"tenant": tenant_id, "feature": feature})
        return list(record.features)

    async def get_subscription(self, tenant_id: str) -> dict[str, Any]:
        record = await self.get_tenant(tenant_id)
        return {
            "plan_id": record.plan_id,
            "subscription": record.settings.get("subscription"),
            "limits": dict(record.limits),
        }

    async def update_subscription(
        self,
        tenant_id: str,
        plan_id: str,
        expires_at: float | None = None,
        custom_limits: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Move a tenant to a plan, optionally overriding limits.

        Raises:
            ValueError: If plan_id is empty
            TenantNotFoundError: If the tenant doesn't exist
        """
        if not plan_id:
            raise ValueError("plan_id is required")

        record = await self._load_for_update(tenant_id)
        record.plan_id = plan_id
        record.settings["subscription"] = {
            "plan_id": plan_id,
            "expires_at": expires_at,
            "updated_at": time.time(),
        }
        if custom_limits:
            record.limits.update(custom_limits)
        await self._save(record)
        logger.info("Subscription updated", context={"tenant": tenant_id, "plan": plan_id})
        return await self.get_subscription(tenant_id)

    async def get_tenant_stats(self, tenant_id: str) -> TenantStats:
        """Summarize usage against limits."""
        record = await self.get_tenant(tenant_id)
        users = await self.auth.count_users(tenant_id) if self.auth is not None else 0
        return TenantStats(
            tenant_id=tenant_id,
            status=record.status,
            users=users,
            user_limit=int(record.limits.get("users") or 0),
            features=len(record.features),
            created_at=record.created_at,
        )

    async def clone_tenant(
        self,
        source_id: str,
        name: str,
        subdomain: str,
        admin_email: str,
        admin_name: str | None = None,
        clone_settings: bool = True,
    ) -> TenantProvisionResult:
        """Create a new trial tenant from an existing one.

        Raises:
            TenantNotFoundError: If the source tenant doesn't exist
            TenantConflictError: If the new name or subdomain is taken
        """
        source = await self.get_tenant(source_id)

        settings: dict[str, Any] = {}
        limits: dict[str, Any] | None = None
        features: list[str] | None = None
        if clone_settings:
            settings = {
                k: v
                for k, v in source.settings.items()
                if k not in ("suspended", "suspended_at", "suspend_reason", "activated_at", "deleted_at")
            }
            limits = dict(source.limits)
            features = list(source.features)
        settings.update({"cloned_from": source_id, "cloned_at": time.time()})

        return await self.create_tenant(
            name=name,
            subdomain=subdomain,
            admin_email=admin_email,
            admin_name=admin_name,
            description=f"Clone of {source.name}",
            tenant_type=source.tenant_type,
            status="trial",
            plan_id=source.plan_id if clone_settings else None,
            settings=settings,
            limits=limits,
            features=features,
        )

    async def tenant_exists(self, tenant_id: str) -> bool:
        """True if the tenant exists in any status."""
        rows = await self.db.execute(
            "SELECT 1 FROM tenants WHERE tenant_id = :tenant_id",
            {"tenant_id": tenant_id},
        )
        return len(rows) > 0

    async def is_tenant_active(self, tenant_id: str) -> bool:
        """True if the tenant exists and is in trial or active status."""
        rows = await self.db.execute(
            "SELECT status FROM tenants WHERE tenant_id = :tenant_id",
            {"tenant_id": tenant_id},
        )
        return bool(rows) and rows[0].status in ("trial", "active")

