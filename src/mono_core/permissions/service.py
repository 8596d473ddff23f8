"""Unified permission checks with a shared KV cache.

The service resolves a user's effective patterns for a tenant context
(direct role grants plus inheritance), caches them in the KV store and
matches required permissions against them with wildcard and scope rules.
"""

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from mono_core.caching import SingleFlight
from mono_core.exceptions import InvalidPermissionError, PermissionDeniedError
from mono_core.observability import Timer, emit_counter, emit_timer, get_logger, log_security_event
from mono_core.permissions.manager import PermissionManager
from mono_core.permissions.patterns import PermissionPattern, parse_permission
from mono_core.protocols import KVStore

if TYPE_CHECKING:
    from mono_core.auth.jwt_utils import TokenPayload

logger = get_logger(__name__)


@dataclass
class UserContext:
    """Identity the permission checks run against."""

    user_id: str | None = None
    tenant_id: str | None = None
    account_id: str | None = None
    roles: list[str] = field(default_factory=list)
    email: str | None = None
    is_authenticated: bool = False

    @classmethod
    def anonymous(cls) -> "UserContext":
        return cls()

    @classmethod
    def from_token(cls, payload: "TokenPayload") -> "UserContext":
        """Build a context from a decoded access token."""
        return cls(
            user_id=payload.user_id or None,
            tenant_id=payload.tenant_id or None,
            account_id=payload.raw.get("account_id"),
            roles=list(payload.roles or []),
            email=payload.email,
            is_authenticated=bool(payload.user_id),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "tenant_id": self.tenant_id,
            "account_id": self.account_id,
            "roles": self.roles,
            "email": self.email,
            "is_authenticated": self.is_authenticated,
        }


@dataclass
class PermissionResult:
    """Outcome of an access decision."""

    allowed: bool
    reason: str
    matched_permission: str | None = None
    source: str | None = None  # "role" | "inherited"
    requires_detailed_check: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"allowed": self.allowed, "reason": self.reason}
        if self.matched_permission:
            data["matched_permission"] = self.matched_permission
        if self.source:
            data["source"] = self.source
        if self.requires_detailed_check:
            data["requires_detailed_check"] = True
        return data


@dataclass
class GrantSet:
    """Cached grants for one user in one tenant context."""

    direct: list[str]
    effective: list[str]

    def to_json(self) -> bytes:
        return json.dumps({"direct": self.direct, "effective": self.effective}).encode("utf-8")

    @classmethod
    def from_json(cls, data: bytes) -> "GrantSet":
        payload = json.loads(data)
        return cls(direct=list(payload["direct"]), effective=list(payload["effective"]))


class PermissionService:
    """Answers "may this user do X?" for the whole platform.

    Example:
        service = PermissionService(manager, kv)
        result = await service.check_permission(user, "users.read.tenant")
        if not result.allowed:
            ...
    """

    def __init__(
        self,
        manager: PermissionManager,
        kv: KVStore,
        ttl_seconds: int = 300,
        scope_inheritance: bool = True,
        cache_prefix: str = "permissions",
    ) -> None:
        """Initialize permission service.

        Args:
            manager: RBAC persistence
            kv: Shared cache for resolved grants
            ttl_seconds: Cache TTL for resolved grants
            scope_inheritance: Let broader scopes cover narrower ones
            cache_prefix: KV key prefix for cached grants
        """
        self.manager = manager
        self.kv = kv
        self.ttl_seconds = ttl_seconds
        self.scope_inheritance = scope_inheritance
        self.cache_prefix = cache_prefix
        self._single_flight = SingleFlight()

    def cache_key(self, user_id: str, tenant_id: str | None = None) -> str:
        """KV key holding a user's grants for a tenant context."""
        return f"{self.cache_prefix}:{user_id}:{tenant_id or 'global'}"

    async def _read_cache(self, key: str) -> GrantSet | None:
        try:
            cached = await self.kv.get(key)
        except Exception as e:
            logger.warning("Permission cache read failed, using database", context={"key": key}, error=e)
            emit_counter("permissions.cache.error", {"op": "get"})
            return None

        if cached is None:
            emit_counter("permissions.cache.miss")
            return None

        try:
            grants = GrantSet.from_json(cached)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding malformed permission cache entry", context={"key": key}, error=e)
            return None

        emit_counter("permissions.cache.hit")
        return grants

    async def _write_cache(self, key: str, grants: GrantSet) -> None:
        try:
            await self.kv.set(key, grants.to_json(), ttl=self.ttl_seconds)
        except Exception as e:
            logger.warning("Permission cache write failed", context={"key": key}, error=e)
            emit_counter("permissions.cache.error", {"op": "set"})

    async def get_grants(self, user_id: str, tenant_id: str | None = None) -> GrantSet:
        """Resolve direct and effective grants, read-through cached."""
        key = self.cache_key(user_id, tenant_id)
        cached = await self._read_cache(key)
        if cached is not None:
            return cached

        async def load() -> GrantSet:
            with Timer() as timer:
                direct, effective = await self.manager.get_effective_grants(user_id, tenant_id)
            emit_timer("permissions.load", timer.duration_ms)
            grants = GrantSet(direct=direct, effective=effective)
            await self._write_cache(key, grants)
            return grants

        return await self._single_flight.do(key, load)

    async def get_user_permissions(self, user_id: str, tenant_id: str | None = None) -> list[str]:
        """Effective (inheritance-expanded) patterns for a user."""
        grants = await self.get_grants(user_id, tenant_id)
        return list(grants.effective)

    async def check_permission(
        self,
        user: UserContext,
        permission: str,
        tenant_id: str | None = None,
    ) -> PermissionResult:
        """Decide whether user holds permission in a tenant context.

        Args:
            user: The acting user
            permission: Required resource.action.scope
            tenant_id: Tenant context (defaults to the user's tenant)

        Returns:
            PermissionResult with the matched pattern when allowed
        """
        if not user.is_authenticated or not user.user_id:
            result = PermissionResult(allowed=False, reason="User not authenticated")
            self._log_decision(user, permission, tenant_id, result)
            return result

        try:
            required = parse_permission(permission)
        except InvalidPermissionError as e:
            result = PermissionResult(allowed=False, reason=f"Invalid permission: {e}")
            self._log_decision(user, permission, tenant_id, result)
            return result

        context_tenant = tenant_id or user.tenant_id
        grants = await self.get_grants(user.user_id, context_tenant)

        result = PermissionResult(
            allowed=False,
            reason=f"No matching permission found for {required}",
        )
        matched = self._first_covering(grants.direct, required)
        if matched is not None:
            result = PermissionResult(
                allowed=True,
                reason=f"Permission granted via {matched}",
                matched_permission=matched,
                source="role",
            )
        else:
            matched = self._first_covering(grants.effective, required)
            if matched is not None:
                result = PermissionResult(
                    allowed=True,
                    reason=f"Permission granted via inherited {matched}",
                    matched_permission=matched,
                    source="inherited",
                )

        self._log_decision(user, str(required), context_tenant, result)
        return result

    def _first_covering(self, patterns: Iterable[str], required: PermissionPattern) -> str | None:
        for pattern in patterns:
            try:
                candidate = parse_permission(pattern)
            except InvalidPermissionError:
                continue
            if candidate.covers(required, self.scope_inheritance):
                return pattern
        return None

    def _log_decision(
        self,
        user: UserContext,
        permission: str,
        tenant_id: str | None,
        result: PermissionResult,
    ) -> None:
        log_security_event(
            "permission_granted" if result.allowed else "permission_denied",
            result.allowed,
            {
                "subject": user.user_id,
                "permission": permission,
                "tenant": tenant_id,
                "reason": result.reason,
                "matched_permission": result.matched_permission,
            },
        )

    async def has_permission(
        self,
        user: UserContext,
        permission: str,
        tenant_id: str | None = None,
    ) -> bool:
        result = await self.check_permission(user, permission, tenant_id)
        return result.allowed

    async def has_any_permission(
        self,
        user: UserContext,
        permissions: Iterable[str],
        tenant_id: str | None = None,
    ) -> bool:
        """True if at least one permission is held."""
        for permission in permissions:
            if await self.has_permission(user, permission, tenant_id):
                return True
        return False

    async def has_all_permissions(
        self,
        user: UserContext,
        permissions: Iterable[str],
        tenant_id: str | None = None,
    ) -> bool:
        """True if every permission is held (vacuously true for none)."""
        for permission in permissions:
            if not await self.has_permission(user, permission, tenant_id):
                return False
        return True

    async def require_permission(
        self,
        user: UserContext,
        permission: str,
        tenant_id: str | None = None,
    ) -> PermissionResult:
        """Like check_permission but raises when denied.

        Raises:
            PermissionDeniedError: If the permission is not held
        """
        result = await self.check_permission(user, permission, tenant_id)
        if not result.allowed:
            raise PermissionDeniedError(result.reason)
        return result

    async def clear_cache(self, user_id: str, tenant_id: str | None = None) -> None:
        """Drop the cached grants for one user and tenant context."""
        key = self.cache_key(user_id, tenant_id)
        try:
            await self.kv.delete(key)
        except Exception as e:
            logger.error("Failed to clear permission cache", context={"key": key}, error=e)
            return
        logger.debug("Permission cache cleared", context={"key": key})

    async def clear_user_cache(self, user_id: str) -> int:
        """Drop cached grants for a user in every tenant context."""
        return await self._clear_prefix(f"{self.cache_prefix}:{user_id}:")

    async def clear_all(self) -> int:
        """Drop every cached grant set (after role or catalogue edits)."""
        return await self._clear_prefix(f"{self.cache_prefix}:")

    async def _clear_prefix(self, prefix: str) -> int:
        try:
            keys = await self.kv.list(prefix)
            for key in keys:
                await self.kv.delete(key)
        except Exception as e:
            logger.error("Failed to clear permission cache", context={"prefix": prefix}, error=e)
            return 0
        logger.info("Permission cache cleared", context={"prefix": prefix, "keys": len(keys)})
        return len(keys)
