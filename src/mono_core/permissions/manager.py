"""Persistence for roles, permissions and user role assignments."""

import time
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mono_core.exceptions import (
    PermissionDeniedError,
    PermissionNotFoundError,
    RoleNotFoundError,
)
from mono_core.observability import get_logger
from mono_core.permissions.patterns import parse_permission
from mono_core.protocols import Database

logger = get_logger(__name__)


@dataclass
class Permission:
    """A stored permission pattern."""

    id: str
    pattern: str
    resource: str
    action: str
    scope: str
    description: str | None
    is_wildcard: bool
    priority: int = 100

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "pattern": self.pattern,
            "resource": self.resource,
            "action": self.action,
            "scope": self.scope,
            "description": self.description,
            "is_wildcard": self.is_wildcard,
            "priority": self.priority,
        }

    @classmethod
    def from_row(cls, row: Any) -> "Permission":
        """Create from database row."""
        return cls(
            id=row.id,
            pattern=row.pattern,
            resource=row.resource,
            action=row.action,
            scope=row.scope,
            description=row.description,
            is_wildcard=bool(row.is_wildcard),
            priority=row.priority,
        )


@dataclass
class Role:
    """A role definition."""

    id: str
    code: str
    name: str
    level: int
    description: str | None
    is_system: bool
    is_active: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "level": self.level,
            "description": self.description,
            "is_system": self.is_system,
            "is_active": self.is_active,
        }

    @classmethod
    def from_row(cls, row: Any) -> "Role":
        """Create from database row."""
        return cls(
            id=row.id,
            code=row.code,
            name=row.name,
            level=row.level,
            description=row.description,
            is_system=bool(row.is_system),
            is_active=bool(row.is_active),
        )


@dataclass
class RoleAssignment:
    """A role held by a user, optionally within one tenant."""

    role_code: str
    tenant_id: str | None

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role_code, "tenant_id": self.tenant_id}


@dataclass
class PermissionSet:
    """A named bundle of permission patterns."""

    id: str
    name: str
    description: str | None
    permissions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "permissions": self.permissions,
        }


def expand_grants(
    grants: Iterable[str],
    inheritance: dict[str, list[str]],
) -> list[str]:
    """Expand granted patterns through inheritance rules.

    Returns the original grants first, followed by implied patterns in
    discovery order. Cycles are ignored.
    """
    result: list[str] = []
    seen: set[str] = set()
    queue = list(grants)

    while queue:
        pattern = queue.pop(0)
        if pattern in seen:
            continue
        seen.add(pattern)
        result.append(pattern)
        queue.extend(child for child in inheritance.get(pattern, []) if child not in seen)

    return result


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:16]}"


class PermissionManager:
    """Manages the RBAC model: permissions, roles and assignments.

    Roles are platform-wide. Assignments carry an optional tenant_id so the
    same user can be tenant_admin in one tenant and a plain member in
    another; assignments with no tenant apply everywhere.
    """

    def __init__(self, database: Database) -> None:
        """Initialize permission manager.

        Args:
            database: Database backend
        """
        self.database = database

    async def initialize_schema(self) -> None:
        """Initialize the RBAC schema in the database."""
        schema_path = Path(__file__).parent / "schema.sql"
        schema = schema_path.read_text()

        for statement in schema.split(";"):
            statement = statement.strip()
            if statement:
                await self.database.execute(statement)

    # Permissions

    async def upsert_permission(
        self,
        pattern: str,
        description: str | None = None,
        priority: int = 100,
    ) -> Permission:
        """Create or update a permission definition.

        Args:
            pattern: resource.action.scope pattern
            description: Optional human description
            priority: Ordering hint when listing grants

        Returns:
            The stored permission

        Raises:
            InvalidPermissionError: If the pattern is malformed
        """
        parsed = parse_permission(pattern)
        normalized = str(parsed)
        now = time.time()

        rows = await self.database.execute(
            "SELECT * FROM permissions WHERE pattern = :pattern",
            {"pattern": normalized},
        )
        if rows:
            await self.database.execute(
                """
                UPDATE permissions
                SET description = :description, is_wildcard = :is_wildcard,
                    is_active = 1, updated_at = :updated_at
                WHERE id = :id
                """,
                {
                    "description": description if description is not None else rows[0].description,
                    "is_wildcard": int(parsed.is_wildcard),
                    "updated_at": now,
                    "id": rows[0].id,
                },
            )
            return await self.get_permission(normalized)

        permission_id = _new_id("perm")
        await self.database.execute(
            """
            INSERT INTO permissions
            (id, pattern, resource, action, scope, description, is_wildcard, priority,
             is_active, created_at, updated_at)
            VALUES (:id, :pattern, :resource, :action, :scope, :description, :is_wildcard,
                    :priority, 1, :created_at, :updated_at)
            """,
            {
                "id": permission_id,
                "pattern": normalized,
                "resource": parsed.resource,
                "action": parsed.action,
                "scope": parsed.scope,
                "description": description,
                "is_wildcard": int(parsed.is_wildcard),
                "priority": priority,
                "created_at": now,
                "updated_at": now,
            },
        )
        return Permission(
            id=permission_id,
            pattern=normalized,
            resource=parsed.resource,
            action=parsed.action,
            scope=parsed.scope,
            description=description,
            is_wildcard=parsed.is_wildcard,
            priority=priority,
        )

    async def get_permission(self, pattern: str) -> Permission:
        """Get a permission by pattern.

        Raises:
            PermissionNotFoundError: If the pattern is not defined
        """
        rows = await self.database.execute(
            "SELECT * FROM permissions WHERE pattern = :pattern AND is_active = 1",
            {"pattern": str(parse_permission(pattern))},
        )
        if not rows:
            raise PermissionNotFoundError(f"Permission not found: {pattern}")
        return Permission.from_row(rows[0])

    async def find_permission(self, pattern: str) -> Permission | None:
        """Like get_permission but returns None for unknown patterns."""
        try:
            return await self.get_permission(pattern)
        except PermissionNotFoundError:
            return None

    async def list_permissions(self, resource: str | None = None) -> list[Permission]:
        """List active permissions, optionally for one resource."""
        if resource:
            rows = await self.database.execute(
                """
                SELECT * FROM permissions
                WHERE is_active = 1 AND resource = :resource
                ORDER BY pattern
                """,
                {"resource": resource},
            )
        else:
            rows = await self.database.execute(
                "SELECT * FROM permissions WHERE is_active = 1 ORDER BY pattern"
            )
        return [Permission.from_row(r) for r in rows]

    # Roles

    async def upsert_role(
        self,
        code: str,
        name: str,
        level: int = 1,
        description: str | None = None,
        is_system: bool = False,
    ) -> Role:
        """Create or update a role by code."""
        now = time.time()
        rows = await self.database.execute(
            "SELECT id FROM roles WHERE code = :code",
            {"code": code},
        )
        if rows:
            await self.database.execute(
                """
                UPDATE roles
                SET name = :name, level = :level, description = :description,
                    is_system = :is_system, is_active = 1, updated_at = :updated_at
                WHERE id = :id
                """,
                {
                    "name": name,
                    "level": level,
                    "description": description,
                    "is_system": int(is_system),
                    "updated_at": now,
                    "id": rows[0].id,
                },
            )
            return await self.get_role(code)

        role_id = _new_id("role")
        await self.database.execute(
            """
            INSERT INTO roles
            (id, code, name, level, description, is_system, is_active, created_at, updated_at)
            VALUES (:id, :code, :name, :level, :description, :is_system, 1, :created_at, :updated_at)
            """,
            {
                "id": role_id,
                "code": code,
                "name": name,
                "level": level,
                "description": description,
                "is_system": int(is_system),
                "created_at": now,
                "updated_at": now,
            },
        )
        logger.info("Role created", context={"role": code, "level": level})
        return Role(
            id=role_id,
            code=code,
            name=name,
            level=level,
            description=description,
            is_system=is_system,
        )

    async def get_role(self, code: str) -> Role:
        """Get a role by code.

        Raises:
            RoleNotFoundError: If role doesn't exist
        """
        rows = await self.database.execute(
            "SELECT * FROM roles WHERE code = :code AND is_active = 1",
            {"code": code},
        )
        if not rows:
            raise RoleNotFoundError(f"Role not found: {code}")
        return Role.from_row(rows[0])

    async def list_roles(self) -> list[Role]:
        """List active roles, highest level first."""
        rows = await self.database.execute(
            "SELECT * FROM roles WHERE is_active = 1 ORDER BY level DESC, code"
        )
        return [Role.from_row(r) for r in rows]

    async def delete_role(self, code: str) -> None:
        """Delete a custom role with its grants and assignments.

        Raises:
            RoleNotFoundError: If role doesn't exist
            PermissionDeniedError: If the role is a system role
        """
        role = await self.get_role(code)
        if role.is_system:
            raise PermissionDeniedError(f"System role cannot be deleted: {code}")

        async with self.database.transaction():
            await self.database.execute(
                "DELETE FROM role_permissions WHERE role_id = :role_id",
                {"role_id": role.id},
            )
            await self.database.execute(
                "DELETE FROM user_roles WHERE role_id = :role_id",
                {"role_id": role.id},
            )
            await self.database.execute(
                "DELETE FROM roles WHERE id = :role_id",
                {"role_id": role.id},
            )
        logger.info("Role deleted", context={"role": code})

    async def grant_permission(self, role_code: str, pattern: str) -> None:
        """Attach a permission to a role. Idempotent."""
        role = await self.get_role(role_code)
        permission = await self.get_permission(pattern)

        await self.database.execute(
            """
            INSERT OR IGNORE INTO role_permissions (role_id, permission_id, created_at)
            VALUES (:role_id, :permission_id, :created_at)
            """,
            {"role_id": role.id, "permission_id": permission.id, "created_at": time.time()},
        )

    async def revoke_permission(self, role_code: str, pattern: str) -> None:
        """Detach a permission from a role. Idempotent."""
        role = await self.get_role(role_code)
        permission = await self.get_permission(pattern)

        await self.database.execute(
            """
            DELETE FROM role_permissions
            WHERE role_id = :role_id AND permission_id = :permission_id
            """,
            {"role_id": role.id, "permission_id": permission.id},
        )

    async def get_role_permissions(self, role_code: str) -> list[str]:
        """Get the patterns granted by a role."""
        role = await self.get_role(role_code)
        rows = await self.database.execute(
            """
            SELECT p.pattern FROM role_permissions rp
            JOIN permissions p ON p.id = rp.permission_id
            WHERE rp.role_id = :role_id AND p.is_active = 1
            ORDER BY p.priority DESC, p.pattern
            """,
            {"role_id": role.id},
        )
        return [r.pattern for r in rows]

    # Assignments

    async def assign_role(
        self,
        user_id: str,
        role_code: str,
        tenant_id: str | None = None,
    ) -> None:
        """Assign a role to a user. Idempotent.

        Args:
            user_id: User ID
            role_code: Role code to assign
            tenant_id: Tenant the assignment applies to (None = platform-wide)
        """
        role = await self.get_role(role_code)

        existing = await self.database.execute(
            """
            SELECT id, is_active FROM user_roles
            WHERE user_id = :user_id AND role_id = :role_id AND tenant_id IS :tenant_id
            """,
            {"user_id": user_id, "role_id": role.id, "tenant_id": tenant_id},
        )
        if existing:
            if not existing[0].is_active:
                await self.database.execute(
                    "UPDATE user_roles SET is_active = 1 WHERE id = :id",
                    {"id": existing[0].id},
                )
            return

        await self.database.execute(
            """
            INSERT INTO user_roles (id, user_id, role_id, tenant_id, is_active, created_at)
            VALUES (:id, :user_id, :role_id, :tenant_id, 1, :created_at)
            """,
            {
                "id": _new_id("ur"),
                "user_id": user_id,
                "role_id": role.id,
                "tenant_id": tenant_id,
                "created_at": time.time(),
            },
        )
        logger.info(
            "Role assigned",
            context={"assignee": user_id, "role": role_code, "scope_tenant": tenant_id},
        )

    async def revoke_role(
        self,
        user_id: str,
        role_code: str,
        tenant_id: str | None = None,
    ) -> None:
        """Revoke a role assignment. Idempotent."""
        role = await self.get_role(role_code)

        await self.database.execute(
            """
            DELETE FROM user_roles
            WHERE user_id = :user_id AND role_id = :role_id AND tenant_id IS :tenant_id
            """,
            {"user_id": user_id, "role_id": role.id, "tenant_id": tenant_id},
        )
        logger.info(
            "Role revoked",
            context={"assignee": user_id, "role": role_code, "scope_tenant": tenant_id},
        )

    async def get_user_roles(self, user_id: str, tenant_id: str | None = None) -> list[str]:
        """Get role codes a user holds in a tenant context.

        Platform-wide assignments always apply; tenant assignments only
        when tenant_id matches.
        """
        rows = await self.database.execute(
            """
            SELECT DISTINCT r.code, r.level FROM user_roles ur
            JOIN roles r ON ur.role_id = r.id
            WHERE ur.user_id = :user_id AND ur.is_active = 1 AND r.is_active = 1
              AND (ur.tenant_id IS NULL OR ur.tenant_id = :tenant_id)
            ORDER BY r.level DESC, r.code
            """,
            {"user_id": user_id, "tenant_id": tenant_id},
        )
        return [r.code for r in rows]

    async def get_user_assignments(self, user_id: str) -> list[RoleAssignment]:
        """List every active assignment for a user across tenants."""
        rows = await self.database.execute(
            """
            SELECT r.code, ur.tenant_id FROM user_roles ur
            JOIN roles r ON ur.role_id = r.id
            WHERE ur.user_id = :user_id AND ur.is_active = 1
            ORDER BY r.level DESC, r.code
            """,
            {"user_id": user_id},
        )
        return [RoleAssignment(role_code=r.code, tenant_id=r.tenant_id) for r in rows]

    async def get_user_grants(self, user_id: str, tenant_id: str | None = None) -> list[str]:
        """Get distinct patterns granted by the user's roles in a tenant context."""
        rows = await self.database.execute(
            """
            SELECT p.pattern, MAX(p.priority) AS priority FROM user_roles ur
            JOIN roles r ON r.id = ur.role_id
            JOIN role_permissions rp ON rp.role_id = r.id
            JOIN permissions p ON p.id = rp.permission_id
            WHERE ur.user_id = :user_id AND ur.is_active = 1 AND r.is_active = 1
              AND p.is_active = 1
              AND (ur.tenant_id IS NULL OR ur.tenant_id = :tenant_id)
            GROUP BY p.pattern
            ORDER BY priority DESC, p.pattern
            """,
            {"user_id": user_id, "tenant_id": tenant_id},
        )
        return [r.pattern for r in rows]

    # Inheritance

    async def add_inheritance(self, parent: str, child: str) -> None:
        """Record that holding parent implies child. Idempotent."""
        parent_permission = await self.get_permission(parent)
        child_permission = await self.get_permission(child)

        await self.database.execute(
            """
            INSERT OR IGNORE INTO permission_inheritance (parent_id, child_id)
            VALUES (:parent_id, :child_id)
            """,
            {"parent_id": parent_permission.id, "child_id": child_permission.id},
        )

    async def get_inheritance_map(self) -> dict[str, list[str]]:
        """Map each parent pattern to the child patterns it implies."""
        rows = await self.database.execute(
            """
            SELECT pp.pattern AS parent, cp.pattern AS child
            FROM permission_inheritance pi
            JOIN permissions pp ON pp.id = pi.parent_id
            JOIN permissions cp ON cp.id = pi.child_id
            WHERE pp.is_active = 1 AND cp.is_active = 1
            ORDER BY pp.pattern, cp.pattern
            """
        )
        inheritance: dict[str, list[str]] = {}
        for row in rows:
            inheritance.setdefault(row.parent, []).append(row.child)
        return inheritance

    async def get_effective_grants(
        self,
        user_id: str,
        tenant_id: str | None = None,
    ) -> tuple[list[str], list[str]]:
        """Return (direct grants, inheritance-expanded grants)."""
        direct = await self.get_user_grants(user_id, tenant_id)
        if not direct:
            return [], []
        inheritance = await self.get_inheritance_map()
        return direct, expand_grants(direct, inheritance)

    # Permission sets

    async def upsert_permission_set(
        self,
        name: str,
        description: str | None,
        patterns: Iterable[str],
    ) -> tuple[PermissionSet, list[str]]:
        """Create or update a permission set.

        The set's items are replaced by the given patterns. Unknown
        patterns are skipped.

        Returns:
            The stored set and the list of skipped patterns
        """
        permission_ids: list[str] = []
        skipped: list[str] = []
        for pattern in patterns:
            permission = await self.find_permission(pattern)
            if permission is None:
                skipped.append(pattern)
            else:
                permission_ids.append(permission.id)

        now = time.time()
        rows = await self.database.execute(
            "SELECT id FROM permission_sets WHERE name = :name",
            {"name": name},
        )
        async with self.database.transaction():
            if rows:
                set_id = rows[0].id
                await self.database.execute(
                    """
                    UPDATE permission_sets SET description = :description, updated_at = :updated_at
                    WHERE id = :id
                    """,
                    {"description": description, "updated_at": now, "id": set_id},
                )
                await self.database.execute(
                    "DELETE FROM permission_set_items WHERE set_id = :set_id",
                    {"set_id": set_id},
                )
            else:
                set_id = _new_id("pset")
                await self.database.execute(
                    """
                    INSERT INTO permission_sets (id, name, description, created_at, updated_at)
                    VALUES (:id, :name, :description, :created_at, :updated_at)
                    """,
                    {
                        "id": set_id,
                        "name": name,
                        "description": description,
                        "created_at": now,
                        "updated_at": now,
                    },
                )

            await self.database.execute_many(
                """
                INSERT OR IGNORE INTO permission_set_items (set_id, permission_id)
                VALUES (:set_id, :permission_id)
                """,
                [{"set_id": set_id, "permission_id": pid} for pid in permission_ids],
            )

        return await self.get_permission_set(name), skipped

    async def get_permission_set(self, name: str) -> PermissionSet:
        """Get a permission set with its patterns.

        Raises:
            PermissionNotFoundError: If the set doesn't exist
        """
        rows = await self.database.execute(
            "SELECT * FROM permission_sets WHERE name = :name",
            {"name": name},
        )
        if not rows:
            raise PermissionNotFoundError(f"Permission set not found: {name}")

        items = await self.database.execute(
            """
            SELECT p.pattern FROM permission_set_items psi
            JOIN permissions p ON p.id = psi.permission_id
            WHERE psi.set_id = :set_id
            ORDER BY p.pattern
            """,
            {"set_id": rows[0].id},
        )
        return PermissionSet(
            id=rows[0].id,
            name=rows[0].name,
            description=rows[0].description,
            permissions=[r.pattern for r in items],
        )

    async def list_permission_sets(self) -> list[PermissionSet]:
        """List all permission sets."""
        rows = await self.database.execute("SELECT name FROM permission_sets ORDER BY name")
        return [await self.get_permission_set(r.name) for r in rows]
