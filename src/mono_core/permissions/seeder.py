"""Idempotent seeding of the built-in permission catalogue."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from mono_core.observability import Timer, emit_timer, get_logger
from mono_core.permissions.manager import PermissionManager
from mono_core.permissions.registry import (
    INHERITANCE_RULES,
    PERMISSION_DEFINITIONS,
    PERMISSION_SETS,
    ROLE_DEFINITIONS,
    PermissionDefinition,
    PermissionSetDefinition,
    RoleDefinition,
)

logger = get_logger(__name__)


@dataclass
class SeedReport:
    """Counts of what a seeding run touched."""

    permissions: int = 0
    roles: int = 0
    grants: int = 0
    inheritance_links: int = 0
    permission_sets: int = 0
    skipped: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "permissions": self.permissions,
            "roles": self.roles,
            "grants": self.grants,
            "inheritance_links": self.inheritance_links,
            "permission_sets": self.permission_sets,
            "skipped": self.skipped,
        }


async def seed_permissions(
    manager: PermissionManager,
    permissions: Iterable[PermissionDefinition] = PERMISSION_DEFINITIONS,
    roles: Iterable[RoleDefinition] = ROLE_DEFINITIONS,
    inheritance: dict[str, tuple[str, ...]] = INHERITANCE_RULES,
    permission_sets: Iterable[PermissionSetDefinition] = PERMISSION_SETS,
) -> SeedReport:
    """Upsert permissions, roles, grants, inheritance and sets.

    Safe to run repeatedly. Role grants and set items that reference a
    pattern missing from the catalogue are skipped and reported. Children
    of inheritance rules are created on demand since they are implied
    rather than granted directly.

    Args:
        manager: Permission manager with an initialized schema
        permissions: Permission catalogue
        roles: Role definitions
        inheritance: Parent pattern to implied children
        permission_sets: Named bundles

    Returns:
        SeedReport with counts and skipped references
    """
    report = SeedReport()

    with Timer() as timer:
        for definition in permissions:
            await manager.upsert_permission(definition.pattern, definition.description)
            report.permissions += 1

        for role_def in roles:
            await manager.upsert_role(
                code=role_def.code,
                name=role_def.name,
                level=role_def.level,
                description=role_def.description,
                is_system=role_def.is_system,
            )
            report.roles += 1

            for pattern in role_def.permissions:
                if await manager.find_permission(pattern) is None:
                    logger.warning(
                        "Skipping unknown permission for role",
                        context={"role": role_def.code, "pattern": pattern},
                    )
                    report.skipped.append(f"{role_def.code}:{pattern}")
                    continue
                await manager.grant_permission(role_def.code, pattern)
                report.grants += 1

        for parent, children in inheritance.items():
            if await manager.find_permission(parent) is None:
                report.skipped.append(f"inheritance:{parent}")
                continue
            for child in children:
                if await manager.find_permission(child) is None:
                    await manager.upsert_permission(child, f"Implied by {parent}")
                    report.permissions += 1
                await manager.add_inheritance(parent, child)
                report.inheritance_links += 1

        for set_def in permission_sets:
            _, skipped = await manager.upsert_permission_set(
                set_def.name,
                set_def.description,
                set_def.permissions,
            )
            report.permission_sets += 1
            report.skipped.extend(f"set:{set_def.name}:{p}" for p in skipped)

    logger.info(
        "Permission catalogue seeded",
        context=report.to_dict() | {"skipped": len(report.skipped)},
        duration_ms=timer.duration_ms,
    )
    emit_timer("permissions.seed", timer.duration_ms)
    return report
