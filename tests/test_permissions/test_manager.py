"""Tests for PermissionManager."""

import pytest

from mono_core.exceptions import (
    InvalidPermissionError,
    PermissionDeniedError,
    PermissionNotFoundError,
    RoleNotFoundError,
)
from mono_core.permissions.manager import PermissionManager, expand_grants


@pytest.fixture
async def manager(db):
    """Manager with an empty schema."""
    manager = PermissionManager(db)
    await manager.initialize_schema()
    await manager.upsert_permission("users.*.tenant", "User management")
    await manager.upsert_permission("users.read.tenant", "Read users")
    await manager.upsert_permission("jobs.read.tenant", "Browse jobs")
    await manager.upsert_role("tenant_admin", "Tenant Admin", level=4, is_system=True)
    await manager.upsert_role("recruiter", "Recruiter", level=2)
    return manager


class TestPermissions:
    """Tests for permission definitions."""

    async def test_upsert_normalizes(self, manager):
        permission = await manager.upsert_permission("Reports.Export.Tenant", "Export")

        assert permission.pattern == "reports.export.tenant"
        assert permission.resource == "reports"
        assert permission.scope == "tenant"
        assert not permission.is_wildcard

    async def test_upsert_is_idempotent(self, manager):
        first = await manager.upsert_permission("users.read.tenant")
        second = await manager.upsert_permission("users.read.tenant", "Updated")

        assert first.id == second.id
        assert second.description == "Updated"
        assert first.description == "Read users"

    async def test_upsert_rejects_malformed(self, manager):
        with pytest.raises(InvalidPermissionError):
            await manager.upsert_permission("users.read")

    async def test_get_missing(self, manager):
        with pytest.raises(PermissionNotFoundError):
            await manager.get_permission("users.delete.global")
        assert await manager.find_permission("users.delete.global") is None

    async def test_list_by_resource(self, manager):
        permissions = await manager.list_permissions("users")
        assert [p.pattern for p in permissions] == ["users.*.tenant", "users.read.tenant"]


class TestRoles:
    """Tests for role management."""

    async def test_upsert_and_get(self, manager):
        role = await manager.get_role("recruiter")

        assert role.name == "Recruiter"
        assert role.level == 2
        assert not role.is_system

    async def test_update_existing(self, manager):
        await manager.upsert_role("recruiter", "Senior Recruiter", level=3)
        role = await manager.get_role("recruiter")
        assert role.name == "Senior Recruiter"
        assert role.level == 3

    async def test_list_highest_level_first(self, manager):
        roles = await manager.list_roles()
        assert [r.code for r in roles] == ["tenant_admin", "recruiter"]

    async def test_get_missing(self, manager):
        with pytest.raises(RoleNotFoundError):
            await manager.get_role("ghost")

    async def test_grant_and_revoke(self, manager):
        await manager.grant_permission("recruiter", "jobs.read.tenant")
        await manager.grant_permission("recruiter", "jobs.read.tenant")
        assert await manager.get_role_permissions("recruiter") == ["jobs.read.tenant"]

        await manager.revoke_permission("recruiter", "jobs.read.tenant")
        assert await manager.get_role_permissions("recruiter") == []

    async def test_grant_unknown_permission(self, manager):
        with pytest.raises(PermissionNotFoundError):
            await manager.grant_permission("recruiter", "ghosts.read.tenant")

    async def test_delete_custom_role(self, manager):
        await manager.grant_permission("recruiter", "jobs.read.tenant")
        await manager.assign_role("user-1", "recruiter", "tenant-1")

        await manager.delete_role("recruiter")

        with pytest.raises(RoleNotFoundError):
            await manager.get_role("recruiter")
        assert await manager.get_user_roles("user-1", "tenant-1") == []

    async def test_system_role_cannot_be_deleted(self, manager):
        with pytest.raises(PermissionDeniedError):
            await manager.delete_role("tenant_admin")


class TestAssignments:
    """Tests for user role assignments."""

    async def test_tenant_scoped_assignment(self, manager):
        await manager.assign_role("user-1", "tenant_admin", "tenant-1")

        assert await manager.get_user_roles("user-1", "tenant-1") == ["tenant_admin"]
        assert await manager.get_user_roles("user-1", "tenant-2") == []

    async def test_platform_wide_assignment_applies_everywhere(self, manager):
        await manager.assign_role("user-1", "recruiter")

        assert await manager.get_user_roles("user-1", "tenant-1") == ["recruiter"]
        assert await manager.get_user_roles("user-1", None) == ["recruiter"]

    async def test_roles_ordered_by_level(self, manager):
        await manager.assign_role("user-1", "recruiter", "tenant-1")
        await manager.assign_role("user-1", "tenant_admin", "tenant-1")

        assert await manager.get_user_roles("user-1", "tenant-1") == ["tenant_admin", "recruiter"]

    async def test_assign_is_idempotent(self, manager):
        await manager.assign_role("user-1", "recruiter", "tenant-1")
        await manager.assign_role("user-1", "recruiter", "tenant-1")

        assignments = await manager.get_user_assignments("user-1")
        assert len(assignments) == 1
        assert assignments[0].to_dict() == {"role": "recruiter", "tenant_id": "tenant-1"}

    async def test_revoke(self, manager):
        await manager.assign_role("user-1", "recruiter", "tenant-1")
        await manager.revoke_role("user-1", "recruiter", "tenant-1")
        await manager.revoke_role("user-1", "recruiter", "tenant-1")

        assert await manager.get_user_roles("user-1", "tenant-1") == []

    async def test_assign_unknown_role(self, manager):
        with pytest.raises(RoleNotFoundError):
            await manager.assign_role("user-1", "ghost", "tenant-1")

    async def test_user_grants_respect_tenant(self, manager):
        await manager.grant_permission("tenant_admin", "users.*.tenant")
        await manager.grant_permission("recruiter", "jobs.read.tenant")
        await manager.assign_role("user-1", "tenant_admin", "tenant-1")
        await manager.assign_role("user-1", "recruiter", "tenant-2")

        assert await manager.get_user_grants("user-1", "tenant-1") == ["users.*.tenant"]
        assert await manager.get_user_grants("user-1", "tenant-2") == ["jobs.read.tenant"]


class TestInheritance:
    """Tests for permission inheritance."""

    def test_expand_grants_transitive(self):
        inheritance = {"a.*.global": ["b.*.tenant"], "b.*.tenant": ["c.read.own"]}

        expanded = expand_grants(["a.*.global"], inheritance)

        assert expanded == ["a.*.global", "b.*.tenant", "c.read.own"]

    def test_expand_grants_ignores_cycles(self):
        inheritance = {"a.x.own": ["b.x.own"], "b.x.own": ["a.x.own"]}
        assert expand_grants(["a.x.own"], inheritance) == ["a.x.own", "b.x.own"]

    async def test_effective_grants(self, manager):
        await manager.grant_permission("tenant_admin", "users.*.tenant")
        await manager.add_inheritance("users.*.tenant", "jobs.read.tenant")
        await manager.add_inheritance("users.*.tenant", "jobs.read.tenant")
        await manager.assign_role("user-1", "tenant_admin", "tenant-1")

        direct, effective = await manager.get_effective_grants("user-1", "tenant-1")

        assert direct == ["users.*.tenant"]
        assert effective == ["users.*.tenant", "jobs.read.tenant"]
        assert await manager.get_inheritance_map() == {"users.*.tenant": ["jobs.read.tenant"]}

    async def test_no_grants(self, manager):
        assert await manager.get_effective_grants("nobody", "tenant-1") == ([], [])


class TestPermissionSets:
    async def test_upsert_skips_unknown(self, manager):
        permission_set, skipped = await manager.upsert_permission_set(
            "hiring", "Hiring tools", ["jobs.read.tenant", "ghosts.read.tenant"]
        )

        assert permission_set.permissions == ["jobs.read.tenant"]
        assert skipped == ["ghosts.read.tenant"]

    async def test_upsert_replaces_items(self, manager):
        await manager.upsert_permission_set("hiring", None, ["users.read.tenant", "jobs.read.tenant"])

        permission_set, _ = await manager.upsert_permission_set("hiring", "Narrowed", ["users.read.tenant"])

        assert permission_set.permissions == ["users.read.tenant"]
        assert permission_set.description == "Narrowed"
        assert (await manager.get_permission_set("hiring")).permissions == ["users.read.tenant"]

    async def test_list_sets(self, manager):
        await manager.upsert_permission_set("b-set", None, ["users.read.tenant"])
        await manager.upsert_permission_set("a-set", None, ["jobs.read.tenant"])

        sets = await manager.list_permission_sets()
        assert [s.name for s in sets] == ["a-set", "b-set"]

    async def test_get_missing_set(self, manager):
        with pytest.raises(PermissionNotFoundError):
            await manager.get_permission_set("ghost")
