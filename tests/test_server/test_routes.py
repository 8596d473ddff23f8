"""Tests for server routes."""

import pytest
from starlette.testclient import TestClient

from mono_core.platform import Platform
from mono_core.server.app import create_app

PASSWORD = "long-password"


@pytest.fixture
def platform(sample_config_dict) -> Platform:
    return Platform.from_dict(sample_config_dict)


@pytest.fixture
def client(platform: Platform):
    """Test client whose event loop also owns the platform's backends."""
    with TestClient(create_app(platform)) as client:
        client.portal.call(platform.initialize)
        yield client
        client.portal.call(platform.close)


def login_as(
    client: TestClient,
    platform: Platform,
    email: str,
    role: str | None,
    tenant_id: str | None,
) -> dict[str, str]:
    """Create a user holding role and return auth headers for them."""

    async def setup() -> None:
        user = await platform.auth.create_user(email, PASSWORD, tenant_id=tenant_id)
        if role:
            await platform.permission_manager.assign_role(user.id, role, tenant_id)

    client.portal.call(setup)
    response = client.post(
        "/auth/login",
        json={"email": email, "password": PASSWORD, "tenant_id": tenant_id},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def root(client, platform) -> dict[str, str]:
    return login_as(client, platform, "root@mono.dev", "super_admin", None)


@pytest.fixture
def admin(client, platform) -> dict[str, str]:
    return login_as(client, platform, "admin@acme.io", "tenant_admin", "t1")


@pytest.fixture
def member(client, platform) -> dict[str, str]:
    return login_as(client, platform, "member@acme.io", "team_member", "t1")


class TestPublicEndpoints:
    """Tests for endpoints reachable without a token."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert "timestamp" in response.json()

    def test_jwks(self, client: TestClient, platform: Platform) -> None:
        response = client.get("/.well-known/jwks.json")

        assert response.status_code == 200
        key = response.json()["keys"][0]
        assert key["kid"] == platform.key_pair.key_id
        assert key["alg"] == "RS256"

    def test_login_bad_password(self, client, platform, member) -> None:
        response = client.post(
            "/auth/login",
            json={"email": "member@acme.io", "password": "wrong-password", "tenant_id": "t1"},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"

    def test_login_missing_fields(self, client: TestClient) -> None:
        response = client.post("/auth/login", json={"email": "x@y.io"})

        assert response.status_code == 400
        assert "password" in response.json()["error"]

    def test_login_invalid_json(self, client: TestClient) -> None:
        response = client.post("/auth/login", content=b"{not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 400

    def test_refresh(self, client, platform) -> None:
        client.portal.call(platform.auth.create_user, "fresh@acme.io", PASSWORD, "t1")
        tokens = client.post(
            "/auth/login",
            json={"email": "fresh@acme.io", "password": PASSWORD, "tenant_id": "t1"},
        ).json()

        response = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

        assert response.status_code == 200
        assert response.json()["access_token"]
        assert "refresh_token" not in response.json()

    def test_refresh_rejects_access_token(self, client, platform) -> None:
        client.portal.call(platform.auth.create_user, "fresh@acme.io", PASSWORD, "t1")
        tokens = client.post(
            "/auth/login",
            json={"email": "fresh@acme.io", "password": PASSWORD, "tenant_id": "t1"},
        ).json()

        response = client.post("/auth/refresh", json={"refresh_token": tokens["access_token"]})

        assert response.status_code == 401


class TestIdentityEndpoints:
    """Tests for /auth/me and /permissions/*."""

    def test_requires_token(self, client: TestClient) -> None:
        assert client.get("/auth/me").status_code == 401

    def test_me(self, client, member) -> None:
        response = client.get("/auth/me", headers=member)

        assert response.status_code == 200
        data = response.json()
        assert data["tenant_id"] == "t1"
        assert data["roles"] == ["team_member"]
        assert data["email"] == "member@acme.io"

    def test_permissions_me(self, client, admin) -> None:
        response = client.get("/permissions/me", headers=admin)

        assert response.status_code == 200
        data = response.json()
        assert data["roles"] == ["tenant_admin"]
        assert "users.*.tenant" in data["direct"]
        assert "profiles.*.tenant" in data["permissions"]

    def test_check_single(self, client, admin) -> None:
        response = client.post("/permissions/check", headers=admin, json={"permission": "users.read.own"})

        assert response.json()["allowed"] is True
        assert response.json()["matched_permission"] == "users.*.tenant"

    def test_check_inherited(self, client, admin) -> None:
        response = client.post("/permissions/check", headers=admin, json={"permission": "profiles.update.tenant"})

        assert response.json()["allowed"] is True
        assert response.json()["source"] == "inherited"

    def test_check_many(self, client, member) -> None:
        body = {"permissions": ["saved_searches.read.own", "users.read.tenant"], "mode": "any"}

        response = client.post("/permissions/check", headers=member, json=body)

        assert response.json() == {
            "allowed": True,
            "mode": "any",
            "results": {"saved_searches.read.own": True, "users.read.tenant": False},
        }

        all_response = client.post("/permissions/check", headers=member, json=body | {"mode": "all"})
        assert all_response.json()["allowed"] is False

    def test_check_bad_mode(self, client, member) -> None:
        response = client.post(
            "/permissions/check", headers=member, json={"permissions": ["a.b.own"], "mode": "some"}
        )
        assert response.status_code == 400

    def test_check_requires_input(self, client, member) -> None:
        assert client.post("/permissions/check", headers=member, json={}).status_code == 400

    def test_route_access(self, client, admin, member) -> None:
        admin_result = client.post("/access/route", headers=admin, json={"path": "/admin/users/42"}).json()
        member_result = client.post("/access/route", headers=member, json={"path": "/admin/users"}).json()
        tenants_result = client.post("/access/route", headers=admin, json={"path": "/admin/tenants"}).json()

        assert admin_result["allowed"] is True
        assert admin_result["requires_detailed_check"] is True
        assert member_result["allowed"] is False
        assert tenants_result["allowed"] is False

    def test_api_access(self, client, admin) -> None:
        get = client.post("/access/api", headers=admin, json={"path": "/api/v1/admin/users"}).json()
        delete = client.post(
            "/access/api", headers=admin, json={"path": "/api/v1/admin/users", "method": "delete"}
        ).json()

        assert get["allowed"] is True
        assert delete["allowed"] is False


class TestRoleAdministration:
    """Tests for /admin/roles and /admin/users/{id}/roles."""

    def test_list_roles(self, client, admin) -> None:
        response = client.get("/admin/roles", headers=admin)

        assert response.status_code == 200
        codes = [r["code"] for r in response.json()["roles"]]
        assert "super_admin" in codes
        assert "team_member" in codes

    def test_list_permissions_requires_permission(self, client, member) -> None:
        response = client.get("/admin/permissions", headers=member)

        assert response.status_code == 403
        assert response.json()["required"] == "users.read.tenant"

    def test_role_detail(self, client, admin) -> None:
        response = client.get("/admin/roles/team_member", headers=admin)

        assert response.status_code == 200
        assert "saved_searches.*.own" in response.json()["permissions"]

    def test_unknown_role(self, client, admin) -> None:
        assert client.get("/admin/roles/nobody", headers=admin).status_code == 404

    def test_upsert_role_needs_platform_admin(self, client, admin, root) -> None:
        body = {"code": "recruiter", "name": "Recruiter", "level": 2}

        assert client.post("/admin/roles", headers=admin, json=body).status_code == 403

        response = client.post("/admin/roles", headers=root, json=body)
        assert response.status_code == 201
        assert response.json()["code"] == "recruiter"

    def test_grant_and_revoke(self, client, root) -> None:
        client.post("/admin/roles", headers=root, json={"code": "recruiter", "name": "Recruiter"})

        granted = client.post(
            "/admin/roles/recruiter/permissions", headers=root, json={"permission": "jobs.read.tenant"}
        )
        assert granted.status_code == 201
        assert client.get("/admin/roles/recruiter", headers=root).json()["permissions"] == ["jobs.read.tenant"]

        revoked = client.delete("/admin/roles/recruiter/permissions/jobs.read.tenant", headers=root)
        assert revoked.status_code == 200
        assert client.get("/admin/roles/recruiter", headers=root).json()["permissions"] == []

    def test_assign_role_within_tenant(self, client, platform, admin) -> None:
        user = client.portal.call(platform.auth.create_user, "new@acme.io", PASSWORD, "t1")

        response = client.post(f"/admin/users/{user.id}/roles", headers=admin, json={"role": "team_member"})

        assert response.status_code == 201
        assert response.json()["tenant_id"] == "t1"
        assignments = client.get(f"/admin/users/{user.id}/roles", headers=admin).json()["assignments"]
        assert assignments == [{"role": "team_member", "tenant_id": "t1"}]

    def test_cannot_assign_above_own_level(self, client, platform, admin) -> None:
        user = client.portal.call(platform.auth.create_user, "new@acme.io", PASSWORD, "t1")

        response = client.post(f"/admin/users/{user.id}/roles", headers=admin, json={"role": "super_admin"})

        assert response.status_code == 403

    def test_platform_wide_assignment_needs_platform_admin(self, client, platform, admin, root) -> None:
        user = client.portal.call(platform.auth.create_user, "new@acme.io", PASSWORD, "t1")
        body = {"role": "content_moderator", "platform_wide": True}

        assert client.post(f"/admin/users/{user.id}/roles", headers=admin, json=body).status_code == 403
        assert client.post(f"/admin/users/{user.id}/roles", headers=root, json=body).status_code == 201

    def test_assign_to_unknown_user(self, client, admin) -> None:
        response = client.post("/admin/users/missing/roles", headers=admin, json={"role": "team_member"})
        assert response.status_code == 404

    def test_revoke_role(self, client, platform, admin) -> None:
        user = client.portal.call(platform.auth.create_user, "new@acme.io", PASSWORD, "t1")
        client.post(f"/admin/users/{user.id}/roles", headers=admin, json={"role": "team_member"})

        response = client.delete(f"/admin/users/{user.id}/roles/team_member", headers=admin)

        assert response.status_code == 200
        assert client.get(f"/admin/users/{user.id}/roles", headers=admin).json()["assignments"] == []

    def test_other_tenant_user_roles_hidden(self, client, platform, admin, root) -> None:
        outsider = client.portal.call(platform.auth.create_user, "ops@globex.io", PASSWORD, "t2")
        client.portal.call(platform.permission_manager.assign_role, outsider.id, "tenant_admin", "t2")

        response = client.get(f"/admin/users/{outsider.id}/roles", headers=admin)

        assert response.status_code == 403
        assignments = client.get(f"/admin/users/{outsider.id}/roles", headers=root).json()["assignments"]
        assert assignments == [{"role": "tenant_admin", "tenant_id": "t2"}]

    def test_listing_limited_to_request_tenant(self, client, platform, admin) -> None:
        user = client.portal.call(platform.auth.create_user, "new@acme.io", PASSWORD, "t1")
        client.portal.call(platform.permission_manager.assign_role, user.id, "team_member", "t1")
        client.portal.call(platform.permission_manager.assign_role, user.id, "team_member", "t2")

        assignments = client.get(f"/admin/users/{user.id}/roles", headers=admin).json()["assignments"]

        assert assignments == [{"role": "team_member", "tenant_id": "t1"}]

    def test_cannot_assign_to_other_tenant_user(self, client, platform, admin) -> None:
        outsider = client.portal.call(platform.auth.create_user, "ops@globex.io", PASSWORD, "t2")

        response = client.post(f"/admin/users/{outsider.id}/roles", headers=admin, json={"role": "team_member"})

        assert response.status_code == 403
        roles = client.portal.call(platform.permission_manager.get_user_roles, outsider.id, "t1")
        assert roles == []

    def test_cannot_revoke_from_other_tenant_user(self, client, platform, admin) -> None:
        outsider = client.portal.call(platform.auth.create_user, "ops@globex.io", PASSWORD, "t2")
        client.portal.call(platform.permission_manager.assign_role, outsider.id, "team_member", "t1")

        response = client.delete(f"/admin/users/{outsider.id}/roles/team_member", headers=admin)

        assert response.status_code == 403
        roles = client.portal.call(platform.permission_manager.get_user_roles, outsider.id, "t1")
        assert roles == ["team_member"]

    def test_grant_takes_effect_immediately(self, client, platform, admin, member) -> None:
        assert client.get("/admin/roles", headers=member).status_code == 403

        member_id = client.get("/auth/me", headers=member).json()["user_id"]
        client.portal.call(platform.permission_manager.assign_role, member_id, "content_moderator", "t1")
        client.portal.call(platform.permissions.clear_user_cache, member_id)

        # content_moderator inherits nothing that covers users.read.tenant
        assert client.get("/admin/roles", headers=member).status_code == 403
        client.post(f"/admin/users/{member_id}/roles", headers=admin, json={"role": "tenant_admin"})
        assert client.get("/admin/roles", headers=member).status_code == 200


class TestTenantEndpoints:
    """Tests for /admin/tenants."""

    def _create(self, client, headers, **overrides) -> dict:
        body = {"name": "Acme Talent", "subdomain": "acme", "admin_email": "ops@acme.io"} | overrides
        response = client.post("/admin/tenants", headers=headers, json=body)
        assert response.status_code == 201, response.text
        return response.json()

    def test_tenant_admin_cannot_manage_tenants(self, client, admin) -> None:
        assert client.get("/admin/tenants", headers=admin).status_code == 403

    def test_create_and_login_as_admin(self, client, root) -> None:
        created = self._create(client, root, admin_name="Ada Lovelace")
        tenant_id = created["tenant"]["tenant_id"]
        credentials = created["admin"]

        login = client.post(
            "/auth/login",
            json={"email": credentials["email"], "password": credentials["temp_password"], "tenant_id": tenant_id},
        )
        assert login.status_code == 200

        headers = {"Authorization": f"Bearer {login.json()['access_token']}"}
        me = client.get("/auth/me", headers=headers).json()
        assert me["roles"] == ["tenant_admin"]
        assert me["tenant_id"] == tenant_id

    def test_conflict(self, client, root) -> None:
        self._create(client, root)

        response = client.post(
            "/admin/tenants",
            headers=root,
            json={"name": "Other", "subdomain": "acme", "admin_email": "x@y.io"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "Subdomain already in use"

    def test_validation(self, client, root) -> None:
        response = client.post(
            "/admin/tenants",
            headers=root,
            json={"name": "Acme", "subdomain": "www", "admin_email": "ops@acme.io"},
        )
        assert response.status_code == 400

    def test_missing_tenant(self, client, root) -> None:
        assert client.get("/admin/tenants/missing", headers=root).status_code == 404

    def test_list_and_lifecycle(self, client, root) -> None:
        tenant_id = self._create(client, root)["tenant"]["tenant_id"]
        self._create(client, root, name="Globex", subdomain="globex", admin_email="ops@globex.io")

        listing = client.get("/admin/tenants?limit=1", headers=root).json()
        assert listing["pagination"] == {"page": 1, "limit": 1, "total": 2, "total_pages": 2}

        suspended = client.post(f"/admin/tenants/{tenant_id}/suspend", headers=root, json={"reason": "audit"})
        assert suspended.json()["status"] == "suspended"
        assert client.get("/admin/tenants?status=suspended", headers=root).json()["pagination"]["total"] == 1

        activated = client.post(f"/admin/tenants/{tenant_id}/activate", headers=root)
        assert activated.json()["status"] == "active"

        updated = client.put(f"/admin/tenants/{tenant_id}", headers=root, json={"description": "Talent agency"})
        assert updated.json()["description"] == "Talent agency"

        deleted = client.delete(f"/admin/tenants/{tenant_id}", headers=root)
        assert deleted.json() == {"tenant_id": tenant_id, "deleted": True, "soft": True}
        assert client.get(f"/admin/tenants/{tenant_id}", headers=root).json()["status"] == "deleted"

    def test_bad_page_param(self, client, root) -> None:
        assert client.get("/admin/tenants?page=first", headers=root).status_code == 400

    def test_settings_features_subscription(self, client, root) -> None:
        tenant_id = self._create(client, root)["tenant"]["tenant_id"]
        base = f"/admin/tenants/{tenant_id}"

        settings = client.put(f"{base}/settings", headers=root, json={"currency": "EUR"}).json()["settings"]
        assert settings["currency"] == "EUR"
        assert client.get(f"{base}/settings", headers=root).json()["settings"]["currency"] == "EUR"

        assert client.post(f"{base}/features/bookings", headers=root).json() == {"features": ["bookings"]}
        assert client.get(f"{base}/features", headers=root).json() == {"features": ["bookings"]}
        assert client.delete(f"{base}/features/bookings", headers=root).json() == {"features": []}

        subscription = client.put(
            f"{base}/subscription", headers=root, json={"plan_id": "pro", "custom_limits": {"users": 5}}
        ).json()
        assert subscription["plan_id"] == "pro"
        assert subscription["limits"]["users"] == 5
        assert client.get(f"{base}/subscription", headers=root).json()["plan_id"] == "pro"

        stats = client.get(f"{base}/stats", headers=root).json()
        assert stats["users"] == {"count": 1, "limit": 5, "percentage": 20}

    def test_clone(self, client, root) -> None:
        tenant_id = self._create(client, root, features=["bookings"])["tenant"]["tenant_id"]

        response = client.post(
            f"/admin/tenants/{tenant_id}/clone",
            headers=root,
            json={"name": "Acme Clone", "subdomain": "acme-clone", "admin_email": "ops@clone.io"},
        )

        assert response.status_code == 201
        clone = response.json()["tenant"]
        assert clone["features"] == ["bookings"]
        assert clone["settings"]["cloned_from"] == tenant_id


class TestSavedSearchEndpoints:
    """Tests for /saved-searches."""

    def test_requires_entity_type(self, client, member) -> None:
        assert client.get("/saved-searches", headers=member).status_code == 400

    def test_create_and_list(self, client, member) -> None:
        created = client.post(
            "/saved-searches",
            headers=member,
            json={"entity_type": "users", "name": "Active", "filters": {"status": "active"}, "sort_by": "name"},
        )
        assert created.status_code == 201
        search_id = created.json()["id"]

        listing = client.get("/saved-searches?entity_type=users", headers=member).json()
        assert [s["name"] for s in listing["searches"]] == ["Active"]

        detail = client.get(f"/saved-searches/{search_id}?view=true", headers=member).json()
        assert detail["view_state"]["filters"] == {"status": ["active"]}
        assert detail["view_state"]["sort_config"] == {"column": "name", "direction": "asc"}

    def test_duplicate_name(self, client, member) -> None:
        body = {"entity_type": "users", "name": "Active", "filters": {}}
        client.post("/saved-searches", headers=member, json=body)

        response = client.post("/saved-searches", headers=member, json=body | {"name": "active"})

        assert response.status_code == 409

    def test_unknown_field(self, client, member) -> None:
        response = client.post(
            "/saved-searches", headers=member, json={"entity_type": "users", "name": "A", "user_id": "someone"}
        )
        assert response.status_code == 400

    def test_tenant_scope_needs_permission(self, client, admin, member) -> None:
        body = {"entity_type": "users", "name": "Team view", "filters": {}, "scope": "tenant"}

        assert client.post("/saved-searches", headers=member, json=body).status_code == 403
        assert client.post("/saved-searches", headers=admin, json=body).status_code == 201

        listing = client.get("/saved-searches?entity_type=users", headers=member).json()
        assert [s["name"] for s in listing["searches"]] == ["Team view"]

    def test_update_and_delete(self, client, member) -> None:
        search_id = client.post(
            "/saved-searches", headers=member, json={"entity_type": "users", "name": "Active", "filters": {}}
        ).json()["id"]

        updated = client.put(f"/saved-searches/{search_id}", headers=member, json={"name": "Renamed"})
        assert updated.json()["name"] == "Renamed"

        assert client.delete(f"/saved-searches/{search_id}", headers=member).json() == {"id": search_id, "deleted": True}
        assert client.get(f"/saved-searches/{search_id}", headers=member).status_code == 404

    def test_other_users_search_hidden(self, client, admin, member) -> None:
        search_id = client.post(
            "/saved-searches", headers=admin, json={"entity_type": "users", "name": "Mine", "filters": {}}
        ).json()["id"]

        assert client.get(f"/saved-searches/{search_id}", headers=member).status_code == 404
        assert client.put(f"/saved-searches/{search_id}", headers=member, json={"name": "x"}).status_code == 404

    def test_invalid_id(self, client, member) -> None:
        assert client.get("/saved-searches/abc", headers=member).status_code == 400

    def test_override_and_promote(self, client, admin, member) -> None:
        parent_id = client.post(
            "/saved-searches",
            headers=admin,
            json={"entity_type": "users", "name": "Team view", "filters": {"role": "talent"}, "scope": "tenant"},
        ).json()["id"]

        override = client.post(f"/saved-searches/{parent_id}/override", headers=member)
        assert override.status_code == 201
        assert override.json()["name"] == "Team view (Custom)"
        assert override.json()["parent_search_id"] == parent_id

        mine = client.post(
            "/saved-searches", headers=member, json={"entity_type": "users", "name": "Shortlist", "filters": {}}
        ).json()["id"]
        assert client.post(f"/saved-searches/{mine}/promote", headers=member).status_code == 403

        promoted = client.post(f"/saved-searches/{mine}/promote", headers=admin)
        assert promoted.status_code == 200
        assert promoted.json()["scope"] == "tenant"

    def test_admin_listing(self, client, admin, member) -> None:
        for name in ("b", "a"):
            client.post("/saved-searches", headers=member, json={"entity_type": "users", "name": name, "filters": {}})

        assert client.get("/admin/saved-searches", headers=member).status_code == 403

        response = client.get("/admin/saved-searches?sort_by=name&sort_order=asc", headers=admin)
        assert response.status_code == 200
        assert [s["name"] for s in response.json()["items"]] == ["a", "b"]

        assert client.get("/admin/saved-searches?sort_by=password", headers=admin).status_code == 400

    def test_admin_create_for_member(self, client, platform, admin, member) -> None:
        member_id = client.get("/auth/me", headers=member).json()["user_id"]
        body = {"user_id": member_id, "entity_type": "users", "name": "Hot leads", "filters": {"status": "new"}}

        assert client.post("/admin/saved-searches", headers=member, json=body).status_code == 403

        response = client.post("/admin/saved-searches", headers=admin, json=body)
        assert response.status_code == 201
        assert response.json()["user_id"] == member_id
        assert response.json()["tenant_id"] == "t1"

        listing = client.get("/saved-searches?entity_type=users", headers=member).json()
        assert [s["name"] for s in listing["searches"]] == ["Hot leads"]

    def test_admin_create_for_other_tenant_user(self, client, platform, admin) -> None:
        outsider = client.portal.call(platform.auth.create_user, "ops@globex.io", PASSWORD, "t2")

        response = client.post(
            "/admin/saved-searches",
            headers=admin,
            json={"user_id": outsider.id, "entity_type": "users", "name": "Hot leads"},
        )

        assert response.status_code == 403


class TestTenantContext:
    """Tests for tenant resolution across the full stack."""

    def test_cross_tenant_header_denied(self, client, admin) -> None:
        response = client.get("/permissions/me", headers=admin | {"X-Tenant-ID": "t2"})
        assert response.status_code == 403

    def test_super_admin_acts_in_any_tenant(self, client, root) -> None:
        response = client.get("/permissions/me", headers=root | {"X-Tenant-ID": "t2"})

        assert response.status_code == 200
        assert response.json()["tenant_id"] == "t2"
        assert response.json()["roles"] == ["super_admin"]
