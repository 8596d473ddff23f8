"""Tests for server middleware."""

import pytest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from mono_core.auth.jwt_utils import create_access_token, create_refresh_token, generate_key_pair
from mono_core.observability import LogContext
from mono_core.server.middleware import JWTAuthMiddleware, TenantMiddleware


class StubPermissions:
    """Grants the cross-tenant permission to a fixed set of users."""

    def __init__(self, allowed_users: set[str]) -> None:
        self.allowed_users = allowed_users
        self.calls: list[tuple[str, str]] = []

    async def has_permission(self, user, permission, tenant_id=None) -> bool:
        self.calls.append((user.user_id, permission))
        return user.user_id in self.allowed_users


async def handler(request: Request) -> JSONResponse:
    """Echo request state."""
    return JSONResponse({
        "tenant_id": getattr(request.state, "tenant_id", None),
        "user_id": getattr(request.state, "user_id", None),
        "roles": getattr(request.state, "roles", []),
        "request_id": LogContext.current().request_id,
    })


def make_app(key_pair, permissions=None) -> Starlette:
    return Starlette(
        routes=[Route("/test", handler), Route("/health", handler)],
        middleware=[
            Middleware(JWTAuthMiddleware, public_key=key_pair.public_key, issuer="mono-test"),
            Middleware(TenantMiddleware, permission_service=permissions),
        ],
    )


def bearer(key_pair, user_id="user-1", tenant_id="tenant-1", roles=None, **kwargs) -> dict[str, str]:
    token = create_access_token(
        user_id=user_id,
        tenant_id=tenant_id,
        private_key=key_pair.private_key,
        key_id=key_pair.key_id,
        issuer=kwargs.pop("issuer", "mono-test"),
        roles=roles or [],
        **kwargs,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(key_pair) -> TestClient:
    return TestClient(make_app(key_pair))


class TestJWTAuthMiddleware:
    """Tests for JWTAuthMiddleware."""

    def test_public_path_is_anonymous(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["user_id"] is None

    def test_missing_header(self, client: TestClient) -> None:
        response = client.get("/test")

        assert response.status_code == 401
        assert "Authorization" in response.json()["error"]

    def test_non_bearer_header(self, client: TestClient) -> None:
        response = client.get("/test", headers={"Authorization": "Basic dXNlcjpwYXNz"})
        assert response.status_code == 401

    def test_valid_token_populates_state(self, client: TestClient, key_pair) -> None:
        response = client.get(
            "/test",
            headers=bearer(key_pair, roles=["tenant_admin"]) | {"X-Request-ID": "req-42"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "tenant_id": "tenant-1",
            "user_id": "user-1",
            "roles": ["tenant_admin"],
            "request_id": "req-42",
        }

    def test_token_from_other_key(self, client: TestClient) -> None:
        other = generate_key_pair(key_id="other")

        response = client.get("/test", headers=bearer(other))

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid token"

    def test_wrong_issuer(self, client: TestClient, key_pair) -> None:
        response = client.get("/test", headers=bearer(key_pair, issuer="someone-else"))
        assert response.status_code == 401

    def test_expired_token(self, client: TestClient, key_pair) -> None:
        response = client.get("/test", headers=bearer(key_pair, expiry_minutes=-1))

        assert response.status_code == 401
        assert response.json()["error"] == "Token has expired"

    def test_refresh_token_rejected(self, client: TestClient, key_pair) -> None:
        token = create_refresh_token("user-1", "tenant-1", key_pair.private_key, key_pair.key_id, "mono-test")

        response = client.get("/test", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid token type"


class TestTenantMiddleware:
    """Tests for TenantMiddleware."""

    def test_defaults_to_token_tenant(self, client: TestClient, key_pair) -> None:
        response = client.get("/test", headers=bearer(key_pair))
        assert response.json()["tenant_id"] == "tenant-1"

    def test_same_tenant_header(self, client: TestClient, key_pair) -> None:
        response = client.get("/test", headers=bearer(key_pair) | {"X-Tenant-ID": "tenant-1"})
        assert response.status_code == 200

    def test_cross_tenant_denied(self, client: TestClient, key_pair) -> None:
        response = client.get("/test", headers=bearer(key_pair) | {"X-Tenant-ID": "tenant-2"})

        assert response.status_code == 403
        assert response.json()["error"] == "Not authorized to access this tenant"

    def test_cross_tenant_query_param_denied(self, client: TestClient, key_pair) -> None:
        response = client.get("/test?tenant_id=tenant-2", headers=bearer(key_pair))
        assert response.status_code == 403

    def test_super_admin_crosses_tenants(self, client: TestClient, key_pair) -> None:
        response = client.get(
            "/test",
            headers=bearer(key_pair, tenant_id=None, roles=["super_admin"]) | {"X-Tenant-ID": "tenant-2"},
        )

        assert response.status_code == 200
        assert response.json()["tenant_id"] == "tenant-2"

    def test_header_beats_query_param(self, key_pair) -> None:
        client = TestClient(make_app(key_pair))

        response = client.get(
            "/test?tenant_id=tenant-3",
            headers=bearer(key_pair, roles=["super_admin"]) | {"X-Tenant-ID": "tenant-2"},
        )

        assert response.json()["tenant_id"] == "tenant-2"

    def test_permission_grants_cross_tenant(self, key_pair) -> None:
        permissions = StubPermissions({"auditor"})
        client = TestClient(make_app(key_pair, permissions))

        allowed = client.get("/test", headers=bearer(key_pair, user_id="auditor") | {"X-Tenant-ID": "tenant-2"})
        denied = client.get("/test", headers=bearer(key_pair, user_id="other") | {"X-Tenant-ID": "tenant-2"})

        assert allowed.status_code == 200
        assert denied.status_code == 403
        assert permissions.calls == [("auditor", "tenants.read.global"), ("other", "tenants.read.global")]

    def test_match_not_enforced(self, key_pair) -> None:
        app = Starlette(
            routes=[Route("/test", handler)],
            middleware=[
                Middleware(JWTAuthMiddleware, public_key=key_pair.public_key),
                Middleware(TenantMiddleware, enforce_tenant_match=False),
            ],
        )
        client = TestClient(app)

        response = client.get("/test", headers=bearer(key_pair) | {"X-Tenant-ID": "tenant-9"})

        assert response.json()["tenant_id"] == "tenant-9"

    def test_without_auth_middleware(self) -> None:
        app = Starlette(routes=[Route("/test", handler)], middleware=[Middleware(TenantMiddleware)])
        client = TestClient(app)

        response = client.get("/test", headers={"X-Tenant-ID": "tenant-123"})

        assert response.status_code == 200
        assert response.json()["tenant_id"] == "tenant-123"
