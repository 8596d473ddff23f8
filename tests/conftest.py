"""Pytest configuration and fixtures."""

import pytest

from mono_core.auth.jwt_utils import JWTKeyPair, generate_key_pair
from mono_core.auth.manager import AuthManager
from mono_core.backends.database.sqlite import SQLiteDatabase
from mono_core.backends.kv.memory import MemoryKVStore
from mono_core.config import AuthConfig
from mono_core.permissions.manager import PermissionManager
from mono_core.permissions.seeder import seed_permissions
from mono_core.permissions.service import PermissionService


@pytest.fixture
def sample_config_dict():
    """Sample configuration dictionary for testing."""
    return {
        "auth": {
            "password": {"min_length": 8, "require_special": False},
            "jwt": {"issuer": "mono-test", "expiry_minutes": 5},
        },
        "rbac": {"cache_ttl_seconds": 60},
        "storage": {
            "kv": {"backend": "memory"},
            "database": {"backend": "sqlite", "path": ":memory:"},
        },
        "tenants": {"cache_ttl_seconds": 30},
    }


@pytest.fixture(scope="session")
def key_pair() -> JWTKeyPair:
    """One RSA key pair per run; generation is slow."""
    return generate_key_pair(key_id="test-key")


@pytest.fixture
async def db():
    database = SQLiteDatabase(path=":memory:")
    yield database
    await database.close()


@pytest.fixture
async def kv():
    store = MemoryKVStore()
    yield store
    await store.close()


@pytest.fixture
async def permission_manager(db) -> PermissionManager:
    """Permission manager with schema and the default catalogue seeded."""
    manager = PermissionManager(db)
    await manager.initialize_schema()
    await seed_permissions(manager)
    return manager


@pytest.fixture
def permission_service(permission_manager, kv) -> PermissionService:
    return PermissionService(permission_manager, kv, ttl_seconds=60)


@pytest.fixture
async def auth_manager(db, key_pair, permission_manager) -> AuthManager:
    config = AuthConfig.model_validate({
        "password": {"min_length": 8, "require_special": False},
        "jwt": {"issuer": "mono-test"},
    })
    manager = AuthManager(config, db, key_pair, permission_manager)
    await manager.initialize_schema()
    return manager
