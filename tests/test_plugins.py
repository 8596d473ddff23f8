"""Tests for entry-point backend discovery."""

import pytest

from mono_core.backends.database.sqlite import SQLiteDatabase
from mono_core.backends.kv.memory import MemoryKVStore
from mono_core.plugins import create_database, create_kv_store, discover_backends, get_backend


class TestPlugins:
    """Tests for backend discovery."""

    def test_discovers_registered_backends(self):
        assert {"memory", "redis"} <= set(discover_backends("kv"))
        assert "sqlite" in discover_backends("database")

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Available"):
            get_backend("kv", "memcached")

    async def test_create_backends(self):
        kv = create_kv_store("memory", redis_url=None, key_prefix="mono")
        db = create_database("sqlite", path=":memory:")

        assert isinstance(kv, MemoryKVStore)
        assert isinstance(db, SQLiteDatabase)
        await db.close()
