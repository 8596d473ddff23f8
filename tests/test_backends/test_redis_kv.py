"""Tests for the Redis KV backend against an in-process fake client."""

import pytest

from mono_core.backends.kv.redis import RedisKVStore
from mono_core.exceptions import ConfigError


class FakeRedis:
    """Just enough of redis.asyncio.Redis for RedisKVStore."""

    def __init__(self):
        self.data: dict[str, bytes] = {}
        self.ttls: dict[str, int] = {}
        self.closed = False

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value

    async def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, key):
        self.data.pop(key, None)

    async def scan_iter(self, match):
        prefix = match.rstrip("*")
        for key in list(self.data):
            if key.startswith(prefix):
                yield key.encode("utf-8")

    async def aclose(self):
        self.closed = True


@pytest.fixture
def client():
    return FakeRedis()


@pytest.fixture
def store(client):
    return RedisKVStore(client=client, key_prefix="mono")


class TestRedisKVStore:
    """Tests for RedisKVStore."""

    def test_requires_url_without_client(self):
        with pytest.raises(ConfigError):
            RedisKVStore()

    async def test_keys_are_namespaced(self, store, client):
        await store.set("permissions:u1", b"grants")

        assert client.data == {"mono:permissions:u1": b"grants"}
        assert await store.get("permissions:u1") == b"grants"

    async def test_ttl_uses_setex(self, store, client):
        await store.set("permissions:u1", b"grants", ttl=300)
        assert client.ttls["mono:permissions:u1"] == 300

    async def test_str_values_encoded(self, store, client):
        client.data["mono:key"] = "text"
        assert await store.get("key") == b"text"

    async def test_list_strips_prefix(self, store):
        await store.set("permissions:u1:t1", b"a")
        await store.set("permissions:u1:t2", b"b")
        await store.set("tenants:t1", b"c")

        keys = await store.list("permissions:u1:")

        assert sorted(keys) == ["permissions:u1:t1", "permissions:u1:t2"]

    async def test_delete(self, store):
        await store.set("key", b"value")
        await store.delete("key")
        assert await store.get("key") is None

    async def test_no_prefix(self, client):
        store = RedisKVStore(client=client, key_prefix="")
        await store.set("key", b"value")
        assert "key" in client.data

    async def test_close(self, store, client):
        await store.close()
        assert client.closed
