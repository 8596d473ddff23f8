"""Redis key-value storage."""

from typing import Any

import redis.asyncio as redis

from mono_core.exceptions import ConfigError
from mono_core.observability import get_logger

logger = get_logger(__name__)


class RedisKVStore:
    """Redis-backed key-value store.

    Shares cached permissions between API processes. Keys are namespaced
    with key_prefix so several deployments can share one Redis database.
    """

    def __init__(
        self,
        redis_url: str | None = None,
        key_prefix: str = "mono",
        client: "redis.Redis | None" = None,
        **kwargs: Any,
    ) -> None:
        """Initialize Redis KV store.

        Args:
            redis_url: Connection URL (redis://host:port/db)
            key_prefix: Namespace prepended to every key
            client: Pre-built client (takes precedence over redis_url)
            **kwargs: Ignored (for compatibility with other backends)
        """
        if client is None:
            if not redis_url:
                raise ConfigError("redis_url is required for the redis KV backend")
            client = redis.from_url(redis_url)

        self._client = client
        self.key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}" if self.key_prefix else key

    def _strip(self, key: bytes | str) -> str:
        if isinstance(key, bytes):
            key = key.decode("utf-8")
        if self.key_prefix and key.startswith(f"{self.key_prefix}:"):
            return key[len(self.key_prefix) + 1:]
        return key

    async def get(self, key: str) -> bytes | None:
        """Get a value by key."""
        value = await self._client.get(self._key(key))
        if isinstance(value, str):
            return value.encode("utf-8")
        return value

    async def set(self, key: str, value: bytes, ttl: int | None = None) -> None:
        """Set a value with optional TTL in seconds."""
        if ttl:
            await self._client.setex(self._key(key), ttl, value)
        else:
            await self._client.set(self._key(key), value)

    async def delete(self, key: str) -> None:
        """Delete a key."""
        await self._client.delete(self._key(key))

    async def list(self, prefix: str) -> list[str]:
        """List keys matching a prefix (SCAN, never KEYS)."""
        keys = []
        async for key in self._client.scan_iter(match=f"{self._key(prefix)}*"):
            keys.append(self._strip(key))
        return keys

    async def close(self) -> None:
        """Close the connection pool."""
        await self._client.aclose()
        logger.debug("Redis KV store closed")
