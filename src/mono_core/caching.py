"""TTL-based caching with tag invalidation and single-flight deduplication.

Provides in-memory caching with configurable TTL, tag-based group
invalidation and protection against cache stampedes via single-flight
deduplication.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A cached value with expiration metadata."""

    value: T
    expires_at: float
    tags: frozenset[str] = frozenset()
    created_at: float = field(default_factory=time.time)

    @property
    def is_expired(self) -> bool:
        """Check if the entry has expired."""
        return time.time() > self.expires_at


class TTLCache(Generic[T]):
    """Async-safe TTL cache with tag invalidation.

    Example:
        cache = TTLCache[dict](ttl_seconds=300)
        await cache.set("tenant:42", data, tags=["tenant:42"])
        await cache.invalidate_tag("tenant:42")
    """

    def __init__(
        self,
        ttl_seconds: int = 300,
        max_size: int = 1000,
    ) -> None:
        """Initialize cache.

        Args:
            ttl_seconds: Time-to-live for cache entries
            max_size: Maximum number of entries before eviction
        """
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._cache: dict[str, CacheEntry[T]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> T | None:
        """Get a value from cache.

        Returns None if not found or expired.
        """
        entry = self._cache.get(key)
        if entry is None:
            return None
        if entry.is_expired:
            self._cache.pop(key, None)
            return None
        return entry.value

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        tags: list[str] | None = None,
    ) -> T:
        """Get value from cache or compute and store it.

        Args:
            key: Cache key
            factory: Async function to compute value if not cached
            tags: Tags to attach to a newly computed entry

        Returns:
            Cached or newly computed value
        """
        value = await self.get(key)
        if value is not None:
            return value

        value = await factory()
        await self.set(key, value, tags=tags)
        return value

    async def set(
        self,
        key: str,
        value: T,
        ttl: int | None = None,
        tags: list[str] | None = None,
    ) -> None:
        """Set a value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Optional TTL override
            tags: Optional tags for group invalidation
        """
        async with self._lock:
            if len(self._cache) >= self.max_size and key not in self._cache:
                self._evict_oldest()

            ttl_seconds = ttl if ttl is not None else self.ttl_seconds
            self._cache[key] = CacheEntry(
                value=value,
                expires_at=time.time() + ttl_seconds,
                tags=frozenset(tags or ()),
            )

    def _evict_oldest(self) -> None:
        """Evict the oldest 10% of entries (caller holds the lock)."""
        if not self._cache:
            return

        sorted_keys = sorted(
            self._cache.keys(),
            key=lambda k: self._cache[k].created_at,
        )
        evict_count = max(1, len(sorted_keys) // 10)
        for key in sorted_keys[:evict_count]:
            del self._cache[key]

    async def invalidate_tag(self, tag: str) -> int:
        """Drop every entry carrying the tag.

        Returns number of entries removed.
        """
        async with self._lock:
            keys = [key for key, entry in self._cache.items() if tag in entry.tags]
            for key in keys:
                del self._cache[key]
            return len(keys)

    @property
    def size(self) -> int:
        """Get current cache size."""
        return len(self._cache)


class SingleFlight:
    """Deduplicates concurrent calls to the same function with the same key.

    Only one call per key is in flight at a time. Other callers wait for
    the result of the first call.

    Example:
        sf = SingleFlight()

        async def load(user_id: str) -> list[str]:
            return await sf.do(user_id, lambda: fetch_grants(user_id))
    """

    def __init__(self) -> None:
        self._in_flight: dict[str, asyncio.Future[Any]] = {}

    async def do(
        self,
        key: str,
        func: Callable[[], Awaitable[T]],
    ) -> T:
        """Execute function, deduplicating concurrent calls.

        If another call with the same key is in progress, waits for
        that result instead of executing again.

        Args:
            key: Unique key for this operation
            func: Async function to execute

        Returns:
            Result from func (may be from another caller)
        """
        future = self._in_flight.get(key)
        if future is not None:
            return await asyncio.shield(future)

        future = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            result = await func()
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so an unobserved failure does not warn
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            self._in_flight.pop(key, None)
            if not future.done():
                future.cancel()

    @property
    def in_flight(self) -> int:
        """Number of keys currently being loaded."""
        return len(self._in_flight)
