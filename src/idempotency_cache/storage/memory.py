"""In-memory storage adapter.

This module provides the in-process implementation of the IdempotencyStore
contract. Entries live in a dictionary owned by the adapter instance and are
discarded with it.

The MemoryStorageAdapter is suitable for:
    - Single-instance deployments
    - Development and testing

For clustered deployments use one of the delegating adapters in
``idempotency_cache.storage.delegating``.

Concurrency:
    All operations complete without awaiting, so under asyncio each one runs
    atomically with respect to other coroutines. No locks are held and no
    per-key mutex exists.

Expiry:
    Each entry records its expiry time from the injected clock. Expired
    entries read as absent and are dropped on access. ``cleanup_expired()``
    sweeps the rest (see ``idempotency_cache.storage.cleanup``).

Examples:
    Basic usage::

        from idempotency_cache.storage.memory import MemoryStorageAdapter

        adapter = MemoryStorageAdapter(max_entries=10000)
        await adapter.put("payment-123", snapshot, ttl_seconds=86400)
        cached = await adapter.get("payment-123")
"""

import time
from collections.abc import Callable

from idempotency_cache.models import CachedResponse


class MemoryStorageAdapter:
    """In-memory storage adapter with TTL expiry.

    Attributes:
        max_entries: Capacity bound, or None for unbounded. When a new key
            would exceed it, the oldest inserted entry is evicted.
        _store: Dictionary mapping keys to ``(expires_at, response)``.
        _clock: Monotonic time source in seconds.
    """

    def __init__(
        self,
        max_entries: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize a new in-memory storage adapter.

        Args:
            max_entries: Optional capacity bound.
            clock: Time source returning seconds. Injectable for tests.
        """
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.max_entries = max_entries
        self._clock = clock
        self._store: dict[str, tuple[float, CachedResponse]] = {}

    def __len__(self) -> int:
        return len(self._store)

    async def get(self, key: str) -> CachedResponse | None:
        """Retrieve a cached response by key.

        Args:
            key: The idempotency key to look up.

        Returns:
            The cached response if present and unexpired, None otherwise.
        """
        entry = self._store.get(key)
        if entry is None:
            return None

        expires_at, response = entry
        if expires_at <= self._clock():
            del self._store[key]
            return None

        return response

    async def put(self, key: str, response: CachedResponse, ttl_seconds: int) -> None:
        """Store a response, replacing any existing entry (last write wins).

        Args:
            key: The idempotency key.
            response: The snapshot to store.
            ttl_seconds: Lifetime of the entry in seconds.
        """
        expires_at = self._clock() + ttl_seconds

        # Re-inserting moves the key to the end of the eviction order
        self._store.pop(key, None)
        self._store[key] = (expires_at, response)

        if self.max_entries is not None:
            while len(self._store) > self.max_entries:
                oldest = next(iter(self._store))
                del self._store[oldest]

    async def cleanup_expired(self) -> int:
        """Remove expired entries from storage.

        Returns:
            The number of entries removed.
        """
        now = self._clock()
        expired_keys = [key for key, (expires_at, _) in self._store.items() if expires_at <= now]

        for key in expired_keys:
            del self._store[key]

        return len(expired_keys)

    def clear(self) -> None:
        """Drop every entry."""
        self._store.clear()
