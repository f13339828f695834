"""Storage contract for the idempotency cache.

This module defines the interface every backend implements so the middleware
can run the same protocol over an in-process map, a clustered cache, a
disk-persistent local cache, or a unified cache manager.

The contract is deliberately small: a read and a write. The middleware's own
read-before-execute check is the duplicate-suppression mechanism, so stores
are not asked for compare-and-set, leases, or locks.

Examples:
    Implementing a custom storage adapter::

        from idempotency_cache.exceptions import StorageError
        from idempotency_cache.models import CachedResponse

        class MyStorageAdapter:
            async def get(self, key: str) -> CachedResponse | None:
                try:
                    raw = await self.backend.get(key)
                except BackendError as e:
                    raise StorageError(f"Failed to read {key!r}", cause=e) from e
                return None if raw is None else CachedResponse.from_json(raw)

            async def put(self, key: str, response: CachedResponse, ttl_seconds: int) -> None:
                try:
                    await self.backend.set(key, response.to_json(), ttl_seconds)
                except BackendError as e:
                    raise StorageError(f"Failed to write {key!r}", cause=e) from e

Contract Requirements:
    1. **Absent vs. failed**: get() returns None when nothing is stored (or
       the entry expired) and raises StorageError when the backend failed.

    2. **Overwrites allowed**: put() on an existing key must succeed. With
       concurrent writers on one key the backend decides who wins;
       last-write-wins is acceptable.

    3. **TTL enforcement**: entries older than ttl_seconds must no longer be
       returned by get(). Expiry belongs to the backend, not the middleware.

    4. **Non-blocking**: both methods are coroutines and must not block the
       event loop.
"""

from typing import Protocol, runtime_checkable

from idempotency_cache.models import CachedResponse


@runtime_checkable
class IdempotencyStore(Protocol):
    """Protocol defining the interface for idempotency storage backends.

    Error Handling:
        Methods raise StorageError for backend failures. Implementations
        should NOT raise backend-specific exceptions directly.
    """

    async def get(self, key: str) -> CachedResponse | None:
        """Retrieve the cached response for a key.

        Args:
            key: The idempotency key to look up.

        Returns:
            The cached response if present and unexpired, None otherwise.

        Raises:
            StorageError: If the backend could not be read.
        """
        ...

    async def put(self, key: str, response: CachedResponse, ttl_seconds: int) -> None:
        """Store a response under a key, replacing any existing entry.

        Args:
            key: The idempotency key.
            response: The snapshot to store.
            ttl_seconds: Lifetime of the entry in seconds.

        Raises:
            StorageError: If the backend rejected or failed the write.
        """
        ...
