"""Storage adapters that delegate to externally supplied cache operations.

Each adapter here is constructed from a read function and a write function
rather than a concrete client object, so the package never imports a
specific cache library. The adapter's job is limited to:

1. Prefixing keys with a namespace so a shared cache does not collide with
   unrelated usages.
2. Adapting the functions' argument and return shapes to the
   IdempotencyStore contract.
3. Wrapping every failure in StorageError.

The supplied functions may be plain callables or coroutine functions.

Examples:
    Redis via ``redis.asyncio``::

        import redis.asyncio as redis

        client = redis.Redis()
        storage = RedisStorageAdapter(
            get=client.get,
            put=lambda key, value, ttl: client.set(key, value, ex=ttl),
        )

    A disk-persistent local cache via ``diskcache``::

        import diskcache

        cache = diskcache.Cache("/var/cache/idempotency")
        storage = DiskStorageAdapter(
            get=cache.get,
            put=lambda key, value, ttl: cache.set(key, value, expire=ttl),
        )

    Any pair of callables::

        storage = FunctionStorageAdapter(get=my_get, put=my_put, key_prefix="orders:")
"""

import asyncio
import inspect
from collections.abc import Callable
from typing import Any

from idempotency_cache.config import DEFAULT_KEY_PREFIX
from idempotency_cache.exceptions import StorageError
from idempotency_cache.models import CachedResponse
from idempotency_cache.observability.logging import get_logger

logger = get_logger(__name__)

GetFunction = Callable[[str], Any]
PutFunction = Callable[[str, Any, int], Any]


class FunctionStorageAdapter:
    """IdempotencyStore backed by a pair of injected functions.

    ``get(key)`` must return the stored value or None. ``put(key, value,
    ttl_seconds)`` must store the value with the given lifetime. Values are
    passed through unchanged; subclasses override :meth:`_encode`,
    :meth:`_decode` and :meth:`_check_write` to adapt other shapes.

    Attributes:
        key_prefix: Namespace prepended to every key.
        backend_name: Label used in logs and error messages.
    """

    backend_name = "function"

    def __init__(
        self,
        get: GetFunction,
        put: PutFunction,
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ) -> None:
        """Initialize the adapter.

        Args:
            get: Read function ``(key) -> value | None``.
            put: Write function ``(key, value, ttl_seconds) -> Any``.
            key_prefix: Namespace prepended to every key.
        """
        self._get = get
        self._put = put
        self.key_prefix = key_prefix

    def namespaced(self, key: str) -> str:
        """Return the backend key for an idempotency key."""
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> CachedResponse | None:
        """Read a cached response through the injected read function.

        Raises:
            StorageError: If the read function fails or returns a value that
                cannot be decoded.
        """
        backend_key = self.namespaced(key)
        try:
            raw = await self._call(self._get, backend_key)
        except Exception as e:
            raise StorageError(
                f"Failed to read {backend_key!r} from {self.backend_name} cache: {e}",
                cause=e,
            ) from e

        if raw is None:
            logger.debug("storage.miss", backend=self.backend_name, key=backend_key)
            return None

        try:
            response = self._decode(raw)
        except Exception as e:
            raise StorageError(
                f"Corrupt entry {backend_key!r} in {self.backend_name} cache: {e}",
                cause=e,
            ) from e

        logger.debug("storage.hit", backend=self.backend_name, key=backend_key)
        return response

    async def put(self, key: str, response: CachedResponse, ttl_seconds: int) -> None:
        """Write a cached response through the injected write function.

        Raises:
            StorageError: If the write function fails or reports failure.
        """
        backend_key = self.namespaced(key)
        try:
            result = await self._call(self._put, backend_key, self._encode(response), ttl_seconds)
        except Exception as e:
            raise StorageError(
                f"Failed to write {backend_key!r} to {self.backend_name} cache: {e}",
                cause=e,
            ) from e

        if not self._check_write(result):
            raise StorageError(f"{self.backend_name} cache rejected write of {backend_key!r}")

        logger.debug("storage.stored", backend=self.backend_name, key=backend_key)

    async def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        result = func(*args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _encode(self, response: CachedResponse) -> Any:
        return response

    def _decode(self, raw: Any) -> CachedResponse:
        if not isinstance(raw, CachedResponse):
            raise TypeError(f"expected CachedResponse, got {type(raw).__name__}")
        return raw

    def _check_write(self, result: Any) -> bool:
        # Functions that return nothing are assumed to have succeeded
        return result is not False


class RedisStorageAdapter(FunctionStorageAdapter):
    """Adapter for Redis-style clustered caches holding bytes.

    ``get(key)`` returns the raw payload (bytes or str) or None;
    ``put(key, payload, ttl_seconds)`` returns a truthy value on success,
    mirroring ``SET key value EX ttl`` which replies ``True``/``OK``.
    Values are stored with the JSON codec of :class:`CachedResponse`.
    """

    backend_name = "redis"

    def _encode(self, response: CachedResponse) -> bytes:
        return response.to_json()

    def _decode(self, raw: Any) -> CachedResponse:
        return CachedResponse.from_json(raw)

    def _check_write(self, result: Any) -> bool:
        return bool(result)


class HazelcastStorageAdapter(FunctionStorageAdapter):
    """Adapter for Hazelcast-style distributed maps holding objects.

    ``get(key)`` returns a CachedResponse or None; ``put(key, response,
    ttl_seconds)`` returns a bool, where False means the write was refused.
    """

    backend_name = "hazelcast"


class DiskStorageAdapter(FunctionStorageAdapter):
    """Adapter for a disk-persistent local cache.

    Disk caches such as ``diskcache`` expose blocking functions, so plain
    (non-coroutine) functions are run in a worker thread and never block the
    event loop. Values are CachedResponse objects; the cache is expected to
    pickle them.
    """

    backend_name = "disk"

    async def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        if inspect.iscoroutinefunction(func):
            return await func(*args)
        result = await asyncio.to_thread(func, *args)
        if inspect.isawaitable(result):
            result = await result
        return result


class CacheManagerStorageAdapter(FunctionStorageAdapter):
    """Adapter for a unified multi-backend cache manager.

    Cache managers front several providers (in-process, Redis, ...) behind
    one get/set pair and typically serialize values as text, so
    snapshots are stored as JSON strings.
    """

    backend_name = "cache_manager"

    def _encode(self, response: CachedResponse) -> str:
        return response.to_json().decode("utf-8")

    def _decode(self, raw: Any) -> CachedResponse:
        return CachedResponse.from_json(raw)
