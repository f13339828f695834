"""Storage adapters for the idempotency cache.

All adapters implement the IdempotencyStore protocol defined in base.py.

Available Adapters:
    - MemoryStorageAdapter: in-process dictionary with TTL expiry
    - RedisStorageAdapter: clustered cache holding JSON bytes
    - HazelcastStorageAdapter: distributed map holding objects
    - DiskStorageAdapter: disk-persistent local cache
    - CacheManagerStorageAdapter: unified multi-backend cache manager
    - FunctionStorageAdapter: any pair of get/put callables
"""

from idempotency_cache.config import IdempotencyConfig
from idempotency_cache.storage.base import IdempotencyStore
from idempotency_cache.storage.delegating import (
    CacheManagerStorageAdapter,
    DiskStorageAdapter,
    FunctionStorageAdapter,
    GetFunction,
    HazelcastStorageAdapter,
    PutFunction,
    RedisStorageAdapter,
)
from idempotency_cache.storage.memory import MemoryStorageAdapter

_DELEGATING_ADAPTERS: dict[str, type[FunctionStorageAdapter]] = {
    "redis": RedisStorageAdapter,
    "hazelcast": HazelcastStorageAdapter,
    "disk": DiskStorageAdapter,
    "cache_manager": CacheManagerStorageAdapter,
}


def create_storage(
    config: IdempotencyConfig,
    get: GetFunction | None = None,
    put: PutFunction | None = None,
) -> IdempotencyStore:
    """Build the backend named by ``config.storage_adapter``.

    The memory backend is sized by ``config.max_entries``. Every other
    backend delegates to the supplied ``get``/``put`` functions and
    namespaces its keys with ``config.key_prefix``.

    Args:
        config: Middleware configuration.
        get: Read function for delegating backends.
        put: Write function for delegating backends.

    Returns:
        A storage adapter.

    Raises:
        ValueError: If a delegating backend is selected without both functions.

    Examples:
        >>> storage = create_storage(IdempotencyConfig())
        >>> isinstance(storage, MemoryStorageAdapter)
        True
    """
    if config.storage_adapter == "memory":
        return MemoryStorageAdapter(max_entries=config.max_entries)

    if get is None or put is None:
        raise ValueError(
            f"storage_adapter {config.storage_adapter!r} requires both get and put functions"
        )

    adapter_class = _DELEGATING_ADAPTERS[config.storage_adapter]
    return adapter_class(get, put, key_prefix=config.key_prefix)


__all__ = [
    "IdempotencyStore",
    "MemoryStorageAdapter",
    "FunctionStorageAdapter",
    "RedisStorageAdapter",
    "HazelcastStorageAdapter",
    "DiskStorageAdapter",
    "CacheManagerStorageAdapter",
    "create_storage",
]
