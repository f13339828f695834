"""Unit tests for create_storage."""

import pytest

from idempotency_cache.config import IdempotencyConfig
from idempotency_cache.storage import (
    CacheManagerStorageAdapter,
    DiskStorageAdapter,
    HazelcastStorageAdapter,
    MemoryStorageAdapter,
    RedisStorageAdapter,
    create_storage,
)


def test_memory_is_default() -> None:
    storage = create_storage(IdempotencyConfig(max_entries=5))

    assert isinstance(storage, MemoryStorageAdapter)
    assert storage.max_entries == 5


@pytest.mark.parametrize(
    ("name", "adapter_class"),
    [
        ("redis", RedisStorageAdapter),
        ("hazelcast", HazelcastStorageAdapter),
        ("disk", DiskStorageAdapter),
        ("cache_manager", CacheManagerStorageAdapter),
    ],
)
def test_delegating_backends(name, adapter_class) -> None:
    config = IdempotencyConfig(storage_adapter=name, key_prefix="svc:")

    storage = create_storage(config, get=lambda key: None, put=lambda key, value, ttl: True)

    assert type(storage) is adapter_class
    assert storage.key_prefix == "svc:"


@pytest.mark.parametrize("missing", ["get", "put"])
def test_delegating_backend_requires_functions(missing) -> None:
    functions = {"get": lambda key: None, "put": lambda key, value, ttl: True}
    del functions[missing]

    with pytest.raises(ValueError, match="requires both get and put"):
        create_storage(IdempotencyConfig(storage_adapter="redis"), **functions)


@pytest.mark.asyncio
async def test_delegating_backend_round_trip(sample_response) -> None:
    data = {}
    storage = create_storage(
        IdempotencyConfig(storage_adapter="redis"),
        get=data.get,
        put=lambda key, value, ttl: data.__setitem__(key, value) or True,
    )

    await storage.put("abc", sample_response, 60)

    assert list(data) == ["idempotency:abc"]
    assert await storage.get("abc") == sample_response
