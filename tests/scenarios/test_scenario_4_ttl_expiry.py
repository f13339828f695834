"""Scenario 4: TTL Expiry

- A retry within the TTL is replayed
- Once the TTL elapses the entry is gone and the next request executes again
- The re-execution is cached afresh with a new TTL
- The background sweep reclaims expired entries
"""

import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from idempotency_cache.adapters.asgi import ASGIIdempotencyMiddleware
from idempotency_cache.config import IdempotencyConfig
from idempotency_cache.storage.cleanup import start_cleanup_task, stop_cleanup_task
from idempotency_cache.storage.memory import MemoryStorageAdapter

TTL = 60


@pytest.fixture
def storage(clock) -> MemoryStorageAdapter:
    return MemoryStorageAdapter(clock=clock)


@pytest.fixture
def calls() -> list[int]:
    return []


@pytest.fixture
def client(storage, calls) -> TestClient:
    app = FastAPI()
    app.add_middleware(
        ASGIIdempotencyMiddleware,
        storage=storage,
        config=IdempotencyConfig(ttl_seconds=TTL, await_store_writes=True),
    )

    @app.post("/orders", status_code=201)
    async def create_order():
        calls.append(len(calls) + 1)
        return {"call": calls[-1]}

    return TestClient(app)


class TestExpiry:
    def test_replayed_within_ttl(self, client, clock, calls):
        headers = {"Idempotency-Key": "order-1"}

        client.post("/orders", headers=headers)
        clock.advance(TTL - 1)
        replay = client.post("/orders", headers=headers)

        assert calls == [1]
        assert replay.headers["idempotent-replay"] == "true"

    def test_executes_again_after_ttl(self, client, clock, calls):
        headers = {"Idempotency-Key": "order-1"}

        client.post("/orders", headers=headers)
        clock.advance(TTL)
        fresh = client.post("/orders", headers=headers)

        assert calls == [1, 2]
        assert fresh.json() == {"call": 2}
        assert "idempotent-replay" not in fresh.headers

    def test_re_execution_is_cached_with_new_ttl(self, client, clock, calls):
        headers = {"Idempotency-Key": "order-1"}

        client.post("/orders", headers=headers)
        clock.advance(TTL + 5)
        client.post("/orders", headers=headers)
        clock.advance(TTL - 1)
        replay = client.post("/orders", headers=headers)

        assert calls == [1, 2]
        assert replay.json() == {"call": 2}

    def test_keys_expire_independently(self, client, clock, calls):
        client.post("/orders", headers={"Idempotency-Key": "early"})
        clock.advance(30)
        client.post("/orders", headers={"Idempotency-Key": "late"})
        clock.advance(30)

        early = client.post("/orders", headers={"Idempotency-Key": "early"})
        late = client.post("/orders", headers={"Idempotency-Key": "late"})

        assert "idempotent-replay" not in early.headers
        assert late.headers["idempotent-replay"] == "true"
        assert calls == [1, 2, 3]


@pytest.mark.asyncio
async def test_sweep_reclaims_expired_entries(storage, clock, sample_response):
    for n in range(5):
        await storage.put(f"k{n}", sample_response, TTL)
    await storage.put("fresh", sample_response, TTL * 10)
    clock.advance(TTL)

    task = await start_cleanup_task(storage, interval_seconds=300)
    await asyncio.sleep(0.01)
    await stop_cleanup_task(task)

    assert len(storage) == 1
    assert await storage.get("fresh") == sample_response
