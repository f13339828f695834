"""Scenario 2: Bypass and Key Validation

- Methods outside enabled_methods are never intercepted, even with a key
- Requests without the key header pass through and are never cached
- A blank key is rejected with 400 and the handler is not invoked
- A disabled middleware forwards everything
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from idempotency_cache.adapters.asgi import ASGIIdempotencyMiddleware
from idempotency_cache.config import IdempotencyConfig
from idempotency_cache.storage.memory import MemoryStorageAdapter


def build_app(storage: MemoryStorageAdapter, config: IdempotencyConfig, calls: list[str]) -> FastAPI:
    app = FastAPI()
    app.add_middleware(ASGIIdempotencyMiddleware, storage=storage, config=config)

    @app.get("/orders/{order_id}")
    async def get_order(order_id: str):
        calls.append("get")
        return {"id": order_id, "call": len(calls)}

    @app.post("/orders", status_code=201)
    async def create_order():
        calls.append("post")
        return {"call": len(calls)}

    return app


@pytest.fixture
def storage() -> MemoryStorageAdapter:
    return MemoryStorageAdapter()


@pytest.fixture
def calls() -> list[str]:
    return []


@pytest.fixture
def client(storage, calls) -> TestClient:
    return TestClient(build_app(storage, IdempotencyConfig(await_store_writes=True), calls))


class TestBypass:
    def test_get_with_key_is_not_intercepted(self, client, storage, calls):
        headers = {"Idempotency-Key": "abc"}

        first = client.get("/orders/1", headers=headers)
        second = client.get("/orders/1", headers=headers)

        assert calls == ["get", "get"]
        assert first.json()["call"] == 1
        assert second.json()["call"] == 2
        assert "idempotent-replay" not in second.headers
        assert len(storage) == 0

    def test_get_with_blank_key_is_not_rejected(self, client, calls):
        response = client.get("/orders/1", headers={"Idempotency-Key": ""})

        assert response.status_code == 200
        assert calls == ["get"]

    def test_post_without_key_executes_every_time(self, client, storage, calls):
        first = client.post("/orders")
        second = client.post("/orders")

        assert first.status_code == second.status_code == 201
        assert calls == ["post", "post"]
        assert len(storage) == 0

    def test_method_not_enabled(self, storage, calls):
        config = IdempotencyConfig(enabled_methods=["PUT"], await_store_writes=True)
        client = TestClient(build_app(storage, config, calls))

        client.post("/orders", headers={"Idempotency-Key": "abc"})
        client.post("/orders", headers={"Idempotency-Key": "abc"})

        assert calls == ["post", "post"]
        assert len(storage) == 0

    def test_disabled_middleware(self, storage, calls):
        config = IdempotencyConfig(enabled=False)
        client = TestClient(build_app(storage, config, calls))

        client.post("/orders", headers={"Idempotency-Key": "abc"})
        response = client.post("/orders", headers={"Idempotency-Key": ""})

        assert response.status_code == 201
        assert calls == ["post", "post"]


class TestKeyValidation:
    @pytest.mark.parametrize("key", ["", "   "])
    def test_blank_key_rejected(self, client, storage, calls, key):
        response = client.post("/orders", headers={"Idempotency-Key": key})

        assert response.status_code == 400
        assert response.headers["content-type"] == "text/plain; charset=utf-8"
        assert response.text == "Idempotency-Key header must not be empty"
        assert calls == []
        assert len(storage) == 0

    def test_rejection_does_not_affect_later_requests(self, client, calls):
        client.post("/orders", headers={"Idempotency-Key": ""})
        response = client.post("/orders", headers={"Idempotency-Key": "abc"})

        assert response.status_code == 201
        assert calls == ["post"]

    def test_custom_header(self, storage, calls):
        config = IdempotencyConfig(header_name="X-Idempotency-Key", await_store_writes=True)
        client = TestClient(build_app(storage, config, calls))

        client.post("/orders", headers={"X-Idempotency-Key": "abc"})
        replay = client.post("/orders", headers={"x-idempotency-key": "abc"})
        ignored = client.post("/orders", headers={"Idempotency-Key": "abc"})
        rejected = client.post("/orders", headers={"X-Idempotency-Key": " "})

        assert replay.headers["idempotent-replay"] == "true"
        assert "idempotent-replay" not in ignored.headers
        assert rejected.text == "X-Idempotency-Key header must not be empty"
        assert calls == ["post", "post"]
