"""Scenario 5: Failure Handling

- A storage read failure is treated as a miss: the request executes, even
  when a custom store raises something other than StorageError
- A storage write failure never changes the response the client receives
- A handler that raises caches nothing, so the retry executes again
- A cancelled handler caches nothing
"""

import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from idempotency_cache.adapters.asgi import ASGIIdempotencyMiddleware
from idempotency_cache.config import IdempotencyConfig
from idempotency_cache.core.middleware import IdempotencyMiddleware
from idempotency_cache.core.replay import HandlerResponse
from idempotency_cache.exceptions import StorageError
from idempotency_cache.models import CachedResponse
from idempotency_cache.storage.delegating import RedisStorageAdapter
from idempotency_cache.storage.memory import MemoryStorageAdapter


class FlakyStorage(MemoryStorageAdapter):
    """Memory storage whose reads or writes can be switched to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_get = False
        self.fail_put = False

    async def get(self, key: str) -> CachedResponse | None:
        if self.fail_get:
            raise StorageError("read timed out", cause=TimeoutError())
        return await super().get(key)

    async def put(self, key: str, response: CachedResponse, ttl_seconds: int) -> None:
        if self.fail_put:
            raise StorageError("write refused")
        await super().put(key, response, ttl_seconds)


class UnwrappedErrorStorage(MemoryStorageAdapter):
    """Custom store that lets its client's own exceptions escape."""

    def __init__(self, fail_get: bool = False, fail_put: bool = False) -> None:
        super().__init__()
        self.fail_get = fail_get
        self.fail_put = fail_put

    async def get(self, key: str) -> CachedResponse | None:
        if self.fail_get:
            raise ConnectionError("connection reset by peer")
        return await super().get(key)

    async def put(self, key: str, response: CachedResponse, ttl_seconds: int) -> None:
        if self.fail_put:
            raise ConnectionError("connection reset by peer")
        await super().put(key, response, ttl_seconds)


@pytest.fixture
def storage() -> FlakyStorage:
    return FlakyStorage()


@pytest.fixture
def state() -> dict:
    return {"calls": 0, "fail": False}


def _charge_app(storage, state: dict) -> FastAPI:
    test_app = FastAPI()
    test_app.add_middleware(
        ASGIIdempotencyMiddleware,
        storage=storage,
        config=IdempotencyConfig(await_store_writes=True),
    )

    @test_app.post("/charges", status_code=201)
    async def create_charge():
        state["calls"] += 1
        if state["fail"]:
            raise RuntimeError("payment gateway unreachable")
        return {"charge": state["calls"]}

    return test_app


@pytest.fixture
def app(storage, state) -> FastAPI:
    return _charge_app(storage, state)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)


class TestStorageFailures:
    def test_read_failure_executes(self, client, storage, state):
        headers = {"Idempotency-Key": "c-1"}
        client.post("/charges", headers=headers)

        storage.fail_get = True
        response = client.post("/charges", headers=headers)

        assert response.status_code == 201
        assert response.json() == {"charge": 2}
        assert state["calls"] == 2

    def test_write_failure_returns_response(self, client, storage, state):
        storage.fail_put = True
        headers = {"Idempotency-Key": "c-1"}

        first = client.post("/charges", headers=headers)
        second = client.post("/charges", headers=headers)

        assert first.status_code == second.status_code == 201
        assert first.json() == {"charge": 1}
        assert second.json() == {"charge": 2}
        assert len(storage) == 0

    def test_unreachable_delegating_backend(self, state):
        def unreachable(*args):
            raise ConnectionError("connection refused")

        app = FastAPI()
        app.add_middleware(
            ASGIIdempotencyMiddleware,
            storage=RedisStorageAdapter(get=unreachable, put=unreachable),
            config=IdempotencyConfig(await_store_writes=True),
        )

        @app.post("/charges", status_code=201)
        async def create_charge():
            state["calls"] += 1
            return {"charge": state["calls"]}

        response = TestClient(app).post("/charges", headers={"Idempotency-Key": "c-1"})

        assert response.status_code == 201
        assert state["calls"] == 1

    def test_unwrapped_read_error_executes(self, state):
        storage = UnwrappedErrorStorage(fail_get=True)
        client = TestClient(_charge_app(storage, state))

        response = client.post("/charges", headers={"Idempotency-Key": "c-1"})

        assert response.status_code == 201
        assert response.json() == {"charge": 1}

    def test_unwrapped_inline_write_error_returns_response(self, state):
        storage = UnwrappedErrorStorage(fail_put=True)
        client = TestClient(_charge_app(storage, state))

        response = client.post("/charges", headers={"Idempotency-Key": "c-1"})

        assert response.status_code == 201
        assert response.json() == {"charge": 1}
        assert state["calls"] == 1
        assert len(storage) == 0


class TestHandlerFailures:
    def test_exception_is_not_cached(self, client, storage, state):
        headers = {"Idempotency-Key": "c-1"}

        state["fail"] = True
        failed = client.post("/charges", headers=headers)
        state["fail"] = False
        retried = client.post("/charges", headers=headers)
        replayed = client.post("/charges", headers=headers)

        assert failed.status_code == 500
        assert retried.status_code == 201
        assert retried.json() == {"charge": 2}
        assert replayed.headers["idempotent-replay"] == "true"
        assert state["calls"] == 2

    def test_exception_propagates(self, app, storage, state):
        state["fail"] = True

        with pytest.raises(RuntimeError, match="payment gateway unreachable"):
            TestClient(app).post("/charges", headers={"Idempotency-Key": "c-1"})

        assert len(storage) == 0


@pytest.mark.asyncio
async def test_cancelled_handler_caches_nothing(make_request):
    storage = MemoryStorageAdapter()
    middleware = IdempotencyMiddleware(storage, IdempotencyConfig(await_store_writes=True))
    started = asyncio.Event()

    async def slow(request):
        started.set()
        await asyncio.sleep(60)
        return HandlerResponse(status=200)

    task = asyncio.create_task(middleware.process(make_request(key="c-1"), slow))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert len(storage) == 0
