"""
Pytest configuration and shared fixtures for idempotency_cache tests.
"""

import pytest

from idempotency_cache.core.middleware import Request
from idempotency_cache.core.replay import HandlerResponse
from idempotency_cache.models import CachedResponse


class CountingHandler:
    """Downstream handler double that counts invocations.

    Returns a fresh response per call so replays can be told apart from
    re-executions by the body.
    """

    def __init__(
        self,
        status: int = 201,
        content_type: str | None = "application/json",
    ) -> None:
        self.calls = 0
        self.status = status
        self.content_type = content_type

    async def __call__(self, request: Request) -> HandlerResponse:
        self.calls += 1
        headers = [("content-type", self.content_type)] if self.content_type else []
        return HandlerResponse(
            status=self.status,
            headers=headers,
            body=f'{{"id":{self.calls}}}'.encode(),
        )


class ManualClock:
    """Time source for TTL tests."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def sample_idempotency_key() -> str:
    """Provide a sample idempotency key for tests."""
    return "test-key-12345"


@pytest.fixture
def sample_response() -> CachedResponse:
    """Provide a sample cached response for tests."""
    return CachedResponse(status=201, body=b'{"id":42}', content_type="application/json")


@pytest.fixture
def handler() -> CountingHandler:
    return CountingHandler()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


def make_request(
    method: str = "POST",
    key: str | None = None,
    header_name: str = "Idempotency-Key",
    path: str = "/orders",
    idempotency_disabled: bool = False,
) -> Request:
    headers = {"content-type": "application/json"}
    if key is not None:
        headers[header_name] = key
    return Request(
        method=method,
        path=path,
        headers=headers,
        idempotency_disabled=idempotency_disabled,
    )


@pytest.fixture
def handler_factory() -> type[CountingHandler]:
    """Build handlers with a non-default status or content type."""
    return CountingHandler


@pytest.fixture(name="make_request")
def make_request_fixture():
    """Build framework-agnostic requests."""
    return make_request
