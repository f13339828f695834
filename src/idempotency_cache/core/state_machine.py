"""State machine for requests that carry an idempotency key.

Every intercepted request ends in one of the outcomes of
:class:`RequestOutcome`. Keyed requests follow::

    LOOKUP -> HIT                       (replay, handler not invoked)
    LOOKUP -> MISS -> EXECUTE -> STORE  (handler invoked once, response cached)

The read before execution is the only duplicate-suppression step. There is
no claim or lock, so two first attempts with the same key that both read
before either writes will both execute; whichever write lands last is what
later retries replay. Callers are expected to wait for a response before
retrying a key.

Failure handling:
    - A failed read (StorageError or any other exception) is logged and
      treated as a miss.
    - A failed write is logged and swallowed; the response is unaffected.
    - A handler that raises or is cancelled reaches no STORE transition, so
      nothing is cached and the next retry executes again.

Examples:
    Processing a keyed request::

        from idempotency_cache.core.state_machine import process_keyed_request

        result = await process_keyed_request(
            storage=storage,
            key="payment-123",
            handler=handler,
            request=request,
            config=config,
        )
        if result.outcome is RequestOutcome.HIT:
            ...
"""

import time
from collections.abc import Awaitable, Callable, Coroutine
from enum import Enum
from typing import Any

from idempotency_cache.config import IdempotencyConfig
from idempotency_cache.core.replay import HandlerResponse, capture_response, replay_response
from idempotency_cache.exceptions import StorageError
from idempotency_cache.models import CachedResponse
from idempotency_cache.observability.logging import get_logger
from idempotency_cache.observability.metrics import (
    record_execution_time,
    record_storage_error,
)
from idempotency_cache.storage.base import IdempotencyStore

logger = get_logger(__name__)

WriteScheduler = Callable[[Coroutine[Any, Any, bool]], None]


class RequestOutcome(str, Enum):
    """How the middleware handled a request.

    Attributes:
        BYPASS: Method not intercepted, middleware disabled, or route opted out.
        KEY_MISSING: No idempotency header; forwarded unchanged.
        KEY_INVALID: Blank idempotency header; rejected with 400.
        HIT: Cached response replayed; handler not invoked.
        MISS: Handler invoked and its response cached.
    """

    BYPASS = "bypass"
    KEY_MISSING = "key_missing"
    KEY_INVALID = "key_invalid"
    HIT = "hit"
    MISS = "miss"


class StateResult:
    """Result of state machine processing.

    Attributes:
        response: The response to send (either new or replayed)
        outcome: How the request was handled
        execution_time: Handler execution time in seconds (misses only)
    """

    def __init__(
        self,
        response: HandlerResponse,
        outcome: RequestOutcome,
        execution_time: float | None = None,
    ) -> None:
        self.response = response
        self.outcome = outcome
        self.execution_time = execution_time

    @property
    def was_replayed(self) -> bool:
        return self.outcome is RequestOutcome.HIT


def _failure_fields(error: Exception) -> dict[str, Any]:
    if isinstance(error, StorageError):
        cause = error.cause
        return {
            "error": error.message,
            "error_type": type(cause).__name__ if cause else None,
        }
    return {"error": str(error), "error_type": type(error).__name__}


async def lookup(storage: IdempotencyStore, key: str) -> CachedResponse | None:
    """Read the cached response for ``key``, failing open.

    Any exception from the backend, not only StorageError, reads as a miss.

    Returns:
        The cached response, or None when absent or when the backend failed.
    """
    try:
        return await storage.get(key)
    except Exception as e:
        record_storage_error("get")
        logger.warning("storage.get_failed", key=key, **_failure_fields(e))
        return None


async def store_response(
    storage: IdempotencyStore,
    key: str,
    snapshot: CachedResponse,
    ttl_seconds: int,
) -> bool:
    """Write a snapshot, best effort.

    Returns:
        True if the write succeeded, False if the backend failed. Failures
        of any kind are logged and never raised.
    """
    try:
        await storage.put(key, snapshot, ttl_seconds)
    except Exception as e:
        record_storage_error("put")
        logger.error("storage.put_failed", key=key, **_failure_fields(e))
        return False

    logger.debug("idempotency.stored", key=key, status=snapshot.status, ttl_seconds=ttl_seconds)
    return True


async def process_keyed_request(
    storage: IdempotencyStore,
    key: str,
    handler: Callable[[Any], Awaitable[HandlerResponse]],
    request: Any,
    config: IdempotencyConfig,
    schedule_write: WriteScheduler | None = None,
) -> StateResult:
    """Run LOOKUP and then HIT or MISS -> EXECUTE -> STORE for one request.

    Args:
        storage: Backend holding cached responses
        key: Idempotency key from the request header
        handler: Async function that executes the actual request
        request: The original request object (passed to handler unchanged)
        config: Configuration object
        schedule_write: Called with the STORE coroutine to run it in the
            background. When None the write is awaited inline.

    Returns:
        StateResult with the response and outcome

    Raises:
        Exception: Whatever the handler raises, unchanged.
    """
    cached = await lookup(storage, key)

    if cached is not None:
        logger.info("idempotency.hit", key=key, status=cached.status)
        return StateResult(response=replay_response(cached), outcome=RequestOutcome.HIT)

    logger.debug("idempotency.miss", key=key)

    start_time = time.perf_counter()
    response = await handler(request)
    execution_time = time.perf_counter() - start_time
    record_execution_time(execution_time)

    snapshot = capture_response(response)
    write = store_response(storage, key, snapshot, config.ttl_seconds)
    if schedule_write is None:
        await write
    else:
        schedule_write(write)

    return StateResult(
        response=response,
        outcome=RequestOutcome.MISS,
        execution_time=execution_time,
    )
