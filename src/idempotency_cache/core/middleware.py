"""Framework-agnostic core middleware for idempotency handling.

This module provides the entry point that decides, per request, whether the
idempotency protocol applies and then delegates keyed requests to the state
machine. It is framework-agnostic and wrapped by adapters for specific web
frameworks.

The middleware:
1. Bypasses requests whose method is not intercepted, or whose route opted out
2. Forwards requests without an idempotency header unchanged
3. Rejects a blank idempotency header with 400, touching nothing else
4. Replays a cached response, or executes the handler and caches its response

Examples:
    Using the middleware directly::

        from idempotency_cache.config import IdempotencyConfig
        from idempotency_cache.core.middleware import IdempotencyMiddleware, Request
        from idempotency_cache.core.replay import HandlerResponse
        from idempotency_cache.storage.memory import MemoryStorageAdapter

        middleware = IdempotencyMiddleware(MemoryStorageAdapter(), IdempotencyConfig())

        async def handler(request):
            return HandlerResponse(status=201, body=b'{"id": 42}')

        request = Request("POST", "/orders", {"Idempotency-Key": "abc123"})
        response = await middleware.process(request, handler)
"""

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any

from idempotency_cache.config import IdempotencyConfig
from idempotency_cache.core.replay import HandlerResponse
from idempotency_cache.core.state_machine import (
    RequestOutcome,
    StateResult,
    process_keyed_request,
)
from idempotency_cache.exceptions import InvalidIdempotencyKeyError
from idempotency_cache.observability.logging import get_logger
from idempotency_cache.observability.metrics import record_request
from idempotency_cache.storage.base import IdempotencyStore
from idempotency_cache.utils.headers import get_header_value

logger = get_logger(__name__)

Handler = Callable[["Request"], Awaitable[HandlerResponse]]


class Request:
    """Abstract request representation.

    Framework adapters convert their request objects into this format.

    Attributes:
        method: HTTP method (GET, POST, etc.)
        path: URL path
        headers: Request headers as dict
        idempotency_disabled: True if the matched route carries the
            opt-out marker
    """

    def __init__(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        idempotency_disabled: bool = False,
    ) -> None:
        self.method = method
        self.path = path
        self.headers = headers
        self.idempotency_disabled = idempotency_disabled


class IdempotencyMiddleware:
    """Framework-agnostic idempotency middleware.

    Holds no locks and no per-key state. The only shared mutable resource is
    the storage backend.

    Attributes:
        storage: Backend holding cached responses
        config: Configuration object
    """

    def __init__(self, storage: IdempotencyStore, config: IdempotencyConfig) -> None:
        """Initialize the middleware.

        Args:
            storage: Backend holding cached responses
            config: Configuration object
        """
        self.storage = storage
        self.config = config
        self._pending_writes: set[asyncio.Task[bool]] = set()

    async def process(self, request: Request, handler: Handler) -> HandlerResponse:
        """Process a request with idempotency handling.

        Args:
            request: The incoming request
            handler: Async function producing the downstream response

        Returns:
            The response to send to the client

        Raises:
            Exception: Whatever the handler raises, unchanged.
        """
        result = await self.handle(request, handler)
        record_request(result.outcome.value, result.response.status)
        return result.response

    async def handle(self, request: Request, handler: Handler) -> StateResult:
        """Like :meth:`process` but also reports the outcome."""
        if not self.config.applies_to(request.method) or request.idempotency_disabled:
            return StateResult(response=await handler(request), outcome=RequestOutcome.BYPASS)

        key = get_header_value(request.headers, self.config.header_name)
        if key is None:
            # Idempotency is opt-in per request
            return StateResult(response=await handler(request), outcome=RequestOutcome.KEY_MISSING)

        try:
            self._validate_key(key)
        except InvalidIdempotencyKeyError as e:
            logger.info(
                "idempotency.key_invalid",
                method=request.method,
                path=request.path,
                header=e.header_name,
            )
            return StateResult(
                response=HandlerResponse(
                    status=400,
                    headers=[("content-type", "text/plain; charset=utf-8")],
                    body=e.message.encode("utf-8"),
                ),
                outcome=RequestOutcome.KEY_INVALID,
            )

        schedule = None if self.config.await_store_writes else self._schedule_write
        return await process_keyed_request(
            storage=self.storage,
            key=key,
            handler=handler,
            request=request,
            config=self.config,
            schedule_write=schedule,
        )

    async def wait_for_pending_writes(self) -> None:
        """Wait until every background cache write has finished."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    @property
    def pending_writes(self) -> int:
        """Number of background cache writes still running."""
        return len(self._pending_writes)

    def _validate_key(self, key: str) -> None:
        """Validate the idempotency key.

        The key is otherwise opaque: it is not trimmed, case-folded or
        length-checked.

        Raises:
            InvalidIdempotencyKeyError: If the key is empty or whitespace only
        """
        if not key.strip():
            raise InvalidIdempotencyKeyError(
                f"{self.config.header_name} header must not be empty",
                header_name=self.config.header_name,
            )

    def _schedule_write(self, write: Coroutine[Any, Any, bool]) -> None:
        # Retained until done
        task = asyncio.create_task(write)
        self._pending_writes.add(task)
        task.add_done_callback(self._on_write_done)

    def _on_write_done(self, task: asyncio.Task[bool]) -> None:
        self._pending_writes.discard(task)
        if task.cancelled():
            logger.warning("storage.put_cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "storage.put_crashed",
                error=str(error),
                error_type=type(error).__name__,
            )
