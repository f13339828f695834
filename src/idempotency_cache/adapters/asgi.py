"""ASGI middleware adapter for FastAPI and Starlette applications.

This module wraps the core idempotency middleware for ASGI frameworks.

The middleware:
1. Resolves the route the request will hit, to honor the opt-out marker
2. Converts the Starlette request to the internal Request format
3. Processes it through the core middleware, capturing the downstream body
4. Converts the internal response back to a Starlette response

Examples:
    FastAPI integration::

        from fastapi import FastAPI
        from idempotency_cache.adapters.asgi import ASGIIdempotencyMiddleware
        from idempotency_cache.config import IdempotencyConfig
        from idempotency_cache.routing import disable_idempotency
        from idempotency_cache.storage.memory import MemoryStorageAdapter

        app = FastAPI()
        app.add_middleware(
            ASGIIdempotencyMiddleware,
            storage=MemoryStorageAdapter(),
            config=IdempotencyConfig(),
        )

        @app.post("/api/payments", status_code=201)
        async def create_payment(data: PaymentData):
            # Retries carrying the same Idempotency-Key replay this response
            return {"id": 42}

        @app.post("/api/events")
        @disable_idempotency
        async def ingest_event(event: Event):
            # Never intercepted
            ...

    Starlette integration::

        from starlette.applications import Starlette
        from starlette.middleware import Middleware

        app = Starlette(
            routes=routes,
            middleware=[Middleware(ASGIIdempotencyMiddleware, storage=storage)],
        )
"""

from collections.abc import Awaitable, Callable, Iterable
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response
from starlette.routing import Match
from starlette.types import Scope

from idempotency_cache.config import IdempotencyConfig
from idempotency_cache.core.middleware import IdempotencyMiddleware, Request
from idempotency_cache.core.replay import HandlerResponse
from idempotency_cache.routing import is_idempotency_disabled
from idempotency_cache.storage.base import IdempotencyStore
from idempotency_cache.utils.headers import remove_header

# Request headers used to correlate log lines
TRACE_HEADERS = (
    "x-trace-id",
    "x-request-id",
    "x-correlation-id",
    "traceparent",
)


class ASGIIdempotencyMiddleware(BaseHTTPMiddleware):
    """ASGI middleware for idempotency handling.

    Attributes:
        storage: Backend holding cached responses
        config: Configuration object
        middleware: Core middleware instance
    """

    def __init__(
        self,
        app: Any,
        storage: IdempotencyStore,
        config: IdempotencyConfig | None = None,
    ) -> None:
        """Initialize the ASGI middleware.

        Args:
            app: The ASGI application
            storage: Backend holding cached responses
            config: Configuration object (uses defaults if not provided)
        """
        super().__init__(app)
        self.storage = storage
        self.config = config or IdempotencyConfig()
        self.middleware = IdempotencyMiddleware(storage, self.config)

    async def dispatch(
        self,
        request: StarletteRequest,
        call_next: Callable[[StarletteRequest], Awaitable[Response]],
    ) -> Response:
        """Process an ASGI request with idempotency handling.

        Args:
            request: The Starlette request object
            call_next: Function to call the next middleware/handler

        Returns:
            Starlette Response object
        """
        internal_request = Request(
            method=request.method,
            path=request.url.path,
            # dict() over Starlette headers keeps the first value of a repeated header
            headers=dict(request.headers),
            idempotency_disabled=self._route_opted_out(request.scope),
        )

        async def handler(_req: Request) -> HandlerResponse:
            response = await call_next(request)

            body = b""
            if hasattr(response, "body_iterator"):
                async for chunk in response.body_iterator:
                    if isinstance(chunk, str):
                        chunk = chunk.encode(getattr(response, "charset", "utf-8"))
                    body += bytes(chunk)
            else:
                body = bytes(getattr(response, "body", b""))

            return HandlerResponse(
                status=response.status_code,
                headers=list(response.headers.items()),
                body=body,
            )

        with structlog.contextvars.bound_contextvars(
            method=request.method,
            path=request.url.path,
            trace_id=self._extract_trace_id(request),
        ):
            result = await self.middleware.process(internal_request, handler)

        return self._convert_response(result)

    def _convert_response(self, response: HandlerResponse) -> Response:
        """Convert an internal HandlerResponse to a Starlette Response.

        Status, headers and body bytes are emitted as given. Content-Length
        is recomputed by Starlette from the body.
        """
        starlette_response = Response(content=response.body, status_code=response.status)
        starlette_response.raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in remove_header(response.headers, "content-length")
        ] + starlette_response.raw_headers
        return starlette_response

    def _route_opted_out(self, scope: Scope) -> bool:
        """Return True if the route matching this request carries the opt-out marker.

        Routing has not run yet when middleware dispatches, so the
        application's routes are matched here the same way the router will.
        """
        app = scope.get("app")
        return self._match_opt_out(getattr(app, "routes", None) or [], dict(scope))

    def _match_opt_out(self, routes: Iterable[Any], scope: Scope) -> bool:
        for route in routes:
            match, child_scope = route.matches(scope)
            if match != Match.FULL:
                continue
            endpoint = child_scope.get("endpoint") or getattr(route, "endpoint", None)
            if endpoint is not None:
                return is_idempotency_disabled(endpoint)
            return self._match_opt_out(self._nested_routes(route), {**scope, **child_scope})
        return False

    @staticmethod
    def _nested_routes(route: Any) -> Iterable[Any]:
        """Routes reachable below a matched route that has no endpoint of its own.

        Mounts and hosts expose ``routes``. Lazily included FastAPI routers
        expose ``effective_candidates()``, whose entries already carry the
        include prefix.
        """
        candidates = getattr(route, "effective_candidates", None)
        if callable(candidates):
            return candidates()
        return getattr(route, "routes", None) or []

    def _extract_trace_id(self, request: StarletteRequest) -> str | None:
        """Extract distributed tracing ID from request headers, if any."""
        for header in TRACE_HEADERS:
            value = request.headers.get(header)
            if value:
                return value

        return None
