"""Framework adapters for the idempotency cache.

This package integrates the framework-agnostic core middleware with specific
web frameworks:

- asgi.py: ASGI middleware for FastAPI, Starlette, etc.

The adapters handle the conversion between framework-specific request/response
objects and the middleware's internal representation.
"""

from idempotency_cache.adapters.asgi import ASGIIdempotencyMiddleware

__all__ = ["ASGIIdempotencyMiddleware"]
