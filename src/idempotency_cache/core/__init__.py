"""Core middleware logic for idempotency handling.

This package contains the protocol engine:
- Replay: response capture and reconstruction from cached snapshots
- State machine: LOOKUP -> HIT | MISS -> EXECUTE -> STORE
- Middleware: framework-agnostic request interception

The core logic is framework-agnostic and wrapped by adapters for specific
web frameworks.
"""

from idempotency_cache.core.middleware import IdempotencyMiddleware, Request
from idempotency_cache.core.replay import HandlerResponse, capture_response, replay_response
from idempotency_cache.core.state_machine import RequestOutcome, StateResult

__all__ = [
    "IdempotencyMiddleware",
    "Request",
    "HandlerResponse",
    "capture_response",
    "replay_response",
    "RequestOutcome",
    "StateResult",
]
