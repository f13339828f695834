"""Per-route opt-out marker for the idempotency protocol.

A route whose endpoint is decorated with :func:`disable_idempotency` is never
intercepted: requests reach it unchanged even when they carry an idempotency
key. The marker is a single boolean attribute on the endpoint callable. The
runtime middleware and API documentation tooling both read it through
:func:`is_idempotency_disabled`, so its meaning lives in one place.

Examples:
    FastAPI route that opts out::

        from idempotency_cache.routing import disable_idempotency

        @app.post("/api/events")
        @disable_idempotency
        async def ingest_event(event: Event):
            ...

    Note that the marker decorator must sit below the route decorator so the
    marked function is the one registered with the router.
"""

from collections.abc import Callable
from typing import Any, TypeVar

IDEMPOTENCY_DISABLED_ATTR = "__idempotency_disabled__"

F = TypeVar("F", bound=Callable[..., Any])


def disable_idempotency(endpoint: F) -> F:
    """Mark an endpoint as exempt from the idempotency protocol."""
    setattr(endpoint, IDEMPOTENCY_DISABLED_ATTR, True)
    return endpoint


def is_idempotency_disabled(endpoint: Any) -> bool:
    """Return True if ``endpoint`` carries the opt-out marker.

    Bound methods and ``functools.partial`` objects are unwrapped to the
    underlying function.

    Examples:
        >>> @disable_idempotency
        ... def handler(): ...
        >>> is_idempotency_disabled(handler)
        True
        >>> is_idempotency_disabled(print)
        False
    """
    while endpoint is not None:
        if getattr(endpoint, IDEMPOTENCY_DISABLED_ATTR, False) is True:
            return True
        endpoint = getattr(endpoint, "__func__", None) or getattr(endpoint, "func", None)
    return False
