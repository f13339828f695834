"""Response capture and replay for the idempotency cache.

Capture turns a response produced by the downstream handler into a
CachedResponse snapshot (status, content type, body). Replay turns a snapshot
back into a response: the exact status code, Content-Type and body bytes,
plus an ``Idempotent-Replay: true`` marker.

Capture is an observation only. The handler's response object is never
modified, so what the client receives on a miss is exactly what the handler
produced.

Examples:
    Basic round trip::

        from idempotency_cache.core.replay import (
            HandlerResponse,
            capture_response,
            replay_response,
        )

        original = HandlerResponse(
            status=201,
            headers=[("content-type", "application/json")],
            body=b'{"id": 42}',
        )
        snapshot = capture_response(original)

        replayed = replay_response(snapshot)
        # replayed.status == 201
        # replayed.content_type == "application/json"
        # replayed.body == b'{"id": 42}'
"""

from idempotency_cache.models import CachedResponse
from idempotency_cache.utils.headers import HeaderPairs, add_replay_headers, get_header_value


class HandlerResponse:
    """A framework-agnostic HTTP response.

    Framework adapters convert their response objects to and from this
    type. Headers are kept as (name, value) pairs so repeated headers
    survive.

    Attributes:
        status: HTTP status code (e.g., 200, 404, 500)
        headers: Response headers as (name, value) pairs
        body: Response body as bytes
    """

    def __init__(
        self,
        status: int,
        headers: HeaderPairs | None = None,
        body: bytes = b"",
    ) -> None:
        """Initialize a response.

        Args:
            status: HTTP status code
            headers: Response headers
            body: Response body as bytes
        """
        self.status = status
        self.headers = list(headers) if headers else []
        self.body = body

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value, if any."""
        return get_header_value(self.headers, "content-type")

    @property
    def is_replay(self) -> bool:
        """True if this response was served from the cache."""
        return get_header_value(self.headers, "idempotent-replay") == "true"

    def __repr__(self) -> str:
        return (
            f"HandlerResponse(status={self.status}, content_type={self.content_type!r}, "
            f"body_length={len(self.body)})"
        )


def capture_response(response: HandlerResponse) -> CachedResponse:
    """Snapshot a fully materialized handler response.

    Args:
        response: The response produced by the downstream handler

    Returns:
        An immutable snapshot of status, content type and body
    """
    return CachedResponse(
        status=response.status,
        body=bytes(response.body),
        content_type=response.content_type,
    )


def replay_response(cached: CachedResponse) -> HandlerResponse:
    """Reconstruct a response from a cached snapshot.

    Args:
        cached: The stored snapshot

    Returns:
        HandlerResponse with the stored status, Content-Type (when one was
        captured) and body, marked with ``Idempotent-Replay: true``

    Examples:
        >>> response = replay_response(
        ...     CachedResponse(status=201, body=b"ok", content_type="text/plain")
        ... )
        >>> response.status, response.content_type, response.body
        (201, 'text/plain', b'ok')
        >>> response.is_replay
        True
    """
    headers: HeaderPairs = []
    if cached.content_type is not None:
        headers.append(("content-type", cached.content_type))

    return HandlerResponse(
        status=cached.status,
        headers=add_replay_headers(headers),
        body=cached.body,
    )
