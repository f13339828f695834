"""Header lookup and manipulation utilities for the idempotency cache.

Request headers are handled as a ``dict[str, str]``; response headers as a
list of ``(name, value)`` pairs so repeated headers such as Set-Cookie are
preserved. All name comparisons are case-insensitive.
"""

from collections.abc import Iterable, Mapping

HeaderPairs = list[tuple[str, str]]

REPLAY_HEADER = "Idempotent-Replay"


def _pairs(headers: Mapping[str, str] | Iterable[tuple[str, str]]) -> Iterable[tuple[str, str]]:
    if isinstance(headers, Mapping):
        return headers.items()
    return headers


def get_header_value(
    headers: Mapping[str, str] | Iterable[tuple[str, str]],
    header_name: str,
    default: str | None = None,
) -> str | None:
    """Get the first value of a header with case-insensitive lookup.

    Args:
        headers: Headers as a mapping or as (name, value) pairs
        header_name: Name of header to find (case-insensitive)
        default: Default value if header not found

    Returns:
        Header value or default

    Example:
        >>> get_header_value({"Content-Type": "application/json"}, "content-type")
        'application/json'
        >>> get_header_value([("X-A", "1"), ("x-a", "2")], "X-A")
        '1'
        >>> get_header_value({}, "missing", "default")
        'default'
    """
    header_name_lower = header_name.lower()

    for key, value in _pairs(headers):
        if key.lower() == header_name_lower:
            return value

    return default


def remove_header(headers: Iterable[tuple[str, str]], header_name: str) -> HeaderPairs:
    """Return the pairs without any occurrence of ``header_name``.

    Example:
        >>> remove_header([("Content-Length", "2"), ("X-A", "1")], "content-length")
        [('X-A', '1')]
    """
    header_name_lower = header_name.lower()
    return [(key, value) for key, value in headers if key.lower() != header_name_lower]


def add_replay_headers(headers: Iterable[tuple[str, str]]) -> HeaderPairs:
    """Mark a response as replayed from the cache.

    Any existing replay marker is replaced.

    Example:
        >>> add_replay_headers([("content-type", "application/json")])
        [('content-type', 'application/json'), ('Idempotent-Replay', 'true')]
    """
    result = remove_header(headers, REPLAY_HEADER)
    result.append((REPLAY_HEADER, "true"))
    return result
