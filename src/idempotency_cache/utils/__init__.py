"""Utility modules for the idempotency cache."""

from .headers import (
    REPLAY_HEADER,
    add_replay_headers,
    get_header_value,
    remove_header,
)

__all__ = [
    "REPLAY_HEADER",
    "add_replay_headers",
    "get_header_value",
    "remove_header",
]
