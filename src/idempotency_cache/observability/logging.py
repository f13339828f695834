"""structlog setup for the idempotency cache.

Every log line is an event with a dotted name (``idempotency.hit``,
``storage.put_failed``, ``cleanup.completed``) plus key/value context: the
idempotency key, backend name and, inside the ASGI adapter, the request
method, path and trace id bound through ``structlog.contextvars``.

Response and request bodies are never logged. :func:`drop_payloads` strips
any ``body`` or ``payload`` field that slips into an event.

Examples:
    At application startup::

        from idempotency_cache.observability.logging import configure_logging

        configure_logging(level="INFO", json_output=True)

    In a module::

        logger = get_logger(__name__)
        logger.info("idempotency.hit", key="payment-123", status=201)

    Rendered::

        {"key": "payment-123", "status": 201, "event": "idempotency.hit",
         "level": "info", "timestamp": "2024-01-01T00:00:00.000000Z"}
"""

import logging
import sys
from typing import Any

import structlog

PAYLOAD_FIELDS = frozenset({"body", "payload"})


def drop_payloads(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor removing response and request payloads."""
    for field in PAYLOAD_FIELDS & event_dict.keys():
        del event_dict[field]
    return event_dict


def configure_logging(level: str = "INFO", json_output: bool = True) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render JSON lines when True, coloured console output otherwise
    """
    numeric_level = getattr(logging, level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            drop_payloads,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)
