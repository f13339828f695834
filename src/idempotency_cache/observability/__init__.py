"""Observability utilities for the idempotency cache.

This package provides monitoring and debugging capabilities:
- Prometheus metrics for request outcomes and storage failures
- Structured logging with contextual information
"""

from idempotency_cache.observability.logging import configure_logging, get_logger
from idempotency_cache.observability.metrics import (
    record_cleanup,
    record_execution_time,
    record_request,
    record_storage_error,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "record_request",
    "record_storage_error",
    "record_execution_time",
    "record_cleanup",
]
