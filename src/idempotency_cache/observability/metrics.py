"""Prometheus metrics for the idempotency cache.

Metrics:

- Requests by outcome (bypass, key_missing, key_invalid, hit, miss)
- Storage failures by operation (get, put)
- Downstream execution time for cache misses
- Cleanup sweeps and records removed

Examples:
    Recording a replayed request::

        from idempotency_cache.observability.metrics import record_request

        record_request(outcome="hit", status_code=201)

    Recording a failed cache write::

        from idempotency_cache.observability.metrics import record_storage_error

        record_storage_error(operation="put")
"""

from prometheus_client import Counter, Histogram

# Labels: outcome (bypass, key_missing, key_invalid, hit, miss), status_code
requests_total = Counter(
    "idempotency_requests_total",
    "Total number of requests seen by the idempotency middleware",
    ["outcome", "status_code"],
)

# Labels: operation (get, put)
storage_errors_total = Counter(
    "idempotency_storage_errors_total",
    "Storage backend failures absorbed by the middleware",
    ["operation"],
)

# Only tracks downstream executions on a cache miss
execution_time_seconds = Histogram(
    "idempotency_execution_time_seconds",
    "Downstream handler execution time for cache misses",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

cleanup_operations = Counter(
    "idempotency_cleanup_operations_total",
    "Total number of cleanup sweeps performed",
)

cleanup_records_removed = Counter(
    "idempotency_cleanup_records_removed_total",
    "Total number of expired entries removed by cleanup",
)


def record_request(outcome: str, status_code: int) -> None:
    """Record a processed request.

    Args:
        outcome: How the request was handled (bypass, key_missing,
            key_invalid, hit, miss)
        status_code: HTTP status code of the response

    Examples:
        >>> record_request("hit", 201)
        >>> record_request("key_invalid", 400)
    """
    requests_total.labels(outcome=outcome, status_code=str(status_code)).inc()


def record_storage_error(operation: str) -> None:
    """Record a storage failure that was absorbed (fail open).

    Args:
        operation: "get" or "put"
    """
    storage_errors_total.labels(operation=operation).inc()


def record_execution_time(seconds: float) -> None:
    """Record downstream execution time for a cache miss.

    Args:
        seconds: Execution time in seconds
    """
    execution_time_seconds.observe(seconds)


def record_cleanup(records_removed: int) -> None:
    """Record a cleanup sweep.

    Args:
        records_removed: Number of expired entries removed

    Examples:
        >>> record_cleanup(42)
    """
    cleanup_operations.inc()
    cleanup_records_removed.inc(records_removed)
