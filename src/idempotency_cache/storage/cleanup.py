"""Periodic sweep of expired entries for in-process backends.

The memory backend only drops an expired entry when that key is read again,
so keys that are never retried would stay in memory until evicted by
capacity. The sweep calls ``cleanup_expired()`` on a fixed interval to
reclaim them. Delegating backends (Redis, Hazelcast, disk caches) expire
entries on their own and are never swept.

Examples:
    In a FastAPI lifespan::

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            task = await start_cleanup_task(storage, interval_seconds=300)
            yield
            await stop_cleanup_task(task)
"""

import asyncio
from typing import Protocol, runtime_checkable

from idempotency_cache.observability.logging import get_logger
from idempotency_cache.observability.metrics import record_cleanup

logger = get_logger(__name__)


@runtime_checkable
class SupportsCleanup(Protocol):
    """A backend that can remove its own expired entries."""

    async def cleanup_expired(self) -> int: ...


async def sweep_once(storage: SupportsCleanup) -> int:
    """Run one sweep, logging instead of raising on failure.

    Returns:
        Entries removed, or 0 when the sweep failed.
    """
    try:
        removed = await storage.cleanup_expired()
    except Exception as e:
        logger.error("cleanup.failed", error=str(e), error_type=type(e).__name__)
        return 0

    record_cleanup(removed)
    log = logger.info if removed else logger.debug
    log("cleanup.completed", records_removed=removed)
    return removed


async def cleanup_loop(
    storage: SupportsCleanup,
    interval_seconds: float = 300,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Sweep ``storage`` every ``interval_seconds`` until ``stop_event`` is set.

    The first sweep runs immediately.
    """
    stop_event = stop_event or asyncio.Event()
    logger.info("cleanup.started", interval_seconds=interval_seconds)

    while not stop_event.is_set():
        await sweep_once(storage)
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            pass

    logger.info("cleanup.stopped")


async def start_cleanup_task(
    storage: SupportsCleanup,
    interval_seconds: float = 300,
) -> asyncio.Task[None]:
    """Start :func:`cleanup_loop` as a background task.

    The returned task carries its stop event; pass it to
    :func:`stop_cleanup_task` on shutdown.
    """
    stop_event = asyncio.Event()
    task = asyncio.create_task(cleanup_loop(storage, interval_seconds, stop_event))
    task._stop_event = stop_event  # type: ignore[attr-defined]
    return task


async def stop_cleanup_task(task: asyncio.Task[None], timeout: float = 5.0) -> None:
    """Ask a sweep task to stop, cancelling it after ``timeout`` seconds."""
    stop_event: asyncio.Event | None = getattr(task, "_stop_event", None)
    if stop_event is not None:
        stop_event.set()

    try:
        await asyncio.wait_for(task, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("cleanup.stop_timeout", timeout=timeout)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.debug("cleanup.cancelled")
