"""
Idempotency cache for Python web applications.

This package deduplicates mutating HTTP requests: a client-supplied
idempotency key maps to at most one executed operation, and repeated requests
bearing the same key receive a replay of the response produced the first time.
"""

from idempotency_cache.config import IdempotencyConfig
from idempotency_cache.core.middleware import IdempotencyMiddleware
from idempotency_cache.exceptions import (
    IdempotencyError,
    InvalidIdempotencyKeyError,
    StorageError,
)
from idempotency_cache.models import CachedResponse
from idempotency_cache.routing import disable_idempotency, is_idempotency_disabled
from idempotency_cache.storage import IdempotencyStore, MemoryStorageAdapter, create_storage

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CachedResponse",
    "IdempotencyConfig",
    "IdempotencyError",
    "IdempotencyMiddleware",
    "IdempotencyStore",
    "InvalidIdempotencyKeyError",
    "MemoryStorageAdapter",
    "StorageError",
    "create_storage",
    "disable_idempotency",
    "is_idempotency_disabled",
]
