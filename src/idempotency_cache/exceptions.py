"""Custom exceptions for the idempotency cache.

This module defines the exception hierarchy used throughout the package to
signal storage failures and invalid idempotency keys. A missing cache entry
is never an exception: stores return ``None`` for "not found" and raise
:class:`StorageError` only when the backend itself failed.

Examples:
    Handling a storage error (fail open)::

        from idempotency_cache.exceptions import StorageError

        try:
            cached = await storage.get(key)
        except StorageError as e:
            logger.warning("storage.get_failed", key=key, error=str(e))
            cached = None
"""


class IdempotencyError(Exception):
    """Base exception for all idempotency-related errors.

    Attributes:
        message: Human-readable error description.

    Examples:
        Catching all idempotency errors::

            try:
                await middleware.process(request, handler)
            except IdempotencyError as e:
                logger.error("idempotency.error", error=e.message)
    """

    def __init__(self, message: str) -> None:
        """Initialize the exception with a message.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)


class InvalidIdempotencyKeyError(IdempotencyError):
    """The idempotency header was present but blank.

    This is a client error. The middleware answers it with HTTP 400 without
    touching the storage backend or invoking the downstream handler.

    Attributes:
        message: Human-readable error description.
        header_name: Name of the header that carried the blank key.
    """

    def __init__(self, message: str, header_name: str) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error description.
            header_name: Name of the offending header.
        """
        super().__init__(message)
        self.header_name = header_name


class StorageError(IdempotencyError):
    """Storage backend operation failed.

    Raised when the underlying backend cannot complete a read or a write:
    network failures, an unavailable cache cluster, a rejected write, or a
    stored payload that cannot be decoded.

    The middleware treats a failed read as a cache miss and a failed write
    as a logged, non-fatal event. Storage adapters must wrap
    backend-specific exceptions in this type rather than leak them.

    Attributes:
        message: Human-readable error description.
        cause: The underlying exception, if any.

    Examples:
        Raising a storage error::

            try:
                raw = await redis.get(key)
            except RedisError as e:
                raise StorageError(f"Failed to read {key!r} from Redis", cause=e) from e
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        """Initialize the storage error with details.

        Args:
            message: Human-readable error description.
            cause: The underlying exception that caused the storage error.
        """
        super().__init__(message)
        self.cause = cause
