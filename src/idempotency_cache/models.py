"""Core data model for the idempotency cache.

This module provides the value object stored for every answered idempotency
key: a snapshot of the response status, its content type, and the raw body
bytes. Snapshots are immutable and compare by value, so one instance can be
shared by any number of concurrent readers without copying.

Examples:
    Capturing a response::

        from idempotency_cache.models import CachedResponse

        snapshot = CachedResponse(
            status=201,
            body=b'{"id": 42}',
            content_type="application/json",
        )

    Serializing for a byte-oriented store (Redis, a cache manager)::

        payload = snapshot.to_json()
        restored = CachedResponse.from_json(payload)
        assert restored == snapshot
"""

import base64
from typing import Any

from pydantic import BaseModel, Field, ValidationInfo, field_serializer, field_validator


class CachedResponse(BaseModel):
    """An immutable snapshot of a response produced for an idempotency key.

    The body is kept as raw bytes. When the snapshot is rendered to JSON the
    body is base64-encoded so that binary content survives any storage
    backend that only holds text.

    Attributes:
        status: HTTP status code (e.g., 200, 201, 400).
        body: Raw response body. May be empty, never None.
        content_type: Media type of the response, None if the original
            response had no Content-Type header.

    Examples:
        >>> snapshot = CachedResponse(status=200, body=b"Hello")
        >>> snapshot.content_type is None
        True
        >>> snapshot == CachedResponse(status=200, body=b"Hello")
        True
    """

    status: int = Field(
        ...,
        description="HTTP status code",
        ge=100,
        le=599,
        examples=[200, 201, 400, 500],
    )
    body: bytes = Field(
        default=b"",
        description="Raw response body",
        examples=[b'{"id": 42}'],
    )
    content_type: str | None = Field(
        default=None,
        description="Media type of the response body",
        examples=["application/json", "text/plain; charset=utf-8"],
    )

    model_config = {"frozen": True}

    @field_validator("body", mode="before")
    @classmethod
    def decode_body(cls, v: Any, info: ValidationInfo) -> Any:
        """Decode the base64 body when validating from JSON.

        Args:
            v: The raw field value.
            info: Validation context; ``info.mode`` is ``"json"`` for
                ``model_validate_json``.

        Returns:
            The body as bytes when decoded, the input value otherwise.

        Raises:
            ValueError: If the value is None or not valid base64.
        """
        if v is None:
            raise ValueError("body must not be None, use b'' for an empty body")
        if info.mode == "json" and isinstance(v, str):
            try:
                return base64.b64decode(v, validate=True)
            except Exception as e:
                raise ValueError(f"Invalid base64 encoding: {e}") from e
        return v

    @field_serializer("body", when_used="json")
    def encode_body(self, body: bytes) -> str:
        """Encode the body as base64 for JSON output."""
        return base64.b64encode(body).decode("ascii")

    def to_json(self) -> bytes:
        """Serialize the snapshot to JSON bytes.

        Returns:
            UTF-8 JSON with the body base64-encoded.

        Examples:
            >>> CachedResponse(status=204).to_json()
            b'{"status":204,"body":"","content_type":null}'
        """
        return self.model_dump_json().encode("utf-8")

    @classmethod
    def from_json(cls, raw: bytes | str) -> "CachedResponse":
        """Deserialize a snapshot produced by :meth:`to_json`.

        Args:
            raw: JSON document as bytes or str.

        Returns:
            The reconstructed snapshot.

        Raises:
            ValueError: If the document is malformed.
        """
        return cls.model_validate_json(raw)
