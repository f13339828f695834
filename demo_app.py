"""Demo FastAPI application with the idempotency cache.

Run with: python demo_app.py
Then try:
    curl -i -X POST localhost:8000/api/payments -H 'Idempotency-Key: abc123' \
        -H 'content-type: application/json' -d '{"amount": 100}'
    (repeat it: the same payment id comes back with Idempotent-Replay: true)
"""

import asyncio
import itertools
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Optional

import uvicorn
from fastapi import FastAPI
from pydantic import BaseModel

from idempotency_cache.adapters.asgi import ASGIIdempotencyMiddleware
from idempotency_cache.config import IdempotencyConfig
from idempotency_cache.observability.logging import configure_logging
from idempotency_cache.routing import disable_idempotency
from idempotency_cache.storage import create_storage
from idempotency_cache.storage.cleanup import (
    SupportsCleanup,
    start_cleanup_task,
    stop_cleanup_task,
)

configure_logging(level="INFO", json_output=False)

config = IdempotencyConfig.from_env()
storage = create_storage(config)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Delegating backends expire entries themselves
    if not isinstance(storage, SupportsCleanup):
        yield
        return

    task = await start_cleanup_task(storage, interval_seconds=config.cleanup_interval_seconds)
    yield
    await stop_cleanup_task(task)


app = FastAPI(
    title="Idempotency Cache Demo",
    description="Demo API showing replay of responses for repeated idempotency keys",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    ASGIIdempotencyMiddleware,
    storage=storage,
    config=config,
)

_ids = itertools.count(1)


class PaymentRequest(BaseModel):
    amount: int
    currency: str = "USD"
    description: Optional[str] = None


class PaymentResponse(BaseModel):
    id: int
    status: str
    amount: int
    currency: str
    created_at: str


class EventRequest(BaseModel):
    name: str


@app.get("/")
async def root():
    """Root endpoint - returns API info."""
    return {
        "name": "Idempotency Cache Demo",
        "version": "0.1.0",
        "endpoints": {
            "POST /api/payments": "Create payment (replayed for a repeated key)",
            "DELETE /api/payments/{id}": "Refund payment (replayed for a repeated key)",
            "POST /api/events": "Ingest event (opted out, never replayed)",
        },
        "usage": f"Include '{config.header_name}' header in POST/PUT/PATCH/DELETE requests",
    }


@app.post("/api/payments", response_model=PaymentResponse, status_code=201)
async def create_payment(payment: PaymentRequest):
    """Create a payment. Each execution allocates a new id."""
    await asyncio.sleep(0.1)

    return PaymentResponse(
        id=next(_ids),
        status="captured",
        amount=payment.amount,
        currency=payment.currency,
        created_at=datetime.now(UTC).isoformat(),
    )


@app.delete("/api/payments/{payment_id}")
async def refund_payment(payment_id: int):
    """Refund a payment."""
    await asyncio.sleep(0.1)

    return {
        "id": payment_id,
        "status": "refunded",
        "refunded_at": datetime.now(UTC).isoformat(),
    }


@app.post("/api/events", status_code=202)
@disable_idempotency
async def ingest_event(event: EventRequest):
    """Ingest an event. Opted out: every request executes."""
    return {"accepted": event.name, "sequence": next(_ids)}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
