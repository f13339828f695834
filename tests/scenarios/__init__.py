"""End-to-end scenario tests for the idempotency middleware.

Each module drives a FastAPI application through the ASGI adapter and checks
one aspect of request handling as a client would observe it.
"""
