"""Tests for request ID middleware."""

import pytest

from eventhub.middleware.request_id import resolve_request_id


@pytest.mark.asyncio
async def test_request_id_generated(client):
    """Each request gets a unique X-Request-ID header."""
    r1 = await client.get("/api/health")
    r2 = await client.get("/api/health")
    assert "X-Request-ID" in r1.headers
    assert "X-Request-ID" in r2.headers
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    """Incoming X-Request-ID is propagated through the response."""
    custom_id = "test-trace-12345"
    r = await client.get("/api/health", headers={"X-Request-ID": custom_id})
    assert r.headers["X-Request-ID"] == custom_id


@pytest.mark.asyncio
async def test_request_id_with_unsafe_characters_is_replaced(client):
    """Header text that isn't a plain token never becomes the request id."""
    r = await client.get("/api/health", headers={"X-Request-ID": "bad id; with spaces"})
    assert r.headers["X-Request-ID"] != "bad id; with spaces"
    assert len(r.headers["X-Request-ID"]) == 32


@pytest.mark.asyncio
async def test_overlong_request_id_is_replaced(client):
    r = await client.get("/api/health", headers={"X-Request-ID": "a" * 200})
    assert r.headers["X-Request-ID"] != "a" * 200


def test_resolve_request_id_keeps_tokens():
    assert resolve_request_id("trace-1.2_3") == "trace-1.2_3"
    assert resolve_request_id(None) != resolve_request_id(None)
