"""Health endpoint tests."""

import pytest


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    """Health endpoint should report server, database and sync status."""
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["server"] == "ok"
    assert data["database"] == "ok"
    assert "version" in data
    assert data["subscribers"] == 0
    assert data["watermark"] is None  # poller not started under ASGITransport


@pytest.mark.asyncio
async def test_health_reports_watermark(app, client, changelog):
    await changelog.append("event_changes", "{}")
    await app.state.poller.run_cycle()

    data = (await client.get("/api/health")).json()
    assert data["watermark"] == await changelog.max_id()


@pytest.mark.asyncio
async def test_health_counts_live_subscribers(app, client):
    sub = app.state.broadcaster.subscribe()
    assert (await client.get("/api/health")).json()["subscribers"] == 1

    sub.close()
    assert (await client.get("/api/health")).json()["subscribers"] == 0
