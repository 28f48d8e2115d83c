import pytest


@pytest.mark.asyncio
async def test_health_ok(client):
    r = await client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["app"] == "EventHub"
    assert "X-Request-ID" in r.headers


@pytest.mark.asyncio
async def test_metrics_requires_token(client):
    r = await client.get("/metrics")
    assert r.status_code == 403

    r = await client.get("/metrics", headers={"X-Metrics-Token": "test-metrics-token"})
    assert r.status_code == 200
    assert "http_requests_total" in r.text


@pytest.mark.asyncio
async def test_home_anonymous(client):
    r = await client.get("/")
    assert r.status_code == 200
    assert r.json()["user"] is None
