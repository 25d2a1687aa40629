import pytest
from httpx import AsyncClient

from lostphones.settings import settings


@pytest.mark.asyncio
async def test_health_endpoints(api_client: AsyncClient):
    live = await api_client.get("/health/live")
    assert live.json() == {"status": "ok"}
    ready = await api_client.get("/health/ready")
    assert ready.status_code == 200
    assert ready.json()["checks"]["postgres"]["mode"] == "memory"


@pytest.mark.asyncio
async def test_metrics_require_token(api_client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "obs_metrics_public", False)
    monkeypatch.setattr(settings, "obs_admin_token", "ops-token")

    assert (await api_client.get("/metrics")).status_code == 403
    response = await api_client.get("/metrics", headers={"X-Admin-Token": "ops-token"})
    assert response.status_code == 200
    assert "lostphones_listing" in response.text


@pytest.mark.asyncio
async def test_metrics_closed_without_configured_token(api_client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "obs_metrics_public", False)
    monkeypatch.setattr(settings, "obs_admin_token", None)
    assert (await api_client.get("/metrics")).status_code == 403


@pytest.mark.asyncio
async def test_request_id_is_echoed(api_client: AsyncClient):
    response = await api_client.get("/listings/nope", headers={"X-Request-Id": "req-123"})
    assert response.headers["x-request-id"] == "req-123"
    assert response.json()["request_id"] == "req-123"


@pytest.mark.asyncio
async def test_non_integer_page_is_a_validation_error(api_client: AsyncClient):
    response = await api_client.get("/listings", params={"page": "two"})
    assert response.status_code == 422
    body = response.json()
    assert body["kind"] == "validation_error"
    assert body["errors"][0]["field"] == "page"


@pytest.mark.asyncio
async def test_login_is_rate_limited(api_client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "login_rate_per_minute", 2)
    for _ in range(2):
        response = await api_client.post("/auth/login", json={"identifier": "ghost", "password": "nope"})
        assert response.status_code == 401
    response = await api_client.post("/auth/login", json={"identifier": "ghost", "password": "nope"})
    assert response.status_code == 429
    assert response.json()["kind"] == "rate_limited"
