"""Health endpoint smoke test."""

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def test_healthcheck_reports_service_and_database(client: AsyncClient) -> None:
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["database"] == "ok"
    assert payload["service"] == "Home Services Checkout API"
    assert payload["currency"] == "INR"
    assert "x-request-id" in response.headers
    assert "x-content-type-options" in response.headers


async def test_root_names_the_service(client: AsyncClient) -> None:
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["currency"] == "INR"
