"""Health endpoint tests."""

import pytest
from httpx import AsyncClient

from shortener.enums import HealthStatus


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": HealthStatus.OK.value}


@pytest.mark.asyncio
async def test_metrics_endpoint_is_not_a_short_code(client: AsyncClient) -> None:
    await client.post("/links", json={"long_url": "https://www.example.com"})

    response = await client.get("/metrics")

    assert response.status_code == 200
    assert "shortener_link_creation_requests_total" in response.text


def test_health_status_only_reports_ok() -> None:
    assert list(HealthStatus) == [HealthStatus.OK]
