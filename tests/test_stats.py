"""Stats endpoint behavior tests."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from shortener.dependencies import ServiceManager
from shortener.errors import StorageError
from shortener.link_service import LinkService


@pytest.mark.asyncio
async def test_stats_valid_code(client: AsyncClient) -> None:
    create_resp = await client.post("/links", json={"long_url": "https://www.google.com"})
    short_code = create_resp.json()["short_code"]

    response = await client.get(f"/links/{short_code}/stats")
    assert response.status_code == 200
    data = response.json()
    assert data["short_code"] == short_code
    assert data["long_url"] == "https://www.google.com"
    assert data["total_clicks"] == 0
    assert "created_at" in data


@pytest.mark.asyncio
async def test_stats_invalid_code(client: AsyncClient) -> None:
    response = await client.get("/links/nonexistent/stats")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_stats_after_clicks(client: AsyncClient, manager: ServiceManager) -> None:
    create_resp = await client.post("/links", json={"long_url": "https://www.example.com"})
    short_code = create_resp.json()["short_code"]

    for _ in range(5):
        await client.get(f"/{short_code}", follow_redirects=False)

    await manager.click_queue.join()

    response = await client.get(f"/links/{short_code}/stats")
    assert response.status_code == 200
    assert response.json()["total_clicks"] == 5


@pytest.mark.asyncio
async def test_stats_storage_failure_returns_500(client: AsyncClient) -> None:
    failing = AsyncMock(side_effect=StorageError("count_clicks_by_link_id", "disk I/O error"))
    with patch.object(LinkService, "get_link_stats", failing):
        response = await client.get("/links/abc123/stats")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
