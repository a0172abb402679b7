"""Link creation endpoint behavior tests."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from shortener.errors import StorageError
from shortener.link_service import ALPHABET, SHORT_CODE_LENGTH, LinkService


@pytest.mark.asyncio
async def test_shorten_valid_url(client: AsyncClient) -> None:
    response = await client.post("/links", json={"long_url": "https://www.google.com"})
    assert response.status_code == 201
    data = response.json()
    assert data["long_url"] == "https://www.google.com"
    assert len(data["short_code"]) == SHORT_CODE_LENGTH
    assert all(c in ALPHABET for c in data["short_code"])
    assert data["full_short_url"] == f"http://localhost:8080/{data['short_code']}"


@pytest.mark.asyncio
async def test_shorten_invalid_url(client: AsyncClient) -> None:
    response = await client.post("/links", json={"long_url": "not-a-url"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_shorten_empty_url(client: AsyncClient) -> None:
    response = await client.post("/links", json={"long_url": ""})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_shorten_missing_body_field(client: AsyncClient) -> None:
    response = await client.post("/links", json={"url": "https://www.google.com"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_shorten_multiple_urls(client: AsyncClient) -> None:
    urls = [
        "https://www.google.com",
        "https://www.github.com",
        "https://www.python.org",
    ]
    codes = set()
    for url in urls:
        response = await client.post("/links", json={"long_url": url})
        assert response.status_code == 201
        codes.add(response.json()["short_code"])
    # All codes should be unique
    assert len(codes) == 3


@pytest.mark.asyncio
async def test_shorten_collision_exhaustion_returns_503(client: AsyncClient) -> None:
    with patch("shortener.link_service.generate_short_code", return_value="dupe01"):
        first = await client.post("/links", json={"long_url": "https://www.google.com"})
        second = await client.post("/links", json={"long_url": "https://www.github.com"})

    assert first.status_code == 201
    assert first.json()["short_code"] == "dupe01"
    assert second.status_code == 503


@pytest.mark.asyncio
async def test_shorten_storage_failure_returns_500(client: AsyncClient) -> None:
    failing = AsyncMock(side_effect=StorageError("create", "database is locked"))
    with patch.object(LinkService, "create_link", failing):
        response = await client.post("/links", json={"long_url": "https://www.google.com"})

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to create short link"}
