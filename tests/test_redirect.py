"""Redirect endpoint behavior tests."""

import asyncio
import datetime
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from shortener.dependencies import ServiceManager
from shortener.errors import StorageError
from shortener.models import Link


async def shorten(client: AsyncClient, url: str) -> str:
    response = await client.post("/api/v1/shorten", json={"url": url})
    assert response.status_code == 201
    return response.json()["short_code"]


@pytest.mark.asyncio
async def test_redirect_valid_code(client: AsyncClient) -> None:
    short_code = await shorten(client, "https://www.google.com/search?q=python")

    response = await client.get(f"/{short_code}", follow_redirects=False)
    assert response.status_code == 307
    assert response.headers["location"] == "https://www.google.com/search?q=python"


@pytest.mark.asyncio
async def test_redirect_unknown_code(client: AsyncClient) -> None:
    response = await client.get("/zzzzz", follow_redirects=False)
    assert response.status_code == 404
    assert response.json() == {"error": "not found"}


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["ab", "toolongcode", "abcd", "abcdef"])
async def test_redirect_wrong_length_skips_lookup(
    client: AsyncClient, services: ServiceManager, monkeypatch, code: str
) -> None:
    lookup = AsyncMock()
    monkeypatch.setattr(services.repository, "get_by_code", lookup)

    response = await client.get(f"/{code}", follow_redirects=False)
    assert response.status_code == 404
    assert response.json() == {"error": "not found"}
    lookup.assert_not_awaited()


@pytest.mark.asyncio
async def test_redirect_expired_link(client: AsyncClient, services: ServiceManager) -> None:
    expired = datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(seconds=1)
    await services.repository.create(
        Link(short_code="old01", original_url="https://example.com/gone", expires_at=expired)
    )

    response = await client.get("/old01", follow_redirects=False)
    assert response.status_code == 410
    assert response.json() == {"error": "link expired", "originalUrl": "https://example.com/gone"}


@pytest.mark.asyncio
async def test_redirect_expired_link_is_not_counted(client: AsyncClient, services: ServiceManager) -> None:
    expired = datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(minutes=5)
    await services.repository.create(
        Link(short_code="old02", original_url="https://example.com", expires_at=expired)
    )

    for _ in range(3):
        await client.get("/old02", follow_redirects=False)
    await services.clicks.drain(timeout=5)

    assert (await services.repository.get_by_code("old02")).click_count == 0


@pytest.mark.asyncio
async def test_redirect_before_expiry(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/shorten",
        json={"url": "https://www.python.org", "expires_in_seconds": 3600},
    )
    short_code = response.json()["short_code"]

    response = await client.get(f"/{short_code}", follow_redirects=False)
    assert response.status_code == 307
    assert response.headers["location"] == "https://www.python.org"


@pytest.mark.asyncio
async def test_redirect_increments_clicks(client: AsyncClient, services: ServiceManager) -> None:
    short_code = await shorten(client, "https://www.python.org")

    for _ in range(3):
        await client.get(f"/{short_code}", follow_redirects=False)
    await services.clicks.drain(timeout=5)

    assert (await services.repository.get_by_code(short_code)).click_count == 3


@pytest.mark.asyncio
async def test_concurrent_redirects_are_all_counted(client: AsyncClient, services: ServiceManager) -> None:
    short_code = await shorten(client, "https://www.example.com")

    responses = await asyncio.gather(
        *(client.get(f"/{short_code}", follow_redirects=False) for _ in range(10))
    )
    assert all(r.status_code == 307 for r in responses)

    await services.clicks.drain(timeout=10)
    assert (await services.repository.get_by_code(short_code)).click_count == 10


@pytest.mark.asyncio
async def test_redirect_storage_failure(client: AsyncClient, services: ServiceManager, monkeypatch) -> None:
    monkeypatch.setattr(
        services.repository, "get_by_code", AsyncMock(side_effect=StorageError("connection reset"))
    )

    response = await client.get("/abc12", follow_redirects=False)
    assert response.status_code == 500
    assert response.json() == {"error": "internal storage error"}
