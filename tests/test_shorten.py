"""Shorten endpoint behavior tests."""

import asyncio
import datetime

import pytest
from httpx import AsyncClient

from shortener.allocator import ALPHABET
from shortener.errors import RandomSourceError, StorageError
from shortener.dependencies import ServiceManager
from shortener.schemas import MAX_EXPIRES_IN_SECONDS

BASE_URL = "http://localhost:8080"


@pytest.mark.asyncio
async def test_shorten_valid_url(client: AsyncClient) -> None:
    response = await client.post("/api/v1/shorten", json={"url": "https://example.com"})
    assert response.status_code == 201
    data = response.json()
    code = data["short_code"]
    assert len(code) == 5
    assert all(c in ALPHABET for c in code)
    assert data["short_url"] == f"{BASE_URL}/{code}"
    assert data["original_url"] == "https://example.com"
    assert "expires_at" not in data


@pytest.mark.asyncio
async def test_shorten_with_expiry(client: AsyncClient) -> None:
    before = datetime.datetime.now(datetime.timezone.utc)
    response = await client.post(
        "/api/v1/shorten",
        json={"url": "https://www.python.org", "expires_in_seconds": 3600},
    )
    assert response.status_code == 201
    expires_at = datetime.datetime.fromisoformat(response.json()["expires_at"])
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=datetime.timezone.utc)
    assert before + datetime.timedelta(seconds=3590) < expires_at < before + datetime.timedelta(seconds=3660)


@pytest.mark.asyncio
@pytest.mark.parametrize("seconds", [0, -10])
async def test_shorten_non_positive_expiry_never_expires(client: AsyncClient, seconds: int) -> None:
    response = await client.post(
        "/api/v1/shorten",
        json={"url": "https://www.python.org", "expires_in_seconds": seconds},
    )
    assert response.status_code == 201
    assert "expires_at" not in response.json()


@pytest.mark.asyncio
async def test_shorten_invalid_url(client: AsyncClient) -> None:
    response = await client.post("/api/v1/shorten", json={"url": "not-a-url"})
    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_shorten_empty_url(client: AsyncClient) -> None:
    response = await client.post("/api/v1/shorten", json={"url": ""})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_shorten_missing_url(client: AsyncClient) -> None:
    response = await client.post("/api/v1/shorten", json={"expires_in_seconds": 60})
    assert response.status_code == 400
    assert response.json()["error"].startswith("invalid request")


@pytest.mark.asyncio
async def test_shorten_bad_expiry_type(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/shorten",
        json={"url": "https://example.com", "expires_in_seconds": "soon"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_shorten_multiple_urls(client: AsyncClient) -> None:
    codes = set()
    for url in ["https://www.google.com", "https://www.github.com", "https://www.python.org"]:
        response = await client.post("/api/v1/shorten", json={"url": url})
        assert response.status_code == 201
        codes.add(response.json()["short_code"])
    assert len(codes) == 3


@pytest.mark.asyncio
async def test_shorten_same_url_twice_gives_two_links(client: AsyncClient) -> None:
    first = await client.post("/api/v1/shorten", json={"url": "https://example.com"})
    second = await client.post("/api/v1/shorten", json={"url": "https://example.com"})
    assert first.json()["short_code"] != second.json()["short_code"]


@pytest.mark.asyncio
async def test_shorten_random_source_failure(client: AsyncClient, monkeypatch) -> None:
    def broken(length, random_bytes):
        raise RandomSourceError("random source unavailable")

    monkeypatch.setattr("shortener.service.generate_short_code", broken)

    response = await client.post("/api/v1/shorten", json={"url": "https://example.com"})
    assert response.status_code == 500
    assert response.json() == {"error": "could not allocate short code"}


@pytest.mark.asyncio
async def test_shorten_storage_failure(client: AsyncClient, services: ServiceManager, monkeypatch) -> None:
    async def failing_create(link):
        raise StorageError("connection refused")

    monkeypatch.setattr(services.repository, "create", failing_create)

    response = await client.post("/api/v1/shorten", json={"url": "https://example.com"})
    assert response.status_code == 500
    assert "connection refused" not in response.json()["error"]


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["http://localhost:3000/x", "http://intranet/page", "https://example.com:8443/a?b=c"])
async def test_shorten_accepts_single_label_and_port_hosts(client: AsyncClient, url: str) -> None:
    response = await client.post("/api/v1/shorten", json={"url": url})
    assert response.status_code == 201
    assert response.json()["original_url"] == url


@pytest.mark.asyncio
@pytest.mark.parametrize("seconds", [MAX_EXPIRES_IN_SECONDS + 1, 10**12])
async def test_shorten_rejects_out_of_range_expiry(client: AsyncClient, seconds: int) -> None:
    response = await client.post(
        "/api/v1/shorten",
        json={"url": "https://example.com", "expires_in_seconds": seconds},
    )
    assert response.status_code == 400
    assert response.json()["error"].startswith("invalid request")


@pytest.mark.asyncio
async def test_shorten_longest_allowed_expiry(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/shorten",
        json={"url": "https://example.com", "expires_in_seconds": MAX_EXPIRES_IN_SECONDS},
    )
    assert response.status_code == 201
    assert "expires_at" in response.json()


@pytest.mark.asyncio
async def test_concurrent_shortens_get_distinct_codes(client: AsyncClient) -> None:
    responses = await asyncio.gather(
        *(client.post("/api/v1/shorten", json={"url": f"https://example.com/{i}"}) for i in range(10))
    )

    assert all(r.status_code == 201 for r in responses)
    codes = {r.json()["short_code"] for r in responses}
    assert len(codes) == 10
