"""Shared pytest fixtures for repository, service and API tests.

Integration tests run against a throwaway SQLite file by default. Point
``TEST_DATABASE_URL`` at a PostgreSQL database to run them against the
production driver instead.
"""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shortener.config import Settings
from shortener.database import Base
from shortener.dependencies import ServiceManager, get_service_manager
from shortener.main import app
from shortener.repository import LinkRepository

BASE_URL = "http://localhost:8080"


@pytest.fixture
def settings(tmp_path) -> Settings:
    database_url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'links.db'}"
    return Settings(DATABASE_URL=database_url, BASE_URL=BASE_URL, AUTO_MIGRATE=True)


@pytest_asyncio.fixture(scope="function")
async def services(settings: Settings) -> AsyncGenerator[ServiceManager, None]:
    manager = ServiceManager(settings)
    await manager.start()

    yield manager

    await manager.clicks.drain(timeout=5)
    async with manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await manager.stop()


@pytest.fixture
def repository(services: ServiceManager) -> LinkRepository:
    return services.repository


@pytest_asyncio.fixture(scope="function")
async def client(services: ServiceManager) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_service_manager] = lambda: services

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
