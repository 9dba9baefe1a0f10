"""Async SQLAlchemy engine setup for the link shortener.

Flow Diagram: Engine Lifecycle
===============================
::
    ┌─────────────┐
    │  Settings    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ build_engine │
    │ (pool sizing)│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ LinkRepository│
    │ sessions     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ close_engine │
    │ (shutdown)   │
    └─────────────┘

Key Behaviours
===============
- Pool limits only apply to server databases; SQLite (used by the test
  suite) keeps SQLAlchemy's default pool.
- ``pool_pre_ping`` drops dead connections before handing them out.
- Connections are recycled after ``DB_POOL_RECYCLE_SECONDS``.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    build_engine():  Creates the async engine from settings.
    build_session_factory():  Creates the session factory bound to an engine.
    close_engine():  Disposes the engine on shutdown.
"""

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shortener.config import Settings

__all__ = ["Base", "build_engine", "build_session_factory", "close_engine"]


class Base(DeclarativeBase):
    pass


def build_engine(settings: Settings) -> AsyncEngine:
    url = make_url(settings.database_url)
    options: dict[str, Any] = {"echo": settings.DB_ECHO}

    if url.get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
            pool_pre_ping=True,
        )

    return create_async_engine(url, **options)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def close_engine(engine: AsyncEngine) -> None:
    await engine.dispose()
