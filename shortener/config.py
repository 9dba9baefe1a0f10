"""Configuration management for the link shortener service.

Settings are loaded once from the environment (and an optional ``.env``
file) into a Pydantic ``BaseSettings`` model. The resulting object is
passed explicitly to the app factory, the database layer and the service
layer; nothing below the app factory reads the environment itself.

Flow Diagram: get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1: Build the app with the process settings**::
    from shortener.config import get_settings
    from shortener.main import create_app

    app = create_app(get_settings())

**Step 2: Or build explicit settings (tests, scripts)**::
    settings = Settings(DATABASE_URL="sqlite+aiosqlite:///./links.db")

Key Behaviours
===============
- Environment variables override defaults automatically.
- ``DATABASE_URL`` wins over the individual ``DB_*`` fields when set.
- The allocation attempt bound is configurable and defaults to 5.

Classes:
    Settings:  Pydantic model for all configuration values.
"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "link-shortener"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "urlshortener"
    DB_PASSWORD: str = "password"
    DB_NAME: str = "urlshortener"
    DATABASE_URL: str | None = None

    # Connection pool: at most DB_POOL_SIZE + DB_MAX_OVERFLOW open connections
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_RECYCLE_SECONDS: int = 1800
    DB_ECHO: bool = False

    # HTTP
    BASE_URL: str = "http://localhost:8080"
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8080

    # Short code allocation
    MAX_ALLOCATION_ATTEMPTS: int = 5

    AUTO_MIGRATE: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    @property
    def public_base_url(self) -> str:
        return self.BASE_URL.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
