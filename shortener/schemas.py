"""Pydantic schemas for request validation and response serialization.

Schema Hierarchy
=================
::
    ShortenRequest (Input)
    ├─ url: str (validated absolute URL)
    └─ expires_in_seconds: int | None

    ShortenResponse (Output, 201)
    ├─ short_url: str
    ├─ short_code: str
    ├─ original_url: str
    └─ expires_at: datetime | None (omitted when absent)

    LinkStats (Output)
    ├─ short_code, short_url, original_url
    ├─ click_count: int
    ├─ created_at: datetime
    └─ expires_at: datetime | None

    ErrorResponse   {"error": ...}
    ExpiredResponse {"error": ..., "originalUrl": ...}
    HealthResponse  {"status": ..., "database": ...}

Key Behaviours
===============
- URL validation uses the validators library; the same check guards the
  service layer so non-HTTP callers get identical rules.
- ``expires_in_seconds`` may be zero or negative; that simply means no
  expiry. Values above ``MAX_EXPIRES_IN_SECONDS`` (100 years) are rejected.
- Single-label hosts such as ``localhost`` are valid URL hosts.
- The expired payload uses the camel-case ``originalUrl`` key the public
  API has always returned.
"""

import datetime

import validators
from pydantic import BaseModel, ConfigDict, Field, field_validator

from shortener.enums import HealthStatus

__all__ = [
    "ShortenRequest",
    "ShortenResponse",
    "LinkStats",
    "ErrorResponse",
    "ExpiredResponse",
    "HealthResponse",
    "is_valid_url",
    "MAX_EXPIRES_IN_SECONDS",
]

MAX_EXPIRES_IN_SECONDS = 100 * 365 * 24 * 60 * 60


def is_valid_url(value: str | None) -> bool:
    return bool(value) and bool(validators.url(value, simple_host=True))


class ShortenRequest(BaseModel):
    url: str
    expires_in_seconds: int | None = Field(default=None, le=MAX_EXPIRES_IN_SECONDS)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not is_valid_url(v):
            raise ValueError("Invalid URL provided")
        return v


class ShortenResponse(BaseModel):
    short_url: str
    short_code: str
    original_url: str
    expires_at: datetime.datetime | None = None


class LinkStats(BaseModel):
    short_code: str
    short_url: str
    original_url: str
    click_count: int
    created_at: datetime.datetime
    expires_at: datetime.datetime | None = None


class ErrorResponse(BaseModel):
    error: str


class ExpiredResponse(BaseModel):
    error: str = "link expired"
    original_url: str = Field(..., alias="originalUrl")

    model_config = ConfigDict(populate_by_name=True)


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
