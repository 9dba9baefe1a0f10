"""Link service layer: create and redirect orchestration.

Architecture Overview
=====================
::
    ┌──────────────────────────────────────────────────────────┐
    │                      LinkService                         │
    │  ┌────────────────┐  ┌────────────────┐  ┌─────────────┐ │
    │  │ create_link    │  │ resolve        │  │ get_link    │ │
    │  │ • validate URL │  │ • length guard │  │ • stats     │ │
    │  │ • expiry       │  │ • lookup       │  │   lookup    │ │
    │  │ • retry loop   │  │ • expiry check │  │             │ │
    │  └───────┬────────┘  └───────┬────────┘  └──────┬──────┘ │
    └──────────┼───────────────────┼──────────────────┼────────┘
               ▼                   ▼                  ▼
    ┌────────────────┐   ┌──────────────────┐  ┌──────────────┐
    │ allocator      │   │ LinkRepository   │  │ClickRecorder │
    │ (random codes) │   │ (PostgreSQL)     │  │ (bg tasks)   │
    └────────────────┘   └──────────────────┘  └──────────────┘

Link Creation Flow
------------------
::
    ┌──────────────┐
    │ validate URL │──invalid──▶ InvalidURLError
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ generate code│──random source down──▶ RandomSourceError
    └──────┬───────┘
           ▼
    ┌──────────────┐  UniquenessConflict   ┌──────────────────┐
    │ store.create │ ────────────────────▶ │ attempts left?   │
    └──────┬───────┘                       │ yes: new code    │
           │ ok                            │ no: Exhausted    │
           ▼                               └──────────────────┘
        Link (any other StorageError aborts immediately)

Redirect Flow
-------------
::
    len(code) != 5 ──▶ NOT_FOUND (store untouched)
    store miss     ──▶ NOT_FOUND
    expired        ──▶ EXPIRED (original URL disclosed)
    otherwise      ──▶ REDIRECT + ClickRecorder.record(id), not awaited
"""

import datetime
import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from prometheus_client import Counter, Histogram

from shortener.allocator import SHORT_CODE_LENGTH, RandomBytes, generate_short_code, is_well_formed
from shortener.clicks import ClickRecorder
from shortener.config import Settings
from shortener.enums import RequestStatus, ResolutionStatus
from shortener.errors import (
    AllocationExhaustedError,
    InvalidExpiryError,
    InvalidURLError,
    NotFound,
    UniquenessConflict,
)
from shortener.models import Link
from shortener.repository import LinkRepository
from shortener.schemas import MAX_EXPIRES_IN_SECONDS, is_valid_url

if TYPE_CHECKING:
    from shortener.dependencies import RequestContext

__all__ = ["LinkService", "Resolution", "utcnow"]


LINK_CREATION_REQUESTS_TOTAL = Counter(
    "link_shortener_creation_requests_total",
    "Total link creation requests",
    ["status"],
)
LINK_CREATION_DURATION = Histogram(
    "link_shortener_creation_duration_seconds",
    "Time taken to create short links",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)
SHORT_CODE_COLLISIONS_TOTAL = Counter(
    "link_shortener_short_code_collisions_total",
    "Short code collisions reported by the store during allocation",
)
REDIRECT_RESOLUTIONS_TOTAL = Counter(
    "link_shortener_redirect_resolutions_total",
    "Redirect lookups by outcome",
    ["outcome"],
)


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass(frozen=True)
class Resolution:
    status: ResolutionStatus
    link: Link | None = None


class LinkService:
    """Orchestrates code allocation, storage and redirects for links.

    The service holds no per-request state besides the logger it was built
    with, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        repository: LinkRepository,
        clicks: ClickRecorder,
        settings: Settings,
        logger: logging.Logger | logging.LoggerAdapter,
        random_bytes: RandomBytes = secrets.token_bytes,
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self._repository = repository
        self._clicks = clicks
        self._settings = settings
        self._logger = logger
        self._random_bytes = random_bytes
        self._clock = clock

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "LinkService":
        """Build a service bound to the request's logger and shared resources."""
        return cls(
            repository=ctx.repository,
            clicks=ctx.clicks,
            settings=ctx.settings,
            logger=ctx.logger,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    def short_url_for(self, link: Link) -> str:
        return f"{self._settings.public_base_url}/{link.short_code}"

    async def create_link(self, original_url: str, expires_in_seconds: int | None = None) -> Link:
        """Create a link for ``original_url``.

        Args:
            original_url: Absolute URL to redirect to.
            expires_in_seconds: Lifetime of the link; ``None`` or a value
                <= 0 means the link never expires.

        Returns:
            Link: The stored link with id and timestamps populated.

        Raises:
            InvalidURLError: If the URL is missing or malformed.
            InvalidExpiryError: If the lifetime exceeds ``MAX_EXPIRES_IN_SECONDS``.
            AllocationError: If no code could be allocated.
            StorageError: On any store failure other than a code collision.
        """
        start_time = time.perf_counter()

        if not is_valid_url(original_url):
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR).inc()
            raise InvalidURLError(f"invalid URL: {original_url!r}")

        if expires_in_seconds is not None and expires_in_seconds > MAX_EXPIRES_IN_SECONDS:
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR).inc()
            raise InvalidExpiryError(f"expires_in_seconds must be at most {MAX_EXPIRES_IN_SECONDS}")

        expires_at = None
        if expires_in_seconds is not None and expires_in_seconds > 0:
            expires_at = self._clock() + datetime.timedelta(seconds=expires_in_seconds)

        try:
            link = await self._allocate_and_store(original_url, expires_at)
        except Exception as exc:
            LINK_CREATION_DURATION.observe(time.perf_counter() - start_time)
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Link creation failed for {original_url}: {exc}")
            raise

        duration = time.perf_counter() - start_time
        LINK_CREATION_DURATION.observe(duration)
        LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(f"Link created: {link.short_code} -> {original_url} in {duration:.3f}s")
        return link

    async def resolve(self, short_code: str) -> Resolution:
        """Resolve a short code for the redirect endpoint.

        A matching, unexpired link gets its click counted in the background;
        this method never waits for that write.

        Raises:
            StorageError: If the store lookup fails.
        """
        if len(short_code) != SHORT_CODE_LENGTH:
            REDIRECT_RESOLUTIONS_TOTAL.labels(outcome=ResolutionStatus.NOT_FOUND).inc()
            return Resolution(ResolutionStatus.NOT_FOUND)

        try:
            link = await self._repository.get_by_code(short_code)
        except NotFound:
            REDIRECT_RESOLUTIONS_TOTAL.labels(outcome=ResolutionStatus.NOT_FOUND).inc()
            return Resolution(ResolutionStatus.NOT_FOUND)

        if link.is_expired(self._clock()):
            REDIRECT_RESOLUTIONS_TOTAL.labels(outcome=ResolutionStatus.EXPIRED).inc()
            self._logger.info(f"Link {short_code} expired at {link.expires_at}")
            return Resolution(ResolutionStatus.EXPIRED, link)

        self._clicks.record(link.id)
        REDIRECT_RESOLUTIONS_TOTAL.labels(outcome=ResolutionStatus.REDIRECT).inc()
        return Resolution(ResolutionStatus.REDIRECT, link)

    async def get_link(self, short_code: str) -> Link:
        """Fetch a link regardless of expiry; raises ``NotFound`` on a miss."""
        if not is_well_formed(short_code, SHORT_CODE_LENGTH):
            raise NotFound(short_code)
        return await self._repository.get_by_code(short_code)

    async def _allocate_and_store(self, original_url: str, expires_at: datetime.datetime | None) -> Link:
        attempts = self._settings.MAX_ALLOCATION_ATTEMPTS
        for attempt in range(1, attempts + 1):
            short_code = generate_short_code(SHORT_CODE_LENGTH, self._random_bytes)
            link = Link(short_code=short_code, original_url=original_url, expires_at=expires_at)
            try:
                return await self._repository.create(link)
            except UniquenessConflict:
                SHORT_CODE_COLLISIONS_TOTAL.inc()
                self._logger.warning(f"Short code collision on {short_code} (attempt {attempt}/{attempts})")

        raise AllocationExhaustedError(attempts)

