"""Shared resources and per-request dependency injection.

``ServiceManager`` owns everything that lives for the whole process: the
settings it was built with, the logger, the database engine, the link
repository and the click recorder. The app factory creates one manager,
starts it in the lifespan handler and stores it on ``app.state.services``.
Request handlers reach it through ``get_service_manager`` and wrap it in a
lightweight ``RequestContext``.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from shortener.clicks import ClickRecorder
from shortener.config import Settings
from shortener.database import build_engine, close_engine
from shortener.repository import LinkRepository
from shortener.service import LinkService


# ============================================================================
# SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Process-wide resources built from explicit settings."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.logger = self._setup_logger()
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Create the engine, run migrations if enabled, wire the repository."""
        if self._started:
            return
        self.engine: AsyncEngine = build_engine(self.settings)
        self.repository = LinkRepository(self.engine)
        self.clicks = ClickRecorder(self.repository, self.logger)
        if self.settings.AUTO_MIGRATE:
            await self.repository.migrate()
            self.logger.info("Database schema is up to date")
        self._started = True

    async def stop(self, drain_timeout: float = 10.0) -> None:
        """Let pending click increments finish, then close the pool."""
        if not self._started:
            return
        await self.clicks.drain(timeout=drain_timeout)
        await close_engine(self.engine)
        self._started = False

    def _setup_logger(self) -> logging.Logger:
        logger = logging.getLogger("shortener")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request view over the shared resources.

    Attributes:
        service_manager: Process-wide resources
        request_id: Unique identifier for this request
        trace_id: Correlation ID propagated from ``X-Trace-ID``
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
    """

    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    trace_id: Optional[str] = None
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=lambda: time.time())

    @property
    def repository(self) -> LinkRepository:
        return self.service_manager.repository

    @property
    def clicks(self) -> ClickRecorder:
        return self.service_manager.clicks

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def logger(self) -> logging.LoggerAdapter:
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "trace_id": self.trace_id or self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_service_manager(request: Request) -> ServiceManager:
    return request.app.state.services


def get_request_context(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    return RequestContext(
        service_manager=manager,
        trace_id=request.headers.get("x-trace-id"),
        user_agent=request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
    )


def get_link_service(ctx: RequestContext = Depends(get_request_context)) -> LinkService:
    return LinkService.from_context(ctx)
