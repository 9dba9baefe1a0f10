"""FastAPI route definitions for the link shortener API.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /api/v1/shorten
        ├─ ShortenRequest (request body)
        └─ ShortenResponse (201) or 400/500

    GET  /api/v1/stats/:code
        └─ LinkStats (200) or 404/500

    GET  /:code
        └─ 307 Redirect, or 404 / 410 (expired) / 500

Key Behaviours
===============
- Redirects are 307 (temporary) so clients keep coming back, which keeps
  expiry checks and click counting effective.
- An expired link answers 410 and still tells the caller where it pointed.
- Error bodies are ``{"error": ...}``; storage details are only logged.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, RedirectResponse

from shortener.dependencies import RequestContext, get_link_service, get_request_context
from shortener.enums import HealthStatus, ResolutionStatus
from shortener.errors import NotFound
from shortener.schemas import (
    ErrorResponse,
    ExpiredResponse,
    HealthResponse,
    LinkStats,
    ShortenRequest,
    ShortenResponse,
)
from shortener.service import LinkService

__all__ = ["router"]

router = APIRouter()

NOT_FOUND_BODY = ErrorResponse(error="not found").model_dump()


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    try:
        await ctx.repository.ping()
    except Exception as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    return HealthResponse(status=db_status, database=db_status)


@router.post(
    "/api/v1/shorten",
    response_model=ShortenResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["links"],
)
async def shorten_url(
    payload: ShortenRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> ShortenResponse:
    ctx.logger.info(f"Shorten requested: {payload.url}")

    link = await service.create_link(payload.url, payload.expires_in_seconds)

    ctx.logger.info(f"Shortened {payload.url} to {link.short_code} in {ctx.get_duration():.1f}ms")
    return ShortenResponse(
        short_url=service.short_url_for(link),
        short_code=link.short_code,
        original_url=link.original_url,
        expires_at=link.expires_at,
    )


@router.get(
    "/api/v1/stats/{short_code}",
    response_model=LinkStats,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse}},
    tags=["links"],
)
async def get_stats(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
):
    try:
        link = await service.get_link(short_code)
    except NotFound:
        ctx.logger.info(f"Stats not found for short code: {short_code}")
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=NOT_FOUND_BODY)

    return LinkStats(
        short_code=link.short_code,
        short_url=service.short_url_for(link),
        original_url=link.original_url,
        click_count=link.click_count,
        created_at=link.created_at,
        expires_at=link.expires_at,
    )


@router.get(
    "/{short_code}",
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    responses={404: {"model": ErrorResponse}, 410: {"model": ExpiredResponse}},
    tags=["redirect"],
)
async def redirect_to_url(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
):
    resolution = await service.resolve(short_code)

    if resolution.status is ResolutionStatus.NOT_FOUND:
        ctx.logger.info(f"Redirect failed - short code not found: {short_code}")
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=NOT_FOUND_BODY)

    link = resolution.link
    if resolution.status is ResolutionStatus.EXPIRED:
        body = ExpiredResponse(original_url=link.original_url)
        return JSONResponse(status_code=status.HTTP_410_GONE, content=body.model_dump(by_alias=True))

    ctx.logger.info(f"Redirect {short_code} -> {link.original_url} in {ctx.get_duration():.1f}ms")
    return RedirectResponse(url=link.original_url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
