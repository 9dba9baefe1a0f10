"""FastAPI application entry point for the link shortener service.

Application Lifecycle Diagram
=============================
::
    ┌──────────────┐
    │ create_app() │
    │ (settings)   │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ error        │
    │ handlers     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ /metrics,    │
    │ routes       │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ startup:     │
    │ engine,      │
    │ migrate()    │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ Serve HTTP   │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ shutdown:    │
    │ drain clicks,│
    │ dispose pool │
    └──────────────┘

How to Use
===========
**Run with uvicorn**::
    uvicorn shortener.main:app --host 0.0.0.0 --port 8080

**Or through the package entry point**::
    python -m shortener

**Shorten and follow a link**::
    curl -X POST http://localhost:8080/api/v1/shorten \
         -H "Content-Type: application/json" \
         -d '{"url": "https://example.com", "expires_in_seconds": 3600}'
    curl -i http://localhost:8080/abc12

Key Behaviours
===============
- Request validation failures answer 400 ``{"error": ...}``.
- Allocation and storage failures answer 500 with a generic message; the
  cause is logged.
- ``/metrics`` is registered before the catch-all ``/{code}`` route.
"""

__all__ = ["app", "create_app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from shortener.config import Settings, get_settings
from shortener.dependencies import ServiceManager
from shortener.errors import AllocationError, InvalidExpiryError, InvalidURLError, NotFound, StoreError
from shortener.routes import router


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _register_error_handlers(app: FastAPI, manager: ServiceManager) -> None:
    logger = manager.logger

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return _error(status.HTTP_400_BAD_REQUEST, f"invalid request: {details}")

    @app.exception_handler(InvalidURLError)
    async def handle_invalid_url(request: Request, exc: InvalidURLError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, f"invalid request: {exc}")

    @app.exception_handler(InvalidExpiryError)
    async def handle_invalid_expiry(request: Request, exc: InvalidExpiryError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, f"invalid request: {exc}")

    @app.exception_handler(NotFound)
    async def handle_not_found(request: Request, exc: NotFound) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, "not found")

    @app.exception_handler(AllocationError)
    async def handle_allocation_error(request: Request, exc: AllocationError) -> JSONResponse:
        logger.error(f"Short code allocation failed on {request.url.path}: {exc}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "could not allocate short code")

    @app.exception_handler(StoreError)
    async def handle_store_error(request: Request, exc: StoreError) -> JSONResponse:
        logger.error(f"Storage failure on {request.url.path}: {exc}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal storage error")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    manager = ServiceManager(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        await manager.start()
        manager.logger.info(f"{settings.APP_NAME} serving short links under {settings.public_base_url}")
        yield
        await manager.stop()

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="Short links with expiry and click counting",
        lifespan=lifespan,
    )
    app.state.services = manager

    _register_error_handlers(app, manager)

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=False,
        should_respect_env_var=False,
    ).instrument(app).expose(app, include_in_schema=False)

    app.include_router(router)
    return app


app = create_app()
