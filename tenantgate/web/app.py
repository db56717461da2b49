"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tenantgate.config.logging import setup_logging
from tenantgate.config.settings import Settings, get_settings
from tenantgate.exceptions import TenantGateError
from tenantgate.storage.database import get_engine, init_db
from tenantgate.web.dependencies import Platform, bootstrap, build_platform
from tenantgate.web.health import check_health
from tenantgate.web.middleware import RequestContextMiddleware, RequestIDMiddleware
from tenantgate.web.routes.admin import router as admin_router
from tenantgate.web.routes.auth import router as auth_router
from tenantgate.web.routes.content_api import router as content_api_router
from tenantgate.web.routes.content_manager import router as content_manager_router

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)

_HTTP_ERROR_NAMES = {
    400: "ValidationError",
    401: "UnauthorizedError",
    403: "ForbiddenError",
    404: "NotFoundError",
    405: "MethodNotAllowedError",
    409: "ConflictError",
}


def _error_response(status: int, name: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={"error": {"status": status, "name": name, "message": message}},
    )


def create_app(
    engine: AsyncEngine | None = None,
    settings: Settings | None = None,
    platform: Platform | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    An already built ``platform`` wins over ``engine`` and ``settings``.
    """
    if platform is not None:
        settings = platform.settings
    settings = settings or get_settings()
    setup_logging(log_level=settings.log_level, json_output=not settings.debug)
    if platform is None:
        platform = build_platform(engine or get_engine(), settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if settings.auto_create_tables:
            await init_db(platform.engine)
        await bootstrap(platform)
        yield
        logger.info("app_shutdown", pending_heals=platform.assigner.pending)
        await platform.assigner.drain()

    app = FastAPI(
        title="tenantgate",
        description="Multi-tenant content management backend",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.platform = platform

    @app.exception_handler(TenantGateError)
    async def tenantgate_error_handler(_request: Request, exc: TenantGateError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("request_failed", error=exc.message, name=exc.name)
        return _error_response(exc.status_code, exc.name, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = f"{location}: {first.get('msg', 'invalid')}" if location else "Invalid request"
        return _error_response(400, "ValidationError", message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        name = _HTTP_ERROR_NAMES.get(exc.status_code, "HttpError")
        return _error_response(exc.status_code, name, str(exc.detail))

    # Middleware: last added runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check (public); registered before /api/{plural}
    @app.get("/api/health")
    async def health_check() -> dict[str, object]:
        return await check_health(platform.engine)

    app.include_router(auth_router)
    app.include_router(admin_router)
    app.include_router(content_manager_router)
    app.include_router(content_api_router)

    logger.info("app_created")
    return app
