"""
FastAPI Application Factory

Creates and configures the upload API application.
"""

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
import structlog

from profit_insights.config import Settings, get_settings
from profit_insights.errors import (
    FileTooLargeError,
    IngestionError,
    InsufficientCreditsError,
    InvalidCredentialsError,
)
from profit_insights.serving.api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from profit_insights.serving.api.routes import analysis_router, health_router

logger = structlog.get_logger(__name__)

ERROR_STATUS = (
    (FileTooLargeError, 413),
    (IngestionError, 400),
    (InvalidCredentialsError, 401),
    (InsufficientCreditsError, 402),
)


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        logger.warning(
            "Request rejected",
            path=request.url.path,
            status_code=status_code,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return JSONResponse(
            status_code=status_code,
            content={"error": type(exc).__name__, "detail": str(exc)},
        )

    return handler


def create_api_app(settings: Optional[Settings] = None, lifespan: Optional[Any] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="E-Commerce Profit Insights API",
        description="Profit audit and inventory forecasting for store exports",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    for error_type, status_code in ERROR_STATUS:
        app.add_exception_handler(error_type, _error_handler(status_code))

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(analysis_router, prefix="/api/v1", tags=["Analysis"])

    if settings.monitoring.metrics_enabled:
        app.mount("/metrics", make_asgi_app())

    return app
