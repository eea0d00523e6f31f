"""
FastAPI Production Application

Main entry point for the Profit Insights API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
import structlog

from profit_insights.config import get_settings
from profit_insights.config.logging import configure_logging
from profit_insights.serving.api import create_api_app

settings = get_settings()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()

    logger.info(
        "Starting Profit Insights API",
        environment=settings.app_env,
        ai_provider="configured" if settings.ai.enabled else "not_configured",
    )

    yield

    logger.info("Shutting down...")


app = create_api_app(settings, lifespan=lifespan)


@app.get("/api/v1/info")
async def api_info():
    """API information endpoint."""
    return {
        "name": "E-Commerce Profit Insights API",
        "version": settings.version,
        "environment": settings.app_env,
        "documentation": "/docs",
    }


def run():
    """Console entry point"""
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
