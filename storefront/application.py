"""FastAPI application factory and bootstrap helpers."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.api.routes import include_api_routes
from storefront.config import settings
from storefront.services.background import get_task_runner
from storefront.services.cache.redis_client import close_redis_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events."""

    logger.info("Storefront service starting (environment=%s)", settings.ENVIRONMENT)
    yield

    runner = get_task_runner()
    if runner.pending:
        logger.info("Waiting for %s detached tasks", runner.pending)
    await runner.drain()
    try:
        await close_redis_client()
    except Exception:
        logger.exception("Failed closing Redis client on shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Storefront Composition",
        description="Smart rule engine and page hydration for tenant storefronts",
        version="1.0.0",
        lifespan=lifespan,
    )

    _configure_cors(app)
    include_api_routes(app)

    return app


def _configure_cors(app: FastAPI) -> None:
    """Allow broad access in non-production environments."""

    if settings.is_production:
        return

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
