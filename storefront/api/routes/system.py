"""System-level routes such as health checks."""

from __future__ import annotations

import logging

from fastapi import APIRouter

from storefront.api.dependencies import RedisDependency
from storefront.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get("/")
async def read_root() -> dict[str, str]:
    """Service banner used by smoke tests."""

    return {"message": "Storefront composition service"}


@router.get("/health")
async def health_check(redis_client: RedisDependency) -> dict[str, str]:
    """Health check endpoint with rule cache connectivity check."""

    try:
        cache_status = "connected" if await redis_client.ping() else "disconnected"
    except Exception as exc:  # pylint: disable=broad-exception-caught
        logger.warning("Rule cache ping failed: %s", exc)
        cache_status = "disconnected"

    return {
        "status": "healthy",
        "cache": cache_status,
        "environment": settings.ENVIRONMENT,
    }
