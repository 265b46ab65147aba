"""System-level routes such as health checks."""

from __future__ import annotations

from fastapi import APIRouter
from redis.exceptions import RedisError

from storefront.config import settings
from storefront.services.backend.redis_client import RedisDependency

router = APIRouter(tags=["system"])


@router.get("/health")
async def health_check(client: RedisDependency) -> dict[str, str]:
    """Health check endpoint with Redis connectivity check."""

    try:
        await client.ping()
        redis_status = "connected"
    except (RedisError, OSError):
        redis_status = "disconnected"

    return {
        "status": "healthy",
        "redis": redis_status,
        "environment": settings.ENVIRONMENT,
    }
