"""Health check endpoints. Served at the root, outside the response envelope."""

import asyncio
import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.config import get_settings
from infrastructure.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()


def _app_info() -> dict:
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def _check_database(db: AsyncSession) -> str:
    try:
        result = await asyncio.wait_for(db.execute(text("SELECT 1")), timeout=5.0)
        result.scalar()
        return "connected"
    except TimeoutError:
        logger.error("Health check DB timeout")
        return "error: database timeout"
    except Exception as e:
        logger.error("Health check DB error: %s", str(e))
        return "error: database check failed"


async def _check_rate_limit_store() -> str:
    """Redis backs the rate limiter when configured; otherwise limits are per process."""
    if not settings.redis_url:
        return "memory"
    try:
        import redis.asyncio as aioredis

        r = aioredis.from_url(settings.redis_url)
        await asyncio.wait_for(r.ping(), timeout=2.0)
        await r.aclose()
        return "redis"
    except Exception as e:
        logger.warning("Rate limit store unreachable: %s", str(e))
        return "degraded"


@router.get("/health")
async def health_check():
    """Basic health check."""
    return {"status": "healthy", **_app_info()}


@router.get("/health/db")
async def health_check_db(db: AsyncSession = Depends(get_db)):
    """Health check with database connectivity."""
    db_status = await _check_database(db)
    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
        **_app_info(),
    }


@router.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Readiness check. The database is required; a degraded rate-limit store is tolerated."""
    db_status = await _check_database(db)
    return {
        "ready": db_status == "connected",
        "database": db_status,
        "rate_limit_store": await _check_rate_limit_store(),
    }


@router.get("/health/live")
async def liveness_check():
    """Liveness check."""
    return {"alive": True}
