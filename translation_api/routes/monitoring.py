"""
Monitoring Routes

Liveness with dependency status, and Prometheus metrics for scraping.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from translation_api.config import settings
from translation_api.database import get_db
from translation_api.services.cache_service import CacheService, get_cache_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Monitoring"])

APP_START_TIME = time.time()


class HealthStatus(BaseModel):
    status: str
    timestamp: str
    version: str
    uptime_seconds: float
    checks: dict[str, dict[str, Any]]


async def _check_database(db: AsyncSession) -> dict[str, Any]:
    start = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(f"Health check: database unreachable: {e}")
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy", "latency_ms": round((time.perf_counter() - start) * 1000, 2)}


async def _check_cache(cache: CacheService) -> dict[str, Any]:
    if not cache.backend.configured:
        return {"status": "not_configured"}
    if await cache.backend.ping():
        return {"status": "healthy"}
    # the API keeps serving from the database while the cache is down
    return {"status": "degraded"}


@router.get("/health", response_model=HealthStatus)
async def health_check(
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
) -> HealthStatus:
    """
    Liveness probe.

    ``healthy`` while the database answers; a cache outage only marks the
    cache check ``degraded``.
    """
    checks = {
        "database": await _check_database(db),
        "cache": await _check_cache(cache),
    }
    overall = "healthy" if checks["database"]["status"] == "healthy" else "unhealthy"

    return HealthStatus(
        status=overall,
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.app_version,
        uptime_seconds=round(time.time() - APP_START_TIME, 2),
        checks=checks,
    )


@router.get("/metrics")
async def prometheus_metrics() -> Response:
    """Prometheus text exposition of every registered collector."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
