"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and
whether the database and Redis are reachable. Redis is optional, so a
Redis failure alone does not mark the service degraded.

The endpoint is unauthenticated, so failures are reported as a bare
"error". The driver message (which can carry hosts or DSNs) only goes
to the log.
"""

import structlog
from fastapi import APIRouter
from sqlalchemy import text

from projecthub import __version__
from projecthub.db.engine import engine

logger = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health_check():
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.warning("projecthub.health.database_error", error=str(e))
        checks["database"] = "error"

    try:
        from projecthub.db.redis_pool import get_redis

        await get_redis().ping()
        checks["redis"] = "ok"
    except Exception as e:
        logger.warning("projecthub.health.redis_error", error=str(e))
        checks["redis"] = "error"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
