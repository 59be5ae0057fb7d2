"""
Health checks for the two links a scan depends on: Redis (cancellation flags
and the Celery broker) and MongoDB (scan run records).
"""

import logging
from typing import Any, Callable, Dict

import redis
from fastapi import APIRouter, Depends
from pymongo.database import Database
from pymongo.errors import PyMongoError

from driftwatch.core.redis import get_redis
from driftwatch.database.mongo import get_db
from driftwatch.entities.base import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_link(link: str, ping: Callable[[], Any], errors: tuple) -> Dict[str, Any]:
    report: Dict[str, Any] = {"timestamp": utc_now().isoformat()}
    try:
        ping()
    except errors as e:
        logger.warning(f"Health check: {link} unreachable: {e}")
        report.update(status="unhealthy", **{link: "disconnected"}, error=str(e))
        return report
    report.update(status="healthy", **{link: "connected"})
    return report


@router.get("/health")
async def health_check(redis_client: redis.Redis = Depends(get_redis)):
    """API liveness plus the Redis link used for cancellation and job dispatch."""
    report = _check_link("redis", redis_client.ping, (redis.RedisError,))
    report["service"] = "DriftWatch API"
    return report


@router.get("/health/db")
async def database_health(db: Database = Depends(get_db)):
    """MongoDB link holding the scan run records."""
    return _check_link("database", lambda: db.command("ping"), (PyMongoError,))
