"""
Redis connection helpers.
"""

import logging

import redis

logger = logging.getLogger(__name__)

_redis: redis.Redis | None = None


def get_redis() -> redis.Redis:
    global _redis
    if _redis is None:
        # Import settings lazily to ensure env vars are loaded
        from driftwatch.config import settings

        _redis = redis.from_url(settings.REDIS_URL, decode_responses=True)
        logger.info("Initialized Redis client")
    return _redis
