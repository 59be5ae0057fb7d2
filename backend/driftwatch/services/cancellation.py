"""
Cancellation Signal - cooperative, TTL-bound "please stop" flags in Redis.

The signal is advisory. Reads fail open: if Redis cannot be reached the
scan keeps running rather than aborting on a spurious cancel.
"""

import logging

import redis

logger = logging.getLogger(__name__)

KEY_PREFIX = "cancel"
DEFAULT_TTL_SECONDS = 600


def cancellation_key(job_key: str) -> str:
    return f"{KEY_PREFIX}:{job_key}"


class CancellationSignal:
    """Set, poll and clear cancellation flags keyed by job key."""

    def __init__(self, redis_client: redis.Redis, default_ttl: int = DEFAULT_TTL_SECONDS):
        self._redis = redis_client
        self.default_ttl = default_ttl

    def is_cancelled(self, job_key: str) -> bool:
        """True when a cancellation was requested; False on any transport error."""
        try:
            return self._redis.exists(cancellation_key(job_key)) == 1
        except redis.RedisError as e:
            logger.warning(f"Failed to check cancellation key for {job_key}: {e}")
            return False

    def request_cancellation(self, job_key: str, ttl: int | None = None) -> None:
        """Set the flag with an expiry. Repeated requests just refresh the TTL."""
        self._redis.setex(cancellation_key(job_key), ttl or self.default_ttl, "1")
        logger.info(f"Cancellation requested for job {job_key}")

    def clear(self, job_key: str) -> None:
        """Best-effort delete; a missing key is not an error."""
        try:
            self._redis.delete(cancellation_key(job_key))
        except redis.RedisError as e:
            logger.warning(f"Failed to clear cancellation key for {job_key}: {e}")
