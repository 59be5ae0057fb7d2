"""Base Celery task with lazily created database and Redis handles."""

import logging

import redis
from celery import Task
from pymongo.database import Database

from driftwatch.core.redis import get_redis
from driftwatch.core.tracing import TracingContext
from driftwatch.database.mongo import get_database

logger = logging.getLogger(__name__)


class PipelineTask(Task):
    abstract = True

    _db: Database | None = None
    _redis: redis.Redis | None = None

    @property
    def db(self) -> Database:
        if self._db is None:
            self._db = get_database()
        return self._db

    @property
    def redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    def after_return(self, status, retval, task_id, args, kwargs, einfo):
        TracingContext.clear()
        super().after_return(status, retval, task_id, args, kwargs, einfo)

    def on_retry(self, exc, task_id, args, kwargs, einfo):
        logger.warning(f"Task {self.name} [{task_id}] retrying after: {exc}")
        super().on_retry(exc, task_id, args, kwargs, einfo)
