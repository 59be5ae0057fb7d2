"""FastAPI dependencies wiring the trigger service to MongoDB, Redis and Celery."""

from fastapi import Depends
from pymongo.database import Database

from driftwatch.celery_app import celery_app
from driftwatch.config import settings
from driftwatch.core.redis import get_redis
from driftwatch.database.mongo import get_db
from driftwatch.repositories.claim import ClaimRepository
from driftwatch.repositories.scan_run import ScanRunRepository
from driftwatch.services.cancellation import CancellationSignal
from driftwatch.services.scan_jobs import ScanJobScheduler
from driftwatch.services.trigger_service import TriggerService


def get_scan_repo(db: Database = Depends(get_db)) -> ScanRunRepository:
    return ScanRunRepository(db)


def get_trigger_service(db: Database = Depends(get_db)) -> TriggerService:
    return TriggerService(
        scan_repo=ScanRunRepository(db),
        claim_repo=ClaimRepository(db),
        cancellation=CancellationSignal(get_redis(), settings.CANCELLATION_TTL_SECONDS),
        scheduler=ScanJobScheduler(
            celery_app,
            queue=settings.SCAN_QUEUE_NAME,
            max_retries=settings.SCAN_JOB_ATTEMPTS,
            backoff_seconds=settings.SCAN_RETRY_BACKOFF_SECONDS,
        ),
    )
