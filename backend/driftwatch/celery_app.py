"""Celery application shared by the API (producer) and the scan workers."""

from celery import Celery

from driftwatch.config import settings

celery_app = Celery(
    "driftwatch",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["driftwatch.tasks.scan_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_default_queue=settings.SCAN_QUEUE_NAME,
    task_routes={"driftwatch.tasks.scan_tasks.*": {"queue": settings.SCAN_QUEUE_NAME}},
)
