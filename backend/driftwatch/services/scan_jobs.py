"""
Scan job keys, payloads and scheduling.

The job key is the queue-level identity of "the current unit of work for a
target". It doubles as the Celery task id and as the cancellation signal key,
so its shape must stay stable:

    pr-scan-{repo_id}-{pr_number}
    full-scan-{repo_id}-{timestamp_ms}
"""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from celery import Celery
from kombu.exceptions import OperationalError

from driftwatch.entities.scan_run import ScanRun, TriggerType
from driftwatch.services.exceptions import ScanSchedulingError

logger = logging.getLogger(__name__)

PR_SCAN_TASK = "driftwatch.tasks.scan_tasks.run_pr_scan"
FULL_SCAN_TASK = "driftwatch.tasks.scan_tasks.run_full_scan"


def pr_scan_job_key(repo_id: str, pr_number: int | str) -> str:
    return f"pr-scan-{repo_id}-{pr_number}"


def full_scan_job_key(repo_id: str, timestamp_ms: Optional[int] = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"full-scan-{repo_id}-{timestamp_ms}"


def job_key_for_scan_run(scan_run: ScanRun) -> str:
    """The key a scan was scheduled under, derived from its trigger when not recorded."""
    if scan_run.job_key:
        return scan_run.job_key
    prefix = "full" if scan_run.trigger_type == TriggerType.SCHEDULED else scan_run.trigger_type
    return f"{prefix}-scan-{scan_run.repo_id}-{scan_run.trigger_ref}"


@dataclass
class PRScanJobData:
    scan_run_id: str
    repo_id: str
    pr_number: int
    head_sha: str
    installation_id: int


@dataclass
class FullScanJobData:
    scan_run_id: str
    repo_id: str
    installation_id: int


class ScanJobScheduler:
    """Publishes scan jobs to Celery under their dedup key."""

    def __init__(
        self,
        celery_app: Celery,
        queue: str,
        max_retries: int = 3,
        backoff_seconds: float = 1,
    ):
        self.celery_app = celery_app
        self.queue = queue
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds

    def _publish(self, task_name: str, job_key: str, payload: Dict[str, Any]) -> str:
        try:
            result = self.celery_app.send_task(
                task_name,
                kwargs=payload,
                task_id=job_key,
                queue=self.queue,
                retry=True,
                retry_policy={
                    "max_retries": self.max_retries,
                    "interval_start": self.backoff_seconds,
                    "interval_step": self.backoff_seconds * 2,
                    "interval_max": self.backoff_seconds * 2 ** self.max_retries,
                },
            )
        except OperationalError as e:
            raise ScanSchedulingError(f"Failed to schedule {job_key}: {e}") from e
        logger.debug(f"Published {task_name} as {job_key}")
        return result.id

    def schedule_pr_scan(self, job_key: str, data: PRScanJobData) -> str:
        return self._publish(PR_SCAN_TASK, job_key, asdict(data))

    def schedule_full_scan(self, job_key: str, data: FullScanJobData) -> str:
        return self._publish(FULL_SCAN_TASK, job_key, asdict(data))
