"""
Scan tasks - queue-worker bodies for PR and full scans.

Each task runs under the job key it was published with (its Celery task id),
builds its collaborators, and hands the ScanRun to the ScanOrchestrator.
Errors escape so Celery's retry policy decides whether the job re-executes.
"""

import logging
from typing import Any, Dict

from driftwatch.celery_app import celery_app
from driftwatch.config import settings
from driftwatch.core.tracing import TracingContext
from driftwatch.entities.scan_run import TriggerType
from driftwatch.repositories.claim import ClaimRepository
from driftwatch.repositories.scan_run import ScanRunRepository
from driftwatch.services.cancellation import CancellationSignal
from driftwatch.services.collaborators import load_collaborators
from driftwatch.services.exceptions import CollaboratorConfigurationError
from driftwatch.services.scan_jobs import FullScanJobData, PRScanJobData
from driftwatch.services.scan_orchestrator import ScanOrchestrator
from driftwatch.tasks.base import PipelineTask

logger = logging.getLogger(__name__)


def build_orchestrator(task: PipelineTask) -> ScanOrchestrator:
    return ScanOrchestrator(
        scan_repo=ScanRunRepository(task.db),
        claim_repo=ClaimRepository(task.db),
        cancellation=CancellationSignal(task.redis, settings.CANCELLATION_TTL_SECONDS),
        collaborators=load_collaborators(settings.SCAN_COLLABORATORS_FACTORY),
    )


@celery_app.task(
    bind=True,
    base=PipelineTask,
    name="driftwatch.tasks.scan_tasks.run_pr_scan",
    queue=settings.SCAN_QUEUE_NAME,
    autoretry_for=(Exception,),
    dont_autoretry_for=(CollaboratorConfigurationError,),
    max_retries=settings.SCAN_JOB_ATTEMPTS - 1,
    retry_backoff=settings.SCAN_RETRY_BACKOFF_SECONDS,
    retry_jitter=False,
)
def run_pr_scan(
    self: PipelineTask,
    scan_run_id: str,
    repo_id: str,
    pr_number: int,
    head_sha: str,
    installation_id: int,
) -> Dict[str, Any]:
    """Run the PR scan pipeline for one ScanRun."""
    job_key = self.request.id
    TracingContext.set(
        correlation_id=scan_run_id,
        repo_id=repo_id,
        scan_run_id=scan_run_id,
        job_key=job_key,
        trigger_type=TriggerType.PR.value,
        task_name=self.name,
    )
    logger.info(f"{TracingContext.get_log_prefix()} Starting PR scan for {repo_id}#{pr_number}")

    orchestrator = build_orchestrator(self)
    outcome = orchestrator.process_pr_scan(
        PRScanJobData(
            scan_run_id=scan_run_id,
            repo_id=repo_id,
            pr_number=pr_number,
            head_sha=head_sha,
            installation_id=installation_id,
        ),
        job_key=job_key,
    )
    return outcome.to_dict()


@celery_app.task(
    bind=True,
    base=PipelineTask,
    name="driftwatch.tasks.scan_tasks.run_full_scan",
    queue=settings.SCAN_QUEUE_NAME,
    autoretry_for=(Exception,),
    dont_autoretry_for=(CollaboratorConfigurationError,),
    max_retries=settings.SCAN_JOB_ATTEMPTS - 1,
    retry_backoff=settings.SCAN_RETRY_BACKOFF_SECONDS,
    retry_jitter=False,
)
def run_full_scan(
    self: PipelineTask,
    scan_run_id: str,
    repo_id: str,
    installation_id: int,
) -> Dict[str, Any]:
    """Run the full-repository scan pipeline for one ScanRun."""
    job_key = self.request.id
    TracingContext.set(
        correlation_id=scan_run_id,
        repo_id=repo_id,
        scan_run_id=scan_run_id,
        job_key=job_key,
        trigger_type=TriggerType.SCHEDULED.value,
        task_name=self.name,
    )
    logger.info(f"{TracingContext.get_log_prefix()} Starting full scan for {repo_id}")

    orchestrator = build_orchestrator(self)
    outcome = orchestrator.process_full_scan(
        FullScanJobData(
            scan_run_id=scan_run_id,
            repo_id=repo_id,
            installation_id=installation_id,
        ),
        job_key=job_key,
    )
    return outcome.to_dict()
