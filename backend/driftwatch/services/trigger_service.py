"""
Trigger Service

Turns external events (PR pushes, manual requests, scheduled sweeps) into
ScanRun records plus scheduled, deduplicated scan jobs. Everything here runs
in the request path and only does fast, synchronous work.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from driftwatch.config import settings
from driftwatch.entities.claim import Claim
from driftwatch.entities.scan_run import ScanStatus, TriggerType
from driftwatch.repositories.claim import ClaimRepository
from driftwatch.repositories.scan_run import ScanRunRepository
from driftwatch.services.cancellation import CancellationSignal
from driftwatch.services.collaborators import Mapper
from driftwatch.services.exceptions import ScanRateLimitError
from driftwatch.services.scan_jobs import (
    FullScanJobData,
    PRScanJobData,
    ScanJobScheduler,
    full_scan_job_key,
    job_key_for_scan_run,
    pr_scan_job_key,
)
from driftwatch.services.scope import resolve_scope

logger = logging.getLogger(__name__)


class TriggerService:
    """Entry point for everything that wants a scan to happen (or stop)."""

    def __init__(
        self,
        scan_repo: ScanRunRepository,
        claim_repo: ClaimRepository,
        cancellation: CancellationSignal,
        scheduler: ScanJobScheduler,
        rate_limit_per_day: Optional[int] = None,
        rate_limit_window: Optional[timedelta] = None,
        cancellation_ttl: Optional[int] = None,
    ):
        self.scan_repo = scan_repo
        self.claim_repo = claim_repo
        self.cancellation = cancellation
        self.scheduler = scheduler
        self.rate_limit_per_day = (
            rate_limit_per_day if rate_limit_per_day is not None else settings.SCAN_RATE_LIMIT_PER_DAY
        )
        self.rate_limit_window = rate_limit_window or timedelta(
            hours=settings.SCAN_RATE_LIMIT_WINDOW_HOURS
        )
        self.cancellation_ttl = cancellation_ttl or settings.CANCELLATION_TTL_SECONDS

    def _check_rate_limit(self, repo_id: str) -> None:
        since = datetime.now(timezone.utc) - self.rate_limit_window
        recent = self.scan_repo.count_created_since(repo_id, since)
        if recent >= self.rate_limit_per_day:
            raise ScanRateLimitError(
                f"Rate limit exceeded: {self.rate_limit_per_day} scans per day per repo",
                retry_after=int(self.rate_limit_window.total_seconds()),
            )

    def enqueue_pr_scan(
        self,
        repo_id: str,
        pr_number: int,
        head_sha: str,
        installation_id: int,
        delivery_id: Optional[str] = None,
    ) -> str:
        """
        Create a ScanRun for a PR head and schedule it.

        A newer push to the same PR supersedes in-flight work: any queued or
        running scan for the PR gets a cancellation signal before the new job
        is scheduled under the same key.

        Raises:
            ScanRateLimitError: repo is over its daily allowance; nothing is created.
        """
        self._check_rate_limit(repo_id)

        job_key = pr_scan_job_key(repo_id, pr_number)
        scan_run = self.scan_repo.create_scan_run(
            repo_id=repo_id,
            trigger_type=TriggerType.PR,
            trigger_ref=str(pr_number),
            commit_sha=head_sha,
            job_key=job_key,
        )
        scan_run_id = str(scan_run.id)

        superseded = self.scan_repo.find_active_for_trigger(
            repo_id, TriggerType.PR, str(pr_number), exclude_id=scan_run.id
        )
        if superseded:
            self.cancellation.request_cancellation(job_key, self.cancellation_ttl)
            logger.info(
                f"[delivery={delivery_id}] Superseding {len(superseded)} in-flight scan(s) "
                f"for PR #{pr_number} via {job_key}"
            )

        self.scheduler.schedule_pr_scan(
            job_key,
            PRScanJobData(
                scan_run_id=scan_run_id,
                repo_id=repo_id,
                pr_number=pr_number,
                head_sha=head_sha,
                installation_id=installation_id,
            ),
        )

        logger.info(
            f"[delivery={delivery_id}] PR scan {scan_run_id} enqueued for {repo_id}#{pr_number}"
        )
        return scan_run_id

    def enqueue_full_scan(self, repo_id: str, installation_id: int) -> str:
        """Create and schedule a full-repository scan. Full scans never supersede each other."""
        job_key = full_scan_job_key(repo_id, int(time.time() * 1000))
        scan_run = self.scan_repo.create_scan_run(
            repo_id=repo_id,
            trigger_type=TriggerType.SCHEDULED,
            trigger_ref=None,
            commit_sha="HEAD",
            job_key=job_key,
        )
        scan_run_id = str(scan_run.id)

        self.scheduler.schedule_full_scan(
            job_key,
            FullScanJobData(
                scan_run_id=scan_run_id,
                repo_id=repo_id,
                installation_id=installation_id,
            ),
        )

        logger.info(f"Full scan {scan_run_id} enqueued for {repo_id}")
        return scan_run_id

    def cancel_scan(self, scan_run_id: str) -> bool:
        """
        Cancel a scan.

        Queued scans are cancelled in place since no worker holds them yet.
        Running scans are marked as the cancel target and get a cancellation
        signal the worker observes at its next checkpoint. Terminal or
        unknown scans are left alone.

        Returns:
            True if a cancellation was applied or requested.
        """
        scan_run = self.scan_repo.find_by_id(scan_run_id)
        if not scan_run:
            logger.warning(f"Cancel requested for unknown scan {scan_run_id}")
            return False

        if scan_run.status == ScanStatus.QUEUED:
            self.scan_repo.update_status(scan_run_id, ScanStatus.CANCELLED)
            logger.info(f"Queued scan {scan_run_id} cancelled")
            return True

        if scan_run.status == ScanStatus.RUNNING:
            job_key = job_key_for_scan_run(scan_run)
            self.scan_repo.mark_cancel_requested(scan_run_id)
            self.cancellation.request_cancellation(job_key, self.cancellation_ttl)
            logger.info(f"Cancel flag set for running scan {scan_run_id} ({job_key})")
            return True

        return False

    def update_scan_status(
        self,
        scan_run_id: str,
        status: ScanStatus | str,
        stats: Optional[Dict[str, Any]] = None,
    ) -> bool:
        return self.scan_repo.update_status(scan_run_id, status, stats)

    def resolve_scope(
        self,
        repo_id: str,
        changed_code_files: Sequence[str],
        doc_claims: Sequence[Claim],
        mapper: Mapper,
    ) -> List[Claim]:
        return resolve_scope(repo_id, changed_code_files, doc_claims, mapper, self.claim_repo)
