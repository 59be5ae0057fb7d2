"""
Scan Orchestrator

Drives one ScanRun from `running` to a terminal state. Flow for a PR scan:

1. transition to running (and open a check run when a reporter is wired)
2. fetch + classify changed files
3. update the code index for code files
4. move / drop claim-code mappings for renames and deletions
   -- checkpoint 1 --
5. drop claims of deleted docs, (re-extract changed docs), collect doc claims
6. resolve forward + reverse scope, filter suppressed claims
   -- checkpoint 2 --
7. prioritize and cap; an empty scope completes right away
8. verify claims one by one, accumulating verdict counts in memory
   -- checkpoint 3 --
9. build findings
   -- checkpoint 4 --
10. record co-changes, transition to completed

A checkpoint that sees the cancellation signal, on a run that was superseded
or explicitly cancelled, persists the counters gathered so far and ends the
scan as `cancelled`. The newest run for a trigger ignores the shared flag and
never clears it while other runs under the key are active. Earlier side effects (index updates,
mapping changes) stay in place. Any collaborator error marks the scan `failed`
and is re-raised for the queue's retry policy.
"""

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from driftwatch.config import settings
from driftwatch.entities.claim import Claim
from driftwatch.entities.scan_run import ScanRun, ScanStatus
from driftwatch.entities.verification import Finding, Verdict, VerificationResult
from driftwatch.repositories.claim import ClaimRepository
from driftwatch.repositories.scan_run import ScanRunRepository
from driftwatch.services.cancellation import CancellationSignal
from driftwatch.services.classify_files import ClassifiedFiles, classify_files
from driftwatch.services.collaborators import ScanCollaborators
from driftwatch.services.prioritization import prioritize_claims
from driftwatch.services.scan_jobs import (
    FullScanJobData,
    PRScanJobData,
    full_scan_job_key,
    pr_scan_job_key,
)
from driftwatch.services.scope import resolve_scope

logger = logging.getLogger(__name__)

VerifiedClaims = List[Tuple[Claim, VerificationResult]]


@dataclass
class ScanStats:
    """In-memory accumulator, written to the ScanRun only at terminal transitions."""

    claims_checked: int = 0
    claims_drifted: int = 0
    claims_verified: int = 0
    claims_uncertain: int = 0
    total_token_cost: int = 0
    total_duration_ms: int = 0

    def record(self, result: VerificationResult) -> None:
        if result.verdict == Verdict.DRIFTED:
            self.claims_drifted += 1
        elif result.verdict == Verdict.VERIFIED:
            self.claims_verified += 1
        else:
            self.claims_uncertain += 1
        if result.token_cost:
            self.total_token_cost += result.token_cost

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class ScanOutcome:
    scan_run_id: str
    status: Optional[ScanStatus]
    stats: ScanStats = field(default_factory=ScanStats)
    findings: List[Finding] = field(default_factory=list)
    cancelled_at_checkpoint: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "scan_run_id": self.scan_run_id,
            "status": self.status.value if self.status else "skipped",
            "findings": len(self.findings),
            "cancelled_at_checkpoint": self.cancelled_at_checkpoint,
            **self.stats.as_dict(),
        }


class ScanCancelled(Exception):
    """Raised inside a pipeline when a checkpoint observes cancellation."""

    def __init__(self, checkpoint: int):
        super().__init__(f"Cancelled at checkpoint {checkpoint}")
        self.checkpoint = checkpoint


class ScanExecution:
    """Per-run state: stats, timing, and the cancellation checkpoints."""

    def __init__(
        self,
        scan_run: ScanRun,
        job_key: str,
        cancellation: CancellationSignal,
        scan_repo: ScanRunRepository,
    ):
        self.scan_run = scan_run
        self.scan_run_id = str(scan_run.id)
        self.job_key = job_key
        self.cancellation = cancellation
        self.scan_repo = scan_repo
        self.stats = ScanStats()
        self._started = time.monotonic()

    def checkpoint(self, number: int) -> None:
        if not self.cancellation.is_cancelled(self.job_key):
            return
        if self.is_cancellation_target():
            raise ScanCancelled(number)
        logger.debug(
            f"Scan {self.scan_run_id} is the newest run for {self.job_key}, "
            f"cancel flag not meant for it (checkpoint {number})"
        )

    def is_cancellation_target(self) -> bool:
        """
        Every run scheduled under a job key polls the same flag, so the flag
        only stops runs that were superseded by a newer run for the same
        trigger or explicitly cancelled through cancel_scan.
        """
        if self.scan_repo.has_newer_for_trigger(self.scan_run):
            return True
        current = self.scan_repo.find_by_id(self.scan_run_id)
        return bool(current and current.cancel_requested)

    def stop_clock(self) -> None:
        self.stats.total_duration_ms = int((time.monotonic() - self._started) * 1000)


class ScanOrchestrator:
    """Executes PR and full scans against injected collaborators."""

    def __init__(
        self,
        scan_repo: ScanRunRepository,
        claim_repo: ClaimRepository,
        cancellation: CancellationSignal,
        collaborators: ScanCollaborators,
        max_claims_per_pr: Optional[int] = None,
        max_claims_per_full_scan: Optional[int] = None,
        doc_exclude_patterns: Optional[Sequence[str]] = None,
    ):
        self.scan_repo = scan_repo
        self.claim_repo = claim_repo
        self.cancellation = cancellation
        self.collaborators = collaborators
        self.max_claims_per_pr = (
            max_claims_per_pr if max_claims_per_pr is not None else settings.MAX_CLAIMS_PER_PR
        )
        self.max_claims_per_full_scan = (
            max_claims_per_full_scan
            if max_claims_per_full_scan is not None
            else settings.MAX_CLAIMS_PER_FULL_SCAN
        )
        self.doc_exclude_patterns = list(
            doc_exclude_patterns if doc_exclude_patterns is not None else settings.DOC_EXCLUDE_PATTERNS
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def process_pr_scan(self, job: PRScanJobData, job_key: Optional[str] = None) -> ScanOutcome:
        job_key = job_key or pr_scan_job_key(job.repo_id, job.pr_number)
        return self._execute(
            job.scan_run_id,
            job_key,
            lambda execution: self._run_pr_pipeline(job, execution),
        )

    def process_full_scan(self, job: FullScanJobData, job_key: Optional[str] = None) -> ScanOutcome:
        job_key = job_key or full_scan_job_key(job.repo_id)
        return self._execute(
            job.scan_run_id,
            job_key,
            lambda execution: self._run_full_pipeline(job, execution),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _execute(
        self,
        scan_run_id: str,
        job_key: str,
        pipeline: Callable[[ScanExecution], List[Finding]],
    ) -> ScanOutcome:
        scan_run = self.scan_repo.find_by_id(scan_run_id)
        if scan_run is None:
            logger.warning(f"Scan run {scan_run_id} not found, skipping job {job_key}")
            return ScanOutcome(scan_run_id=scan_run_id, status=None)
        if scan_run.status in (ScanStatus.CANCELLED, ScanStatus.COMPLETED):
            # Redelivered or cancelled while queued; failed runs are retried
            logger.info(f"Scan run {scan_run_id} is already {scan_run.status}, skipping")
            return ScanOutcome(scan_run_id=scan_run_id, status=ScanStatus(scan_run.status))

        execution = ScanExecution(scan_run, job_key, self.cancellation, self.scan_repo)

        try:
            self.scan_repo.update_status(scan_run_id, ScanStatus.RUNNING)
            try:
                findings = pipeline(execution)
            except ScanCancelled as cancelled:
                self._save_partial_and_exit(execution)
                return ScanOutcome(
                    scan_run_id=scan_run_id,
                    status=ScanStatus.CANCELLED,
                    stats=execution.stats,
                    cancelled_at_checkpoint=cancelled.checkpoint,
                )
        except Exception:
            self._mark_failed(execution)
            raise

        return ScanOutcome(
            scan_run_id=scan_run_id,
            status=ScanStatus.COMPLETED,
            stats=execution.stats,
            findings=findings,
        )

    def _complete(self, execution: ScanExecution) -> None:
        execution.stop_clock()
        self.scan_repo.update_status(
            execution.scan_run_id, ScanStatus.COMPLETED, execution.stats.as_dict()
        )
        logger.info(f"Scan {execution.scan_run_id} completed: {execution.stats.as_dict()}")

    def _save_partial_and_exit(self, execution: ScanExecution) -> None:
        execution.stop_clock()
        self.scan_repo.update_status(
            execution.scan_run_id, ScanStatus.CANCELLED, execution.stats.as_dict()
        )
        # Other runs under this key may still have to observe the flag
        scan_run = execution.scan_run
        remaining = self.scan_repo.find_active_for_trigger(
            scan_run.repo_id, scan_run.trigger_type, scan_run.trigger_ref, exclude_id=scan_run.id
        )
        if not remaining:
            self.cancellation.clear(execution.job_key)
        logger.info(
            f"Scan {execution.scan_run_id} cancelled, partial results saved: "
            f"{execution.stats.as_dict()}"
        )

    def _mark_failed(self, execution: ScanExecution) -> None:
        execution.stop_clock()
        try:
            self.scan_repo.update_status(
                execution.scan_run_id, ScanStatus.FAILED, execution.stats.as_dict()
            )
        except Exception as e:
            logger.warning(f"Could not mark scan {execution.scan_run_id} as failed: {e}")
        logger.error(f"Scan {execution.scan_run_id} failed", exc_info=True)

    # ------------------------------------------------------------------
    # Pipelines
    # ------------------------------------------------------------------

    def _run_pr_pipeline(self, job: PRScanJobData, execution: ScanExecution) -> List[Finding]:
        c = self.collaborators
        repo_id = job.repo_id

        check_run_id = self._open_check_run(job, execution)

        changes = c.source_control.fetch_changed_files(
            repo_id, str(job.pr_number), job.installation_id
        )
        classified = classify_files(changes, self.doc_exclude_patterns)

        if classified.code_files:
            c.codebase_index.update_from_diff(
                repo_id,
                classified.code_files,
                lambda path: c.source_control.get_file_content(
                    repo_id, path, job.head_sha, job.installation_id
                ),
            )

        rename_pairs = classified.rename_pairs()
        if rename_pairs:
            c.mapper.update_code_file_paths(repo_id, rename_pairs)

        if classified.deletions:
            c.mapper.remove_mappings_for_files(
                repo_id, [d.filename for d in classified.deletions]
            )

        execution.checkpoint(1)

        for doc_path in classified.deleted_doc_paths:
            self.claim_repo.delete_by_source_file(repo_id, doc_path)

        if c.extractor is not None:
            self._reextract_doc_claims(job, classified)

        doc_claims = self.claim_repo.find_by_source_files(repo_id, classified.doc_paths)
        scope = resolve_scope(
            repo_id, classified.code_paths, doc_claims, c.mapper, self.claim_repo
        )
        candidates = self._filter_suppressed(scope)

        execution.checkpoint(2)

        prioritized = prioritize_claims(candidates, self.max_claims_per_pr)
        if not prioritized:
            self._record_co_changes(repo_id, classified, job.head_sha)
            self._close_check_run(check_run_id, job.installation_id, execution)
            self._complete(execution)
            return []

        verified = self._verify_claims(prioritized, execution)

        execution.checkpoint(3)

        findings = self._build_findings(verified)

        execution.checkpoint(4)

        self._record_co_changes(repo_id, classified, job.head_sha)
        self._close_check_run(check_run_id, job.installation_id, execution)
        self._complete(execution)
        return findings

    def _run_full_pipeline(self, job: FullScanJobData, execution: ScanExecution) -> List[Finding]:
        claims = self.claim_repo.find_by_repo(job.repo_id)

        execution.checkpoint(1)

        candidates = self._filter_suppressed(claims)

        execution.checkpoint(2)

        prioritized = prioritize_claims(candidates, self.max_claims_per_full_scan)
        if not prioritized:
            self._complete(execution)
            return []

        verified = self._verify_claims(prioritized, execution)

        execution.checkpoint(3)

        findings = self._build_findings(verified)

        execution.checkpoint(4)

        self._complete(execution)
        return findings

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _reextract_doc_claims(self, job: PRScanJobData, classified: ClassifiedFiles) -> None:
        c = self.collaborators
        for doc_path in classified.doc_paths:
            content = c.source_control.get_file_content(
                job.repo_id, doc_path, job.head_sha, job.installation_id
            )
            if content is None:
                continue
            claims = c.extractor.extract_claims(job.repo_id, doc_path, content)
            self.claim_repo.replace_for_source_file(job.repo_id, doc_path, claims)
            for claim in claims:
                c.mapper.map_claim(job.repo_id, claim)

    def _filter_suppressed(self, claims: Sequence[Claim]) -> List[Claim]:
        learning = self.collaborators.learning
        return [claim for claim in claims if not learning.is_claim_suppressed(claim)]

    def _verify_claims(self, claims: Sequence[Claim], execution: ScanExecution) -> VerifiedClaims:
        """Verify sequentially in priority order."""
        c = self.collaborators
        execution.stats.claims_checked = len(claims)
        verified: VerifiedClaims = []
        for claim in claims:
            mappings = c.mapper.get_mappings_for_claim(claim.id)
            result = c.verifier.verify_deterministic(claim, mappings)
            if result is None:
                continue
            verified.append((claim, result))
            execution.stats.record(result)
        return verified

    @staticmethod
    def _build_findings(verified: VerifiedClaims) -> List[Finding]:
        return [Finding(claim=claim, result=result) for claim, result in verified]

    def _record_co_changes(self, repo_id: str, classified: ClassifiedFiles, commit_sha: str) -> None:
        if classified.code_files and classified.doc_files:
            self.collaborators.learning.record_co_changes(
                repo_id, classified.code_paths, classified.doc_paths, commit_sha
            )

    def _open_check_run(self, job: PRScanJobData, execution: ScanExecution) -> Optional[int]:
        check_runs = self.collaborators.check_runs
        if check_runs is None:
            return None
        check_run_id = check_runs.create_check_run(job.repo_id, job.head_sha, job.installation_id)
        if check_run_id:
            self.scan_repo.update_status(
                execution.scan_run_id, ScanStatus.RUNNING, {"check_run_id": check_run_id}
            )
        return check_run_id

    def _close_check_run(
        self, check_run_id: Optional[int], installation_id: int, execution: ScanExecution
    ) -> None:
        if not check_run_id or self.collaborators.check_runs is None:
            return
        stats = execution.stats
        conclusion = "action_required" if stats.claims_drifted else "success"
        summary = (
            f"{stats.claims_checked} claims checked: {stats.claims_verified} verified, "
            f"{stats.claims_drifted} drifted, {stats.claims_uncertain} uncertain"
        )
        self.collaborators.check_runs.update_check_run(
            check_run_id, conclusion, summary, installation_id
        )
