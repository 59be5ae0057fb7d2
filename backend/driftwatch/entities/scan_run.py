"""
Scan Run Entity - Durable record of one orchestrated scan attempt.

Lifecycle: queued -> running -> {completed, failed, cancelled}.
The store does not validate transitions; any status may follow any other.

Collection: scan_runs
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from .base import BaseEntity


class TriggerType(str, Enum):
    """What caused the scan."""

    PR = "pr"
    SCHEDULED = "scheduled"
    MANUAL = "manual"


class ScanStatus(str, Enum):
    """Scan lifecycle status."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (ScanStatus.QUEUED, ScanStatus.RUNNING)
TERMINAL_STATUSES = (ScanStatus.COMPLETED, ScanStatus.FAILED, ScanStatus.CANCELLED)

# Aggregate counters plus the side-channel fields a transition may merge in
STAT_FIELDS = (
    "claims_checked",
    "claims_drifted",
    "claims_verified",
    "claims_uncertain",
    "total_token_cost",
    "total_duration_ms",
    "comment_posted",
    "check_run_id",
)


class ScanRun(BaseEntity):
    """
    Track a single scan from trigger to terminal state.

    Created once at trigger time and mutated only through
    ScanRunRepository.update_status. Superseded scans are kept for audit.
    """

    repo_id: str
    trigger_type: TriggerType
    trigger_ref: Optional[str] = None
    commit_sha: str
    job_key: Optional[str] = Field(None, description="Queue dedup key the scan was scheduled under")

    status: ScanStatus = ScanStatus.QUEUED
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    claims_checked: int = 0
    claims_drifted: int = 0
    claims_verified: int = 0
    claims_uncertain: int = 0
    total_token_cost: int = 0
    total_duration_ms: int = 0

    comment_posted: bool = False
    check_run_id: Optional[int] = None
    # Explicit cancel of a running scan; the job-key flag alone may target older runs
    cancel_requested: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES
