"""Scan API DTOs"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ScanRunResponse(BaseModel):
    id: str
    repo_id: str
    trigger_type: str
    trigger_ref: Optional[str] = None
    commit_sha: str
    status: str
    job_key: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    claims_checked: int
    claims_drifted: int
    claims_verified: int
    claims_uncertain: int
    total_token_cost: int
    total_duration_ms: int
    comment_posted: bool
    check_run_id: Optional[int] = None
    cancel_requested: bool = False


class ScanEnqueuedResponse(BaseModel):
    scan_id: str
    status: str = "queued"


class CancelScanResponse(BaseModel):
    scan_id: str
    cancelled: bool
    status: str


class FullScanRequest(BaseModel):
    installation_id: int
