"""
Scans API - trigger, inspect and cancel scan runs.
"""

from typing import List

from fastapi import APIRouter, Depends

from driftwatch.api.deps import get_scan_repo, get_trigger_service
from driftwatch.dtos.scan import (
    CancelScanResponse,
    FullScanRequest,
    ScanEnqueuedResponse,
    ScanRunResponse,
)
from driftwatch.entities.scan_run import ScanRun
from driftwatch.repositories.scan_run import ScanRunRepository
from driftwatch.services.exceptions import ScanNotFoundError
from driftwatch.services.trigger_service import TriggerService

router = APIRouter()


def _format_scan_run(scan_run: ScanRun) -> ScanRunResponse:
    data = scan_run.model_dump(exclude={"id", "updated_at"})
    return ScanRunResponse(id=str(scan_run.id), **data)


@router.get("/scans/{scan_id}", response_model=ScanRunResponse)
async def get_scan(scan_id: str, scan_repo: ScanRunRepository = Depends(get_scan_repo)):
    """Get a single scan run."""
    scan_run = scan_repo.find_by_id(scan_id)
    if not scan_run:
        raise ScanNotFoundError(scan_id)
    return _format_scan_run(scan_run)


@router.get("/repos/{repo_id}/scans/active", response_model=List[ScanRunResponse])
async def list_active_scans(repo_id: str, scan_repo: ScanRunRepository = Depends(get_scan_repo)):
    """Queued and running scans for a repository, newest first."""
    return [_format_scan_run(s) for s in scan_repo.find_active_by_repo(repo_id)]


@router.post("/scans/{scan_id}/cancel", response_model=CancelScanResponse)
async def cancel_scan(
    scan_id: str,
    scan_repo: ScanRunRepository = Depends(get_scan_repo),
    trigger_service: TriggerService = Depends(get_trigger_service),
):
    """Cancel a queued scan, or signal a running one to stop at its next checkpoint."""
    if not scan_repo.find_by_id(scan_id):
        raise ScanNotFoundError(scan_id)
    cancelled = trigger_service.cancel_scan(scan_id)
    scan_run = scan_repo.find_by_id(scan_id)
    return CancelScanResponse(scan_id=scan_id, cancelled=cancelled, status=scan_run.status)


@router.post("/repos/{repo_id}/full-scan", response_model=ScanEnqueuedResponse, status_code=202)
async def trigger_full_scan(
    repo_id: str,
    request: FullScanRequest,
    trigger_service: TriggerService = Depends(get_trigger_service),
):
    """Manually kick off a full-repository scan."""
    scan_id = trigger_service.enqueue_full_scan(repo_id, request.installation_id)
    return ScanEnqueuedResponse(scan_id=scan_id)
