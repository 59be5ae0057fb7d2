"""Custom exceptions for scan triggering and orchestration."""
from __future__ import annotations


class ScanError(Exception):
    """Base exception for scan failures."""


class ScanRateLimitError(ScanError):
    """Raised when a repository has used up its scan allowance for the window."""

    def __init__(self, message: str, retry_after: int | float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class ScanNotFoundError(ScanError):
    """Raised when a scan run id does not resolve to a record."""

    def __init__(self, scan_run_id: str):
        super().__init__(f"Scan run {scan_run_id} not found")
        self.scan_run_id = scan_run_id


class ScanSchedulingError(ScanError):
    """Raised when the queue rejects a job after publish retries are exhausted."""


class CollaboratorConfigurationError(ScanError):
    """Raised when the scan collaborators cannot be built."""


class InvalidWebhookPayloadError(ScanError):
    """Raised when a signed webhook delivery is missing fields the trigger needs."""
