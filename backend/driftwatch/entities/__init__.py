"""Database entity models - represents the actual structure stored in MongoDB"""

from .base import BaseEntity, PyObjectId
from .claim import Claim, ClaimMapping, Testability
from .scan_run import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    ScanRun,
    ScanStatus,
    TriggerType,
)
from .verification import Finding, Verdict, VerificationResult

__all__ = [
    # Base
    "BaseEntity",
    "PyObjectId",
    # Scan runs
    "ScanRun",
    "ScanStatus",
    "TriggerType",
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    # Claims
    "Claim",
    "ClaimMapping",
    "Testability",
    # Verification
    "Verdict",
    "VerificationResult",
    "Finding",
]
