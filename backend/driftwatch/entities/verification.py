"""Verification outcomes produced by the verifier collaborator."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from .claim import Claim


class Verdict(str, Enum):
    VERIFIED = "verified"
    DRIFTED = "drifted"
    UNCERTAIN = "uncertain"


class VerificationResult(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    claim_id: str
    verdict: Verdict
    confidence: float = 1.0
    tier: Optional[int] = None
    reasoning: Optional[str] = None
    token_cost: Optional[int] = None


class Finding(BaseModel):
    """A verified claim ready for reporting."""

    claim: Claim
    result: VerificationResult
    fix: Optional[str] = None
    suppressed: bool = False
