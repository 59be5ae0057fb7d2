"""Claim entities consumed by the scan pipeline (owned by the extractor)."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Testability(str, Enum):
    """How mechanically a claim can be checked."""

    SYNTACTIC = "syntactic"
    SEMANTIC = "semantic"
    UNTESTABLE = "untestable"


class Claim(BaseModel):
    """A single falsifiable statement extracted from documentation."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: str = Field(..., alias="_id")
    repo_id: str
    source_file: str
    line_number: int
    claim_text: str
    claim_type: Optional[str] = None
    testability: Testability = Testability.SEMANTIC
    extraction_confidence: float = Field(1.0, ge=0.0, le=1.0)


class ClaimMapping(BaseModel):
    """Link between a claim and the code it refers to."""

    claim_id: str
    repo_id: Optional[str] = None
    code_file: str
    code_entity_id: Optional[str] = None
    confidence: float = 1.0
    mapping_method: Optional[str] = None
