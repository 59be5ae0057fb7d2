"""
Claim prioritization - bound the verification work done per scan.

Claims are ranked by severity_weight(testability) * extraction_confidence,
descending, with ties broken by source file then line number so the order
never depends on input order. Claims past the cap are dropped for this scan
only; they stay eligible for the next one.
"""

from typing import Dict, Iterable, List

from driftwatch.entities.claim import Claim, Testability

DEFAULT_MAX_CLAIMS = 50

SEVERITY_WEIGHTS: Dict[str, int] = {
    Testability.SYNTACTIC.value: 3,
    Testability.SEMANTIC.value: 2,
    Testability.UNTESTABLE.value: 1,
}


def severity_weight(claim: Claim) -> int:
    return SEVERITY_WEIGHTS.get(claim.testability, SEVERITY_WEIGHTS[Testability.UNTESTABLE.value])


def claim_score(claim: Claim) -> float:
    return severity_weight(claim) * claim.extraction_confidence


def prioritize_claims(claims: Iterable[Claim], max_claims: int = DEFAULT_MAX_CLAIMS) -> List[Claim]:
    """Return at most `max_claims` claims in deterministic priority order."""
    if max_claims <= 0:
        return []
    ranked = sorted(
        claims,
        key=lambda c: (-claim_score(c), c.source_file, c.line_number),
    )
    return ranked[:max_claims]


def deduplicate_claims(claims: Iterable[Claim]) -> List[Claim]:
    """Drop repeated claim ids, keeping the first occurrence in place."""
    seen = set()
    unique = []
    for claim in claims:
        if claim.id in seen:
            continue
        seen.add(claim.id)
        unique.append(claim)
    return unique
