"""Scope resolution: which claims a change touches."""

import logging
from typing import List, Sequence

from driftwatch.entities.claim import Claim
from driftwatch.repositories.claim import ClaimRepository
from driftwatch.services.collaborators import Mapper
from driftwatch.services.prioritization import deduplicate_claims

logger = logging.getLogger(__name__)


def resolve_scope(
    repo_id: str,
    changed_code_files: Sequence[str],
    doc_claims: Sequence[Claim],
    mapper: Mapper,
    claim_repo: ClaimRepository,
) -> List[Claim]:
    """
    Union of the claims of changed docs (forward scope) and the claims mapped
    to changed code files (reverse scope), deduplicated by claim id.
    """
    all_claims: List[Claim] = list(doc_claims)

    if changed_code_files:
        mappings = mapper.find_claims_by_code_files(repo_id, list(changed_code_files))
        claim_ids = list(dict.fromkeys(m.claim_id for m in mappings))
        if claim_ids:
            reverse_claims = claim_repo.find_by_ids(claim_ids)
            logger.debug(
                f"Reverse scope for {repo_id}: {len(reverse_claims)} claims "
                f"from {len(changed_code_files)} code files"
            )
            all_claims.extend(reverse_claims)

    return deduplicate_claims(all_claims)
