"""Repository for claims extracted from documentation."""

from typing import Iterable, List, Sequence

from pymongo.database import Database

from driftwatch.entities.claim import Claim

from .base import BaseRepository


class ClaimRepository(BaseRepository[Claim]):
    """Claims are keyed by the extractor's own string ids."""

    def __init__(self, db: Database):
        super().__init__(db, "claims", Claim)

    def find_by_repo(self, repo_id: str) -> List[Claim]:
        return self.find_many({"repo_id": repo_id})

    def find_by_source_files(self, repo_id: str, source_files: Sequence[str]) -> List[Claim]:
        """Claims belonging to the given documentation files, in file order."""
        if not source_files:
            return []
        by_file: dict[str, List[Claim]] = {path: [] for path in source_files}
        for claim in self.find_many(
            {"repo_id": repo_id, "source_file": {"$in": list(source_files)}},
            sort=[("line_number", 1)],
        ):
            by_file[claim.source_file].append(claim)
        return [claim for path in source_files for claim in by_file[path]]

    def find_by_ids(self, claim_ids: Iterable[str]) -> List[Claim]:
        """Fetch claims by id, preserving the order of `claim_ids`; unknown ids are skipped."""
        claim_ids = list(claim_ids)
        if not claim_ids:
            return []
        found = {
            claim.id: claim
            for claim in self.find_many({"_id": {"$in": claim_ids}})
        }
        return [found[claim_id] for claim_id in claim_ids if claim_id in found]

    def delete_by_source_file(self, repo_id: str, source_file: str) -> int:
        result = self.collection.delete_many({"repo_id": repo_id, "source_file": source_file})
        return result.deleted_count

    def replace_for_source_file(
        self, repo_id: str, source_file: str, claims: Sequence[Claim]
    ) -> int:
        """Swap the stored claims of one documentation file for a fresh extraction."""
        self.delete_by_source_file(repo_id, source_file)
        if not claims:
            return 0
        docs = [claim.model_dump(by_alias=True) for claim in claims]
        result = self.collection.insert_many(docs)
        return len(result.inserted_ids)
