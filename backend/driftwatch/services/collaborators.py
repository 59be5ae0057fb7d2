"""
Collaborator interfaces the scan orchestrator calls.

The index, mapper, verifier, learning and extractor services live outside
this package. Workers obtain concrete implementations from the factory named
by SCAN_COLLABORATORS_FACTORY.
"""

import importlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol, Sequence

from driftwatch.dtos.github import FileChange, RenamePair
from driftwatch.entities.claim import Claim, ClaimMapping
from driftwatch.entities.verification import VerificationResult
from driftwatch.services.exceptions import CollaboratorConfigurationError

logger = logging.getLogger(__name__)

FileContentFetcher = Callable[[str], Optional[str]]


class CodebaseIndex(Protocol):
    def update_from_diff(
        self,
        repo_id: str,
        changed_files: Sequence[FileChange],
        fetch_content: FileContentFetcher,
    ) -> Any: ...


class Mapper(Protocol):
    def update_code_file_paths(self, repo_id: str, renames: Sequence[RenamePair]) -> None: ...

    def remove_mappings_for_files(self, repo_id: str, paths: Sequence[str]) -> None: ...

    def find_claims_by_code_files(self, repo_id: str, paths: Sequence[str]) -> List[ClaimMapping]: ...

    def get_mappings_for_claim(self, claim_id: str) -> List[ClaimMapping]: ...

    def map_claim(self, repo_id: str, claim: Claim) -> List[ClaimMapping]: ...


class Verifier(Protocol):
    def verify_deterministic(
        self, claim: Claim, mappings: Sequence[ClaimMapping]
    ) -> Optional[VerificationResult]: ...


class LearningService(Protocol):
    def is_claim_suppressed(self, claim: Claim) -> bool: ...

    def record_co_changes(
        self,
        repo_id: str,
        code_files: Sequence[str],
        doc_files: Sequence[str],
        commit_sha: str,
    ) -> None: ...


class ClaimExtractor(Protocol):
    def extract_claims(self, repo_id: str, source_file: str, content: str) -> List[Claim]: ...


class SourceControl(Protocol):
    """Source-control API, injected rather than owned."""

    def fetch_changed_files(self, repo_id: str, ref: str, installation_id: int) -> List[FileChange]: ...

    def get_file_content(
        self, repo_id: str, path: str, ref: str, installation_id: int
    ) -> Optional[str]: ...


class CheckRunReporter(Protocol):
    def create_check_run(self, repo_id: str, head_sha: str, installation_id: int) -> Optional[int]: ...

    def update_check_run(
        self, check_run_id: int, conclusion: str, summary: str, installation_id: int
    ) -> None: ...


@dataclass
class ScanCollaborators:
    """The external services one scan talks to."""

    codebase_index: CodebaseIndex
    mapper: Mapper
    verifier: Verifier
    learning: LearningService
    source_control: SourceControl
    extractor: Optional[ClaimExtractor] = None
    check_runs: Optional[CheckRunReporter] = None


def load_collaborators(factory_path: Optional[str]) -> ScanCollaborators:
    """
    Build collaborators from a "package.module:callable" path.

    Raises:
        CollaboratorConfigurationError: if the path is missing, cannot be
            imported, or the callable returns something else.
    """
    if not factory_path:
        raise CollaboratorConfigurationError("SCAN_COLLABORATORS_FACTORY is not configured")

    module_name, _, attr = factory_path.partition(":")
    if not module_name or not attr:
        raise CollaboratorConfigurationError(
            f"Invalid collaborators factory {factory_path!r}, expected 'module:callable'"
        )

    try:
        factory = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise CollaboratorConfigurationError(
            f"Cannot load collaborators factory {factory_path!r}: {e}"
        ) from e

    collaborators = factory()
    if not isinstance(collaborators, ScanCollaborators):
        raise CollaboratorConfigurationError(
            f"{factory_path} returned {type(collaborators).__name__}, expected ScanCollaborators"
        )
    logger.info(f"Loaded scan collaborators from {factory_path}")
    return collaborators
