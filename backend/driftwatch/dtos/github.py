"""GitHub integration DTOs"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class FileStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"


class FileChange(BaseModel):
    """One entry of a pull request / commit diff."""

    model_config = ConfigDict(use_enum_values=True)

    filename: str
    status: FileStatus = FileStatus.MODIFIED
    previous_filename: Optional[str] = None
    additions: int = 0
    deletions: int = 0
    patch: Optional[str] = None


class RenamePair(BaseModel):
    old_path: str
    new_path: str


class PullRequestEvent(BaseModel):
    """The subset of a pull_request webhook payload the trigger needs."""

    action: str
    repo_id: str
    pr_number: int
    head_sha: str
    installation_id: int
