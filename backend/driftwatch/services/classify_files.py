"""Split a diff into code files, doc files, renames and deletions."""

import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Iterable, List, Sequence

from driftwatch.dtos.github import FileChange, FileStatus, RenamePair

DOC_EXTENSIONS = frozenset({".md", ".mdx", ".rst", ".txt", ".adoc"})


@dataclass
class ClassifiedFiles:
    code_files: List[FileChange] = field(default_factory=list)
    doc_files: List[FileChange] = field(default_factory=list)
    renames: List[FileChange] = field(default_factory=list)
    deletions: List[FileChange] = field(default_factory=list)

    @property
    def code_paths(self) -> List[str]:
        return [f.filename for f in self.code_files]

    @property
    def doc_paths(self) -> List[str]:
        return [f.filename for f in self.doc_files]

    @property
    def deleted_doc_paths(self) -> List[str]:
        return [f.filename for f in self.deletions if is_doc_file(f.filename)]

    def rename_pairs(self) -> List[RenamePair]:
        return [
            RenamePair(old_path=r.previous_filename, new_path=r.filename)
            for r in self.renames
            if r.previous_filename
        ]


def is_doc_file(filename: str) -> bool:
    return PurePosixPath(filename).suffix.lower() in DOC_EXTENSIONS


def _glob_to_regex(pattern: str) -> re.Pattern:
    # "**" spans directories, "*" stays within one path segment
    parts = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif pattern[i] == "*":
            parts.append("[^/]*")
            i += 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1
    return re.compile("^" + "".join(parts) + "$")


def matches_any(filename: str, patterns: Iterable[str]) -> bool:
    return any(_glob_to_regex(p).match(filename) for p in patterns)


def classify_files(
    changes: Iterable[FileChange],
    exclude_patterns: Sequence[str] = (),
) -> ClassifiedFiles:
    """
    Classify changed files.

    Renames are also classified by their new path. Removed files only land in
    `deletions`. Excluded paths are dropped from code/doc classification but
    still reported as renames/deletions so mappings stay consistent.
    """
    classified = ClassifiedFiles()

    for change in changes:
        if change.status == FileStatus.RENAMED:
            classified.renames.append(change)

        if change.status == FileStatus.REMOVED:
            classified.deletions.append(change)
            continue

        if exclude_patterns and matches_any(change.filename, exclude_patterns):
            continue

        if is_doc_file(change.filename):
            classified.doc_files.append(change)
        else:
            classified.code_files.append(change)

    return classified
