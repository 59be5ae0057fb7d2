"""
Scan Run Repository - Lifecycle persistence for ScanRun records.

Pure persistence: transitions are not validated, and persistence errors
propagate to the caller.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo.database import Database

from driftwatch.entities.scan_run import (
    ACTIVE_STATUSES,
    STAT_FIELDS,
    TERMINAL_STATUSES,
    ScanRun,
    ScanStatus,
    TriggerType,
)

from .base import BaseRepository


class ScanRunRepository(BaseRepository[ScanRun]):
    """Repository for ScanRun entities."""

    def __init__(self, db: Database):
        super().__init__(db, "scan_runs", ScanRun)

    def create_scan_run(
        self,
        repo_id: str,
        trigger_type: TriggerType | str,
        trigger_ref: Optional[str],
        commit_sha: str,
        job_key: Optional[str] = None,
    ) -> ScanRun:
        """Insert a new scan run in `queued` with all counters at zero."""
        scan_run = ScanRun(
            repo_id=repo_id,
            trigger_type=trigger_type,
            trigger_ref=trigger_ref,
            commit_sha=commit_sha,
            job_key=job_key,
        )
        return self.insert_one(scan_run)

    def update_status(
        self,
        scan_run_id: str | ObjectId,
        status: ScanStatus | str,
        stats: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Transition a scan run to `status`, merging any provided stats.

        `started_at` is stamped on entering running, `completed_at` on entering
        any terminal status. Unknown stat keys and None values are ignored.
        """
        status = ScanStatus(status)
        now = datetime.now(timezone.utc)
        update: Dict[str, Any] = {"status": status.value, "updated_at": now}

        if status == ScanStatus.RUNNING:
            update["started_at"] = now
        if status in TERMINAL_STATUSES:
            update["completed_at"] = now

        if stats:
            for field in STAT_FIELDS:
                if stats.get(field) is not None:
                    update[field] = stats[field]

        result = self.collection.update_one(
            {"_id": self._to_object_id(scan_run_id)},
            {"$set": update},
        )
        return result.matched_count > 0

    def find_active_by_repo(self, repo_id: str) -> List[ScanRun]:
        """Queued or running scans for a repo, newest first."""
        return self.find_many(
            {
                "repo_id": repo_id,
                "status": {"$in": [s.value for s in ACTIVE_STATUSES]},
            },
            sort=[("created_at", -1)],
        )

    def find_active_for_trigger(
        self,
        repo_id: str,
        trigger_type: TriggerType | str,
        trigger_ref: Optional[str],
        exclude_id: Optional[str | ObjectId] = None,
    ) -> List[ScanRun]:
        """Queued or running scans for the same logical target."""
        query: Dict[str, Any] = {
            "repo_id": repo_id,
            "trigger_type": TriggerType(trigger_type).value,
            "trigger_ref": trigger_ref,
            "status": {"$in": [s.value for s in ACTIVE_STATUSES]},
        }
        if exclude_id is not None:
            query["_id"] = {"$ne": self._to_object_id(exclude_id)}
        return self.find_many(query, sort=[("created_at", -1)])

    def mark_cancel_requested(self, scan_run_id: str | ObjectId) -> bool:
        """Record that this run, and not just its job key, was asked to stop."""
        result = self.collection.update_one(
            {"_id": self._to_object_id(scan_run_id)},
            {"$set": {"cancel_requested": True, "updated_at": datetime.now(timezone.utc)}},
        )
        return result.matched_count > 0

    def has_newer_for_trigger(self, scan_run: ScanRun) -> bool:
        """
        True when a later scan run exists for the same repo and trigger.

        MongoDB keeps datetimes at millisecond precision, so runs created in
        the same millisecond are ordered by _id.
        """
        query: Dict[str, Any] = {
            "repo_id": scan_run.repo_id,
            "trigger_type": TriggerType(scan_run.trigger_type).value,
            "trigger_ref": scan_run.trigger_ref,
            "$or": [
                {"created_at": {"$gt": scan_run.created_at}},
                {"created_at": scan_run.created_at, "_id": {"$gt": scan_run.id}},
            ],
        }
        return self.collection.count_documents(query, limit=1) > 0

    def count_created_since(self, repo_id: str, since: datetime) -> int:
        """Number of scan runs created for a repo after `since`."""
        return self.count({"repo_id": repo_id, "created_at": {"$gt": since}})
