import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from bson import ObjectId

from driftwatch.entities.scan_run import ScanRun, ScanStatus, TriggerType
from driftwatch.repositories.scan_run import ScanRunRepository


class TestScanRunRepository(unittest.TestCase):

    def setUp(self):
        self.db = MagicMock()
        self.collection = self.db.__getitem__.return_value
        self.repo = ScanRunRepository(self.db)
        self.scan_id = ObjectId()

    def _last_set(self):
        args, _ = self.collection.update_one.call_args
        self.assertEqual(args[0], {"_id": self.scan_id})
        return args[1]["$set"]

    def test_uses_scan_runs_collection(self):
        self.db.__getitem__.assert_called_with("scan_runs")

    def test_create_inserts_queued_with_zero_counters(self):
        self.collection.insert_one.return_value.inserted_id = self.scan_id

        scan_run = self.repo.create_scan_run("R", TriggerType.PR, "7", "abc123", job_key="pr-scan-R-7")

        doc = self.collection.insert_one.call_args[0][0]
        self.assertEqual(doc["status"], "queued")
        self.assertEqual(doc["trigger_type"], "pr")
        self.assertEqual(doc["claims_checked"], 0)
        self.assertEqual(doc["total_token_cost"], 0)
        self.assertFalse(doc["comment_posted"])
        self.assertIsNone(doc["started_at"])
        self.assertIsNone(doc["completed_at"])
        self.assertEqual(scan_run.id, self.scan_id)
        self.assertEqual(scan_run.job_key, "pr-scan-R-7")

    def test_running_sets_started_at(self):
        self.collection.update_one.return_value.matched_count = 1

        self.assertTrue(self.repo.update_status(str(self.scan_id), ScanStatus.RUNNING))

        update = self._last_set()
        self.assertEqual(update["status"], "running")
        self.assertIsInstance(update["started_at"], datetime)
        self.assertNotIn("completed_at", update)

    def test_terminal_statuses_set_completed_at(self):
        self.collection.update_one.return_value.matched_count = 1
        for status in (ScanStatus.COMPLETED, ScanStatus.FAILED, ScanStatus.CANCELLED):
            self.repo.update_status(self.scan_id, status)
            update = self._last_set()
            self.assertEqual(update["status"], status.value)
            self.assertIn("completed_at", update)
            self.assertNotIn("started_at", update)

    def test_stats_are_merged_and_unknown_keys_dropped(self):
        self.collection.update_one.return_value.matched_count = 1

        self.repo.update_status(
            self.scan_id,
            "completed",
            {"claims_checked": 4, "claims_drifted": 1, "check_run_id": None, "bogus": 1},
        )

        update = self._last_set()
        self.assertEqual(update["claims_checked"], 4)
        self.assertEqual(update["claims_drifted"], 1)
        self.assertNotIn("check_run_id", update)
        self.assertNotIn("bogus", update)

    def test_unknown_scan_reports_no_match(self):
        self.collection.update_one.return_value.matched_count = 0
        self.assertFalse(self.repo.update_status(self.scan_id, ScanStatus.RUNNING))

    def test_any_transition_is_accepted(self):
        self.collection.update_one.return_value.matched_count = 1
        self.assertTrue(self.repo.update_status(self.scan_id, ScanStatus.COMPLETED))
        self.assertTrue(self.repo.update_status(self.scan_id, ScanStatus.QUEUED))

    def test_find_by_id_with_invalid_id(self):
        self.assertIsNone(self.repo.find_by_id("not-an-object-id"))
        self.collection.find_one.assert_not_called()

    def test_find_active_by_repo_query(self):
        self.collection.find.return_value.sort.return_value = []

        self.assertEqual(self.repo.find_active_by_repo("R"), [])

        self.collection.find.assert_called_once_with(
            {"repo_id": "R", "status": {"$in": ["queued", "running"]}}
        )
        self.collection.find.return_value.sort.assert_called_once_with([("created_at", -1)])

    def test_find_active_for_trigger_excludes_given_id(self):
        self.collection.find.return_value.sort.return_value = []

        self.repo.find_active_for_trigger("R", TriggerType.PR, "7", exclude_id=str(self.scan_id))

        query = self.collection.find.call_args[0][0]
        self.assertEqual(query["trigger_type"], "pr")
        self.assertEqual(query["trigger_ref"], "7")
        self.assertEqual(query["_id"], {"$ne": self.scan_id})

    def test_mark_cancel_requested(self):
        self.collection.update_one.return_value.matched_count = 1

        self.assertTrue(self.repo.mark_cancel_requested(str(self.scan_id)))

        update = self._last_set()
        self.assertTrue(update["cancel_requested"])
        self.assertNotIn("status", update)

    def test_has_newer_for_trigger_orders_by_created_at_then_id(self):
        self.collection.count_documents.return_value = 1
        created = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        scan_run = ScanRun(
            _id=self.scan_id,
            repo_id="R",
            trigger_type="pr",
            trigger_ref="7",
            commit_sha="sha",
            created_at=created,
        )

        self.assertTrue(self.repo.has_newer_for_trigger(scan_run))

        args, kwargs = self.collection.count_documents.call_args
        self.assertEqual(
            args[0],
            {
                "repo_id": "R",
                "trigger_type": "pr",
                "trigger_ref": "7",
                "$or": [
                    {"created_at": {"$gt": created}},
                    {"created_at": created, "_id": {"$gt": self.scan_id}},
                ],
            },
        )
        self.assertEqual(kwargs, {"limit": 1})

        self.collection.count_documents.return_value = 0
        self.assertFalse(self.repo.has_newer_for_trigger(scan_run))

    def test_count_created_since(self):
        self.collection.count_documents.return_value = 3
        since = datetime(2024, 1, 1, tzinfo=timezone.utc)

        self.assertEqual(self.repo.count_created_since("R", since), 3)
        self.collection.count_documents.assert_called_once_with(
            {"repo_id": "R", "created_at": {"$gt": since}}
        )


if __name__ == "__main__":
    unittest.main()
