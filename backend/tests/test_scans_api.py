import unittest
from datetime import timedelta
from unittest.mock import MagicMock

import redis
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from driftwatch.api.deps import get_scan_repo, get_trigger_service
from driftwatch.core.redis import get_redis
from driftwatch.database.mongo import get_db
from driftwatch.entities.scan_run import ScanStatus
from driftwatch.main import app
from driftwatch.services.cancellation import CancellationSignal
from driftwatch.services.exceptions import ScanRateLimitError, ScanSchedulingError
from driftwatch.services.scan_jobs import ScanJobScheduler
from driftwatch.services.trigger_service import TriggerService
from tests.fakes import FakeClaimRepository, FakeScanRunRepository


class TestScansAPI(unittest.TestCase):

    def setUp(self):
        self.scan_repo = FakeScanRunRepository()
        self.cancellation = MagicMock(spec=CancellationSignal)
        self.scheduler = MagicMock(spec=ScanJobScheduler)
        self.trigger_service = TriggerService(
            scan_repo=self.scan_repo,
            claim_repo=FakeClaimRepository(),
            cancellation=self.cancellation,
            scheduler=self.scheduler,
            rate_limit_per_day=100,
            rate_limit_window=timedelta(hours=24),
            cancellation_ttl=600,
        )
        app.dependency_overrides[get_scan_repo] = lambda: self.scan_repo
        app.dependency_overrides[get_trigger_service] = lambda: self.trigger_service
        self.addCleanup(app.dependency_overrides.clear)
        self.client = TestClient(app)

    def test_get_scan(self):
        scan_id = self.trigger_service.enqueue_pr_scan("R", 7, "abc123", 42)

        response = self.client.get(f"/api/scans/{scan_id}")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["id"], scan_id)
        self.assertEqual(body["status"], "queued")
        self.assertEqual(body["trigger_type"], "pr")
        self.assertEqual(body["job_key"], "pr-scan-R-7")
        self.assertEqual(body["claims_checked"], 0)
        self.assertIsNone(body["started_at"])

    def test_get_unknown_scan_returns_404(self):
        response = self.client.get("/api/scans/000000000000000000000000")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "NOT_FOUND")

    def test_list_active_scans(self):
        running = self.trigger_service.enqueue_pr_scan("R", 1, "sha", 42)
        self.scan_repo.update_status(running, ScanStatus.RUNNING)
        done = self.trigger_service.enqueue_pr_scan("R", 2, "sha", 42)
        self.scan_repo.update_status(done, ScanStatus.COMPLETED)
        self.trigger_service.enqueue_pr_scan("OTHER", 1, "sha", 42)

        response = self.client.get("/api/repos/R/scans/active")

        self.assertEqual(response.status_code, 200)
        self.assertEqual([s["id"] for s in response.json()], [running])

    def test_cancel_queued_scan(self):
        scan_id = self.trigger_service.enqueue_pr_scan("R", 7, "sha", 42)

        response = self.client.post(f"/api/scans/{scan_id}/cancel")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(), {"scan_id": scan_id, "cancelled": True, "status": "cancelled"}
        )
        self.cancellation.request_cancellation.assert_not_called()

    def test_cancel_running_scan_requests_signal(self):
        scan_id = self.trigger_service.enqueue_pr_scan("R", 7, "sha", 42)
        self.scan_repo.update_status(scan_id, ScanStatus.RUNNING)

        response = self.client.post(f"/api/scans/{scan_id}/cancel")

        self.assertEqual(response.json()["status"], "running")
        self.assertTrue(response.json()["cancelled"])
        self.cancellation.request_cancellation.assert_called_once_with("pr-scan-R-7", 600)

    def test_cancel_unknown_scan_returns_404(self):
        response = self.client.post("/api/scans/000000000000000000000000/cancel")
        self.assertEqual(response.status_code, 404)

    def test_trigger_full_scan(self):
        response = self.client.post("/api/repos/R/full-scan", json={"installation_id": 42})

        self.assertEqual(response.status_code, 202)
        body = response.json()
        self.assertEqual(body["status"], "queued")
        self.assertIn(body["scan_id"], self.scan_repo.runs)
        self.scheduler.schedule_full_scan.assert_called_once()

    def test_scheduling_failure_returns_503(self):
        self.scheduler.schedule_full_scan.side_effect = ScanSchedulingError("broker down")

        response = self.client.post("/api/repos/R/full-scan", json={"installation_id": 42})

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["code"], "SERVICE_UNAVAILABLE")

    def test_rate_limit_returns_429(self):
        service = MagicMock()
        service.enqueue_full_scan.side_effect = ScanRateLimitError("slow down", retry_after=60)
        app.dependency_overrides[get_trigger_service] = lambda: service

        response = self.client.post("/api/repos/R/full-scan", json={"installation_id": 42})

        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.headers["retry-after"], "60")
        self.assertEqual(response.json()["code"], "RATE_LIMITED")


class TestHealthAPI(unittest.TestCase):

    def setUp(self):
        self.redis = MagicMock()
        self.db = MagicMock()
        app.dependency_overrides[get_redis] = lambda: self.redis
        app.dependency_overrides[get_db] = lambda: self.db
        self.addCleanup(app.dependency_overrides.clear)
        self.client = TestClient(app)

    def test_health_pings_redis(self):
        response = self.client.get("/api/health")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "healthy")
        self.assertEqual(body["redis"], "connected")
        self.redis.ping.assert_called_once_with()

    def test_health_reports_unreachable_redis(self):
        self.redis.ping.side_effect = redis.ConnectionError("connection refused")

        response = self.client.get("/api/health")

        body = response.json()
        self.assertEqual(body["status"], "unhealthy")
        self.assertEqual(body["redis"], "disconnected")
        self.assertIn("connection refused", body["error"])

    def test_database_health(self):
        response = self.client.get("/api/health/db")

        self.assertEqual(response.json()["database"], "connected")
        self.db.command.assert_called_once_with("ping")

    def test_database_health_reports_unreachable_mongo(self):
        self.db.command.side_effect = ServerSelectionTimeoutError("no servers")

        body = self.client.get("/api/health/db").json()

        self.assertEqual(body["status"], "unhealthy")
        self.assertEqual(body["database"], "disconnected")


if __name__ == "__main__":
    unittest.main()
