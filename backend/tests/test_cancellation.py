import unittest
from unittest.mock import MagicMock

import redis

from driftwatch.services.cancellation import CancellationSignal, cancellation_key


class TestCancellationSignal(unittest.TestCase):

    def setUp(self):
        self.redis = MagicMock()
        self.signal = CancellationSignal(self.redis, default_ttl=600)

    def test_key_shape(self):
        self.assertEqual(cancellation_key("pr-scan-R-7"), "cancel:pr-scan-R-7")

    def test_is_cancelled_checks_existence(self):
        self.redis.exists.return_value = 1
        self.assertTrue(self.signal.is_cancelled("pr-scan-R-7"))
        self.redis.exists.assert_called_once_with("cancel:pr-scan-R-7")

        self.redis.exists.return_value = 0
        self.assertFalse(self.signal.is_cancelled("pr-scan-R-7"))

    def test_is_cancelled_fails_open(self):
        self.redis.exists.side_effect = redis.ConnectionError("down")
        self.assertFalse(self.signal.is_cancelled("pr-scan-R-7"))

    def test_request_uses_default_ttl(self):
        self.signal.request_cancellation("pr-scan-R-7")
        self.redis.setex.assert_called_once_with("cancel:pr-scan-R-7", 600, "1")

    def test_request_with_explicit_ttl(self):
        self.signal.request_cancellation("pr-scan-R-7", ttl=30)
        self.redis.setex.assert_called_once_with("cancel:pr-scan-R-7", 30, "1")

    def test_request_propagates_transport_errors(self):
        self.redis.setex.side_effect = redis.ConnectionError("down")
        with self.assertRaises(redis.ConnectionError):
            self.signal.request_cancellation("pr-scan-R-7")

    def test_clear_is_best_effort(self):
        self.signal.clear("pr-scan-R-7")
        self.redis.delete.assert_called_once_with("cancel:pr-scan-R-7")

        self.redis.delete.side_effect = redis.ConnectionError("down")
        self.signal.clear("pr-scan-R-7")


if __name__ == "__main__":
    unittest.main()
