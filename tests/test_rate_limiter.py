"""
Test suite for the SQLite sliding-window rate limiter and its middleware

Run with: python -m unittest tests.test_rate_limiter
"""

import os
import tempfile
import unittest

from fastapi import FastAPI
from fastapi.testclient import TestClient

from server.middleware.rate_limiting import get_client_ip, hash_client_ip, rate_limit_middleware
from server.rate_limiter import SQLiteRateLimiter


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class TestSQLiteRateLimiter(unittest.TestCase):
    """Sliding window: 5 requests per 60 seconds per client"""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.clock = FakeClock()
        self.limiter = SQLiteRateLimiter(
            db_path=os.path.join(self.tmp.name, "rate_limits.db"),
            requests_limit=5,
            window_seconds=60,
            clock=self.clock,
        )

    def tearDown(self):
        self.tmp.cleanup()

    def test_allows_up_to_limit(self):
        remaining = []
        for _ in range(5):
            allowed, left, _ = self.limiter.check_rate_limit("client_a")
            self.assertTrue(allowed)
            remaining.append(left)
        self.assertEqual(remaining, [4, 3, 2, 1, 0])

    def test_rejects_over_limit(self):
        for _ in range(5):
            self.limiter.check_rate_limit("client_a")

        allowed, remaining, info = self.limiter.check_rate_limit("client_a")

        self.assertFalse(allowed)
        self.assertEqual(remaining, 0)
        self.assertEqual(info["limit"], 5)
        self.assertEqual(info["reset"], self.clock.now + 60)

    def test_rejected_requests_are_not_recorded(self):
        for _ in range(5):
            self.limiter.check_rate_limit("client_a")
        for _ in range(3):
            self.limiter.check_rate_limit("client_a")

        self.assertEqual(self.limiter.get_client_status("client_a")["requests_made"], 5)

    def test_window_slides(self):
        """The oldest request leaving the window frees exactly one slot"""
        self.limiter.check_rate_limit("client_a")
        self.clock.advance(30)
        for _ in range(4):
            self.limiter.check_rate_limit("client_a")

        self.clock.advance(29)
        self.assertFalse(self.limiter.check_rate_limit("client_a")[0])

        self.clock.advance(1)
        self.assertTrue(self.limiter.check_rate_limit("client_a")[0])
        self.assertFalse(self.limiter.check_rate_limit("client_a")[0])

    def test_clients_are_independent(self):
        for _ in range(5):
            self.limiter.check_rate_limit("client_a")

        allowed, remaining, _ = self.limiter.check_rate_limit("client_b")

        self.assertTrue(allowed)
        self.assertEqual(remaining, 4)

    def test_reset_client(self):
        for _ in range(5):
            self.limiter.check_rate_limit("client_a")

        self.limiter.reset_client("client_a")

        self.assertTrue(self.limiter.check_rate_limit("client_a")[0])

    def test_state_survives_new_instance(self):
        for _ in range(5):
            self.limiter.check_rate_limit("client_a")

        reopened = SQLiteRateLimiter(
            db_path=self.limiter.db_path, requests_limit=5, window_seconds=60, clock=self.clock
        )

        self.assertFalse(reopened.check_rate_limit("client_a")[0])

    def test_get_client_status_does_not_record(self):
        self.limiter.check_rate_limit("client_a")

        status = self.limiter.get_client_status("client_a")
        status_again = self.limiter.get_client_status("client_a")

        self.assertEqual(status["requests_made"], 1)
        self.assertEqual(status["remaining"], 4)
        self.assertEqual(status, status_again)


class TestRateLimitMiddleware(unittest.TestCase):
    """Only ballot submission is throttled"""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.clock = FakeClock()
        limiter = SQLiteRateLimiter(
            db_path=os.path.join(self.tmp.name, "rate_limits.db"),
            requests_limit=2,
            window_seconds=60,
            clock=self.clock,
        )

        app = FastAPI()

        @app.middleware("http")
        async def limit(request, call_next):
            return await rate_limit_middleware(request, call_next, limiter)

        @app.post("/api/vote/{poll_id}")
        async def vote(poll_id: str):
            return {"success": True}

        @app.get("/api/poll/{poll_id}")
        async def poll(poll_id: str):
            return {"success": True}

        self.client = TestClient(app)

    def tearDown(self):
        self.tmp.cleanup()

    def test_headers_on_allowed_request(self):
        response = self.client.post("/api/vote/poll_1")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["X-RateLimit-Limit"], "2")
        self.assertEqual(response.headers["X-RateLimit-Remaining"], "1")

    def test_429_when_exhausted(self):
        self.client.post("/api/vote/poll_1")
        self.client.post("/api/vote/poll_1")

        response = self.client.post("/api/vote/poll_1")

        self.assertEqual(response.status_code, 429)
        body = response.json()
        self.assertIn("Rate limit exceeded", body["error"])
        self.assertIn("retry_after", body)
        self.assertEqual(response.headers["X-RateLimit-Remaining"], "0")
        self.assertEqual(response.headers["Retry-After"], "60")
        self.assertIn("X-RateLimit-Reset", response.headers)

    def test_limit_applies_across_polls(self):
        self.client.post("/api/vote/poll_1")
        self.client.post("/api/vote/poll_2")

        self.assertEqual(self.client.post("/api/vote/poll_3").status_code, 429)

    def test_other_endpoints_not_limited(self):
        for _ in range(5):
            response = self.client.get("/api/poll/poll_1")
            self.assertEqual(response.status_code, 200)
            self.assertNotIn("X-RateLimit-Limit", response.headers)

    def test_forwarded_clients_limited_separately(self):
        self.client.post("/api/vote/poll_1", headers={"X-Forwarded-For": "203.0.113.7"})
        self.client.post("/api/vote/poll_1", headers={"X-Forwarded-For": "203.0.113.7"})

        other = self.client.post("/api/vote/poll_1", headers={"X-Forwarded-For": "198.51.100.2"})

        self.assertEqual(other.status_code, 200)


class TestClientIp(unittest.TestCase):

    def _request(self, headers=None, client=("10.0.0.1", 1234)):
        from starlette.requests import Request

        raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
        return Request({"type": "http", "headers": raw_headers, "client": client})

    def test_forwarded_for_first_hop(self):
        request = self._request({"X-Forwarded-For": "203.0.113.7, 10.0.0.2"})
        self.assertEqual(get_client_ip(request), "203.0.113.7")

    def test_real_ip(self):
        request = self._request({"X-Real-IP": " 198.51.100.2 "})
        self.assertEqual(get_client_ip(request), "198.51.100.2")

    def test_direct_connection(self):
        self.assertEqual(get_client_ip(self._request()), "10.0.0.1")

    def test_no_client(self):
        self.assertEqual(get_client_ip(self._request(client=None)), "127.0.0.1")

    def test_hash_is_stable_and_short(self):
        self.assertEqual(hash_client_ip("10.0.0.1"), hash_client_ip("10.0.0.1"))
        self.assertEqual(len(hash_client_ip("10.0.0.1")), 16)
        self.assertNotEqual(hash_client_ip("10.0.0.1"), hash_client_ip("10.0.0.2"))


if __name__ == "__main__":
    unittest.main()
