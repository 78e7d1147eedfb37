import time
import unittest
from unittest.mock import MagicMock

import requests

from repackhub.core.errors import ChallengeSolverError
from repackhub.services.flaresolverr_client import FlareSolverrClient


class _Settings:
    def __init__(self):
        self.data = {
            "flaresolverr_url": "http://solver.local:8191/v1",
            "flaresolverr_max_timeout_ms": 30000,
            "credential_default_lifetime_seconds": 14400,
        }

    def get(self, key, default=None):
        return self.data.get(key, default)


def _client(payload=None, status_code=200, error=None):
    session = MagicMock()
    if error is not None:
        session.post.side_effect = error
    else:
        response = MagicMock()
        response.ok = 200 <= status_code < 300
        response.status_code = status_code
        response.json.return_value = payload
        session.post.return_value = response
    return FlareSolverrClient(_Settings(), session=session), session


class TestFlareSolverrClient(unittest.TestCase):
    def test_extracts_clearance_cookie_and_expiry(self):
        client, session = _client({
            "status": "ok",
            "solution": {"cookies": [
                {"name": "__cf_bm", "value": "x"},
                {"name": "cf_clearance", "value": "abc", "expires": 1893456000},
            ]},
        })
        credential = client.solve("https://steamrip.com/wp-json/wp/v2/posts", "UA/1.0")
        self.assertEqual(credential.token, "abc")
        self.assertEqual(credential.expires_at, 1893456000.0)
        body = session.post.call_args.kwargs["json"]
        self.assertEqual(body["cmd"], "request.get")
        self.assertEqual(body["url"], "https://steamrip.com/wp-json/wp/v2/posts")
        self.assertEqual(body["userAgent"], "UA/1.0")
        self.assertEqual(body["maxTimeout"], 30000)
        self.assertEqual(session.post.call_args.args[0], "http://solver.local:8191/v1")

    def test_missing_expiry_defaults_to_four_hours(self):
        client, _ = _client({"status": "ok", "solution": {"cookies": [{"name": "cf_clearance", "value": "abc"}]}})
        before = time.time()
        credential = client.solve("https://example.com", "UA")
        self.assertGreaterEqual(credential.expires_at, before + 14400 - 1)
        self.assertLessEqual(credential.expires_at, time.time() + 14400 + 1)

    def test_missing_cookie_raises(self):
        client, _ = _client({"status": "ok", "solution": {"cookies": []}})
        with self.assertRaises(ChallengeSolverError):
            client.solve("https://example.com", "UA")

    def test_solver_error_status_raises(self):
        client, _ = _client({"status": "error", "message": "Challenge not solved"})
        with self.assertRaises(ChallengeSolverError) as ctx:
            client.solve("https://example.com", "UA")
        self.assertIn("Challenge not solved", str(ctx.exception))

    def test_http_and_network_failures_raise(self):
        client, _ = _client({}, status_code=500)
        with self.assertRaises(ChallengeSolverError):
            client.solve("https://example.com", "UA")

        client, _ = _client(error=requests.ConnectionError("down"))
        with self.assertRaises(ChallengeSolverError):
            client.solve("https://example.com", "UA")


if __name__ == "__main__":
    unittest.main()
