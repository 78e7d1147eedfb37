import os
import sys
import tempfile
import unittest
from unittest.mock import MagicMock, patch

_DATA_DIR = tempfile.mkdtemp(prefix="repackhub-test-")
os.environ.setdefault("REPACKHUB_DATA_DIR", _DATA_DIR)

try:
    from fastapi.testclient import TestClient
    from repackhub.web import app as web_app
    from repackhub.web.app import create_app
    from repackhub.web.runtime import build_runtime
    HAS_WEB_DEPS = True
except Exception:
    HAS_WEB_DEPS = False

from repackhub.core.errors import AggregationError, SiteFetchError
from repackhub.models.aggregation import AggregationResult
from repackhub.models.post import UnifiedPost
from repackhub.services.decrypt_client import DecryptOutcome


def _post():
    return UnifiedPost(
        id="freegog_1", original_id=1, title="Game", excerpt="", link="https://freegogpcgames.com/game/",
        date="2024-01-01T00:00:00", slug="game", description="", source="FreeGOGPCGames", site_type="freegog",
    )


@unittest.skipUnless(HAS_WEB_DEPS, "fastapi/httpx not installed")
class TestWebAPI(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.runtime = build_runtime(self.tmp.name)
        self.runtime.aggregator = MagicMock()
        self.runtime.decrypt = MagicMock()
        self.runtime.images = MagicMock()
        self.client = TestClient(create_app(self.runtime))

    def tearDown(self):
        self.tmp.cleanup()

    def test_options_and_unsupported_methods(self):
        options = self.client.options("/recent")
        self.assertEqual(options.status_code, 200)
        self.assertEqual(options.text, "")
        self.assertEqual(options.headers["access-control-allow-origin"], "*")

        put = self.client.put("/recent")
        self.assertEqual(put.status_code, 405)
        self.assertEqual(put.text, "Method not allowed")
        self.assertEqual(put.headers["access-control-allow-origin"], "*")

    def test_search_requires_query(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"success": False, "error": "Search query required"})
        self.assertEqual(response.headers["access-control-allow-origin"], "*")

    def test_search_on_any_path_is_cached(self):
        self.runtime.aggregator.search.return_value = AggregationResult(
            success=True, fetch_strategy="search", results=[_post()],
            site_stats={"FreeGOGPCGames": 1}, query="game", sites_searched=["FreeGOGPCGames"],
        )
        first = self.client.get("/anything/here", params={"search": "game", "site": "freegog"})
        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.headers["x-cache-status"], "MISS")
        self.assertEqual(first.json()["results"][0]["id"], "freegog_1")
        self.assertFalse(first.json()["cached"])

        second = self.client.post("/?search=game&site=freegog")
        self.assertEqual(second.headers["x-cache-status"], "HIT")
        self.assertTrue(second.json()["cached"])
        self.assertEqual(self.runtime.aggregator.search.call_count, 1)
        args = self.runtime.aggregator.search.call_args.args
        self.assertEqual(args[0], "game")
        self.assertEqual(args[1], "freegog")

    def test_recent_failure_is_500(self):
        self.runtime.aggregator.recent.side_effect = AggregationError("SkidrowReloaded: down")
        response = self.client.get("/recent")
        self.assertEqual(response.status_code, 500)
        self.assertNotIn("x-cache-status", response.headers)
        self.assertIn("Failed to fetch recent uploads from all sources", response.json()["error"])

    def test_clear_cache(self):
        self.runtime.aggregator.recent.return_value = AggregationResult(success=True, fetch_strategy="recent")
        self.assertEqual(self.client.get("/recent").json()["type"], "recent_uploads")

        cleared = self.client.get("/clearcache").json()
        self.assertEqual(cleared["message"], "Successfully cleared cache for recent uploads.")
        again = self.client.post("/clearcache").json()
        self.assertEqual(again["message"], "No cache entry found for recent uploads to clear.")

    def test_post_parameter_validation(self):
        self.assertEqual(self.client.get("/post", params={"site": "freegog"}).status_code, 400)
        missing_site = self.client.get("/post", params={"id": "1"})
        self.assertEqual(missing_site.status_code, 400)
        self.assertIn("skidrow, freegog, gamedrive, steamrip", missing_site.json()["error"])
        invalid = self.client.get("/post", params={"id": "1", "site": "nope"})
        self.assertTrue(invalid.json()["error"].startswith("Invalid site parameter"))

    def test_post_details(self):
        self.runtime.aggregator.fetch_post.return_value = _post()
        response = self.client.get("/post", params={"id": "1", "site": "freegog"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["post"]["siteType"], "freegog")

        self.runtime.aggregator.fetch_post.side_effect = SiteFetchError("FreeGOGPCGames", 404, "Not Found")
        failed = self.client.get("/post", params={"id": "1", "site": "freegog"})
        self.assertEqual(failed.status_code, 500)

    def test_decrypt(self):
        self.assertEqual(self.client.get("/decrypt").json()["error"], "Missing hash")
        self.runtime.decrypt.resolve.return_value = DecryptOutcome(
            {"success": True, "url": "https://mega.nz/file/a", "cached": True},
            headers={"X-Cache-Status": "KV-HIT"},
        )
        response = self.client.get("/decrypt", params={"hash": "abc"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["x-cache-status"], "KV-HIT")
        self.runtime.decrypt.resolve.assert_called_once_with("abc")

    def test_clear_decrypt_cache(self):
        self.runtime.decrypt.clear_cache.return_value = 3
        payload = self.client.get("/clear-decrypt-cache").json()
        self.assertEqual(payload["count"], 3)
        self.assertEqual(payload["message"], "Cleared 3 decrypted links from KV cache")

    def test_proxy_image_rejects_bad_urls(self):
        self.runtime.images.is_acceptable.return_value = False
        response = self.client.get("/proxy-image", params={"url": "ftp://x"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.text, "Invalid image URL")

    def test_main_serves_module_app_with_uvicorn(self):
        fake_uvicorn = MagicMock()
        with patch.dict(sys.modules, {"uvicorn": fake_uvicorn}):
            web_app.main()
        args, kwargs = fake_uvicorn.run.call_args
        self.assertIs(args[0], web_app.app)
        self.assertEqual(kwargs["host"], "127.0.0.1")
        self.assertEqual(kwargs["port"], 8787)


if __name__ == "__main__":
    unittest.main()
