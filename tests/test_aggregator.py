import unittest
from unittest.mock import MagicMock

from repackhub.core.aggregator import Aggregator
from repackhub.core.errors import AggregationError, SiteFetchError
from repackhub.core.post_transformer import PostTransformer
from repackhub.models.aggregation import AggregationResultBuilder, SiteOutcome
from repackhub.models.post import UnifiedPost
from repackhub.sources import SiteRegistry


class _Settings:
    def __init__(self, **overrides):
        self.data = {
            "transform_batch_size": 2,
            "transform_batch_pause_seconds": 0,
            "aggregation_timeout_seconds": 5.0,
        }
        self.data.update(overrides)

    def get(self, key, default=None):
        return self.data.get(key, default)


class _Response:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class _Access:
    """Answers listing requests per site id; an Exception value is raised."""

    def __init__(self, by_site):
        self.by_site = by_site
        self.urls = []

    def fetch(self, url, site, is_detail_page=False):
        self.urls.append(url)
        value = self.by_site[site.id]
        if isinstance(value, Exception):
            raise value
        return _Response(value)


def _raw(post_id, date, title="Game"):
    return {
        "id": post_id,
        "title": {"rendered": title},
        "excerpt": {"rendered": ""},
        "content": {"rendered": ""},
        "link": f"https://site.example/{post_id}/",
        "date": date,
    }


def _aggregator(by_site, settings=None):
    scanner = MagicMock()
    scanner.extract_download_links.return_value = []
    access = _Access(by_site)
    aggregator = Aggregator(settings or _Settings(), SiteRegistry.from_settings(), access, PostTransformer(scanner))
    return aggregator, access, scanner


def _post(post_id, date):
    return UnifiedPost(
        id=post_id, original_id=post_id, title="", excerpt="", link="", date=date,
        slug="", description="", source="", site_type="",
    )


def _all_sites(value):
    return {site_id: value for site_id in ("skidrow", "freegog", "gamedrive", "steamrip")}


class TestResultBuilder(unittest.TestCase):
    def test_sorting_drops_undated_and_puts_invalid_last(self):
        posts = [
            _post("a", "2024-01-01T00:00:00"),
            _post("b", "not a date"),
            _post("c", "2024-06-01T00:00:00"),
            _post("d", None),
        ]
        ordered = AggregationResultBuilder.sort_posts(posts)
        self.assertEqual([post.id for post in ordered], ["c", "a", "b"])

    def test_failed_site_counts_zero(self):
        builder = AggregationResultBuilder("search", query="zelda")
        builder.add(SiteOutcome("skidrow", "SkidrowReloaded", posts=[_post("x", "2024-01-01")]))
        builder.add(SiteOutcome("freegog", "FreeGOGPCGames", error="boom"))
        result = builder.build()
        data = result.to_dict()
        self.assertTrue(data["success"])
        self.assertEqual(data["siteStats"], {"SkidrowReloaded": 1, "FreeGOGPCGames": 0})
        self.assertEqual(data["errors"], {"FreeGOGPCGames": "boom"})
        self.assertEqual(data["sitesSearched"], ["SkidrowReloaded", "FreeGOGPCGames"])
        self.assertEqual(data["query"], "zelda")
        self.assertFalse(result.all_failed)


class TestAggregator(unittest.TestCase):
    def test_recent_merges_all_sites_newest_first(self):
        by_site = {
            "skidrow": [_raw(1, "2024-03-01T00:00:00"), _raw(2, "2024-01-01T00:00:00")],
            "freegog": [_raw(3, "2024-02-01T00:00:00")],
            "gamedrive": [_raw(4, "garbage")],
            "steamrip": [_raw(5, "2024-04-01T00:00:00")],
        }
        aggregator, access, scanner = _aggregator(by_site)
        result = aggregator.recent()
        data = result.to_dict()

        self.assertEqual(data["type"], "recent_uploads")
        self.assertEqual(data["fetchStrategy"], "recent")
        self.assertEqual(data["totalResults"], 5)
        self.assertEqual(
            [post["id"] for post in data["results"]],
            ["steamrip_5", "skidrow_1", "freegog_3", "skidrow_2", "gamedrive_4"],
        )
        self.assertNotIn("errors", data)
        self.assertNotIn("query", data)
        scanner.extract_download_links.assert_not_called()
        self.assertTrue(any("page=1" in url for url in access.urls))

    def test_partial_failure_is_still_success(self):
        by_site = _all_sites([_raw(1, "2024-01-01T00:00:00")])
        by_site["steamrip"] = SiteFetchError("SteamRip", 403, "Forbidden")
        aggregator, _, _ = _aggregator(by_site)
        data = aggregator.recent().to_dict()
        self.assertTrue(data["success"])
        self.assertEqual(data["siteStats"]["SteamRip"], 0)
        self.assertIn("SteamRip API returned 403", data["errors"]["SteamRip"])

    def test_every_site_failing_raises(self):
        aggregator, _, _ = _aggregator(_all_sites(SiteFetchError("Site", None, "down")))
        with self.assertRaises(AggregationError):
            aggregator.recent()

    def test_non_list_listing_is_a_site_error(self):
        by_site = _all_sites([])
        by_site["freegog"] = {"code": "rest_no_route"}
        aggregator, _, _ = _aggregator(by_site)
        data = aggregator.recent().to_dict()
        self.assertIn("FreeGOGPCGames", data["errors"])

    def test_search_extracts_links_and_reports_query(self):
        aggregator, access, scanner = _aggregator(_all_sites([_raw(1, "2024-01-01T00:00:00")]))
        data = aggregator.search("elden ring", site_filter="freegog").to_dict()
        self.assertEqual(data["query"], "elden ring")
        self.assertEqual(data["sitesSearched"], ["FreeGOGPCGames"])
        self.assertEqual(data["fetchStrategy"], "search")
        self.assertNotIn("type", data)
        scanner.extract_download_links.assert_called_once_with("https://site.example/1/", "freegog")
        self.assertEqual(len(access.urls), 1)
        self.assertIn("search=elden+ring", access.urls[0])

    def test_site_filter_variants(self):
        aggregator, _, _ = _aggregator(_all_sites([]))
        self.assertEqual(len(aggregator.search("x").sites_searched), 4)
        self.assertEqual(len(aggregator.search("x", site_filter="all").sites_searched), 4)
        self.assertEqual(
            aggregator.search("x", site_filter="both").sites_searched,
            ["SkidrowReloaded", "FreeGOGPCGames"],
        )
        unknown = aggregator.search("x", site_filter="nope")
        self.assertTrue(unknown.success)
        self.assertEqual(unknown.sites_searched, [])
        self.assertEqual(unknown.total_results, 0)

    def test_posts_are_transformed_in_batches(self):
        raws = [_raw(i, f"2024-01-0{i}T00:00:00") for i in range(1, 6)]
        aggregator, _, _ = _aggregator({"skidrow": raws, "freegog": [], "gamedrive": [], "steamrip": []})
        aggregator.transformer = MagicMock(wraps=aggregator.transformer)
        result = aggregator.recent()
        self.assertEqual(aggregator.transformer.transform.call_count, 5)
        self.assertEqual(result.site_stats["SkidrowReloaded"], 5)

    def test_fetch_post_uses_post_url(self):
        aggregator, access, scanner = _aggregator({"gamedrive": _raw(77, "2024-01-01T00:00:00")})
        post = aggregator.fetch_post("gamedrive", "77")
        self.assertEqual(post.id, "gamedrive_77")
        self.assertEqual(access.urls, ["https://gamedrive.org/wp-json/wp/v2/posts/77"])
        scanner.extract_download_links.assert_called_once()

    def test_fetch_post_unknown_site(self):
        aggregator, _, _ = _aggregator({})
        with self.assertRaises(KeyError):
            aggregator.fetch_post("nope", "1")


if __name__ == "__main__":
    unittest.main()
