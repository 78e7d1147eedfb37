import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from repackhub.core.settings_manager import SettingsManager, default_data_dir
from repackhub.sources import SiteRegistry


class TestSettingsManager(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def test_defaults(self):
        settings = SettingsManager(self.data_dir)
        self.assertEqual(settings.get("cache_ttl_seconds"), 3600)
        self.assertEqual(settings.get("flaresolverr_url"), "http://localhost:8191/v1")
        self.assertEqual(settings.get("missing", "x"), "x")

    def test_set_persists_and_reloads(self):
        settings = SettingsManager(self.data_dir)
        settings.set("cache_ttl_seconds", 60)
        settings.update({"flaresolverr_url": "http://solver:8191/v1"})
        reloaded = SettingsManager(self.data_dir)
        self.assertEqual(reloaded.get("cache_ttl_seconds"), 60)
        self.assertEqual(reloaded.get("flaresolverr_url"), "http://solver:8191/v1")

    def test_reset(self):
        settings = SettingsManager(self.data_dir)
        settings.set("cache_prefix", "x:")
        settings.reset()
        self.assertEqual(settings.get_all(), SettingsManager.DEFAULT_SETTINGS)

    def test_corrupt_file_falls_back_to_defaults(self):
        (self.data_dir / "settings.json").write_text("{not json")
        settings = SettingsManager(self.data_dir)
        self.assertEqual(settings.get("cache_stale_seconds"), 7200)

    def test_data_dir_from_environment(self):
        with patch.dict(os.environ, {"REPACKHUB_DATA_DIR": str(self.data_dir)}):
            self.assertEqual(default_data_dir(), self.data_dir)

    def test_site_overrides_reach_registry(self):
        (self.data_dir / "settings.json").write_text(json.dumps({
            "site_overrides": {"steamrip": {"max_links": 5, "display_name": "SteamRIP"}},
        }))
        registry = SiteRegistry.from_settings(SettingsManager(self.data_dir))
        site = registry.get("steamrip").site
        self.assertEqual(site.max_links, 5)
        self.assertEqual(site.display_name, "SteamRIP")
        self.assertEqual(registry.get("skidrow").site.max_links, 15)


if __name__ == "__main__":
    unittest.main()
