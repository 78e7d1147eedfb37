"""
Settings Manager
Handles persistent service settings in the data directory
"""
import copy
import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional


def default_data_dir() -> Path:
    data_dir = str(os.environ.get("REPACKHUB_DATA_DIR", "") or "").strip()
    return Path(data_dir).expanduser() if data_dir else (Path.home() / ".repackhub")


class SettingsManager:
    """Manages service settings with persistence"""

    DEFAULT_SETTINGS = {
        # Response cache
        "cache_prefix": "game-search-v2:",
        "cache_ttl_seconds": 3600,
        "cache_stale_seconds": 7200,
        "cache_retention_seconds": 86400,
        "cache_max_entries": 500,
        "image_cache_seconds": 604800,

        # Outbound requests
        "request_timeout_seconds": 15.0,
        "api_user_agent": "RepackHub-Search-API/2.0",
        "page_user_agent": "RepackHub-Link-Extractor/2.0",
        "image_proxy_user_agent": "RepackHub-Image-Proxy/2.0",
        "image_user_agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),

        # Challenge solver (FlareSolverr)
        "flaresolverr_url": "http://localhost:8191/v1",
        "flaresolverr_max_timeout_ms": 60000,
        "flaresolverr_request_timeout_seconds": 70.0,
        "credential_default_lifetime_seconds": 14400,

        # Decrypt service
        "decrypt_api_url": "https://crypt.cybar.xyz/api/decrypt",
        "decrypt_fallback_url": "https://decrypt.iforgor.cc/decrypt",
        "decrypt_cache_ttl_seconds": 2592000,

        # HTTP server
        "server_host": "127.0.0.1",
        "server_port": 8787,

        # Aggregation
        "transform_batch_size": 8,
        "transform_batch_pause_seconds": 0.001,
        "aggregation_timeout_seconds": 60.0,
        "site_overrides": {},
    }

    def __init__(self, data_dir: Optional[Path] = None):
        self._lock = threading.RLock()
        self.settings_dir = Path(data_dir) if data_dir is not None else default_data_dir()
        self.settings_dir.mkdir(parents=True, exist_ok=True)
        self.settings_file = self.settings_dir / "settings.json"
        self._settings = self._load()

    def _load(self) -> Dict[str, Any]:
        """Load settings from file, merged over defaults"""
        settings = copy.deepcopy(self.DEFAULT_SETTINGS)
        if self.settings_file.exists():
            try:
                with open(self.settings_file, "r") as f:
                    loaded = json.load(f)
                if isinstance(loaded, dict):
                    settings.update(loaded)
            except Exception as e:
                print(f"Error loading settings: {e}")
        return settings

    def _save(self):
        """Save settings to file"""
        with self._lock:
            try:
                with open(self.settings_file, "w") as f:
                    json.dump(self._settings, f, indent=2)
            except Exception as e:
                print(f"Error saving settings: {e}")

    def get(self, key: str, default=None) -> Any:
        """Get a setting value"""
        with self._lock:
            return self._settings.get(key, default)

    def set(self, key: str, value: Any):
        """Set a setting value and save"""
        with self._lock:
            self._settings[str(key)] = value
            self._save()

    def update(self, settings_dict: Dict[str, Any]):
        """Update multiple settings at once"""
        with self._lock:
            self._settings.update(dict(settings_dict or {}))
            self._save()

    def get_all(self) -> Dict[str, Any]:
        """Get all settings"""
        with self._lock:
            return copy.deepcopy(self._settings)

    def reset(self):
        """Reset to default settings"""
        with self._lock:
            self._settings = copy.deepcopy(self.DEFAULT_SETTINGS)
            self._save()
