"""
Settings Manager
Handles service settings: defaults, a JSON file in the data directory, and environment overrides
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional
import threading

logger = logging.getLogger(__name__)


def default_data_dir() -> Path:
    data_dir = str(os.environ.get("REELHUB_DATA_DIR", "") or "").strip()
    return Path(data_dir).expanduser() if data_dir else (Path.home() / ".reelhub")


class SettingsManager:
    """Manages service settings with persistence"""

    ENV_PREFIX = "REELHUB_"

    DEFAULT_SETTINGS = {
        # Logging
        "log_level": "INFO",

        # Fetching
        "fetch_timeout_seconds": 20.0,
        "fetch_retries": 2,
        "fetch_backoff_seconds": 0.5,
        "user_agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        "scraper_api_endpoint": "http://api.scraperapi.com?api_key={key}&url={url}",
        "scraper_api_keys": [],

        # Provider domains rotate; the live map is fetched, overrides win.
        "providers_json_url": "https://anshu78780.github.io/json/providers.json",
        "providers_json_ttl_seconds": 300.0,
        "provider_base_urls": {},
        # Used only for keys the remote map does not list.
        "fallback_base_urls": {
            "allmovieshub": "https://allmovieshub.yoga",
            "10bitclub": "https://10bitclub.xyz",
            "showbox": "https://www.showbox.media",
        },
        # Per-provider cookie strings (session tokens). Secrets: keep out of code.
        "provider_cookies": {},

        # Link resolution
        "resolver_max_hops": 3,

        # Aggregate search
        "search_cache_ttl_seconds": 3600,
        "search_cache_max_entries": 256,
        "global_search_timeout_seconds": 30.0,
        "global_search_workers": 6,

        # Auth / quota
        "auth_enabled": True,
        "default_requests_limit": 1000,
        "admin_token": "",
    }

    def __init__(self, settings_dir: Optional[Path] = None, persist: bool = True):
        self.settings_dir = Path(settings_dir) if settings_dir else default_data_dir()
        self.persist = bool(persist)
        if self.persist:
            self.settings_dir.mkdir(parents=True, exist_ok=True)
        self.settings_file = self.settings_dir / "settings.json"

        self._lock = threading.RLock()
        self._settings: Dict[str, Any] = {}
        # Values from the settings file or set at runtime; the only layer written back.
        self._persisted: Dict[str, Any] = {}
        self._load()

    def _load(self):
        """Load settings from file, then apply environment overrides"""
        with self._lock:
            self._settings = json.loads(json.dumps(self.DEFAULT_SETTINGS))
            self._persisted = {}
            if self.persist and self.settings_file.exists():
                try:
                    with open(self.settings_file, "r", encoding="utf-8") as f:
                        loaded = json.load(f)
                    if isinstance(loaded, dict):
                        self._persisted.update(loaded)
                        self._settings.update(loaded)
                except (OSError, ValueError) as e:
                    logger.warning("Error loading settings from %s: %s", self.settings_file, e)
            self._settings.update(self._env_overrides())

    def _env_overrides(self) -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        for key in self.DEFAULT_SETTINGS:
            raw = os.environ.get(f"{self.ENV_PREFIX}{key.upper()}")
            if raw is None:
                continue
            try:
                overrides[key] = json.loads(raw)
            except ValueError:
                overrides[key] = raw
        return overrides

    def _save(self):
        """Save settings to file"""
        if not self.persist:
            return
        with self._lock:
            try:
                with open(self.settings_file, "w", encoding="utf-8") as f:
                    json.dump(self._persisted, f, indent=2)
            except OSError as e:
                logger.warning("Error saving settings: %s", e)

    def get(self, key: str, default=None) -> Any:
        """Get a setting value"""
        with self._lock:
            return self._settings.get(key, default)

    def set(self, key: str, value: Any):
        """Set a setting value and save"""
        with self._lock:
            self._settings[str(key)] = value
            self._persisted[str(key)] = value
            self._save()

    def update(self, settings_dict: Dict[str, Any]):
        """Update multiple settings at once"""
        with self._lock:
            values = dict(settings_dict or {})
            self._settings.update(values)
            self._persisted.update(values)
            self._save()

    def get_all(self) -> Dict[str, Any]:
        """Get all settings"""
        with self._lock:
            return self._settings.copy()

    def reset(self):
        """Reset to default settings; environment overrides still apply"""
        with self._lock:
            self._settings = json.loads(json.dumps(self.DEFAULT_SETTINGS))
            self._settings.update(self._env_overrides())
            self._persisted = {}
            self._save()
