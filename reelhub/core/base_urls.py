"""
Base URL Resolver
Provider sites rotate domains; the live map comes from a remote providers JSON
"""
from typing import Any, Dict, Optional
from urllib.parse import urlparse
import logging
import threading
import time

from .errors import ConfigError, FetchError

logger = logging.getLogger(__name__)


def _host(url: str) -> str:
    host = (urlparse(str(url or "")).hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


class BaseUrlResolver:
    """
    Resolves a provider key (e.g. "4kHDHub") to its current base URL.

    Settings overrides (provider_base_urls) win over the remote map, which wins
    over fallback_base_urls for sites the map does not list. The remote map is
    cached for providers_json_ttl_seconds and stale data is served when a
    refresh fails.
    """

    def __init__(self, settings, fetcher):
        self.settings = settings
        self.fetcher = fetcher
        self._lock = threading.RLock()
        self._providers: Optional[Dict[str, Any]] = None
        self._fetched_at = 0.0

    def _ttl(self) -> float:
        return float(self.settings.get("providers_json_ttl_seconds", 300.0) or 300.0)

    def _load(self) -> Dict[str, Any]:
        with self._lock:
            if self._providers is not None and (time.time() - self._fetched_at) < self._ttl():
                return self._providers
            source = str(self.settings.get("providers_json_url", "") or "").strip()
            if not source:
                return self._providers or {}
            try:
                payload = self.fetcher.fetch_json(source)
            except FetchError as exc:
                if self._providers is not None:
                    logger.warning("Providers JSON refresh failed, serving stale map: %s", exc)
                    return self._providers
                raise ConfigError(f"Could not load provider domains: {exc}")
            if not isinstance(payload, dict):
                if self._providers is not None:
                    logger.warning("Providers JSON is not an object, serving stale map")
                    return self._providers
                raise ConfigError("Provider domains document is not a JSON object")
            self._providers = payload
            self._fetched_at = time.time()
            return self._providers

    def get_base_url(self, key: str) -> str:
        overrides = self.settings.get("provider_base_urls", {}) or {}
        override = str(overrides.get(key, "") or "").strip()
        if override:
            return override.rstrip("/")

        fallbacks = self.settings.get("fallback_base_urls", {}) or {}
        fallback = str(fallbacks.get(key, "") or "").strip()
        try:
            entry = self._load().get(key)
        except ConfigError:
            if not fallback:
                raise
            logger.warning("Provider domains unavailable, using fallback for %s", key)
            entry = None
        url = entry.get("url") if isinstance(entry, dict) else entry
        url = str(url or "").strip() or fallback
        if not url:
            raise ConfigError(f"No base URL known for provider '{key}'")
        return url.rstrip("/")

    def belongs_to(self, url: str, key: str) -> bool:
        """True when url is on the provider's current host."""
        host = _host(url)
        return bool(host) and host == _host(self.get_base_url(key))

    def invalidate(self):
        with self._lock:
            self._fetched_at = 0.0
