"""
Fetcher
Outbound HTTP for every provider: browser-like headers, optional scraping proxy,
bounded retry and per-host health accounting
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
from urllib.parse import quote, urlparse
import logging
import random
import threading
import time

import requests

from ..models.scrape_result import RawDocument
from .errors import ConfigError, FetchError

logger = logging.getLogger(__name__)


DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


@dataclass
class HostHealthState:
    attempts: int = 0
    successes: int = 0
    failures: int = 0
    avg_latency_ms: float = 0.0
    last_error: str = ""
    last_success_at: float = 0.0


class Fetcher:
    """Shared HTTP client used by providers and the link resolver."""

    def __init__(self, settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)
        self.session.headers["User-Agent"] = str(
            settings.get("user_agent", "") or "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
        )
        self._lock = threading.RLock()
        self._health: Dict[str, HostHealthState] = {}

    def fetch(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        referer: Optional[str] = None,
        cookies: Optional[Union[str, Dict[str, str]]] = None,
        timeout: Optional[float] = None,
        method: str = "GET",
        data: Any = None,
        use_proxy: bool = False,
    ) -> RawDocument:
        """
        Fetch a URL and return its body.

        Raises:
            FetchError: network failure (no status) or non-2xx response (with status)
            ConfigError: proxy requested but no proxy keys are configured
        """
        request_headers = dict(headers or {})
        if referer:
            request_headers["Referer"] = referer
        request_cookies = None
        if isinstance(cookies, str) and cookies.strip():
            request_headers["Cookie"] = cookies.strip()
        elif isinstance(cookies, dict) and cookies:
            request_cookies = dict(cookies)

        target = self._proxy_url(url) if use_proxy else url
        timeout_seconds = float(timeout if timeout is not None else self.settings.get("fetch_timeout_seconds", 20.0))

        t0 = time.perf_counter()
        try:
            response = self._request_with_retry(
                method=method,
                url=target,
                headers=request_headers,
                cookies=request_cookies,
                data=data,
                timeout_seconds=timeout_seconds,
                retries=int(self.settings.get("fetch_retries", 2)),
                backoff_seconds=float(self.settings.get("fetch_backoff_seconds", 0.5)),
                display_url=url,
            )
        except FetchError as exc:
            self._record_health(url, ok=False, latency_ms=0.0, error=str(exc))
            raise
        latency_ms = (time.perf_counter() - t0) * 1000.0
        self._record_health(url, ok=True, latency_ms=latency_ms, error="")

        final = str(getattr(response, "url", "") or url) if not use_proxy else url
        return RawDocument(
            url=final,
            status_code=int(response.status_code),
            text=response.text or "",
            headers=dict(getattr(response, "headers", None) or {}),
        )

    def fetch_json(self, url: str, **kwargs) -> Any:
        """Fetch and decode a JSON body; a non-JSON body is an upstream failure."""
        headers = dict(kwargs.pop("headers", None) or {})
        headers.setdefault("Accept", "application/json, text/plain, */*")
        document = self.fetch(url, headers=headers, **kwargs)
        try:
            return document.json()
        except ValueError as exc:
            raise FetchError(f"Malformed JSON from {url}: {exc}", upstream_status=document.status_code, url=url)

    def final_url(self, url: str, referer: Optional[str] = None, timeout: Optional[float] = None) -> str:
        """Follow redirects and return the landing URL, or the input when it cannot be followed."""
        timeout_value = float(timeout if timeout is not None else self.settings.get("fetch_timeout_seconds", 20.0))
        headers = {"Referer": referer} if referer else {}
        try:
            # HEAD is faster, but many hosts block it; fallback to GET.
            response = self.session.head(url, headers=headers, timeout=timeout_value, allow_redirects=True)
            if response.status_code < 400 and response.url:
                return str(response.url)
        except requests.RequestException as exc:
            logger.debug("HEAD redirect lookup failed for %s: %s", url, exc)

        try:
            response = self._request_with_retry(
                method="GET",
                url=url,
                headers=headers,
                cookies=None,
                data=None,
                timeout_seconds=timeout_value,
                retries=1,
                backoff_seconds=0.2,
            )
        except FetchError as exc:
            logger.debug("GET redirect lookup failed for %s: %s", url, exc)
            return url
        return str(response.url or url)

    def _proxy_url(self, url: str) -> str:
        keys = [k for k in (self.settings.get("scraper_api_keys", []) or []) if str(k).strip()]
        if not keys:
            raise ConfigError("Scraping proxy requested but no scraper_api_keys are configured")
        template = str(self.settings.get("scraper_api_endpoint", "") or "")
        if "{key}" not in template or "{url}" not in template:
            raise ConfigError("scraper_api_endpoint must contain {key} and {url} placeholders")
        key = random.choice(keys)
        return template.replace("{key}", str(key)).replace("{url}", quote(url, safe=""))

    def _request_with_retry(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        cookies: Optional[Dict[str, str]],
        data: Any,
        timeout_seconds: float,
        retries: int,
        backoff_seconds: float,
        display_url: str = "",
    ):
        """Request with bounded exponential backoff on network errors and 5xx only."""
        shown = display_url or url
        last_error: Optional[FetchError] = None
        total_attempts = max(1, int(retries) + 1)
        for attempt in range(total_attempts):
            try:
                response = self.session.request(
                    method.upper(),
                    url,
                    headers=headers or None,
                    cookies=cookies,
                    data=data,
                    timeout=max(1.0, float(timeout_seconds)),
                    allow_redirects=True,
                )
            except requests.RequestException as exc:
                last_error = FetchError(f"Network error fetching {shown}: {exc}", url=shown)
            else:
                status = int(response.status_code)
                if 200 <= status < 300:
                    return response
                last_error = FetchError(f"Upstream returned HTTP {status} for {shown}", upstream_status=status, url=shown)
                if status < 500:
                    break
            if attempt >= total_attempts - 1:
                break
            delay = max(0.0, float(backoff_seconds)) * (2 ** attempt)
            logger.debug("Retrying %s in %.2fs (attempt %d/%d)", shown, delay, attempt + 2, total_attempts)
            if delay > 0:
                time.sleep(delay)
        logger.warning("%s", last_error)
        raise last_error

    def _record_health(self, url: str, ok: bool, latency_ms: float, error: str):
        host = (urlparse(url).hostname or "").lower()
        with self._lock:
            state = self._health.get(host, HostHealthState())
            state.attempts += 1
            if ok:
                state.successes += 1
                state.last_error = ""
                state.last_success_at = time.time()
            else:
                state.failures += 1
                state.last_error = error
            if latency_ms > 0:
                if state.avg_latency_ms <= 0:
                    state.avg_latency_ms = latency_ms
                else:
                    state.avg_latency_ms = (state.avg_latency_ms * 0.8) + (latency_ms * 0.2)
            self._health[host] = state

    def get_health_snapshot(self) -> dict:
        with self._lock:
            return {
                k: {
                    "attempts": v.attempts,
                    "successes": v.successes,
                    "failures": v.failures,
                    "avg_latency_ms": round(v.avg_latency_ms, 2),
                    "last_error": v.last_error,
                    "last_success_at": v.last_success_at,
                }
                for k, v in self._health.items()
            }
