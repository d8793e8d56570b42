"""
Global Search
Fans one query out over every listing provider and merges what comes back
"""
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Dict, List, Optional, Tuple
import logging
import time

from ..models.scrape_result import NormalizedResult
from .cache import TTLCache
from .errors import ValidationError
from .provider_manager import ProviderManager

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


class GlobalSearch:
    """
    Concurrent search across registered listing providers.

    A failing or slow provider is reported in providerSummary and never fails
    the aggregate. Results are cached per normalized query.
    """

    def __init__(self, manager: ProviderManager, settings, cache: Optional[TTLCache] = None):
        self.manager = manager
        self.settings = settings
        self._cache = cache or TTLCache(
            max_size=int(settings.get("search_cache_max_entries", 256)),
            ttl_seconds=float(settings.get("search_cache_ttl_seconds", 3600)),
        )
        self._executor = ThreadPoolExecutor(max_workers=max(1, int(settings.get("global_search_workers", 6))))

    @staticmethod
    def cache_key(query: str) -> str:
        return str(query or "").strip().lower()

    def search(self, query: str) -> Dict[str, Any]:
        query = str(query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            raise ValidationError(
                f"Query must be at least {MIN_QUERY_LENGTH} characters long",
                error="Invalid query",
            )

        key = self.cache_key(query)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Global search cache hit for %r", key)
            return dict(cached, cached=True)

        providers = self.manager.search_providers()
        timeout_seconds = max(1.0, float(self.settings.get("global_search_timeout_seconds", 30.0)))
        futures = {self._executor.submit(self._safe_search, p, query): p for p in providers}
        done, pending = wait(futures, timeout=timeout_seconds)

        results: List[Dict[str, Any]] = []
        summary: List[Dict[str, Any]] = []
        for future, provider in futures.items():
            if future in pending:
                future.cancel()
                error = f"{provider.name} timed out after {int(timeout_seconds)}s"
                self.manager.record_outcome(provider.key, ok=False, error=error)
                logger.warning("%s", error)
                summary.append({"provider": provider.name, "success": False, "count": 0, "error": error})
                continue
            found, error, latency_ms = future.result()
            self.manager.record_outcome(provider.key, ok=error is None, error=error or "", latency_ms=latency_ms)
            summary.append({"provider": provider.name, "success": error is None, "count": len(found), "error": error})
            results.extend(r.to_dict() for r in found)

        payload = {
            "query": query,
            "totalResults": len(results),
            "results": results,
            "providerSummary": summary,
        }
        if any(s["success"] for s in summary):
            self._cache.set(key, payload)
        else:
            logger.warning("Global search %r: every provider failed, result not cached", query)
        logger.info(
            "Global search %r: %d result(s), %d/%d provider(s) ok",
            query, len(results), sum(1 for s in summary if s["success"]), len(summary),
        )
        return dict(payload, cached=False)

    def _safe_search(self, provider, query: str) -> Tuple[List[NormalizedResult], Optional[str], float]:
        """Run one provider search. Returns: results, error, latency_ms"""
        start = time.perf_counter()
        try:
            found = provider.search(query)
        except Exception as e:
            logger.warning("%s search failed: %s", provider.name, e)
            return [], str(e) or type(e).__name__, (time.perf_counter() - start) * 1000.0
        return list(found or []), None, (time.perf_counter() - start) * 1000.0

    def clear_cache(self):
        self._cache.clear()

    def shutdown(self):
        self._executor.shutdown(wait=False)
