"""
Provider SDK
Versioned base interface for ReelHub providers.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote_plus
import logging

from ..core.errors import ValidationError
from ..core.extractor import ItemSchema, extract_items
from ..core.normalizer import normalize
from ..models.scrape_result import NormalizedResult, RawDocument

logger = logging.getLogger(__name__)


class BaseProvider(ABC):
    """
    Stable provider contract for listing engines and detail scrapers.
    """
    api_version = 1
    name = "UnnamedProvider"
    key = "unnamed"
    # Key into the base-URL map; None for providers reached only through link URLs.
    base_url_key: Optional[str] = None
    last_error = ""

    def __init__(self, fetcher, base_urls=None, settings=None):
        self.fetcher = fetcher
        self.base_urls = base_urls
        self.settings = settings

    @property
    def supports_search(self) -> bool:
        return False

    def base_url(self) -> str:
        if self.base_urls is None or not self.base_url_key:
            return ""
        return self.base_urls.get_base_url(self.base_url_key)

    def cookies(self) -> Optional[str]:
        """Cookie header for this provider, from the provider_cookies setting."""
        if self.settings is None:
            return None
        value = (self.settings.get("provider_cookies", {}) or {}).get(self.key)
        value = str(value or "").strip()
        return value or None

    def require_url(self, url: Optional[str], check=None, message: str = "") -> str:
        """Validate a caller-supplied URL before any network call."""
        value = str(url or "").strip()
        if not value:
            raise ValidationError("URL parameter is required", error="Missing url")
        if not value.startswith(("http://", "https://")):
            raise ValidationError(f"Not an http(s) URL: {value}", error="Invalid URL")
        if check is not None and not check(value):
            raise ValidationError(message or f"URL not supported by {self.name}: {value}", error="Invalid URL")
        return value

    def fetch(self, url: str, **kwargs) -> RawDocument:
        kwargs.setdefault("cookies", self.cookies())
        return self.fetcher.fetch(url, **kwargs)

    def healthcheck(self) -> Dict[str, Any]:
        """Optional lightweight health payload for dashboards."""
        return {
            "name": self.name,
            "key": self.key,
            "ok": not bool(self.last_error),
            "error": self.last_error,
            "api_version": self.api_version,
            "search": self.supports_search,
        }


class SearchableProvider(BaseProvider):
    """Provider that answers free-text queries and takes part in global search."""

    @property
    def supports_search(self) -> bool:
        return True

    @abstractmethod
    def search(self, query: str, page: int = 1) -> List[NormalizedResult]:
        """Results for one query page; raise a ScrapeError on failure."""


@dataclass(frozen=True)
class ProviderDescriptor:
    """
    Declarative listing provider: where its pages live and how to read them.

    Paths are appended to the provider base URL and may use {query} and {page}.
    """
    name: str
    key: str
    base_url_key: str
    search_path: str
    listing_path: str
    schema: ItemSchema
    first_page_path: str = "/"
    # Search pages after the first, when the site paginates search differently.
    search_page_path: Optional[str] = None
    item_type: Optional[str] = None
    referer_from_base: bool = True
    enrich: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None


class ListingProvider(SearchableProvider):
    """One engine for every search/listing page described by a ProviderDescriptor."""

    def __init__(self, descriptor: ProviderDescriptor, fetcher, base_urls=None, settings=None):
        super().__init__(fetcher, base_urls=base_urls, settings=settings)
        self.descriptor = descriptor
        self.name = descriptor.name
        self.key = descriptor.key
        self.base_url_key = descriptor.base_url_key

    def _page_url(self, base: str, path: str, query: str = "", page: int = 1) -> str:
        return base.rstrip("/") + path.format(query=quote_plus(query), page=int(page))

    def _load(self, url: str, base: str) -> List[NormalizedResult]:
        referer = base.rstrip("/") + "/" if self.descriptor.referer_from_base else None
        document = self.fetch(url, referer=referer)
        results = self.parse(document, base)
        logger.info("%s: %d result(s) from %s", self.name, len(results), url)
        return results

    def search(self, query: str, page: int = 1) -> List[NormalizedResult]:
        query = str(query or "").strip()
        if not query:
            raise ValidationError("Search query is required", error="Missing query")
        if int(page) < 1:
            raise ValidationError("page must be >= 1", error="Invalid page")
        base = self.base_url()
        path = self.descriptor.search_path
        if int(page) > 1 and self.descriptor.search_page_path:
            path = self.descriptor.search_page_path
        return self._load(self._page_url(base, path, query, page), base)

    def latest(self, page: int = 1) -> List[NormalizedResult]:
        if int(page) < 1:
            raise ValidationError("page must be >= 1", error="Invalid page")
        base = self.base_url()
        path = self.descriptor.first_page_path if int(page) == 1 else self.descriptor.listing_path
        return self._load(self._page_url(base, path, page=page), base)

    def parse(self, document, base_url: str) -> List[NormalizedResult]:
        items = extract_items(document, self.descriptor.schema)
        if self.descriptor.enrich is not None:
            items = [self.descriptor.enrich(dict(item)) for item in items]
        return normalize(items, base_url, self.name, self.descriptor.item_type)
