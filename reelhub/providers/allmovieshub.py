"""
AllMoviesHub
Download links of one movie page, addressed by its slug
"""
from typing import Any, Dict, List, Optional
import logging
import re

from bs4.element import Tag

from ..core.errors import ExtractionEmptyError, ValidationError
from ..core.extractor import match_pattern, node_text, soup_of
from ..core.normalizer import detect_format
from ..models.scrape_result import RawDocument
from .base import BaseProvider

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
LINK_HOST_MARKERS = ("bollydrive", "drive", "file")
LINK_SELECTORS = (
    'div[style*="text-align: center"] a[style*="color: #ff9900"]',
    'a[style*="#ff9900"], a[style*="color: orange"]',
)
TITLE_LANGUAGES = (("hindi", "Hindi"), ("english", "English"), ("tamil", "Tamil"), ("telugu", "Telugu"),
                   ("dual audio", "Dual Audio"))


def _link_label(anchor: Tag) -> str:
    return node_text(anchor.select_one("em")) or node_text(anchor)


def _quality_number(quality: str) -> int:
    digits = re.sub(r"\D", "", quality)
    return int(digits) if digits else 0


class AllMoviesHubProvider(BaseProvider):
    name = "AllMoviesHub"
    key = "allmovieshub"
    base_url_key = "allmovieshub"

    def require_slug(self, movie: Optional[str]) -> str:
        slug = str(movie or "").strip().strip("/")
        if not slug:
            raise ValidationError("movie parameter is required", error="Missing movie")
        if not SLUG_PATTERN.match(slug) or ".." in slug:
            raise ValidationError(f"Not a movie slug: {slug}", error="Invalid movie")
        return slug

    def download(self, movie: Optional[str]) -> Dict[str, Any]:
        slug = self.require_slug(movie)
        base = self.base_url()
        page_url = f"{base}/{slug}/"
        document = self.fetch(page_url, referer=base + "/")
        data = self.parse_download(document)
        if not data["downloadLinks"]:
            raise ExtractionEmptyError(f"No download links found for {slug}", error="No download links found")
        data.update({"movieName": slug, "url": page_url})
        logger.info("AllMoviesHub %s: %d link(s)", slug, len(data["downloadLinks"]))
        return data

    def _candidate(self, anchor: Optional[Tag]) -> Optional[Dict[str, str]]:
        if anchor is None:
            return None
        href = (anchor.get("href") or "").strip()
        text = _link_label(anchor)
        quality = match_pattern(text, r"(\d+p)")
        if not href or not quality or not any(m in href for m in LINK_HOST_MARKERS):
            return None
        return {
            "quality": quality,
            "size": match_pattern(text, r"\[([^\]]+)\]") or "Unknown",
            "url": href,
            "text": text,
        }

    def download_links(self, soup) -> List[Dict[str, str]]:
        links: List[Dict[str, str]] = []
        seen = set()
        candidates = [self._candidate(h3.select_one("a")) for h3 in soup.select("h3")]
        for selector in LINK_SELECTORS:
            candidates.extend(self._candidate(a) for a in soup.select(selector))
        for link in candidates:
            if link is None or link["url"] in seen:
                continue
            seen.add(link["url"])
            links.append(link)
        links.sort(key=lambda link: _quality_number(link["quality"]))
        return links

    def parse_download(self, document: RawDocument) -> Dict[str, Any]:
        soup = soup_of(document)
        title = node_text(soup.find("title")) or node_text(soup.select_one("h1")) or "Unknown Movie"
        lower = title.lower()
        languages = [label for marker, label in TITLE_LANGUAGES if marker in lower]
        return {
            "title": title,
            "downloadLinks": self.download_links(soup),
            "metadata": {
                "releaseYear": match_pattern(title, r"(\d{4})"),
                "languages": languages or None,
                "format": detect_format(title) or "Unknown",
                "description": node_text(soup.select_one(".entry-content p")) or None,
            },
        }
