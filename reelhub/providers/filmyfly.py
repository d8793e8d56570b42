"""
FilmyFly
Detail pages with one linkmake hop per download button, and filesdl link pages
"""
from typing import Any, Dict, List
import logging
import re

from ..core.errors import ExtractionEmptyError, FetchError
from ..core.extractor import match_pattern, node_text, soup_of
from ..core.normalizer import host_matches
from ..models.scrape_result import RawDocument
from .base import BaseProvider

logger = logging.getLogger(__name__)

LINKMAKE_TIMEOUT_SECONDS = 15.0
NAV_WORDS = ("home", "about", "contact", "privacy", "terms")
SOCIAL_HOSTS = ("facebook.com", "twitter.com", "instagram.com")
DOWNLOAD_WORDS = ("download", "direct download", "get file", "download file")
DOWNLOAD_URL_MARKERS = ("fdownload.php", "download", "file")
FILESDL_HOSTS = ("filesdl.*",)


def button_qualities(text: str) -> List[str]:
    qualities = [q for q in ("480p", "720p", "1080p") if q in text]
    if "2160p" in text or "4k" in text.lower():
        qualities.append("4K")
    if "HD" in text:
        qualities.append("HD")
    if "FHD" in text:
        qualities.append("FHD")
    return qualities


def link_type(text: str, url: str) -> str:
    lower = text.lower()
    if any(word in lower for word in DOWNLOAD_WORDS):
        return "download"
    if any(marker in url for marker in DOWNLOAD_URL_MARKERS):
        return "download"
    return "other"


class FilmyFlyProvider(BaseProvider):
    name = "FilmyFly"
    key = "filmyfly"
    base_url_key = "filmyfly"

    def details(self, url: str) -> Dict[str, Any]:
        url = self.require_url(
            url,
            check=lambda u: self.base_urls.belongs_to(u, self.base_url_key),
            message="URL must be from a valid FilmyFly domain",
        )
        origin = "/".join(url.split("/")[:3]) + "/"
        document = self.fetch(url, referer=origin)
        title, buttons = self.parse_buttons(document)

        links: List[Dict[str, Any]] = []
        for button in buttons:
            try:
                hop = self.fetch(button["url"], referer=origin, timeout=LINKMAKE_TIMEOUT_SECONDS)
            except FetchError as exc:
                logger.warning("linkmake hop failed for %s, keeping button link: %s", button["url"], exc)
                links.append(button)
                continue
            links.extend(self.parse_linkmake(hop))

        if not links:
            raise ExtractionEmptyError("No download links could be extracted from the provided URL")
        return {"title": title, "downloadLinks": links, "totalLinks": len(links)}

    def parse_buttons(self, document: RawDocument):
        soup = soup_of(document)
        title = node_text(soup.select_one("h1, .entry-title, .post-title, title")) or "Unknown Title"
        buttons = []
        for block in soup.select(".dlbtn"):
            anchor = block.select_one("a.dl")
            if anchor is None:
                continue
            text = node_text(anchor)
            href = (anchor.get("href") or "").strip()
            if text and href:
                buttons.append({"title": text, "url": href, "qualities": button_qualities(text)})
        return title, buttons

    def parse_linkmake(self, document: RawDocument) -> List[Dict[str, Any]]:
        soup = soup_of(document)
        links = []
        for block in soup.select(".dlink.dl"):
            anchor = block.select_one("a")
            href = (anchor.get("href") or "").strip() if anchor else ""
            text = node_text(block.select_one(".dll"))
            if href and text:
                links.append({
                    "title": text,
                    "url": href,
                    "qualities": button_qualities(text),
                    "quality": match_pattern(text, r"\{([^}]+)\}") or "Unknown",
                    "size": match_pattern(text, r"(\d+(?:\.\d+)?(?:mb|gb))") or "Unknown",
                })
        return links

    def extract(self, url: str) -> Dict[str, Any]:
        url = self.require_url(
            url,
            check=lambda u: host_matches(u, FILESDL_HOSTS),
            message="URL must be a FilesDL page",
        )
        origin = "/".join(url.split("/")[:3]) + "/"
        document = self.fetch(url, referer=origin)
        links = self.parse_extract(document)
        return {"originalUrl": url, "links": links, "totalLinks": len(links)}

    def parse_extract(self, document: RawDocument) -> List[Dict[str, Any]]:
        soup = soup_of(document)
        links: List[Dict[str, Any]] = []
        seen = set()
        for anchor in soup.select("a[href]"):
            href = (anchor.get("href") or "").strip()
            text = node_text(anchor)
            if not href or not text or not href.startswith("http"):
                continue
            if any(word in text.lower() for word in NAV_WORDS) or any(h in href for h in SOCIAL_HOSTS):
                continue
            if href in seen:
                continue
            seen.add(href)
            size = re.search(r"(\d+(?:\.\d+)?\s*(?:MB|GB|KB|TB))", text, re.IGNORECASE)
            links.append({
                "text": text,
                "url": href,
                "size": size.group(1) if size else None,
                "type": link_type(text, href),
            })
        # Stable sort: download links first, page order otherwise.
        links.sort(key=lambda link: link["type"] != "download")
        return links
