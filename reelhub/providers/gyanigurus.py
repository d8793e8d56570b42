"""
GyanGurus download links, kept to the file hosts the link resolvers understand.
"""
from typing import Any, Dict, List
import re

from ..core.extractor import detect_quality, node_text, soup_of
from ..core.normalizer import classify_host, host_matches
from ..models.scrape_result import RawDocument
from .base import BaseProvider

ALLOWED_HOSTS = ("gyanigurus.info", "gyanigurus.net")
TARGET_HOSTS = ("hubcloud", "gdflix", "hubdrive")
ROW_SELECTOR = (
    'div[style*="padding-bottom:5px; padding-top:10px; border-bottom:1px solid #ddd"] a.hover_a.link'
)
CODEC_LABELS = (("hevc", "HEVC"), ("x265", "x265"), ("x264", "x264"))


def link_quality(url: str) -> str:
    quality = detect_quality(url)
    if quality:
        return quality
    lower = url.lower()
    return next((label for marker, label in CODEC_LABELS if marker in lower), "Unknown")


class GyanGurusProvider(BaseProvider):
    name = "GyanGurus"
    key = "gyanigurus"

    def links(self, url: str) -> Dict[str, Any]:
        url = self.require_url(
            url,
            check=lambda u: host_matches(u, ALLOWED_HOSTS),
            message="Must be a GyanGurus URL (gyanigurus.info or gyanigurus.net)",
        )
        document = self.fetch(url, referer="https://gyanigurus.info/")
        return self.parse_links(document)

    def parse_links(self, document: RawDocument) -> Dict[str, Any]:
        soup = soup_of(document)
        seen = set()
        links: List[Dict[str, Any]] = []

        # Styled download rows first, then any other anchor to a target host.
        for selector, named_rows in ((ROW_SELECTOR, True), ("a[href]", False)):
            for anchor in soup.select(selector):
                href = (anchor.get("href") or "").strip()
                text = node_text(anchor)
                if not href or href in seen or (named_rows and not text):
                    continue
                if not any(h in href.lower() for h in TARGET_HOSTS):
                    continue
                seen.add(href)
                provider, kind = classify_host(href)
                last = href.rstrip("/").rsplit("/", 1)[-1]
                links.append({
                    "url": href,
                    "provider": provider,
                    "type": kind,
                    "quality": link_quality(href),
                    "fileName": last if named_rows and re.search(r"\.\w{2,4}$", last) else "",
                    "fileSize": "Unknown",
                    "displayText": text or href,
                })

        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for link in links:
            grouped.setdefault(link["provider"], []).append(link)

        return {
            "totalLinks": len(links),
            "providers": list(grouped),
            "links": links,
            "groupedByProvider": grouped,
            "sourceUrl": document.url,
        }
