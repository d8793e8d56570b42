"""
4KHDHub Details
Complete packs and per-episode downloads from a 4KHDHub title page
"""
from typing import Any, Dict, List, Optional
import re

from bs4.element import NavigableString, Tag

from ..core.errors import ExtractionEmptyError
from ..core.extractor import collapse_ws, node_text, select_text, soup_of
from ..models.scrape_result import RawDocument
from .base import BaseProvider

LINK_SELECTOR = 'a[href*="techyboy4u.com"]'
QUALITY_MARKERS = ("1080p", "2160p", "720p", "4K")
FORMAT_MARKERS = ("BluRay", "WEB-DL", "REMUX", "HEVC", "x264", "x265", "HDR", "DV")
LANGUAGE_MARKERS = ("hindi", "english", "tamil", "telugu")


def _badges(node: Optional[Tag]) -> List[str]:
    if node is None:
        return []
    return [t for t in (node_text(b) for b in node.select(".badge")) if t]


def _languages(badges: List[str]) -> List[str]:
    badge = next(
        (b for b in badges if "," in b or any(m in b.lower() for m in LANGUAGE_MARKERS)),
        None,
    )
    if not badge:
        return []
    return [part.strip() for part in badge.split(",") if part.strip()]


def _first_badge(badges: List[str], markers) -> str:
    return next((b for b in badges if any(m in b for m in markers)), "Unknown")


def _links(node: Optional[Tag]) -> List[Dict[str, str]]:
    if node is None:
        return []
    links = []
    for anchor in node.select(LINK_SELECTOR):
        url = (anchor.get("href") or "").strip()
        text = node_text(anchor)
        if url and text:
            links.append({
                "name": text,
                "url": url,
                "type": "HubCloud" if "hubcloud" in text.lower() else "HubDrive",
            })
    return links


def _leading_text(node: Optional[Tag]) -> str:
    """First text node of an element, stopping at <br>."""
    if node is None:
        return ""
    for child in node.children:
        if isinstance(child, NavigableString):
            text = collapse_ws(str(child))
            if text:
                return text
        elif isinstance(child, Tag) and child.name == "br":
            break
    return ""


class FourKHDHubProvider(BaseProvider):
    name = "4KHDHub"
    key = "4khdhub"
    base_url_key = "4kHDHub"

    def details(self, url: str) -> Dict[str, Any]:
        url = self.require_url(
            url,
            check=lambda u: self.base_urls.belongs_to(u, self.base_url_key),
            message="URL must be from a valid 4kHDHub domain",
        )
        origin = "/".join(url.split("/")[:3]) + "/"
        document = self.fetch(url, referer=origin)
        data = self.parse_details(document)
        if not data["completePacks"] and not data["episodeSeasons"]:
            raise ExtractionEmptyError("No download content found on this page")
        return data

    def parse_details(self, document: RawDocument) -> Dict[str, Any]:
        soup = soup_of(document)
        packs = self._content_section_packs(soup) or self._legacy_packs(soup)
        seasons = self._episode_seasons(soup)
        return {
            "title": node_text(soup.find("title")) or "Unknown Title",
            "url": document.url,
            "completePacks": packs,
            "episodeSeasons": seasons,
            "totalPacks": len(packs),
            "totalEpisodeSeasons": len(seasons),
        }

    def _pack(self, file_id, title, season, badges, links, source) -> Dict[str, Any]:
        return {
            "id": file_id,
            "title": title,
            "season": season,
            "size": next((b for b in badges if "GB" in b or "MB" in b), "Unknown"),
            "languages": _languages(badges),
            "quality": _first_badge(badges, QUALITY_MARKERS),
            "format": _first_badge(badges, FORMAT_MARKERS),
            "source": source,
            "badges": badges,
            "links": links,
        }

    def _content_section_packs(self, soup) -> List[Dict[str, Any]]:
        packs = []
        for item in soup.select(".content-section .download-item"):
            header = item.select_one(".download-header")
            content = item.select_one('div[id^="content-"]')
            main_title = _leading_text(header.select_one(".flex-1") if header else None)
            links = _links(content)
            if not main_title or not links:
                continue
            badges = _badges(header) + _badges(content)
            full_title = select_text(content, ".file-title") if content else ""
            file_id = (header.get("data-file-id") or "") if header else ""
            packs.append(self._pack(file_id, full_title or main_title, main_title, badges, links, "4kHDHub.Com"))
        return packs

    def _legacy_packs(self, soup) -> List[Dict[str, Any]]:
        packs = []
        for item in soup.select("#complete-pack .download-item"):
            header = item.select_one(".download-header")
            content = item.select_one(".px-4")
            if header is None:
                continue
            season = select_text(header, ".episode-number")
            main_title = _leading_text(header.select_one(".flex-1"))
            links = _links(content)
            if not season or not main_title or not links:
                continue
            full_title = select_text(content, ".file-title") if content else ""
            packs.append(self._pack(
                header.get("data-file-id") or "",
                full_title or main_title,
                season,
                _badges(header),
                links,
                "4KHDHub.com",
            ))
        return packs

    def _episode_seasons(self, soup) -> List[Dict[str, Any]]:
        seasons = []
        for item in soup.select("#episodes .episode-item"):
            header = item.select_one(".episode-header")
            if header is None:
                continue
            season_num = select_text(header, ".episode-number")
            season_title = select_text(header, ".episode-title")
            meta_badges = _badges(header.select_one(".episode-meta"))
            count_badge = next((b for b in meta_badges if "Episodes" in b), "")
            count = re.search(r"\d+", count_badge)

            episodes = []
            for row in item.select(".episode-content .episode-download-item"):
                title = select_text(row, ".episode-file-title")
                number = select_text(row, ".episode-file-info .badge-psa")
                links = _links(row.select_one(".episode-links"))
                if title and number and links:
                    episodes.append({
                        "title": title,
                        "size": select_text(row, ".episode-file-info .badge-size"),
                        "episodeNumber": number,
                        "links": links,
                    })

            if season_num and season_title and episodes:
                seasons.append({
                    "id": header.get("data-episode-id") or "",
                    "title": season_title,
                    "season": season_num,
                    "episodeCount": int(count.group(0)) if count else 0,
                    "languages": _languages(meta_badges),
                    "quality": season_title,
                    "episodes": episodes,
                })
        return seasons
