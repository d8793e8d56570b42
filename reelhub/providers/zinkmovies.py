"""
ZinkMovies
Detail pages, JioStar episode lists, videosaver mirrors, and the full chain to download servers
"""
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse
import re

from bs4.element import NavigableString

from ..core.errors import ExtractionEmptyError
from ..core.extractor import match_pattern, node_text, soup_of
from ..core.normalizer import host_matches
from ..models.scrape_result import HopOutcome, RawDocument, TerminalLink
from .base import BaseProvider
from .hubcloud import HOP_DOMAINS as HUBCLOUD_DOMAINS, HubCloudProvider

# Chain: videosaver -> hubcloud share page -> landing page, within resolver_max_hops.
ZINK_HOSTS = ("zinkmovies.*",)
JIO_HOSTS = ("jiostar.work",)
MIRROR_HOSTS = ("videosaver.me",)
EPISODE_LINK = 'a[href*="videosaver.me/file/"]'


def link_info(text: str) -> Dict[str, Optional[str]]:
    """Quality, language, size and format from a ZinkMovies button label."""
    quality = "Unknown"
    for marker, label in (("480P", "480P"), ("720P", "720P"), ("1080P", "1080P")):
        if marker in text:
            quality = label
    if "2160P" in text or "4K" in text:
        quality = "4K"

    language = next(
        (lang for lang in ("Hindi-Malayalam", "Hindi-English", "Hindi", "English", "Malayalam", "Tamil", "Telugu")
         if lang in text),
        "Unknown",
    )
    size = match_pattern(text, r"(\d+(?:\.\d+)?\s*(?:MB|GB))") or "Unknown"

    fmt = "WEB-DL" if "WEB-DL" in text else None
    if "H.265" in text or "HEVC" in text:
        fmt = "WEB-DL H.265" if "WEB-DL" in text else "H.265"
    if "ESUB" in text:
        fmt = f"{fmt} ESUB" if fmt else "ESUB"
    return {"quality": quality, "language": language, "size": size, "format": fmt}


def is_mirror_file(url: str) -> bool:
    return host_matches(url, MIRROR_HOSTS) and urlparse(url).path.startswith("/file/")


class ZinkMoviesProvider(BaseProvider):
    name = "ZinkMovies"
    key = "zinkmovies"

    def __init__(self, fetcher, base_urls=None, settings=None, hubcloud: Optional[HubCloudProvider] = None):
        super().__init__(fetcher, base_urls=base_urls, settings=settings)
        self.hubcloud = hubcloud or HubCloudProvider(fetcher, base_urls=base_urls, settings=settings)

    # ---- details -------------------------------------------------------

    def details(self, url: str) -> Dict[str, Any]:
        url = self.require_url(url, check=lambda u: host_matches(u, ZINK_HOSTS), message="URL must be from ZinkMovies")
        document = self.fetch(url, referer="/".join(url.split("/")[:3]) + "/")
        data = self.parse_details(document)
        if not any(data.get(k) for k in ("description", "downloadLinks", "jioStarLinks", "playerUrl", "litespeedSrc")):
            raise ExtractionEmptyError("Could not extract content from the provided page")
        return data

    def _button(self, url: str, text: str, server: str) -> Dict[str, Any]:
        entry = link_info(text)
        entry.update({"url": url, "server": server})
        return entry

    def parse_details(self, document: RawDocument) -> Dict[str, Any]:
        soup = soup_of(document)
        body = soup.select_one('div[itemprop="description"].wp-content')

        description = ""
        if body is not None:
            description = next(
                (str(c).strip() for c in body.children if isinstance(c, NavigableString) and str(c).strip()),
                "",
            )

        downloads: List[Dict[str, Any]] = []
        jio: List[Dict[str, Any]] = []
        if body is not None:
            for anchor in body.select(".movie-button-container a"):
                href = (anchor.get("href") or "").strip()
                text = node_text(anchor.select_one("span"))
                if href and text:
                    downloads.append(self._button(href, text, "Direct"))

        for anchor in soup.select(".seriecontainer .movie-button-container a"):
            href = (anchor.get("href") or "").strip()
            text = node_text(anchor.select_one("span"))
            if href and text and host_matches(href, JIO_HOSTS):
                jio.append(self._button(href, text, "JioStar"))
        if body is not None:
            for anchor in body.select('a[href*="jiostar.work"]'):
                href = (anchor.get("href") or "").strip()
                text = node_text(anchor) or node_text(anchor.select_one("span"))
                if href and text and not any(j["url"] == href for j in jio):
                    jio.append(self._button(href, text, "JioStar"))

        player = soup.select_one(".video-player-wrapper iframe")
        telegram = body.select_one(".custom-telegram-button a") if body is not None else None
        return {
            "title": node_text(soup.select_one("h1.entry-title")) or None,
            "description": re.sub(r"\s+", " ", description) or None,
            "audio": node_text(body.select_one(".maxbutton-1 .mb-text")) if body is not None else None,
            "downloadLinks": downloads,
            "jioStarLinks": jio,
            "telegramUrl": (telegram.get("href") or None) if telegram is not None else None,
            "playerUrl": (player.get("src") or None) if player is not None else None,
            "litespeedSrc": (player.get("data-litespeed-src") or None) if player is not None else None,
        }

    # ---- jiostar episodes ----------------------------------------------

    def jio(self, url: str) -> Dict[str, Any]:
        url = self.require_url(url, check=lambda u: host_matches(u, JIO_HOSTS), message="URL must be from jiostar.work")
        document = self.fetch(url, referer="https://jiostar.work/")
        data = self.parse_jio(document)
        if not data["episodes"]:
            raise ExtractionEmptyError("No episode download links could be extracted from the provided page")
        return data

    def parse_jio(self, document: RawDocument) -> Dict[str, Any]:
        soup = soup_of(document)
        episodes: List[Dict[str, Any]] = []
        numbers = set()
        for selector in (".entry-content " + EPISODE_LINK, ".maxbutton-1 " + EPISODE_LINK):
            for anchor in soup.select(selector):
                href = (anchor.get("href") or "").strip()
                text = node_text(anchor.select_one(".mb-text")) or node_text(anchor)
                number = int(match_pattern(text, r"EPISODE\s*-?\s*(\d+)") or 0)
                if not href or not text or number <= 0 or number in numbers:
                    continue
                numbers.add(number)
                episodes.append({
                    "episode": text,
                    "episodeNumber": number,
                    "size": match_pattern(text, r"\(([^)]+(?:MB|GB)[^)]*)\)") or "Unknown",
                    "url": href,
                })
        episodes.sort(key=lambda e: e["episodeNumber"])
        return {
            "title": node_text(soup.select_one("h1.entry-title, .entry-title, title")) or None,
            "episodes": episodes,
            "totalEpisodes": len(episodes),
        }

    # ---- videosaver mirror ---------------------------------------------

    def mirror(self, url: str) -> Dict[str, Any]:
        url = self.require_url(url, check=is_mirror_file, message="URL must be from videosaver.me/file/")
        document = self.fetch(url)
        hubcloud_url = self.mirror_target(document)
        if not hubcloud_url:
            raise ExtractionEmptyError("HubCloud mirror link could not be found on the page", error="Mirror link not found")
        return {"hubCloudUrl": hubcloud_url}

    def mirror_target(self, document: RawDocument) -> Optional[str]:
        anchor = soup_of(document).select_one(".mirror-buttons a.hubcloud")
        return ((anchor.get("href") or "").strip() or None) if anchor is not None else None

    # ---- full chain ----------------------------------------------------

    def step(self, document: RawDocument) -> HopOutcome:
        mirror = self.mirror_target(document)
        if mirror:
            return HopOutcome.follow(mirror)
        return self.hubcloud.step(document)

    def resolve(self, url: str) -> TerminalLink:
        url = self.require_url(url, check=is_mirror_file, message="URL must be from videosaver.me/file/")
        resolver = self.hubcloud.resolver(
            allowed_domains=MIRROR_HOSTS + HUBCLOUD_DOMAINS,
            step=self.step,
        )
        return resolver.resolve(url)
