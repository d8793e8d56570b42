"""
MoviesDrive
Episode pages: season-tagged mdrive links, ordered by season then quality
"""
from typing import Any, Dict, List, Optional
import re

from bs4.element import Tag

from ..core.errors import ExtractionEmptyError
from ..core.extractor import match_pattern, node_text, soup_of
from ..core.normalizer import dedupe_by_url, host_matches
from ..models.scrape_result import RawDocument
from .base import BaseProvider

MOVIESDRIVE_HOSTS = ("moviesdrive.*",)
SEASON_PATTERN = r"Season\s*(\d+)"
CENTERED_H5 = 'h5[style*="text-align: center"]'
QUALITY_ORDER = (("480p", 1), ("720p", 2), ("1080p", 3), ("2160p", 4), ("4K", 4))


def quality_rank(quality: str) -> int:
    return next((rank for marker, rank in QUALITY_ORDER if marker in quality), 5)


def _season(text: str) -> Optional[int]:
    value = match_pattern(text, SEASON_PATTERN)
    return int(value) if value else None


def _is_episode_link(href: str, text: str) -> bool:
    return bool(href) and bool(text) and "mdrive.today" in href and "Zip" not in text


def _context_season(anchor: Tag) -> int:
    """Season named by a close ancestor, else by a preceding sibling of the parent."""
    found = None
    for parent in list(anchor.parents)[:3]:
        found = _season(parent.get_text())
        if found:
            break
    sibling = anchor.parent.find_previous_sibling() if anchor.parent is not None else None
    for _ in range(5):
        if sibling is None:
            break
        before = _season(sibling.get_text())
        if before:
            found = before
            break
        sibling = sibling.find_previous_sibling()
    return found or 1


class MoviesDriveProvider(BaseProvider):
    name = "MoviesDrive"
    key = "moviesdrive"
    base_url_key = "drive"

    def episode(self, url: str) -> Dict[str, Any]:
        url = self.require_url(
            url,
            check=lambda u: host_matches(u, MOVIESDRIVE_HOSTS),
            message="Only MoviesDrive URLs are supported",
        )
        document = self.fetch(url)
        data = self.parse_episode(document)
        if not data["episodes"]:
            raise ExtractionEmptyError("No episode links could be extracted from the provided URL", error="No episodes found")
        return data

    def parse_episode(self, document: RawDocument) -> Dict[str, Any]:
        soup = soup_of(document)
        image = soup.select_one('img[fetchpriority="high"], .entry-content img')
        imdb = soup.select_one('a[href*="imdb.com"]')
        headings = soup.select(CENTERED_H5)
        storyline = " ".join(node_text(h) for h in headings).strip()
        if not storyline:
            storyline = node_text(soup.select_one(".entry-content p"))

        episodes: List[Dict[str, Any]] = []
        season = 1
        for heading in headings:
            text = node_text(heading)
            season = _season(text) or season
            for anchor in heading.select("a"):
                href = (anchor.get("href") or "").strip()
                label = node_text(anchor)
                if not _is_episode_link(href, label):
                    continue
                quality = label
                if not re.search(r"\d+p", label):
                    quality = match_pattern(text, r"(\d+p[^}]*)", flags=0) or label
                episodes.append({"url": href, "quality": quality, "season": season})

        for anchor in soup.select('a[href*="mdrive.today"], a[href*="archives"]'):
            href = (anchor.get("href") or "").strip()
            label = node_text(anchor)
            if not href or not label or "Zip" in label:
                continue
            if not ("p" in label or "MB" in label or "GB" in label):
                continue
            episodes.append({"url": href, "quality": label, "season": _context_season(anchor)})

        episodes = dedupe_by_url(episodes)
        episodes.sort(key=lambda e: (e["season"], quality_rank(e["quality"])))
        src = (image.get("src") or "") if image is not None else ""
        return {
            "mainImage": ("https:" + src if src.startswith("//") else src) or None,
            "imdbRating": {
                "url": imdb.get("href") if imdb is not None else None,
                "text": node_text(imdb),
            },
            "storyline": storyline,
            "episodes": episodes,
        }
