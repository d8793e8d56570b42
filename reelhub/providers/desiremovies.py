"""
DesireMovies
Detail pages: movie quality blocks, or per-episode x264/x265 links for series
"""
from typing import Any, Dict, List, Optional
import re

from bs4.element import Tag

from ..core.errors import ExtractionEmptyError
from ..core.extractor import match_pattern, node_text, soup_of
from ..core.normalizer import host_matches
from ..models.scrape_result import RawDocument
from .base import BaseProvider

DESIREMOVIES_HOSTS = ("desiremovies.*",)
EPISODE_PATTERN = r"EP\s*(\d+)"
QUALITY_BLOCK = re.compile(r"^(4K|1080p|720p|480p|720p HEVC)\s*\[([^\]]+)\]$")

# Labelled facts in the post body; \s* may cross the line break after a label.
FACT_PATTERNS = (
    ("movieTitle", r"Title\s*:\s*([^\n\r]+)"),
    ("year", r"Year\s*:\s*(\d{4})"),
    ("availableQualities", r"Quality\s*:\s*([^\n\r]+)"),
    ("imdbRating", r"IMDb\s*:\s*([\d./]+)"),
    ("languages", r"Language\s*:\s*([^\n\r]+)"),
    ("genres", r"All Genres\s*:\s*([^\n\r]+)"),
    ("plot", r"Plot:\s*([^\n\r]+)"),
)


def _https(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    return "https:" + url if url.startswith("//") else url


def encoding_type(quality: str) -> str:
    if "HEVC" in quality:
        return "HEVC"
    if "10-Bit" in quality:
        return "10-Bit"
    return "Standard"


def _siblings_until_episode(header: Tag):
    node = header.find_next_sibling()
    while node is not None:
        if node.name == "h3" and re.search(EPISODE_PATTERN, node.get_text(), re.IGNORECASE):
            return
        yield node
        node = node.find_next_sibling()


class DesireMoviesProvider(BaseProvider):
    name = "DesireMovies"
    key = "desiremovies"
    base_url_key = "DesiReMovies"

    def details(self, url: str) -> Dict[str, Any]:
        url = self.require_url(
            url,
            check=lambda u: host_matches(u, DESIREMOVIES_HOSTS),
            message="Invalid URL. Must be a DesireMovies URL",
        )
        document = self.fetch(url)
        data = self.parse_details(document)
        if not data["title"] and not data.get("episodes") and not data.get("downloadLinks"):
            raise ExtractionEmptyError("No movie details could be extracted from the provided URL")
        return data

    def episodes(self, soup) -> List[Dict[str, Any]]:
        episodes = []
        for header in soup.select(".entry-content h3"):
            name = node_text(header)
            number = match_pattern(name, EPISODE_PATTERN)
            if not number:
                continue
            links = []
            for node in _siblings_until_episode(header):
                if node.name != "h4":
                    continue
                text = node.get_text()
                for encoding in ("x264", "x265"):
                    if encoding not in text:
                        continue
                    for anchor in node.select("a"):
                        href = (anchor.get("href") or "").strip()
                        quality = node_text(anchor)
                        if href and quality:
                            links.append({
                                "quality": quality,
                                "downloadUrl": href,
                                "encoding": encoding,
                                "type": encoding_type(quality) if encoding == "x265" else "Standard",
                            })
            if links:
                episodes.append({"episodeNumber": int(number), "episodeName": name, "downloadLinks": links})
        return episodes

    def download_links(self, soup) -> List[Dict[str, Any]]:
        links: List[Dict[str, Any]] = []
        for paragraph in soup.select(".entry-content p"):
            block = QUALITY_BLOCK.match(node_text(paragraph))
            if not block:
                continue
            following = paragraph.find_next_sibling("p")
            anchor = following.select_one("a") if following is not None else None
            href = (anchor.get("href") or "").strip() if anchor is not None else ""
            if href and "DOWNLOAD" in node_text(anchor):
                quality = block.group(1)
                links.append({
                    "quality": quality,
                    "size": block.group(2),
                    "downloadUrl": href,
                    "type": "HEVC" if "HEVC" in quality else "Standard",
                })

        main = soup.select_one(".entry-content a")
        main_href = (main.get("href") or "").strip() if main is not None else ""
        if main_href and "DOWNLOAD" in main.get_text():
            links.insert(0, {
                "quality": "Multiple",
                "size": "Various",
                "downloadUrl": main_href,
                "type": "Main Download",
                "isMainLink": True,
            })
        return links

    def parse_details(self, document: RawDocument) -> Dict[str, Any]:
        soup = soup_of(document)
        content = soup.select_one(".entry-content")
        poster = soup.select_one(".entry-content img")

        title = node_text(soup.select_one(".entry-content p strong"))
        if not title:
            banner = soup.select_one(".entry-content h4 img")
            title = (banner.get("alt") or "") if banner is not None else ""
        title = title or node_text(soup.select_one("h1.entry-title"))

        data: Dict[str, Any] = {
            "posterUrl": _https(poster.get("src")) if poster is not None else None,
            "title": re.sub(r"Download\s+", "", title, count=1).strip(),
        }
        body_text = content.get_text("\n") if content is not None else ""
        for field, pattern in FACT_PATTERNS:
            value = match_pattern(body_text, pattern)
            if value:
                data[field] = value

        episodes = self.episodes(soup)
        if episodes:
            data.update({"contentType": "TV Series", "episodes": episodes, "totalEpisodes": len(episodes)})
        else:
            data["contentType"] = "Movie"
            links = self.download_links(soup)
            if links:
                data["downloadLinks"] = links
        return data
