"""
KMMovies
Movie detail pages and the magiclinks pages their download buttons open
"""
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlparse
import re

from bs4.element import NavigableString, Tag

from ..core.errors import ExtractionEmptyError
from ..core.extractor import collapse_ws, match_pattern, node_text, soup_of
from ..core.normalizer import host_matches
from ..models.scrape_result import RawDocument
from .base import BaseProvider

KMMOVIES_HOSTS = ("kmmovies.*",)
MAGICLINKS_HOSTS = ("magiclinks.*",)
MAGICLINKS_REFERER = "https://w1.kmmovies.mobi/"
SIZE_PATTERN = r"(\d+(?:\.\d+)?\s*(?:GB|MB))"

# "Movie Info:" line label -> response field
INFO_FIELDS = (
    ("Movie Name:", "movieName"),
    ("Directed By:", "director"),
    ("Starring:", "cast"),
    ("Movie Genres:", "genres"),
    ("Running Time:", "duration"),
    ("Release Date:", "releaseDate"),
    ("Quality:", "qualities"),
    ("Language:", "language"),
    ("OTT:", "ott"),
    ("Writer:", "writer"),
)
LANGUAGE_PATTERNS = (
    ("Hindi", r"hindi"),
    ("English", r"english"),
    ("Tamil", r"tamil"),
    ("Telugu", r"telugu"),
    ("Malayalam", r"malayalam"),
    ("Dual Audio", r"dual\s*audio"),
)


def _https(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    return "https:" + url if url.startswith("//") else url


def _heading(soup, scope: str, label: str) -> Optional[Tag]:
    return next((h for h in soup.select(f"{scope} h3") if label in h.get_text()), None)


def _next_p(node: Optional[Tag]) -> Optional[Tag]:
    return node.find_next_sibling("p") if node is not None else None


def br_lines(node: Optional[Tag]) -> List[str]:
    """Text of node split at <br> tags, inline markup flattened."""
    if node is None:
        return []
    lines, current = [], []
    for child in node.descendants:
        if isinstance(child, Tag) and child.name == "br":
            lines.append("".join(current))
            current = []
        elif isinstance(child, NavigableString):
            current.append(str(child))
    lines.append("".join(current))
    return [text for text in (collapse_ws(line) for line in lines) if text]


def parse_movie_info(paragraph: Optional[Tag]) -> Dict[str, Any]:
    """Labelled lines of the "Movie Info:" paragraph."""
    info: Dict[str, Any] = {}
    for line in br_lines(paragraph):
        if "IMDb Rating:" in line:
            rating = line.split("IMDb Rating:", 1)[1].strip()
            if rating and rating != "N/A":
                info["imdbRating"] = {"text": rating.split("(")[0].strip(), "url": "https://www.imdb.com/"}
            continue
        for label, field in INFO_FIELDS:
            if label in line:
                info[field] = line.split(label, 1)[1].strip()
    return info


def stream_url(href: str) -> str:
    """The videoUrl a zipzap player wrapper points at, else the wrapper itself."""
    if "zipzap.lol/nf/index.php" not in href:
        return href
    values = parse_qs(urlparse(href).query).get("videoUrl")
    return values[0] if values else href


class KMMoviesProvider(BaseProvider):
    name = "KMMovies"
    key = "kmmovies"
    base_url_key = "KMMovies"

    def details(self, url: str) -> Dict[str, Any]:
        url = self.require_url(
            url,
            check=lambda u: host_matches(u, KMMOVIES_HOSTS),
            message="Only KMMovies URLs are supported",
        )
        document = self.fetch(url)
        data = self.parse_details(document)
        if not data["title"] and not data["downloadLinks"]:
            raise ExtractionEmptyError("No movie details could be extracted from the provided URL")
        return data

    def _download_links(self, soup) -> List[Dict[str, str]]:
        links = []
        for heading in soup.select(".download-buttons h4"):
            label = node_text(heading)
            paragraph = _next_p(heading)
            anchor = paragraph.select_one("a") if paragraph is not None else None
            href = (anchor.get("href") or "").strip() if anchor is not None else ""
            quality = match_pattern(label, r"(\d+p(?:\s+(?!File\b)\w+)?)", flags=0)
            if href and quality:
                links.append({
                    "url": href,
                    "quality": quality.strip(),
                    "size": (match_pattern(label, r"File Size:\s*([^|]+)") or "Unknown").strip(),
                    "text": node_text(anchor),
                })
        if links:
            return links

        for card in soup.select(".download-card"):
            quality = node_text(card.select_one(".download-quality-text"))
            size_info = card.select_one(".download-size-info")
            # Own text only; nested tooltips repeat other sizes.
            own_text = "".join(size_info.find_all(string=True, recursive=False)) if size_info is not None else ""
            anchor = card.select_one('.tabs-download-button, a[href*="magiclinks"]')
            href = (anchor.get("href") or "").strip() if anchor is not None else ""
            if href and quality:
                links.append({
                    "url": href,
                    "quality": quality,
                    "size": match_pattern(own_text, SIZE_PATTERN) or "Unknown",
                    "text": node_text(anchor) or "FAST DOWNLOAD",
                })
        if links:
            return links

        for anchor in soup.select('a[href*="magiclinks"]'):
            href = (anchor.get("href") or "").strip()
            if not href:
                continue
            parent = anchor.find_parent(["div"])
            quality_node = parent.select_one('[class*="quality"]') if parent is not None else None
            size_node = parent.select_one('[class*="size"]') if parent is not None else None
            links.append({
                "url": href,
                "quality": node_text(quality_node) or "Unknown",
                "size": match_pattern(node_text(size_node), SIZE_PATTERN) or "Unknown",
                "text": node_text(anchor) or "Download",
            })
        return links

    def parse_details(self, document: RawDocument) -> Dict[str, Any]:
        soup = soup_of(document)
        image = soup.select_one(".entry-meta .post-thumbnail img") or soup.select_one(".entry-meta img")
        title = node_text(soup.select_one("h1.entry-title"))
        if not title:
            title = node_text(soup.find("title")).split("|")[0].strip()

        storyline = node_text(_next_p(_heading(soup, ".mip-movie-info", "Storyline:")))
        if not storyline:
            storyline = node_text(soup.select_one(".mip-movie-info p"))
        info = parse_movie_info(_next_p(_heading(soup, ".mip-movie-info", "Movie Info:")))

        links = self._download_links(soup)
        language_text = f"{info.get('language', '')} {title}"
        languages = [name for name, pattern in LANGUAGE_PATTERNS if re.search(pattern, language_text, re.IGNORECASE)]
        screenshot = soup.select_one('.mip-movie-info img[title*="screenshot"], .mip-movie-info img[alt*="screenshot"]')

        return {
            "title": info.get("movieName") or title,
            "mainImage": _https(image.get("src")) if image is not None else None,
            "storyline": "No storyline available." if storyline == "N/A" else storyline,
            "releaseYear": match_pattern(info.get("releaseDate"), r"(\d{4})") or match_pattern(title, r"(\d{4})") or "Unknown",
            "director": info.get("director"),
            "cast": info.get("cast"),
            "genres": info.get("genres"),
            "duration": info.get("duration"),
            "writer": info.get("writer"),
            "ott": info.get("ott"),
            "isSeries": False,
            "languages": languages,
            "availableQualities": list(dict.fromkeys(link["quality"] for link in links)),
            "downloadLinks": links,
            "screenshot": _https(screenshot.get("src")) if screenshot is not None else None,
            "imdbRating": info.get("imdbRating"),
            "sourceUrl": document.url,
        }

    # ---- magiclinks ----------------------------------------------------

    def magic_links(self, url: str) -> Dict[str, Any]:
        url = self.require_url(
            url,
            check=lambda u: host_matches(u, MAGICLINKS_HOSTS),
            message="Only magiclinks URLs are supported",
        )
        document = self.fetch(url, referer=MAGICLINKS_REFERER)
        links = self.parse_magic_links(document)
        return {"links": links, "sourceUrl": url, "totalFound": len(links)}

    def parse_magic_links(self, document: RawDocument) -> List[Dict[str, str]]:
        soup = soup_of(document)
        links: List[Dict[str, str]] = []

        def add(kind: str, provider: str, href: str, description: str):
            if href and not any(link["url"] == href for link in links):
                links.append({
                    "type": kind,
                    "provider": provider,
                    "url": href,
                    "quality": "Stream" if kind == "stream" else "Download",
                    "description": description,
                })

        def first(selector: str, label: str) -> str:
            anchor = next((a for a in soup.select(selector) if label in a.get_text()), None)
            return (anchor.get("href") or "").strip() if anchor is not None else ""

        watch = first('a[href*="zipzap.lol/nf/index.php"]', "WATCH ONLINE")
        if watch:
            target = stream_url(watch)
            add("stream", "Watch Online", target,
                "Direct video stream URL" if target != watch else "Watch directly in browser")
        add("download", "GDFLIX", first('a[href*="gdflix"]', "GDFLIX"), "Google Drive based download")
        add("download", "GDTOT", first('a[href*="gdtot"]', "GDTOT"), "Google Drive based download")

        for anchor in soup.select(".download-button"):
            href = (anchor.get("href") or "").strip()
            text = node_text(anchor)
            if not href or not text:
                continue
            if "WATCH ONLINE" in text:
                add("stream", "Watch Online", stream_url(href), text)
            elif "GDFLIX" in text:
                add("download", "GDFLIX", href, text)
            elif "GDTOT" in text:
                add("download", "GDTOT", href, text)
        return links
