"""
HDHub4u Details
Episode links for series pages, direct hubdrive/hubcdn downloads for movies
"""
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse
import re

from bs4.element import Tag

from ..core.errors import ExtractionEmptyError
from ..core.extractor import match_pattern, node_text, soup_of
from ..core.normalizer import host_matches
from ..models.scrape_result import RawDocument
from .base import BaseProvider

HDHUB4U_HOSTS = ("hdhub4u.*",)
DOWNLOAD_HOSTS = ("hubdrive.wales", "hubcdn.fans", "techyboy4u.com")
STREAM_HOSTS = ("hdstream4u.com", "hubstream.art")
EPISODE_PATTERN = r"EPiSODE\s*(\d+)"
SPECIAL_MARKERS = ("SAMPLE", "CLiMAX", "CLIMAX")
# Drive links for an episode sit in the h4 elements right after its header.
EPISODE_LOOKAHEAD = 10


def extract_quality_and_size(text: str) -> Dict[str, str]:
    size = match_pattern(text, r"\[([^\]]+(?:MB|GB)[^\]]*)\]") or match_pattern(text, r"(\d+\.?\d*\s*(?:MB|GB))")
    return {
        "quality": match_pattern(text, r"(\d+p|4K|UHD|HQ-Rip|HQ)") or "Unknown",
        "size": size or "Unknown",
    }


def _href(anchor: Optional[Tag]) -> str:
    return (anchor.get("href") or "").strip() if anchor is not None else ""


def _points_to(href: str, hosts) -> bool:
    return any(host in href for host in hosts)


def _stream_links(node: Optional[Tag]) -> Dict[str, str]:
    """WATCH and PLAYER links inside one heading."""
    found: Dict[str, str] = {}
    if node is None:
        return found
    for anchor in node.select("a"):
        text, href = node_text(anchor), _href(anchor)
        if not href:
            continue
        if "WATCH" in text:
            found["watchUrl"] = href
        elif "PLAYER" in text:
            found["playerUrl"] = href
    return found


class HDHub4uProvider(BaseProvider):
    name = "HDHub4u"
    key = "hdhub4u"
    base_url_key = "hdhub"

    def details(self, url: str) -> Dict[str, Any]:
        url = self.require_url(
            url,
            check=lambda u: host_matches(u, HDHUB4U_HOSTS),
            message="URL must be from a valid HDHub4u domain",
        )
        parsed = urlparse(url)
        document = self.fetch(url, referer=f"{parsed.scheme}://{parsed.netloc}/")
        data = self.parse_details(document)
        if not any(data.get(k) for k in ("episodes", "directDownloads", "downloads")):
            raise ExtractionEmptyError("No content could be extracted from the provided URL", error="No content found")
        return data

    # ---- series --------------------------------------------------------

    def episodes(self, soup) -> List[Dict[str, Any]]:
        episodes: Dict[int, Dict[str, Any]] = {}
        ordered: List[Dict[str, Any]] = []

        def add(number: int, entry: Dict[str, Any]):
            if number in episodes:
                episodes[number].update(entry)
                return
            entry = dict(entry, episodeNumber=number)
            entry.setdefault("episode", f"Episode {number}")
            episodes[number] = entry
            ordered.append(entry)

        for heading in soup.select("h3"):
            watch = _stream_links(heading).get("watchUrl")
            for anchor in heading.select("a"):
                number = match_pattern(node_text(anchor), EPISODE_PATTERN, flags=0)
                if number and _href(anchor):
                    entry = {"techyboyUrl": _href(anchor)}
                    if watch:
                        entry["watchUrl"] = watch
                    add(int(number), entry)

        for heading in soup.select("h4"):
            if "EPISODE" not in node_text(heading):
                continue
            for anchor in heading.select('a[href*="techyboy4u.com"]'):
                text = node_text(anchor)
                number = match_pattern(text, r"EPISODE\s*(\d+)")
                if "EPISODE" in text and number and int(number) > 0:
                    add(int(number), {"episode": text, "techyboyUrl": _href(anchor)})

        for marker in soup.select("h4 span, h4 strong"):
            number = match_pattern(node_text(marker), EPISODE_PATTERN, flags=0)
            if not number:
                continue
            drives = self._episode_drives(marker.find_parent("h4"))
            if drives:
                add(int(number), drives)

        return sorted(ordered, key=lambda e: e["episodeNumber"])

    def _episode_drives(self, header: Optional[Tag]) -> Dict[str, str]:
        drives: Dict[str, str] = {}
        node = header.find_next_sibling("h4") if header is not None else None
        for _ in range(EPISODE_LOOKAHEAD):
            if node is None:
                break
            text = node_text(node)
            if re.search(EPISODE_PATTERN, text):
                break
            for quality in ("720p", "1080p"):
                if quality not in text:
                    continue
                for anchor in node.select("a"):
                    if node_text(anchor) == "Drive" and "hubdrive.wales" in _href(anchor):
                        drives[f"driveUrl{quality}"] = _href(anchor)
            node = node.find_next_sibling("h4")
        return drives

    # ---- movies --------------------------------------------------------

    def direct_downloads(self, soup) -> List[Dict[str, Any]]:
        downloads: List[Dict[str, Any]] = []
        seen = set()

        for heading in soup.select("h3, h4"):
            anchor = heading.select_one("a")
            text, href = node_text(anchor), _href(anchor)
            if not href or not any(m in text for m in ("p ", "MB", "GB", "p⚡", "HQ")):
                continue
            entry = dict(title=text, downloadUrl=href, **extract_quality_and_size(text))
            streams = _stream_links(heading.find_next_sibling("h4"))
            streams.update(_stream_links(heading))
            entry.update(streams)
            downloads.append(entry)
            seen.add(href)

        for anchor in soup.select("a"):
            text, href = node_text(anchor), _href(anchor)
            if not text or not href or href in seen or not _points_to(href, DOWNLOAD_HOSTS):
                continue
            special = any(m in text for m in SPECIAL_MARKERS)
            looks_like_file = (
                re.search(r"\d+p", text)
                or any(m in text for m in ("HQ-Rip", "HQ ", "HEVC", "x264", "x265", "MB", "GB"))
            )
            if not (looks_like_file or special):
                continue
            info = extract_quality_and_size(text)
            if info["quality"] == "Unknown" and special:
                info["quality"] = "Special"
            downloads.append(dict(title=text, downloadUrl=href, **info))
            seen.add(href)

        # Stream links not yet paired attach to the last download found.
        if downloads:
            last = downloads[-1]
            paired = {d.get(k) for d in downloads for k in ("watchUrl", "playerUrl")}
            for anchor in soup.select("h4 a"):
                text, href = node_text(anchor), _href(anchor)
                if not href or href in paired or not _points_to(href, STREAM_HOSTS):
                    continue
                if "WATCH" in text:
                    last.setdefault("watchUrl", href)
                elif "PLAYER" in text:
                    last.setdefault("playerUrl", href)
        return downloads

    def movie_downloads(self, soup) -> List[Dict[str, str]]:
        downloads: List[Dict[str, str]] = []
        for element in soup.select("h3, h4, .download-section, .entry-content p"):
            text = node_text(element)
            if "download" not in text.lower():
                continue
            if not any(m in text for m in ("MB", "GB", "480p", "720p", "1080p")):
                continue
            href = _href(element.select_one("a"))
            if href:
                downloads.append(dict(title=text, downloadUrl=href, **extract_quality_and_size(text)))

        seen = {d["downloadUrl"] for d in downloads}
        for anchor in soup.select("a"):
            text, href = node_text(anchor), _href(anchor)
            if not text or not href or href in seen or not _points_to(href, DOWNLOAD_HOSTS):
                continue
            if "Download" in text or re.search(r"\d+p", text) or "MB" in text or "GB" in text:
                downloads.append(dict(title=text, downloadUrl=href, **extract_quality_and_size(text)))
                seen.add(href)
        return downloads

    def parse_details(self, document: RawDocument) -> Dict[str, Any]:
        soup = soup_of(document)
        title = node_text(soup.select_one("h1, .entry-title, .post-title, title"))
        title = title.replace(" - HDHub4u", "").strip() or "Unknown Title"

        has_direct = any(_points_to(_href(a), DOWNLOAD_HOSTS[:2] + STREAM_HOSTS) for a in soup.select("a[href]"))
        episodes = self.episodes(soup)
        direct = self.direct_downloads(soup) if has_direct else []

        data: Dict[str, Any] = {"title": title}
        if episodes:
            data.update(type="series", episodes=episodes)
            if direct:
                data["directDownloads"] = direct
        elif direct:
            data.update(type="movie_direct", directDownloads=direct)
        else:
            data.update(type="movie", downloads=self.movie_downloads(soup))
        return data
