"""
Showbox
Detail page -> share_link JSON -> Febbox file_share_list JSON
"""
from typing import Any, Dict, List, Optional
import logging
import re

from ..core.errors import ExtractionEmptyError, FetchError, ValidationError
from ..core.extractor import match_pattern, node_text, soup_of
from ..core.normalizer import host_matches
from ..models.scrape_result import RawDocument
from .base import BaseProvider

logger = logging.getLogger(__name__)

SHOWBOX_HOSTS = ("showbox.media",)
FEBBOX_LIST = "https://www.febbox.com/file/file_share_list"
ID_PART = re.compile(r"^[A-Za-z0-9_-]+$")
XHR_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
    "X-Requested-With": "XMLHttpRequest",
}


class ShowboxProvider(BaseProvider):
    name = "Showbox"
    key = "showbox"
    base_url_key = "showbox"

    def details(self, url: str) -> Dict[str, Any]:
        url = self.require_url(url, check=lambda u: host_matches(u, SHOWBOX_HOSTS), message="URL must be from showbox.media")
        document = self.fetch(url)
        info = self.parse_details(document)
        if not info["title"]:
            raise ExtractionEmptyError("No details could be extracted from the provided URL", error="No details found")

        fid = info.pop("febId")
        info["linkList"] = self.file_list(url, fid, info["type"]) if fid else []
        return info

    def parse_details(self, document: RawDocument) -> Dict[str, Any]:
        soup = soup_of(document)
        heading = soup.select_one(".heading-name")
        anchor = heading.select_one("a") if heading is not None else None
        href = (anchor.get("href") or "").rstrip("/") if anchor is not None else ""
        cover = soup.select_one(".cover_follow")
        style = (cover.get("style") or "") if cover is not None else ""
        synopsis = soup.select_one(".description")
        return {
            "title": node_text(heading),
            "rating": match_pattern(node_text(soup.select_one(".btn-imdb")), r"(\d+(?:\.\d+)?)") or "",
            "synopsis": re.sub(r"[\n\t]", "", synopsis.get_text()).strip() if synopsis is not None else "",
            "image": match_pattern(style, r"url\(([^)]*)\)") or "",
            "imdbId": "",
            "type": "series" if "/tv/" in document.url else "movie",
            "febId": href.rsplit("/", 1)[-1] if href else "",
        }

    def share_key(self, page_url: str, fid: str, kind: str) -> Optional[str]:
        origin = "/".join(page_url.split("/")[:3])
        index_url = f"{origin}/index/share_link?id={fid}&type={'2' if kind == 'series' else '1'}"
        payload = self.fetcher.fetch_json(index_url, headers=XHR_HEADERS, referer=page_url, cookies=self.cookies())
        link = ((payload or {}).get("data") or {}).get("link") if isinstance(payload, dict) else None
        if not link:
            raise FetchError(f"share_link response has no data.link for id {fid}", url=index_url)
        return str(link).rstrip("/").rsplit("/", 1)[-1]

    def file_list(self, page_url: str, fid: str, kind: str) -> List[Dict[str, str]]:
        key = self.share_key(page_url, fid, kind)
        if kind == "series":
            list_url = f"{FEBBOX_LIST}?share_key={key}&pwd=&parent_id=&is_html=0"
        else:
            list_url = f"{FEBBOX_LIST}?share_key={key}&is_html=0"
        payload = self.fetcher.fetch_json(list_url, headers=XHR_HEADERS, referer=page_url, cookies=self.cookies())
        files = ((payload or {}).get("data") or {}).get("file_list") if isinstance(payload, dict) else None

        links = []
        for entry in files or []:
            fid_part = entry.get("fid", "")
            # Movie files are fetched by share key alone; folders and episodes need the fid.
            suffix = fid_part if kind == "series" or entry.get("is_dir") else ""
            links.append({
                "title": f"{entry.get('file_name', '')} ({entry.get('file_size', '')})",
                "episodesLink": f"{key}&{suffix}",
            })
        logger.info("Showbox share %s: %d file(s)", key, len(links))
        return links

    def series(self, episode_id: Optional[str]) -> Any:
        """Febbox folder listing for an episodesLink value ("shareKey&fileId")."""
        value = str(episode_id or "").strip()
        if not value:
            raise ValidationError("Please provide an episode_id parameter (e.g. vzqprWJd&2798715)",
                                  error="Episode ID is required")
        share_key, _, file_id = value.partition("&")
        if not ID_PART.match(share_key) or not ID_PART.match(file_id):
            raise ValidationError("Episode ID must be in format shareKey&fileId", error="Invalid episode ID format")
        list_url = f"{FEBBOX_LIST}?share_key={share_key}&pwd=&parent_id={file_id}&is_html=0"
        return self.fetcher.fetch_json(list_url, headers=XHR_HEADERS, cookies=self.cookies())
