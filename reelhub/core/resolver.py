"""
Link Resolver
Follows a chain of intermediary pages from an entry URL to a terminal media link
"""
from typing import Callable, Dict, List, Optional, Sequence, Union
from urllib.parse import urljoin, urlparse
import logging

from ..models.scrape_result import HopOutcome, RawDocument, TerminalLink
from .errors import ResolutionError, ValidationError
from .normalizer import classify_host, host_matches

logger = logging.getLogger(__name__)

MEDIA_EXTENSIONS = (".mp4", ".mkv", ".avi", ".webm", ".mov", ".m4v", ".ts", ".zip", ".rar", ".7z")
CDN_HOST_MARKERS = (
    "r2.dev",
    "hubcdn",
    "cloudflarestorage.com",
    "googleusercontent.com",
    "pixeldrain.dev/api/file",
    "pixeldrain.com/api/file",
)

HopStep = Callable[[RawDocument], HopOutcome]


def terminal_kind(url: str) -> Optional[str]:
    """Kind of a terminal link (file, m3u8, mpd, cdn) or None for an intermediary page."""
    parsed = urlparse(str(url or ""))
    path = (parsed.path or "").lower()
    if path.endswith(".m3u8"):
        return "m3u8"
    if path.endswith(".mpd"):
        return "mpd"
    if path.endswith(MEDIA_EXTENSIONS):
        return "file"
    joined = f"{(parsed.netloc or '').lower()}{path}"
    if any(marker in joined for marker in CDN_HOST_MARKERS):
        return "cdn"
    return None


def is_terminal_url(url: str) -> bool:
    return terminal_kind(url) is not None


class LinkResolver:
    """
    Walks FetchHop -> step -> FetchHop until the step reports terminal links.

    step: page handler returning a HopOutcome for one fetched hop
    max_hops: ceiling on fetches for one chain
    allowed_domains: hosts the entry URL may belong to (subdomains included);
        entries with "*" are shell patterns, e.g. "hubcloud.*" for rotating TLDs
    cookies: sent with every hop
    """

    def __init__(
        self,
        fetcher,
        step: HopStep,
        max_hops: int,
        allowed_domains: Sequence[str],
        referer: Optional[str] = None,
        cookies: Optional[Union[str, Dict[str, str]]] = None,
    ):
        self.fetcher = fetcher
        self.cookies = cookies
        self.step = step
        self.max_hops = max(1, int(max_hops))
        self.allowed_domains = tuple(d.lower() for d in allowed_domains if d)
        self.referer = referer

    def is_allowed(self, url: str) -> bool:
        parsed = urlparse(str(url or ""))
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            return False
        if not self.allowed_domains:
            return True
        return host_matches(url, self.allowed_domains)

    def resolve(self, entry_url: str) -> TerminalLink:
        if not self.is_allowed(entry_url):
            raise ValidationError(f"URL is not a supported link host: {entry_url}", error="Invalid URL")

        visited = set()
        chain: List[str] = []
        current = entry_url
        referer = self.referer
        while True:
            if current in visited:
                raise ResolutionError(f"cycle detected at {current}", error="cycle detected")
            if len(chain) >= self.max_hops:
                raise ResolutionError(f"chain too long after {len(chain)} hops", error="chain too long")
            visited.add(current)

            document = self.fetcher.fetch(current, referer=referer, cookies=self.cookies)
            chain.append(current)
            outcome = self.step(document)

            if outcome.is_terminal:
                links = outcome.terminal
                first = links[0].get("link", "")
                logger.info("Resolved %s in %d hop(s)", entry_url, len(chain))
                return TerminalLink(url=first, kind=terminal_kind(first) or "file", chain=chain, links=links)

            if not outcome.next_url:
                raise ResolutionError(f"no next hop or terminal link on {current}", error="no next hop or terminal link")

            # Hop targets are relative to the page that linked them.
            next_url = urljoin(document.url or current, outcome.next_url.strip())
            kind = terminal_kind(next_url)
            if kind:
                server, _ = classify_host(next_url)
                link = _terminal_entry(server, next_url, kind)
                logger.info("Resolved %s in %d hop(s)", entry_url, len(chain))
                return TerminalLink(url=next_url, kind=kind, chain=chain, links=[link])

            referer = current
            current = next_url


def _terminal_entry(server: str, link: str, kind: str) -> Dict[str, str]:
    return {"server": server, "link": link, "type": kind}
