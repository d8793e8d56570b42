"""
Normalizer
Maps extracted items onto the client result shape: absolute URLs, deduplication,
host classification and keyword tagging
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urljoin, urlparse
import re

from ..models.scrape_result import NormalizedResult
from .extractor import collapse_ws, detect_quality, extract_size

# First match wins; keep more specific keywords ahead of generic ones.
HOST_TABLE: Tuple[Tuple[str, str, str], ...] = (
    ("hubcloud", "HubCloud", "cloud"),
    ("gdflix", "GDflix", "gdrive"),
    ("hubdrive", "HubDrive", "cloud"),
    ("hubcdn", "HubCdn", "direct"),
    ("pixeldrain", "Pixeldrain", "direct"),
    ("gofile", "Gofile", "cloud"),
    ("febbox", "Febbox", "cloud"),
    ("mega.nz", "Mega", "cloud"),
    ("drive.google", "Google Drive", "gdrive"),
    ("videosaver", "VideoSaver", "mirror"),
    ("filesdl", "FilesDL", "download"),
    ("r2.dev", "Cf Worker", "direct"),
    ("workers.dev", "ZipDisk", "zip"),
)

FORMAT_TABLE: Tuple[Tuple[str, str], ...] = (
    (r"blu-?ray", "BluRay"),
    (r"web-?dl", "WEB-DL"),
    (r"web-?rip", "WEBRip"),
    (r"hd-?rip", "HDRip"),
    (r"hd-?tc", "HDTC"),
    (r"hd-?ts", "HDTS"),
    (r"\bcam\b", "CAM"),
)

LANGUAGES: Tuple[str, ...] = ("Hindi", "English", "Telugu", "Tamil", "Malayalam", "Kannada")

_KNOWN_FIELDS = {"title", "url", "image", "image_url", "quality", "size", "type"}


def absolutize(url: Optional[str], base_url: str) -> str:
    """
    Resolve a possibly relative URL against a provider base URL.

    "/path" is appended to the base URL minus its trailing slash; other
    relative forms go through urljoin.
    """
    value = str(url or "").strip()
    if not value:
        return ""
    if value.startswith("//"):
        return "https:" + value
    if re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*:", value):
        return value
    if value.startswith("/") and base_url:
        return base_url.rstrip("/") + value
    return urljoin(base_url or "", value)


def dedupe_by_url(items: Iterable[Any], key: str = "url") -> List[Any]:
    """Drop repeated URLs; the first occurrence wins."""
    seen = set()
    unique = []
    for item in items:
        value = item.get(key) if isinstance(item, dict) else getattr(item, key, None)
        if value in seen:
            continue
        seen.add(value)
        unique.append(item)
    return unique


def classify_host(url: Optional[str]) -> Tuple[str, str]:
    lower = str(url or "").lower()
    for keyword, provider, kind in HOST_TABLE:
        if keyword in lower:
            return provider, kind
    return "Unknown", "other"


def detect_format(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    for pattern, label in FORMAT_TABLE:
        if re.search(pattern, text, re.IGNORECASE):
            return label
    return None


def detect_languages(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [lang for lang in LANGUAGES if re.search(rf"\b{lang}\b", text, re.IGNORECASE)]


def _domain_pattern(domain: str):
    labels = [r"[^.]+" if label == "*" else re.escape(label) for label in domain.lower().split(".")]
    return re.compile(r"^(?:[^.]+\.)*" + r"\.".join(labels) + r"$")


def host_matches(url: Optional[str], domains: Iterable[str]) -> bool:
    """
    True when url is an http(s) URL on one of domains, subdomains included.

    "*" in a domain stands for exactly one label, e.g. "hubcloud.*" for a
    rotating TLD; it never matches "hubcloud.evil.com".
    """
    parsed = urlparse(str(url or ""))
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False
    host = parsed.hostname.lower()
    return any(_domain_pattern(d).match(host) for d in domains if d)


def normalize(
    items: Iterable[Dict[str, Any]],
    base_url: str,
    provider: str,
    item_type: Optional[str] = None,
) -> List[NormalizedResult]:
    results = []
    for item in items:
        title = collapse_ws(item.get("title"))
        url = absolutize(item.get("url"), base_url)
        if not title or not url:
            continue
        image = item.get("image_url") or item.get("image")
        extra = {
            k: v for k, v in item.items()
            if k not in _KNOWN_FIELDS and v is not None
        }
        results.append(NormalizedResult(
            title=title,
            url=url,
            provider=provider,
            image_url=absolutize(image, base_url) or None,
            quality=item.get("quality") or detect_quality(title),
            size=item.get("size") or extract_size(title),
            type=item.get("type") or item_type,
            extra=extra,
        ))
    return dedupe_by_url(results)
