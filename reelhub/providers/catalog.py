"""
Listing Catalog
Declarative descriptors for the search/listing sites served by ListingProvider
"""
from typing import Any, Dict, List, Optional
import re

from ..core.extractor import FieldSpec, ItemSchema, collapse_ws, match_pattern
from ..core.normalizer import detect_format, detect_languages
from .base import ListingProvider, ProviderDescriptor

RELEASE_TAGS = (
    ("4K", r"\b4K\b|2160p"),
    ("1080p", r"1080p"),
    ("720p", r"720p"),
    ("480p", r"480p"),
    ("HEVC", r"HEVC"),
    ("10-Bit", r"10[- ]?Bit"),
    ("x264", r"x264"),
    ("x265", r"x265"),
)

SERIES_PATTERN = r"\bseason\b|\bepisode\b|\bS\d{1,2}\b|\bS\d{1,2}E\d{1,3}\b"


def release_tags(title: str) -> List[str]:
    return [label for label, pattern in RELEASE_TAGS if re.search(pattern, title or "", re.IGNORECASE)]


def release_year(title: str) -> Optional[str]:
    return match_pattern(title, r"\((\d{4})\)") or match_pattern(title, r"\b(19\d{2}|20\d{2})\b")


def is_series(title: str) -> bool:
    return bool(re.search(SERIES_PATTERN, title or "", re.IGNORECASE))


def _post_id(value: Optional[str]) -> Optional[str]:
    return match_pattern(value, r"post-(\d+)")


# ---- enrichment hooks ------------------------------------------------------

def enrich_4khdhub(item: Dict[str, Any]) -> Dict[str, Any]:
    meta = [collapse_ws(p) for p in str(item.pop("meta", "") or "").split("•")]
    item["year"] = meta[0] if meta and meta[0] else None
    item["season"] = meta[1] if len(meta) > 1 and meta[1] else None
    item["type"] = "series" if item["season"] else "movie"
    return item


def enrich_kmmovies(item: Dict[str, Any]) -> Dict[str, Any]:
    item["id"] = _post_id(item.get("id"))
    return item


def enrich_desiremovies(item: Dict[str, Any]) -> Dict[str, Any]:
    title = item.get("title") or ""
    classes = str(item.pop("classes", "") or "")
    item["id"] = _post_id(classes)
    item["releaseYear"] = match_pattern(title, r"\((\d{4})\)")
    item["qualities"] = release_tags(title)
    item["languages"] = detect_languages(title)
    item["isDualAudio"] = "dual audio" in title.lower()
    dd = match_pattern(title, r"DD\s*(\d+\.?\d*)")
    item["audioFormat"] = f"DD {dd}" if dd else None
    item["hasSubtitles"] = bool(re.search(r"E?Subs", title))
    item["format"] = detect_format(title)
    categories = []
    for marker, label in (
        ("hollywood-movies", "Hollywood"),
        ("south-movies", "South Indian"),
        ("720p-hevc", "720p HEVC"),
        ("4k-movies", "4K Movies"),
    ):
        if marker in classes:
            categories.append(label)
    item["categories"] = categories
    description = item.get("description")
    if description:
        description = re.sub(r"^Download\s+", "", description)
        item["description"] = re.sub(r"\s*\[(?:…|\.\.\.)\]\s*$", "", description)
    return item


def enrich_allmovieshub(item: Dict[str, Any]) -> Dict[str, Any]:
    title = item.get("title") or ""
    classes = str(item.pop("classes", "") or "").split()
    item["id"] = _post_id(" ".join(classes))
    item["categories"] = [
        c.split("-", 1)[1].replace("-", " ") for c in classes
        if c.startswith(("category-", "tag-")) and "-" in c
    ]
    item["isSeries"] = is_series(title)
    item["type"] = "series" if item["isSeries"] else "movie"
    item["format"] = detect_format(title)
    item["qualities"] = release_tags(title)
    item["languages"] = detect_languages(title)
    item["year"] = release_year(title)
    return item


def enrich_10bitclub(item: Dict[str, Any]) -> Dict[str, Any]:
    kind = str(item.get("type") or "").strip().lower()
    if kind:
        item["type"] = "series" if kind in ("tv", "tvshows", "series") else "movie"
    return item


def enrich_moviesdrive(item: Dict[str, Any]) -> Dict[str, Any]:
    title = item.get("title") or ""
    item["type"] = "series" if is_series(title) else "movie"
    item["qualities"] = release_tags(title)
    item["year"] = release_year(title)
    return item


HDHUB_LANGUAGES = ("Hindi", "English", "Tamil", "Telugu", "Malayalam", "Kannada", "Punjabi", "Bengali", "Marathi")
AUDIO_FORMATS = (("DD 5.1", r"DD\s?5\.1"), ("DD 2.0", r"DD\s?2\.0"), ("DTS", r"DTS"), ("Atmos", r"Atmos"))
STREAM_SOURCES = (
    ("Disney+", ("DisneyPlus", "Disney+")),
    ("Netflix", ("Netflix",)),
    ("Prime Video", ("PrimeVideo", "Prime Video")),
    ("Hotstar", ("Hotstar",)),
    ("Zee5", ("Zee5",)),
    ("SonyLiv", ("SonyLiv",)),
)


def enrich_hdhub4u(item: Dict[str, Any]) -> Dict[str, Any]:
    title = item.get("title") or ""
    item["qualities"] = release_tags(title)
    item["languages"] = [lang for lang in HDHUB_LANGUAGES if lang in title]
    item["audioFormats"] = [label for label, pattern in AUDIO_FORMATS if re.search(pattern, title)]
    item["isSeries"] = is_series(title) or "ALL Episodes" in title
    item["type"] = "series" if item["isSeries"] else "movie"
    item["isDualAudio"] = "Dual Audio" in title or ("Hindi" in title and "English" in title)
    item["year"] = match_pattern(title, r"\((\d{4})\)")
    item["source"] = next((name for name, markers in STREAM_SOURCES if any(m in title for m in markers)), None)
    return item


def enrich_filmyfly(item: Dict[str, Any]) -> Dict[str, Any]:
    title = item.get("title") or ""
    item["qualities"] = release_tags(title)
    item["languages"] = detect_languages(title)
    item["format"] = detect_format(title)
    item["isDualAudio"] = "dual audio" in title.lower() or ("Hindi" in title and "English" in title)
    item["hasSubtitles"] = bool(re.search(r"ESub|Subtitle", title, re.IGNORECASE))
    item["year"] = match_pattern(title, r"\((\d{4})\)")
    return item


# ---- descriptors -----------------------------------------------------------

FOURKHDHUB = ProviderDescriptor(
    name="4KHDHub",
    key="4khdhub",
    base_url_key="4kHDHub",
    search_path="/?s={query}",
    search_page_path="/page/{page}/?s={query}",
    listing_path="/page/{page}/",
    schema=ItemSchema(
        containers=(".movie-card",),
        fields={
            "title": FieldSpec(".movie-card-title"),
            "url": FieldSpec(".", attr="href"),
            "image": FieldSpec(".movie-card-image img", attr=("src", "data-src")),
            "meta": FieldSpec(".movie-card-meta"),
            "formats": FieldSpec(".movie-card-format", many=True),
        },
    ),
    enrich=enrich_4khdhub,
)

KMMOVIES = ProviderDescriptor(
    name="KMMovies",
    key="kmmovies",
    base_url_key="KMMovies",
    search_path="/?s={query}",
    search_page_path="/page/{page}/?s={query}",
    listing_path="/page/{page}/",
    schema=ItemSchema(
        containers=("article.post",),
        fields={
            "id": FieldSpec(".", attr="id"),
            "title": FieldSpec(("h3.entry-title a", "figure img"), attr=(None, "alt")),
            "url": FieldSpec(("figure a.post-thumbnail", "h3.entry-title a"), attr="href"),
            "image": FieldSpec("figure img", attr=("src", "data-src")),
        },
    ),
    item_type="movie",
    enrich=enrich_kmmovies,
)

DESIREMOVIES = ProviderDescriptor(
    name="DesireMovies",
    key="desiremovies",
    base_url_key="DesiReMovies",
    search_path="/?s={query}",
    search_page_path="/page/{page}/?s={query}",
    listing_path="/page/{page}/",
    schema=ItemSchema(
        containers=("article.mh-loop-item",),
        fields={
            "title": FieldSpec("h3.entry-title a"),
            "url": FieldSpec("h3.entry-title a", attr="href"),
            "image": FieldSpec("figure.mh-loop-thumb img", attr=("src", "data-src")),
            "classes": FieldSpec(".", attr="class"),
            "description": FieldSpec(".mh-excerpt p"),
        },
    ),
    item_type="movie",
    enrich=enrich_desiremovies,
)

ALLMOVIESHUB = ProviderDescriptor(
    name="AllMoviesHub",
    key="allmovieshub",
    base_url_key="allmovieshub",
    search_path="/?s={query}",
    search_page_path="/page/{page}/?s={query}",
    listing_path="/page/{page}/",
    schema=ItemSchema(
        containers=("article.post-item",),
        fields={
            "title": FieldSpec(".entry-title a"),
            "url": FieldSpec(".entry-title a", attr="href"),
            "image": FieldSpec(".blog-pic img", attr=("data-src", "src")),
            "classes": FieldSpec(".", attr="class"),
        },
    ),
    enrich=enrich_allmovieshub,
)

TENBITCLUB = ProviderDescriptor(
    name="10BitClub",
    key="10bitclub",
    base_url_key="10bitclub",
    search_path="/?s={query}",
    search_page_path="/page/{page}/?s={query}",
    listing_path="/page/{page}/",
    schema=ItemSchema(
        containers=(".result-item article", "article.item.movies"),
        fields={
            "title": FieldSpec((".details .title a", ".data h3 a")),
            "url": FieldSpec((".details .title a", ".data h3 a"), attr="href"),
            "image": FieldSpec((".image .thumbnail img", ".poster img"), attr=("data-src", "src")),
            "rating": FieldSpec((".details .meta .rating", ".rating")),
            "year": FieldSpec((".details .meta .year", ".data span"), pattern=r"(\d{4})"),
            "type": FieldSpec(".image .thumbnail span"),
            "quality": FieldSpec(".quality"),
        },
    ),
    item_type="movie",
    enrich=enrich_10bitclub,
)

MOVIESDRIVE = ProviderDescriptor(
    name="MoviesDrive",
    key="moviesdrive",
    base_url_key="drive",
    search_path="/?s={query}",
    search_page_path="/page/{page}/?s={query}",
    listing_path="/page/{page}/",
    schema=ItemSchema(
        containers=("li.thumb",),
        fields={
            "title": FieldSpec("figcaption a p"),
            "url": FieldSpec(("figure a", "figcaption a"), attr="href"),
            "image": FieldSpec("figure img", attr=("src", "data-src")),
        },
    ),
    enrich=enrich_moviesdrive,
)

HDHUB4U = ProviderDescriptor(
    name="HDHub4u",
    key="hdhub4u",
    base_url_key="hdhub",
    search_path="/?s={query}",
    listing_path="/page/{page}/",
    schema=ItemSchema(
        containers=(".recent-movies li.thumb",),
        fields={
            "title": FieldSpec(("figcaption a p", "figure img"), attr=(None, "title", "alt")),
            "url": FieldSpec(("figcaption a", "figure a"), attr="href"),
            "image": FieldSpec("figure img", attr="src"),
            "altText": FieldSpec("figure img", attr="alt"),
        },
        # Cards without a poster are placeholders.
        required=("title", "url", "image"),
    ),
    enrich=enrich_hdhub4u,
)

FILMYFLY = ProviderDescriptor(
    name="FilmyFly",
    key="filmyfly",
    base_url_key="filmyfly",
    search_path="/site-1.html?to-search={query}",
    # Only the homepage is exposed as a listing.
    listing_path="/",
    schema=ItemSchema(
        containers=(".A2",),
        fields={
            "title": FieldSpec(("a:nth-child(2) b span", "a:nth-child(2) b", "a:nth-child(2)")),
            "url": FieldSpec("a", attr="href"),
            "image": FieldSpec("a img", attr=("src", "data-src")),
        },
    ),
    item_type="movie",
    enrich=enrich_filmyfly,
)

DESCRIPTORS = (FOURKHDHUB, KMMOVIES, DESIREMOVIES, ALLMOVIESHUB, TENBITCLUB, MOVIESDRIVE, HDHUB4U, FILMYFLY)


def build_listing_providers(fetcher, base_urls, settings=None) -> List[ListingProvider]:
    return [ListingProvider(d, fetcher, base_urls=base_urls, settings=settings) for d in DESCRIPTORS]
