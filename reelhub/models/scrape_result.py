"""
Scrape Result Models
Request-scoped records passed between fetch, extraction, normalization and link resolution
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import json


@dataclass
class RawDocument:
    """Fetched body plus where it came from."""
    url: str
    status_code: int
    text: str
    headers: Dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        return json.loads(self.text)

    @property
    def ok(self) -> bool:
        return 200 <= int(self.status_code) < 300


@dataclass
class NormalizedResult:
    """Provider result in the stable client shape."""
    title: str
    url: str
    provider: str
    image_url: Optional[str] = None
    quality: Optional[str] = None
    size: Optional[str] = None
    type: Optional[str] = None
    # Provider-specific fields (year, formats, languages, ...).
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "title": self.title,
            "url": self.url,
            "imageUrl": self.image_url,
            "quality": self.quality,
            "size": self.size,
            "type": self.type,
            "provider": self.provider,
        }
        for key, value in self.extra.items():
            payload.setdefault(key, value)
        return payload

    def __hash__(self):
        return hash(self.url)

    def __eq__(self, other):
        if isinstance(other, NormalizedResult):
            return self.url == other.url
        return False


@dataclass
class HopOutcome:
    """What a single resolver hop found on its page."""
    next_url: Optional[str] = None
    terminal: List[Dict[str, str]] = field(default_factory=list)

    @classmethod
    def follow(cls, url: Optional[str]) -> "HopOutcome":
        return cls(next_url=url or None)

    @classmethod
    def done(cls, links: List[Dict[str, str]]) -> "HopOutcome":
        return cls(terminal=list(links))

    @property
    def is_terminal(self) -> bool:
        return bool(self.terminal)


@dataclass
class TerminalLink:
    """Final direct media URL (or manifest) reached by a link chain."""
    url: str
    kind: str
    chain: List[str] = field(default_factory=list)
    links: List[Dict[str, str]] = field(default_factory=list)

    @property
    def hops(self) -> int:
        return len(self.chain)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "kind": self.kind,
            "chain": list(self.chain),
            "hops": self.hops,
            "links": list(self.links),
        }
