"""
Extractor
Turns fetched documents into loosely typed items, either from CSS selectors
or from patterns over page text and inline scripts
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union
import json
import re

from bs4 import BeautifulSoup
from bs4.element import Tag

from ..models.scrape_result import RawDocument

Selector = Union[str, Sequence[str]]
Attr = Union[None, str, Sequence[Optional[str]]]

SELF = "."

QUALITY_LABELS: Tuple[Tuple[str, str], ...] = (
    (r"2160p|\b4k\b", "4K"),
    (r"1080p", "1080p"),
    (r"720p", "720p"),
    (r"480p", "480p"),
    (r"360p", "360p"),
)

SIZE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(KB|MB|GB|TB)\b", re.IGNORECASE)


@dataclass(frozen=True)
class FieldSpec:
    """
    How to read one field from a container node.

    selector: sub-selector or ordered fallbacks; "." is the container itself
    attr: attribute name, ordered attribute fallbacks, or None for text
    many: collect every match into a list
    pattern: regex applied to each raw value, first capture kept
    transform: applied to the final value when it is not empty
    """
    selector: Selector = SELF
    attr: Attr = None
    many: bool = False
    pattern: Optional[str] = None
    transform: Optional[Callable[[Any], Any]] = None


@dataclass(frozen=True)
class ItemSchema:
    containers: Tuple[str, ...]
    fields: Dict[str, FieldSpec]
    required: Tuple[str, ...] = ("title", "url")


@dataclass
class ScriptPayload:
    """Result of reading a JSON value assigned in an inline script."""
    found: bool
    value: Any = None
    error: Optional[str] = None
    raw: str = ""

    @property
    def ok(self) -> bool:
        return self.found and self.error is None


def soup_of(document: Union[RawDocument, BeautifulSoup, Tag, str, bytes]) -> Union[BeautifulSoup, Tag]:
    if isinstance(document, (BeautifulSoup, Tag)):
        return document
    if isinstance(document, RawDocument):
        return BeautifulSoup(document.text, "html.parser")
    return BeautifulSoup(document or "", "html.parser")


def collapse_ws(text: Optional[str]) -> str:
    return re.sub(r"\s+", " ", str(text or "")).strip()


def node_text(node: Optional[Tag]) -> str:
    if node is None:
        return ""
    return collapse_ws(node.get_text(" ", strip=True))


def _as_tuple(value) -> tuple:
    if value is None or isinstance(value, str):
        return (value,)
    return tuple(value)


def _read(element: Tag, attrs: tuple) -> str:
    for attr in attrs:
        if attr is None:
            value = node_text(element)
        else:
            raw = element.get(attr)
            # Multi-valued attributes (class, rel) come back as lists.
            value = " ".join(raw) if isinstance(raw, list) else str(raw or "")
            value = value.strip()
        if value:
            return value
    return ""


def field_value(node: Tag, spec: FieldSpec) -> Any:
    """Read one field; missing nodes give None (or [] for many)."""
    attrs = _as_tuple(spec.attr)
    values: List[str] = []
    for selector in _as_tuple(spec.selector):
        if selector == SELF:
            elements = [node]
        elif spec.many:
            elements = node.select(selector)
        else:
            found = node.select_one(selector)
            elements = [found] if found is not None else []
        values = [v for v in (_read(el, attrs) for el in elements) if v]
        if spec.pattern:
            values = [m for m in (match_pattern(v, spec.pattern) for v in values) if m]
        if values:
            break

    result: Any = values if spec.many else (values[0] if values else None)
    if spec.transform and result:
        result = spec.transform(result)
    return result


def select_text(node: Tag, selectors: Selector) -> str:
    return field_value(node, FieldSpec(selector=selectors)) or ""


def select_attr(node: Tag, selectors: Selector, attrs: Attr) -> str:
    return field_value(node, FieldSpec(selector=selectors, attr=attrs)) or ""


def extract_items(document, schema: ItemSchema) -> List[Dict[str, Any]]:
    """
    Extract items from a document with a selector schema.

    Container selectors are tried in order; the first one yielding at least one
    complete item wins. Items missing a required field are dropped.
    """
    soup = soup_of(document)
    for container in schema.containers:
        items = []
        for node in soup.select(container):
            item = {name: field_value(node, spec) for name, spec in schema.fields.items()}
            if all(item.get(key) for key in schema.required):
                items.append(item)
        if items:
            return items
    return []


def match_pattern(text: Optional[str], pattern: str, group: int = 1, flags: int = re.IGNORECASE) -> Optional[str]:
    if not text:
        return None
    match = re.search(pattern, text, flags)
    if not match:
        return None
    try:
        value = match.group(group)
    except IndexError:
        value = match.group(0)
    return value.strip() if value else None


def _scan_literal(text: str, start: int) -> Optional[str]:
    """Return the quoted string, object or array literal beginning at start."""
    opener = text[start]
    if opener in "'\"`":
        i = start + 1
        while i < len(text):
            if text[i] == "\\":
                i += 2
                continue
            if text[i] == opener:
                return text[start:i + 1]
            i += 1
        return None

    pairs = {"{": "}", "[": "]"}
    if opener not in pairs:
        return None
    depth = 0
    quote = ""
    i = start
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = ""
        elif ch in "'\"`":
            quote = ch
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
        i += 1
    return None


def find_script_variable(text: str, name: str) -> Optional[str]:
    """
    Find the literal assigned to a script variable.

    Matches `var|let|const NAME = ...` and `window.NAME = ...` where the value is
    an object, array or quoted string. Returns the raw literal text.
    """
    if not text:
        return None
    pattern = re.compile(r"(?:\b(?:var|let|const)\s+|\bwindow\.)" + re.escape(name) + r"\s*=\s*")
    for match in pattern.finditer(text):
        literal = _scan_literal(text, match.end()) if match.end() < len(text) else None
        if literal:
            return literal
    return None


def loads_tolerant(raw: str) -> Any:
    """
    json.loads with one repair pass: single quotes rewritten to double quotes.

    String values that themselves contain single quotes cannot be repaired;
    the second ValueError propagates.
    """
    try:
        return json.loads(raw)
    except ValueError:
        return json.loads(raw.replace("'", '"'))


def extract_script_json(text: str, name: str) -> ScriptPayload:
    raw = find_script_variable(text, name)
    if raw is None:
        return ScriptPayload(found=False)
    if raw[0] == "`":
        return ScriptPayload(found=True, value=raw[1:-1], raw=raw)
    try:
        return ScriptPayload(found=True, value=loads_tolerant(raw), raw=raw)
    except ValueError as exc:
        return ScriptPayload(found=True, error=f"unparseable {name}: {exc}", raw=raw)


def detect_quality(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    for pattern, label in QUALITY_LABELS:
        if re.search(pattern, text, re.IGNORECASE):
            return label
    return None


def extract_size(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    match = SIZE_PATTERN.search(text)
    if not match:
        return None
    return f"{match.group(1)} {match.group(2).upper()}"
