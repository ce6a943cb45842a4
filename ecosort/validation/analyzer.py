"""Content analysis of fetched pages.

Pure functions over HTML: no I/O. A page that returns HTTP 200 can still be
an error page (soft 404) or an ad-monetized placeholder (parked domain).
"""

import hashlib
import re
from typing import List, Optional

from pydantic import BaseModel, Field

SOFT_404_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"no results found",
        r"page you requested",
        r"page not found",
        r"\b404\b",
        r"page is sleeping",
        r"under maintenance",
        r"this page has moved",
        r"we're sorry",
        r"cannot be found",
        r"does not exist",
    )
]

PARKED_DOMAIN_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"domain for sale",
        r"buy this domain",
        r"this domain may be for sale",
        r"related links",
        r"welcome to nginx",
        r"apache.*default page",
        r"coming soon",
    )
]

# Share of <body> taken by header/footer/nav above which a page has no content
BOILERPLATE_RATIO_THRESHOLD = 0.7
# Share of anchors pointing at ads above which a page is a parking page
AD_LINK_RATIO_THRESHOLD = 0.5
# Fewer anchors than this are too few to judge
MIN_LINKS_FOR_AD_RATIO = 5

_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)
_BODY_RE = re.compile(r"<body[^>]*>(.*?)</body>", re.IGNORECASE | re.DOTALL)
_BOILERPLATE_RE = re.compile(
    r"<(header|footer|nav)\b[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL
)
_ANCHOR_RE = re.compile(r"<a\b[^>]*href=\"[^\"]*\"[^>]*>", re.IGNORECASE)
_AD_KEYWORD_RE = re.compile(
    r"(?<![a-z])(ads?|adclick|sponsor\w*|affiliate\w*|parking)(?![a-z])",
    re.IGNORECASE,
)

# Normalization applied before hashing
_SCRIPT_RE = re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
_STYLE_RE = re.compile(r"<style[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL)
_DYNAMIC_ATTR_RE = re.compile(
    r"\s*(id|class|data-[a-z0-9-]+|aria-[a-z0-9-]+)\s*=\s*(\"[^\"]*\"|'[^']*')",
    re.IGNORECASE,
)
_TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:?\d{2})?")
_HEX_TOKEN_RE = re.compile(r"[a-f0-9]{32,}", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


class ContentAnalysis(BaseModel):
    """Verdict of analyzing one page."""

    is_soft_404: bool = Field(False, description="Error or placeholder page")
    is_parked_domain: bool = Field(False, description="Domain parking page")
    content_hash: str = Field(..., description="Hash of normalized HTML")


def extract_title(html: str) -> str:
    """Return the text of the first <title> element, or ''."""
    match = _TITLE_RE.search(html)
    return match.group(1).strip() if match else ""


def _matches_any(patterns: List[re.Pattern], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def boilerplate_ratio(html: str) -> Optional[float]:
    """Share of the <body> made of header, footer and nav blocks."""
    body = _BODY_RE.search(html)
    if not body or not body.group(1):
        return None
    content = body.group(1)
    boilerplate = sum(len(m.group(0)) for m in _BOILERPLATE_RE.finditer(content))
    return boilerplate / len(content)


def ad_link_ratio(html: str) -> Optional[float]:
    """Share of anchors carrying advertising/affiliate/parking keywords."""
    links = _ANCHOR_RE.findall(html)
    if len(links) <= MIN_LINKS_FOR_AD_RATIO:
        return None
    ad_links = [link for link in links if _AD_KEYWORD_RE.search(link)]
    return len(ad_links) / len(links)


def detect_soft_404(html: str, title: str) -> bool:
    """Any single signal flags the page: title phrases, body phrases, or mostly chrome."""
    title_hit = _matches_any(SOFT_404_PATTERNS, title)
    body_hit = _matches_any(SOFT_404_PATTERNS, strip_scripts(html))
    ratio = boilerplate_ratio(html)
    chrome_only = ratio is not None and ratio > BOILERPLATE_RATIO_THRESHOLD
    return title_hit or body_hit or chrome_only


def detect_parked_domain(html: str, title: str) -> bool:
    """Any single signal flags the page: for-sale phrasing or mostly ad links."""
    title_hit = _matches_any(PARKED_DOMAIN_PATTERNS, title)
    body_hit = _matches_any(PARKED_DOMAIN_PATTERNS, strip_scripts(html))
    ratio = ad_link_ratio(html)
    ad_heavy = ratio is not None and ratio > AD_LINK_RATIO_THRESHOLD
    return title_hit or body_hit or ad_heavy


def strip_scripts(html: str) -> str:
    """Remove <script> and <style> blocks."""
    return _STYLE_RE.sub("", _SCRIPT_RE.sub("", html))


def normalize_html(html: str) -> str:
    """
    Normalize HTML for hashing.

    Strips scripts and styles, id/class/data-*/aria-* attributes, ISO-8601
    timestamps and long hex tokens, then collapses whitespace, so session
    tokens and ad rotation do not register as content changes.
    """
    text = strip_scripts(html)
    text = _DYNAMIC_ATTR_RE.sub("", text)
    text = _TIMESTAMP_RE.sub("", text)
    text = _HEX_TOKEN_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def compute_content_hash(html: str) -> str:
    """SHA-256 of the normalized HTML."""
    return hashlib.sha256(normalize_html(html).encode("utf-8")).hexdigest()


def analyze(html: str, title: Optional[str] = None) -> ContentAnalysis:
    """Analyze one page. The title is extracted from the HTML when not given."""
    if title is None:
        title = extract_title(html)
    return ContentAnalysis(
        is_soft_404=detect_soft_404(html, title),
        is_parked_domain=detect_parked_domain(html, title),
        content_hash=compute_content_hash(html),
    )
