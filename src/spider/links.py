from __future__ import annotations
import logging
from urllib.parse import urlparse

from bs4 import BeautifulSoup, SoupStrainer

from .urlnorm import normalize_url

log = logging.getLogger(__name__)

# Targets that are never web pages (frozen set for O(1) lookup)
SKIP_EXTENSIONS: frozenset[str] = frozenset((
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".ico", ".bmp", ".tiff",
    ".pdf", ".zip", ".rar", ".7z", ".gz", ".tar",
    ".mp4", ".mp3", ".wav", ".webm", ".avi", ".mov", ".ogg",
    ".css", ".js", ".map", ".json", ".xml",
    ".woff", ".woff2", ".ttf", ".eot",
))

# Parse only <a href> elements
LINK_STRAINER = SoupStrainer("a", href=True)


def is_page_like(url: str) -> bool:
    path = urlparse(url).path.lower()
    return not any(path.endswith(ext) for ext in SKIP_EXTENSIONS)


def extract_hrefs(html: str) -> list[str]:
    """Raw href values of anchor elements, in document order."""
    soup = BeautifulSoup(html, "lxml", parse_only=LINK_STRAINER)
    return [a["href"] for a in soup.find_all("a", href=True)]


def extract_links(html: str, base_url: str) -> set[str]:
    """Absolute, fragment-free page links found in ``html``.

    Relative references are resolved against ``base_url``; hrefs that cannot
    be resolved fall back to ``base_url`` itself.
    """
    if not html or not html.strip():
        return set()
    links: set[str] = set()
    for href in extract_hrefs(html):
        nu = normalize_url(base_url, href)
        if is_page_like(nu):
            links.add(nu)
    log.debug("extracted %d links from %s", len(links), base_url)
    return links
