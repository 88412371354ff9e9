from __future__ import annotations
from functools import lru_cache
from urllib.parse import urljoin, urlparse, urlunparse

import tldextract

WEB_SCHEMES = ("http", "https")
DEFAULT_PORTS = {"http": 80, "https": 443}

# Bundled public-suffix snapshot only; never hits the network at crawl time.
_tld_extract = tldextract.TLDExtract(suffix_list_urls=())


def _canonical_parts(absu: str) -> str | None:
    """Lowercase scheme/host, drop default port and fragment. None if not a web URL."""
    u = urlparse(absu)
    scheme = u.scheme.lower()
    if scheme not in WEB_SCHEMES:
        return None
    host = (u.hostname or "").lower()
    if not host:
        return None
    port = u.port  # raises ValueError on garbage ports
    if ":" in host:
        host = f"[{host}]"
    netloc = host if port is None or port == DEFAULT_PORTS[scheme] else f"{host}:{port}"
    if u.username or u.password:
        userinfo = u.username or ""
        if u.password:
            userinfo += ":" + u.password
        netloc = f"{userinfo}@{netloc}"
    return urlunparse((scheme, netloc, u.path or "/", u.params, u.query, ""))


def normalize_url(base: str, href: str) -> str:
    """Resolve relative → absolute, drop the fragment, normalize scheme/host.

    Keeps path casing and the query string untouched. Hrefs that cannot be
    resolved to an http(s) URL (``tel:``, ``mailto:``, broken IPv6 hosts,
    bad ports) resolve to the base URL itself instead of being dropped.
    """
    try:
        resolved = _canonical_parts(urljoin(base, (href or "").strip()))
    except ValueError:
        resolved = None
    if resolved is not None:
        return resolved
    try:
        fallback = _canonical_parts(base)
    except ValueError:
        fallback = None
    return fallback if fallback is not None else base


def canonical_url(u: str) -> str:
    """Canonical form of an already absolute URL (idempotent)."""
    return normalize_url(u, u)


def is_crawlable(u: str) -> bool:
    try:
        return _canonical_parts(u) is not None
    except ValueError:
        return False


def host_of(u: str) -> str:
    try:
        return (urlparse(u).hostname or "").lower()
    except ValueError:
        return ""


@lru_cache(maxsize=4096)
def registrable_domain(host: str) -> str:
    """eTLD+1 for a host (``blog.example.co.uk`` → ``example.co.uk``).

    IP addresses and single-label hosts come back unchanged.
    """
    ext = _tld_extract(host)
    if not ext.suffix:
        return host.lower()
    return f"{ext.domain}.{ext.suffix}".lower() if ext.domain else ext.suffix.lower()
