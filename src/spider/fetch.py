from __future__ import annotations
import logging
import time
from typing import Any, Callable, Dict

import requests
from requests.adapters import HTTPAdapter

from .configuration import Configuration

log = logging.getLogger(__name__)

EventCallback = Callable[[Dict[str, Any]], None]


def build_session(config: Configuration) -> requests.Session:
    """Shared HTTP session for one crawl, pooled for ``config.concurrency`` callers."""
    session = requests.Session()
    session.headers["User-Agent"] = config.user_agent
    session.headers["Connection"] = "keep-alive"
    if config.browser_headers:
        # Minimal common headers (avoid full fingerprinting complexity)
        session.headers.setdefault("Accept", "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8")
        session.headers.setdefault("Accept-Language", "en-US,en;q=0.9")
    adapter = HTTPAdapter(pool_connections=config.concurrency, pool_maxsize=config.concurrency)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def fetch_page_html(
    session: requests.Session,
    url: str,
    *,
    timeout: float = 15.0,
    retry_attempts: int = 1,
    retry_backoff_base: float = 0.75,
    retry_statuses: tuple[int, ...] = (429, 500, 502, 503, 504),
    event_cb: EventCallback | None = None,
) -> str:
    """Body text for ``url`` or ``""``. Never raises.

    Only HTTP 200 yields a body. ``retry_statuses`` and request exceptions are
    retried with exponential backoff until ``retry_attempts`` is used up.
    """
    attempt = 0
    while True:
        try:
            resp = session.get(url, timeout=timeout, allow_redirects=True)
            status = getattr(resp, "status_code", 0)
            if status in retry_statuses and attempt < retry_attempts - 1:
                backoff = retry_backoff_base * (2 ** attempt)
                if event_cb:
                    event_cb({"type": "retry", "url": url, "status": status, "attempt": attempt + 1, "backoff": backoff})
                time.sleep(backoff)
                attempt += 1
                continue
            if status != 200:
                log.debug("GET %s -> %s", url, status)
                if event_cb:
                    event_cb({"type": "http_status", "url": url, "status": status})
                return ""
            return resp.text or ""
        except requests.RequestException as e:
            if attempt < retry_attempts - 1:
                backoff = retry_backoff_base * (2 ** attempt)
                if event_cb:
                    event_cb({"type": "retry_exception", "url": url, "error": str(e), "attempt": attempt + 1, "backoff": backoff})
                time.sleep(backoff)
                attempt += 1
                continue
            log.debug("GET %s failed: %s", url, e)
            if event_cb:
                event_cb({"type": "error", "phase": "fetch", "url": url, "error": str(e)})
            return ""


def make_fetcher(
    session: requests.Session,
    config: Configuration,
    event_cb: EventCallback | None = None,
) -> Callable[[str], str]:
    """Bind a session and the configured retry policy into a ``fetch(url) -> str``."""
    def fetch(url: str) -> str:
        return fetch_page_html(
            session,
            url,
            timeout=config.timeout,
            retry_attempts=config.retry_attempts,
            retry_backoff_base=config.retry_backoff_base,
            retry_statuses=config.retry_statuses,
            event_cb=event_cb,
        )
    return fetch
