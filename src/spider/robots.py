from __future__ import annotations
import logging
import threading
from urllib import robotparser
from urllib.parse import urlparse

import requests

log = logging.getLogger(__name__)

MALFORMED_HINTS = (
    '<!doctype html', '<html', '<head', '<body'
)


def robots_url_for(url: str) -> str:
    p = urlparse(url)
    return f"{p.scheme}://{p.netloc}/robots.txt"


def _looks_like_html(text: str) -> bool:
    lt = text.lower()
    return any(h in lt for h in MALFORMED_HINTS)


class RobotsPolicy:
    """robots.txt rules for one site, fetched lazily and at most once.

    Anything that prevents reading a usable robots.txt (network error, non-2xx,
    an HTML page served in its place) leaves the policy absent: every path is
    allowed and there is no Crawl-delay.
    """

    def __init__(self, robots_url: str, user_agent: str, session: requests.Session | None = None, timeout: float = 8.0):
        self.robots_url = robots_url
        self.user_agent = user_agent
        self.session = session
        self.timeout = timeout
        self._parser: robotparser.RobotFileParser | None = None
        self._loaded = False
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def present(self) -> bool:
        self.load()
        return self._parser is not None

    def load(self) -> None:
        if self._loaded:
            return
        with self._lock:
            if self._loaded:
                return
            self._parser = self._read()
            self._loaded = True

    def _read(self) -> robotparser.RobotFileParser | None:
        getter = self.session.get if self.session is not None else requests.get
        try:
            resp = getter(self.robots_url, timeout=self.timeout, headers={"User-Agent": self.user_agent})
        except requests.RequestException as e:
            log.info("robots.txt unavailable at %s (%s); allowing all", self.robots_url, e)
            return None
        status = getattr(resp, "status_code", 0)
        if not 200 <= status < 300:
            log.info("robots.txt at %s returned %s; allowing all", self.robots_url, status)
            return None
        text = resp.text or ""
        if _looks_like_html(text) and "user-agent:" not in text.lower():
            log.info("robots.txt at %s looks like HTML; allowing all", self.robots_url)
            return None
        rp = robotparser.RobotFileParser()
        rp.set_url(self.robots_url)
        rp.parse(text.splitlines())
        return rp

    def can_fetch(self, url: str) -> bool:
        self.load()
        if self._parser is None:
            return True
        return self._parser.can_fetch(self.user_agent, url)

    def crawl_delay(self) -> float | None:
        """Crawl-delay in seconds for the configured agent (falls back to ``*``)."""
        self.load()
        if self._parser is None:
            return None
        delay = self._parser.crawl_delay(self.user_agent)
        if delay is None:
            delay = self._parser.crawl_delay("*")
        return float(delay) if delay is not None else None
