import threading
from collections import Counter

import pytest


def html_page(*hrefs: str) -> str:
    anchors = "".join(f'<a href="{h}">link</a>' for h in hrefs)
    return f"<html><head><title>t</title></head><body><p>content</p>{anchors}</body></html>"


class FakeSite:
    """In-memory link graph standing in for the HTTP fetcher."""

    def __init__(self, pages: dict, fail=(), raise_on=()):
        self.pages = pages
        self.fail = set(fail)
        self.raise_on = set(raise_on)
        self.calls = Counter()
        self._lock = threading.Lock()

    def fetch(self, url: str) -> str:
        with self._lock:
            self.calls[url] += 1
        if url in self.raise_on:
            raise RuntimeError(f"boom {url}")
        if url in self.fail:
            return ""
        return self.pages.get(url, "")


# seed -> depth 1 -> depth 2, plus an off-host link and a few back links
SMALL_SITE = {
    "https://a.com/": html_page("/one", "/two", "https://b.com/x"),
    "https://a.com/one": html_page("/two", "/three", "#frag"),
    "https://a.com/two": html_page("/one", "/four?q=1#x", "/logo.png"),
    "https://a.com/three": html_page(),
    "https://a.com/four?q=1": html_page("/"),
    "https://b.com/x": html_page("/y"),
}

SMALL_SITE_REACHABLE = {
    "https://a.com/",
    "https://a.com/one",
    "https://a.com/two",
    "https://a.com/three",
    "https://a.com/four?q=1",
}


@pytest.fixture
def small_site():
    return FakeSite(dict(SMALL_SITE))


@pytest.fixture
def make_site():
    return FakeSite


@pytest.fixture
def html():
    return html_page


@pytest.fixture
def reachable():
    return set(SMALL_SITE_REACHABLE)
