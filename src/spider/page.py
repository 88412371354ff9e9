from __future__ import annotations
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from .links import extract_links


@dataclass(frozen=True)
class Page:
    """Outcome of fetching one URL.

    ``html`` is ``""`` when the fetch failed and ``None`` when the body was
    not retained (or the page was synthesized from a visited URL).
    """
    url: str
    html: Optional[str] = None

    @classmethod
    def build(cls, url: str, html: Optional[str]) -> "Page":
        """Page without fetching (used by tests and for URL-only records)."""
        return cls(url=url, html=html)

    @property
    def has_body(self) -> bool:
        return bool(self.html)

    def links(self) -> set[str]:
        if not self.html:
            return set()
        return extract_links(self.html, self.url)

    def to_record(self) -> Dict[str, Any]:
        return {"url": self.url, "html": self.html}


class PageStore:
    """Append-only page records, readable while a crawl is still running."""

    def __init__(self) -> None:
        self._pages: list[Page] = []
        self._lock = threading.Lock()

    def add(self, page: Page) -> None:
        with self._lock:
            self._pages.append(page)

    def extend(self, pages: Iterable[Page]) -> None:
        for p in pages:
            self.add(p)

    def snapshot(self) -> tuple[Page, ...]:
        with self._lock:
            return tuple(self._pages)

    def urls(self) -> list[str]:
        return [p.url for p in self.snapshot()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._pages)
