from __future__ import annotations
import os
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Union

from . import __version__

BlacklistEntry = Union[str, re.Pattern]


class ConfigurationError(ValueError):
    """Raised at setup time when a crawl cannot start (bad seed, bad limits)."""


class FollowLinks(Enum):
    """Which discovered links the crawler may follow."""
    ALL = "all"
    HOSTNAME = "hostname"      # exact host of the seed
    SUBDOMAINS = "subdomains"  # seed host and anything below it
    SAMEDOMAIN = "samedomain"  # same registrable domain (eTLD+1)
    NONE = "none"              # the seed only

    @classmethod
    def parse(cls, name: str) -> "FollowLinks":
        key = (name or "").strip().lower().replace("-", "").replace("_", "")
        for member in cls:
            if member.value == key:
                return member
        raise ConfigurationError(f"Unknown follow scope: {name!r}")


def _default_concurrency() -> int:
    return (os.cpu_count() or 1) * 4


DEFAULT_USER_AGENT = f"spider/{__version__}"


@dataclass(frozen=True)
class Configuration:
    respect_robots_txt: bool = False
    blacklist_url: tuple[BlacklistEntry, ...] = ()
    follow_links: FollowLinks = FollowLinks.HOSTNAME
    user_agent: str = DEFAULT_USER_AGENT
    delay: int = 250  # milliseconds between dispatch and fetch, per URL
    concurrency: int = _default_concurrency()
    timeout: float = 15.0  # seconds, per request
    retry_attempts: int = 1  # 1 = no retry
    retry_backoff_base: float = 0.75  # seconds initial backoff
    retry_statuses: tuple[int, ...] = (429, 500, 502, 503, 504)
    browser_headers: bool = False  # if True, add common browser Accept / Accept-Language headers
    retain_bodies: bool = True  # False keeps URL-only page records
    crawl_timeout: float | None = None  # whole-crawl deadline in seconds

    def __post_init__(self) -> None:
        if isinstance(self.concurrency, bool) or not isinstance(self.concurrency, int) or self.concurrency < 1:
            raise ConfigurationError(f"concurrency must be an integer >= 1, got {self.concurrency!r}")
        if self.delay < 0:
            raise ConfigurationError(f"delay must be >= 0 ms, got {self.delay!r}")
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be > 0, got {self.timeout!r}")
        if self.retry_attempts < 1:
            raise ConfigurationError(f"retry_attempts must be >= 1, got {self.retry_attempts!r}")
        if self.crawl_timeout is not None and self.crawl_timeout <= 0:
            raise ConfigurationError(f"crawl_timeout must be > 0 when set, got {self.crawl_timeout!r}")
        if not isinstance(self.follow_links, FollowLinks):
            object.__setattr__(self, "follow_links", FollowLinks.parse(str(self.follow_links)))
        # lists are accepted for convenience, stored as a tuple
        if not isinstance(self.blacklist_url, tuple):
            object.__setattr__(self, "blacklist_url", tuple(self.blacklist_url))

    @property
    def delay_seconds(self) -> float:
        return self.delay / 1000.0

    def with_delay(self, delay_ms: int) -> "Configuration":
        """Copy with a new delay; used once, before the first round, for robots.txt Crawl-delay."""
        return replace(self, delay=int(delay_ms))

    def blacklist_patterns(self) -> tuple[re.Pattern, ...]:
        return tuple(e for e in self.blacklist_url if isinstance(e, re.Pattern))
