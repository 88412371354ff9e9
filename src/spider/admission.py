"""Admission filter: may a discovered URL be dispatched for fetch?

A URL is admitted only if it has not been visited, is not blacklisted, is
permitted by robots.txt (when robots are respected) and falls within the
configured follow scope of the seed. Every function here is a pure read of
its arguments and safe to call from several threads at once.
"""
from __future__ import annotations
import re
from typing import Container, Iterable, Optional, Protocol

from .configuration import BlacklistEntry, Configuration, FollowLinks
from .urlnorm import canonical_url, host_of, registrable_domain

REJECT_VISITED = "visited"
REJECT_BLACKLIST = "blacklist"
REJECT_ROBOTS = "robots"
REJECT_SCOPE = "scope"


class RobotsLike(Protocol):
    def can_fetch(self, url: str) -> bool: ...


def matches_blacklist(url: str, blacklist: Iterable[BlacklistEntry]) -> bool:
    """Exact (canonical) URL match for strings, ``search`` for compiled regexes."""
    canon = None
    for entry in blacklist:
        if isinstance(entry, re.Pattern):
            if entry.search(url):
                return True
            continue
        if canon is None:
            canon = canonical_url(url)
        if url == entry or canon == canonical_url(entry):
            return True
    return False


def in_follow_scope(seed_url: str, url: str, follow_links: FollowLinks) -> bool:
    if follow_links is FollowLinks.ALL:
        return True
    if follow_links is FollowLinks.NONE:
        # nothing past the seed; the seed itself stays fetchable
        return canonical_url(url) == canonical_url(seed_url)
    host = host_of(url)
    root = host_of(seed_url)
    if not host or not root:
        return False
    if follow_links is FollowLinks.HOSTNAME:
        return host == root
    if follow_links is FollowLinks.SUBDOMAINS:
        return host == root or host.endswith("." + root)
    if follow_links is FollowLinks.SAMEDOMAIN:
        return registrable_domain(host) == registrable_domain(root)
    return False


def rejection_reason(
    url: str,
    *,
    seed_url: str,
    visited: Container[str],
    configuration: Configuration,
    robots: Optional[RobotsLike] = None,
) -> Optional[str]:
    """First failed admission check for ``url``, or None when it is admitted."""
    if url in visited:
        return REJECT_VISITED
    if configuration.blacklist_url and matches_blacklist(url, configuration.blacklist_url):
        return REJECT_BLACKLIST
    if configuration.respect_robots_txt and robots is not None and not robots.can_fetch(url):
        return REJECT_ROBOTS
    if not in_follow_scope(seed_url, url, configuration.follow_links):
        return REJECT_SCOPE
    return None


def is_allowed(
    url: str,
    *,
    seed_url: str,
    visited: Container[str],
    configuration: Configuration,
    robots: Optional[RobotsLike] = None,
) -> bool:
    return rejection_reason(
        url, seed_url=seed_url, visited=visited, configuration=configuration, robots=robots,
    ) is None
