"""Breadth-first crawl engine.

A crawl runs in rounds. Each round takes the whole frontier, admits URLs
(marking them visited before they are fetched), fetches and extracts links
for every admitted URL, waits for all of them, then replaces the frontier
with the newly discovered URLs that were not visited yet. The crawl is done
when a round leaves the frontier empty.

Worker threads never touch the frontier or visited sets: they hand
``(Page, links)`` pairs back through their futures and the engine thread
does every merge.
"""
from __future__ import annotations
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeout
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Set, Tuple

import requests

from .admission import rejection_reason
from .configuration import Configuration, ConfigurationError
from .fetch import EventCallback, build_session, make_fetcher
from .frontier import Frontier
from .links import extract_links
from .page import Page, PageStore
from .robots import RobotsPolicy, robots_url_for
from .urlnorm import canonical_url, is_crawlable

log = logging.getLogger(__name__)

Fetcher = Callable[[str], str]
LinkExtractor = Callable[[str, str], Iterable[str]]
LinkCallback = Callable[[str], str]
Visit = Tuple[Page, Set[str]]


def _identity(url: str) -> str:
    return url


class Website:
    """Crawler for the site reachable from one seed URL.

    ```python
    site = Website("https://example.com", Configuration(respect_robots_txt=True))
    site.crawl()
    for page in site.get_pages():
        ...
    ```

    ``fetcher``, ``link_extractor`` and ``robots`` replace the default
    requests/BeautifulSoup/robots.txt collaborators. ``on_link_found`` may
    rewrite each admitted URL right before it is fetched; it runs on worker
    threads. ``event_cb`` receives crawl decisions as dicts, also from
    worker threads.
    """

    def __init__(
        self,
        url: str,
        configuration: Configuration | None = None,
        *,
        fetcher: Fetcher | None = None,
        link_extractor: LinkExtractor | None = None,
        robots: RobotsPolicy | None = None,
        on_link_found: LinkCallback | None = None,
        event_cb: EventCallback | None = None,
    ):
        if not isinstance(url, str) or not is_crawlable(url.strip()):
            raise ConfigurationError(f"Invalid start URL: {url!r}")
        if configuration is not None and not isinstance(configuration, Configuration):
            raise ConfigurationError(f"configuration must be a Configuration, got {type(configuration).__name__}")
        self.domain = canonical_url(url.strip())
        self.configuration = configuration or Configuration()
        self.on_link_found: LinkCallback = on_link_found or _identity
        self.event_cb = event_cb
        self._fetcher = fetcher
        self._extract: LinkExtractor = link_extractor or extract_links
        self._robots = robots
        self._session: requests.Session | None = None
        self._robots_configured = False
        self._setup_done = False
        self._cancelled = False
        self._examined: Set[str] = set()
        self._inflight: Dict[Future, str] = {}
        self._frontier = Frontier()
        self._frontier.seed(self.domain)
        self._pages = PageStore()
        self.rounds = 0
        self.stats: Dict[str, int] = {
            'rounds': 0,
            'dispatched': 0,
            'fetched_ok': 0,
            'empty_pages': 0,  # failed fetches and empty bodies alike
            'skipped_visited': 0,
            'skipped_blacklist': 0,
            'skipped_robots': 0,
            'skipped_scope': 0,
        }

    # -- setup -----------------------------------------------------------------

    @property
    def robots(self) -> RobotsPolicy:
        if self._robots is None:
            self._robots = RobotsPolicy(
                robots_url_for(self.domain),
                self.configuration.user_agent,
                session=self.configure_http_client(),
                timeout=self.configuration.timeout,
            )
        return self._robots

    def configure_robots_parser(self) -> None:
        """Read robots.txt once and let its Crawl-delay override the configured delay."""
        if not self.configuration.respect_robots_txt or self._robots_configured:
            return
        self._robots_configured = True
        delay = self.robots.crawl_delay()
        if delay is not None:
            self.configuration = self.configuration.with_delay(int(delay * 1000))
            log.info("robots.txt Crawl-delay for %s: %d ms", self.domain, self.configuration.delay)
            self._emit({"type": "crawl_delay", "url": self.domain, "delay_ms": self.configuration.delay})

    def configure_http_client(self) -> requests.Session:
        if self._session is None:
            self._session = build_session(self.configuration)
        return self._session

    def setup(self) -> None:
        """Resolve robots policy, HTTP client and fetcher. Safe to call more than once."""
        if self._setup_done:
            return
        session = self.configure_http_client()
        self.configure_robots_parser()
        if self._fetcher is None:
            self._fetcher = make_fetcher(session, self.configuration, self.event_cb)
        self._setup_done = True

    # -- admission -------------------------------------------------------------

    def _rejection(self, url: str) -> Optional[str]:
        return rejection_reason(
            url,
            seed_url=self.domain,
            visited=self._frontier.visited_view,
            configuration=self.configuration,
            robots=self.robots if self.configuration.respect_robots_txt else None,
        )

    def is_allowed(self, url: str) -> bool:
        """True if ``url`` is not crawled yet, not blacklisted, allowed by robots.txt and in scope."""
        if is_crawlable(url):
            url = canonical_url(url)
        return self._rejection(url) is None

    def _admit(self, url: str) -> bool:
        self._examined.add(url)
        reason = self._rejection(url)
        if reason is not None:
            self.stats['skipped_' + reason] += 1
            self._emit({"type": "skip", "reason": reason, "url": url})
            return False
        self._frontier.mark_visited(url)
        self.stats['dispatched'] += 1
        log.debug("fetch %s", url)
        self._emit({"type": "fetch", "url": url})
        return True

    # -- one URL ---------------------------------------------------------------

    def _visit(self, url: str, delay: float) -> Visit:
        """Fetch one admitted URL and extract its links. Never raises.

        The page is recorded under the admitted URL even when
        ``on_link_found`` rewrote the fetch target; links resolve against
        the target.
        """
        if delay > 0:
            time.sleep(delay)
        try:
            target = self.on_link_found(url)
        except Exception as e:
            log.warning("on_link_found failed for %s: %r", url, e)
            target = url
        try:
            html = self._fetcher(target) or ""
        except Exception as e:
            log.warning("fetch of %s raised %r; recording empty page", target, e)
            html = ""
        links: Set[str] = set()
        if html:
            try:
                links = set(self._extract(html, target))
            except Exception as e:
                log.warning("link extraction failed for %s: %r", target, e)
        return Page(url=url, html=html), links

    # -- rounds ----------------------------------------------------------------

    def _dispatch_sequential(self, batch: Iterable[str], delay: float, deadline: float | None) -> Iterator[Visit]:
        for url in batch:
            if deadline is not None and time.monotonic() >= deadline:
                self._cancel("deadline reached mid-round")
                return
            if self._admit(url):
                yield self._visit(url, delay)

    def _dispatch_concurrent(
        self,
        executor: ThreadPoolExecutor,
        batch: Iterable[str],
        delay: float,
        deadline: float | None,
    ) -> Iterator[Visit]:
        for url in batch:
            if self._admit(url):
                self._inflight[executor.submit(self._visit, url, delay)] = url
        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        try:
            for fut in as_completed(list(self._inflight), timeout=remaining):
                yield self._result_of(fut, self._inflight.pop(fut))
        except FuturesTimeout:
            self._cancel("deadline reached mid-round")

    def _result_of(self, fut: Future, url: str) -> Visit:
        err = fut.exception()
        if err is not None:
            log.error("worker for %s failed: %r", url, err)
            return Page(url=url, html=""), set()
        return fut.result()

    def _drain_inflight(self, wait: bool) -> Tuple[list[Visit], Set[str]]:
        """Settle the futures of an interrupted round.

        Futures that never started are cancelled and their URLs released from
        Visited; those URLs are returned for the next frontier. Finished
        futures are collected. Running ones are waited for, or left visited
        without a record when ``wait`` is False.
        """
        collected: list[Visit] = []
        released: Set[str] = set()
        for fut, url in self._inflight.items():
            if fut.cancel():
                self._frontier.release(url)
                self.stats['dispatched'] -= 1
                released.add(url)
            elif wait or fut.done():
                collected.append(self._result_of(fut, url))
        self._inflight = {}
        return collected, released

    def _cancel(self, why: str) -> None:
        if not self._cancelled:
            self._cancelled = True
            log.warning("crawl of %s stopped: %s", self.domain, why)
            self._emit({"type": "cancelled", "url": self.domain, "reason": why})

    def _collect(self, page: Page, links: Set[str], pages: list[Page], discovered: Set[str]) -> None:
        pages.append(page)
        discovered |= links
        if page.html:
            self.stats['fetched_ok'] += 1
        else:
            self.stats['empty_pages'] += 1

    def _merge(self, pages: list[Page], discovered: Set[str]) -> None:
        nxt = self._frontier.merge_round(discovered)
        if self.configuration.retain_bodies:
            self._pages.extend(pages)
        self.rounds += 1
        self.stats['rounds'] = self.rounds
        log.info("round %d: %d pages, %d links, %d queued", self.rounds, len(pages), len(discovered), len(nxt))
        self._emit({"type": "round", "round": self.rounds, "pages": len(pages), "discovered": len(discovered), "next": len(nxt)})

    def stream(self, sequential: bool = False) -> Iterator[Page]:
        """Yield pages as they complete.

        Frontier merges still happen only once a whole round is collected, so
        the level order is the same as ``crawl()``. Closing the generator early
        merges what the current round has produced so far.
        """
        self.setup()
        config = self.configuration
        delay = config.delay_seconds
        deadline = None if config.crawl_timeout is None else time.monotonic() + config.crawl_timeout
        executor = None
        if not sequential:
            executor = ThreadPoolExecutor(max_workers=config.concurrency, thread_name_prefix="spider")
        try:
            while not self._cancelled and not self._frontier.is_done:
                if deadline is not None and time.monotonic() >= deadline:
                    self._cancel("deadline reached")
                    break
                batch = self._frontier.take_round()
                if executor is None:
                    results = self._dispatch_sequential(batch, delay, deadline)
                else:
                    results = self._dispatch_concurrent(executor, batch, delay, deadline)
                pages: list[Page] = []
                discovered: Set[str] = set()
                self._examined = set()
                completed = False
                try:
                    for page, links in results:
                        self._collect(page, links, pages, discovered)
                        yield page
                    completed = not self._cancelled
                finally:
                    carry: Set[str] = set()
                    if not completed:
                        # interrupted round: keep arrived results, requeue what never ran
                        settled, released = self._drain_inflight(wait=not self._cancelled)
                        for page, links in settled:
                            self._collect(page, links, pages, discovered)
                        carry = (set(batch) - self._examined) | released
                    self._merge(pages, discovered | carry)
        finally:
            if executor is not None:
                executor.shutdown(wait=not self._cancelled, cancel_futures=True)

    def crawl(self) -> None:
        """Crawl with up to ``configuration.concurrency`` fetches in flight."""
        for _ in self.stream():
            pass

    def crawl_sequential(self) -> None:
        """Crawl one URL at a time on the calling thread."""
        for _ in self.stream(sequential=True):
            pass

    crawl_sync = crawl_sequential

    # -- results ---------------------------------------------------------------

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def visited(self) -> frozenset[str]:
        return self._frontier.visited

    def get_links(self) -> frozenset[str]:
        return self._frontier.visited

    def get_pages(self) -> tuple[Page, ...]:
        """Pages in completion order; URL-only pages from Visited when bodies are not retained."""
        if self.configuration.retain_bodies:
            return self._pages.snapshot()
        return tuple(Page.build(u, None) for u in sorted(self._frontier.visited))

    def _emit(self, ev: Dict[str, Any]) -> None:
        if self.event_cb:
            self.event_cb(ev)
