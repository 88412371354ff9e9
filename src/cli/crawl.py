from __future__ import annotations
import argparse
import json
import logging
import re
import sys
import threading
from pathlib import Path
import pathlib
# Ensure src root is on path if running as a script (python src/cli/crawl.py ...)
_root = pathlib.Path(__file__).resolve().parents[1]
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from spider.configuration import Configuration, ConfigurationError, FollowLinks
from spider.iojsonl import dump_jsonl, page_records, write_jsonl
from spider.website import Website


def _blacklist(values: list[str] | None, patterns: list[str] | None) -> tuple:
    entries: list = list(values or [])
    for p in patterns or []:
        entries.append(re.compile(p))
    return tuple(entries)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Breadth-first polite site crawler")
    ap.add_argument("--url", required=True, help="Seed URL (starting point)")
    ap.add_argument("--concurrency", type=int, default=None, help="Simultaneous fetches (default: 4 x CPU count)")
    ap.add_argument("--delay", type=int, default=250, help="Polite delay before each fetch, in milliseconds")
    ap.add_argument("--userAgent", default=None, help="Override User-Agent string (default from Configuration)")
    ap.add_argument("--respectRobots", action="store_true", help="Honour robots.txt Disallow rules and Crawl-delay")
    ap.add_argument("--follow", default="hostname", choices=[m.value for m in FollowLinks], help="Which links to follow")
    ap.add_argument("--blacklist", action="append", help="Exact URL never to crawl (repeatable)")
    ap.add_argument("--blacklistRegex", action="append", help="Regex; matching URLs are never crawled (repeatable)")
    ap.add_argument("--timeout", type=float, default=15.0, help="Per request timeout in seconds")
    ap.add_argument("--retries", type=int, default=1, help="Attempts per URL on 429/5xx or network errors")
    ap.add_argument("--deadline", type=float, default=None, help="Stop the whole crawl after this many seconds")
    ap.add_argument("--browserHeaders", action="store_true", help="Send common browser Accept / Accept-Language headers")
    ap.add_argument("--sequential", action="store_true", help="Fetch one URL at a time on the main thread")
    ap.add_argument("--noBodies", action="store_true", help="Write URL-only records (no HTML)")
    ap.add_argument("--out", default="-", help="Output JSONL file path, or '-' for stdout")
    ap.add_argument("--stats", action="store_true", help="Print crawl stats JSON to stderr at end")
    ap.add_argument("--verbose", action="store_true", help="Print per-page / event decisions to stderr")
    ap.add_argument("--logEvents", help="Write JSONL event log to this file")
    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    event_fp = None
    if args.logEvents:
        event_log_file = Path(args.logEvents)
        event_log_file.parent.mkdir(parents=True, exist_ok=True)
        event_fp = event_log_file.open('w', encoding='utf-8')

    event_lock = threading.Lock()

    def event_cb(ev):  # closure writes to stderr / file; called from worker threads
        line = json.dumps(ev, ensure_ascii=False)
        with event_lock:
            if args.verbose:
                sys.stderr.write(line + "\n")
            if event_fp:
                event_fp.write(line + "\n")

    overrides = {}
    if args.concurrency is not None:
        overrides["concurrency"] = args.concurrency
    if args.userAgent:
        overrides["user_agent"] = args.userAgent
    try:
        cfg = Configuration(
            respect_robots_txt=args.respectRobots,
            blacklist_url=_blacklist(args.blacklist, args.blacklistRegex),
            follow_links=FollowLinks.parse(args.follow),
            delay=args.delay,
            timeout=args.timeout,
            retry_attempts=args.retries,
            crawl_timeout=args.deadline,
            browser_headers=args.browserHeaders,
            retain_bodies=not args.noBodies,
            **overrides,
        )
        site = Website(args.url, cfg, event_cb=event_cb if (args.verbose or event_fp) else None)
    except (ConfigurationError, re.error) as e:
        sys.stderr.write(f"error: {e}\n")
        if event_fp:
            event_fp.close()
        return 2

    try:
        if args.sequential:
            site.crawl_sequential()
        else:
            site.crawl()
    finally:
        if event_fp:
            event_fp.close()

    records = page_records(site.get_pages(), include_html=not args.noBodies)
    if args.out == "-":
        dump_jsonl(records, sys.stdout)
    else:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        write_jsonl(records, str(out_path))
    if args.stats:
        sys.stderr.write(json.dumps(site.stats) + "\n")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
