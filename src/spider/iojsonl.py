from __future__ import annotations
import json
from typing import IO, Iterable, Mapping

from .page import Page


def write_jsonl(records_iterable: Iterable[Mapping], out_path: str) -> int:
    """Write an iterable of mapping records to a UTF-8 JSONL file. Returns the count written."""
    with open(out_path, "w", encoding="utf-8") as f:
        return dump_jsonl(records_iterable, f)


def dump_jsonl(records_iterable: Iterable[Mapping], fp: IO[str]) -> int:
    n = 0
    for rec in records_iterable:
        fp.write(json.dumps(rec, ensure_ascii=False) + "\n")
        n += 1
    return n


def page_records(pages: Iterable[Page], include_html: bool = True) -> Iterable[dict]:
    for p in pages:
        rec = p.to_record()
        if not include_html:
            rec.pop("html", None)
        yield rec
