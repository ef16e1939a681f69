from __future__ import annotations

from datetime import datetime

import feedparser

from normalize.items import clean_text, parse_date


MAX_ENTRIES = 20


def parse_feed(
    data: bytes, *, limit: int = MAX_ENTRIES, now: datetime | None = None
) -> list[dict]:
    """RSS ``item`` and Atom ``entry`` elements as plain records.

    Titles and summaries come back without markup; dates are ISO-8601 UTC and
    fall back to ``now`` when missing or unparseable. Entries without a title
    or a link are skipped.
    """
    parsed = feedparser.parse(data)
    records: list[dict] = []
    for entry in parsed.entries:
        if len(records) >= limit:
            break
        title = clean_text(entry.get("title"))
        link = str(entry.get("link") or "").strip()
        if not title or not link:
            continue

        summary = entry.get("summary") or ""
        if not summary and entry.get("content"):
            summary = entry["content"][0].get("value") or ""

        records.append(
            {
                "title": title,
                "link": link,
                "summary": clean_text(summary),
                "published": parse_date(
                    entry.get("published") or entry.get("updated"), now=now
                ),
            }
        )
    return records
