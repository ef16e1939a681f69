from __future__ import annotations

import re
from collections.abc import Iterable
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from normalize.items import ContentItem


DEFAULT_LIMIT = 25
TITLE_KEY_LENGTH = 20

_TITLE_WHITESPACE_RE = re.compile(r"\s+")

_TRACKING_PARAM_NAMES = {
    "fbclid",
    "gclid",
    "mc_cid",
    "mc_eid",
    "mkt_tok",
    "ocid",
}


def canonicalize_url(url: str) -> str:
    parts = urlsplit(url.strip())
    kept_params: list[tuple[str, str]] = []
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        key_lower = key.casefold()
        if key_lower.startswith("utm_"):
            continue
        if key_lower in _TRACKING_PARAM_NAMES:
            continue
        kept_params.append((key, value))

    return urlunsplit(
        (
            parts.scheme,
            parts.netloc,
            parts.path,
            urlencode(kept_params, doseq=True),
            "",
        )
    ).casefold()


def title_key(title: str) -> str:
    return _TITLE_WHITESPACE_RE.sub("", title.casefold())[:TITLE_KEY_LENGTH]


def dedupe_key(item: ContentItem) -> tuple[str, str]:
    return canonicalize_url(item.url), title_key(item.title)


def rank(
    items: Iterable[ContentItem], limit: int | None = DEFAULT_LIMIT
) -> list[ContentItem]:
    ordered = sorted(items, key=lambda i: i.relevance_score, reverse=True)
    return ordered if limit is None else ordered[:limit]


def dedupe(items: Iterable[ContentItem]) -> list[ContentItem]:
    seen: set[tuple[str, str]] = set()
    unique: list[ContentItem] = []
    for item in rank(items, limit=None):
        key = dedupe_key(item)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def merge(
    groups: Iterable[Iterable[ContentItem]], limit: int | None = DEFAULT_LIMIT
) -> list[ContentItem]:
    flat = [item for group in groups for item in group]
    return rank(dedupe(flat), limit=limit)
