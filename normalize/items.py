from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime


_CDATA_RE = re.compile(r"<!\[CDATA\[(.*?)\]\]>", flags=re.DOTALL | re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")
_CJK_DATE_RE = re.compile(r"(\d{4})[年/-](\d{1,2})[月/-](\d{1,2})")


@dataclass(frozen=True)
class ContentItem:
    title: str
    url: str
    snippet: str
    source_name: str
    publish_date: str
    content_type: str
    relevance_score: float
    data_source: str
    synthetic: bool = False
    severity: int | None = None
    extra: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        out: dict = {
            "title": self.title,
            "url": self.url,
            "source": self.source_name,
            "content_snippet": self.snippet,
            "publish_date": self.publish_date,
            "content_type": self.content_type,
            "relevance_score": self.relevance_score,
            "data_source": self.data_source,
            "synthetic": self.synthetic,
        }
        if self.severity is not None:
            out["severity"] = self.severity
        out.update(self.extra)
        return out


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def to_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(tz=UTC).isoformat().replace("+00:00", "Z")


def parse_iso(ts: str) -> datetime:
    if ts.endswith("Z"):
        return datetime.fromisoformat(ts.removesuffix("Z") + "+00:00")
    dt = datetime.fromisoformat(ts)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def clean_text(text: str | None) -> str:
    """Strip CDATA wrappers, markup and entities, and collapse whitespace."""
    if not text:
        return ""
    cleaned = _CDATA_RE.sub(r"\1", str(text))
    cleaned = _TAG_RE.sub("", cleaned)
    cleaned = html.unescape(cleaned).replace("\xa0", " ")
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def parse_date(value: str | None, *, now: datetime | None = None) -> str:
    """Best-effort conversion of a feed date to ISO-8601 UTC.

    Accepts RFC 822 (RSS), ISO-8601 (Atom), compact GDELT stamps such as
    ``20240815T143000Z`` and CJK dates like ``2024年8月15日``. Anything else
    falls back to ``now``.
    """
    fallback = to_iso(now or utc_now())
    if not value:
        return fallback
    value = value.strip()

    try:
        return to_iso(parsedate_to_datetime(value))
    except (TypeError, ValueError, IndexError):
        pass

    try:
        return to_iso(parse_iso(value))
    except ValueError:
        pass

    try:
        return to_iso(datetime.strptime(value, "%Y%m%dT%H%M%SZ").replace(tzinfo=UTC))
    except ValueError:
        pass

    match = _CJK_DATE_RE.search(value)
    if match is not None:
        year, month, day = (int(g) for g in match.groups())
        try:
            return to_iso(datetime(year, month, day, tzinfo=UTC))
        except ValueError:
            return fallback

    return fallback
