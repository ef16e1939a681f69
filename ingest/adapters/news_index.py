from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from datetime import datetime

import httpx

from ingest.fetch import JSON_ACCEPT, fetch
from ingest.parsers.json import parse_json_records
from normalize.items import ContentItem, clean_text, parse_date, utc_now
from rank.relevance import FLOOD_TERMS, MAX_FLOOD_SCORE, TermGroup, score_flood_topic


logger = logging.getLogger(__name__)

INDEX_SCORE_THRESHOLD = 3.0
MAX_RECORDS = 15
MAX_ACCEPTED = 8

_TOPIC_CLAUSE = "(淹水 OR 積水 OR 水災 OR 豪雨 OR 暴雨 OR 洪水 OR flood OR flooding)"
_COUNTRY_CLAUSE = "(Taiwan OR 台灣 OR 臺灣)"


def build_query(location_keywords: str) -> str:
    location = location_keywords.replace('"', "").strip()
    parts = [f'"{location}"'] if location else []
    parts.extend([_TOPIC_CLAUSE, _COUNTRY_CLAUSE])
    return " AND ".join(parts)


class NewsIndexAdapter:
    """GDELT DOC 2.0 article list for the last seven days."""

    name = "news_index"

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_url: str,
        user_agent: str,
        timeout_s: float = 10.0,
        terms: Sequence[TermGroup] = FLOOD_TERMS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._client = client
        self._base_url = base_url
        self._user_agent = user_agent
        self._timeout_s = timeout_s
        self._terms = terms
        self._clock = clock

    async def fetch(self, location_keywords: str) -> list[ContentItem]:
        params = {
            "query": build_query(location_keywords),
            "mode": "artlist",
            "maxrecords": str(MAX_RECORDS),
            "format": "json",
            "sort": "datedesc",
            "timespan": "7d",
        }
        try:
            status, body, _ = await fetch(
                self._client,
                url=self._base_url,
                user_agent=self._user_agent,
                timeout_s=self._timeout_s,
                accept=JSON_ACCEPT,
                params=params,
            )
        except (httpx.TimeoutException, TimeoutError):
            logger.warning("news index timed out")
            return []
        except httpx.RequestError as e:
            logger.warning("news index request error: %s", e.__class__.__name__)
            return []

        if status != 200 or body is None:
            logger.warning("news index returned http %s", status)
            return []

        # the index answers some queries with a plain-text error message
        try:
            articles = parse_json_records(body, keys=("articles",))
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.info("news index returned a non-JSON body")
            return []

        now = self._clock()
        items: list[ContentItem] = []
        for article in articles:
            if len(items) >= MAX_ACCEPTED:
                break
            title = clean_text(article.get("title"))
            url = str(article.get("url") or "").strip()
            if not title or not url:
                continue
            summary = clean_text(article.get("summary"))
            score = min(score_flood_topic(title, summary, self._terms), MAX_FLOOD_SCORE)
            if score <= INDEX_SCORE_THRESHOLD:
                continue
            seen = article.get("seendate")
            items.append(
                ContentItem(
                    title=title,
                    url=url,
                    snippet=summary[:200],
                    source_name=str(article.get("domain") or "GDELT"),
                    publish_date=parse_date(str(seen) if seen is not None else None, now=now),
                    content_type="international_news",
                    relevance_score=score,
                    data_source="gdelt",
                )
            )
        return items
