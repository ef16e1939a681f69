from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from urllib.parse import quote

import httpx

from ingest.feed_packs import FeedSource
from ingest.fetch import FEED_ACCEPT, fetch
from ingest.parsers.feed import parse_feed
from normalize.items import ContentItem, utc_now
from rank.dedupe import DEFAULT_LIMIT, dedupe, rank
from rank.relevance import (
    FLOOD_TERMS,
    TermGroup,
    combined_score,
    score_flood_topic,
    score_location,
)


logger = logging.getLogger(__name__)

FEED_SCORE_CEILING = 15.0
FEED_SCORE_THRESHOLD = 2.0
PRIMARY_MIN_PRIORITY = 8
SECONDARY_MIN_PRIORITY = 6
SECONDARY_TRIGGER = 10
SNIPPET_LENGTH = 200

CONTENT_TYPES = {
    "government": "government_info",
    "weather": "weather_data",
    "national": "national_news",
    "local": "local_news",
}


def render_feed_url(source: FeedSource, location_keywords: str) -> str:
    if "{query}" not in source.url:
        return source.url
    template = source.query or "{location}"
    query = " ".join(template.format(location=location_keywords).split())
    return source.url.replace("{query}", quote(query))


class FeedAdapter:
    """Syndication feeds (RSS/Atom) in two priority tiers."""

    name = "feeds"

    def __init__(
        self,
        client: httpx.AsyncClient,
        sources: Sequence[FeedSource],
        *,
        user_agent: str,
        timeout_s: float = 15.0,
        terms: Sequence[TermGroup] = FLOOD_TERMS,
        limit: int = DEFAULT_LIMIT,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._client = client
        self._sources = [s for s in sources if s.enabled]
        self._user_agent = user_agent
        self._timeout_s = timeout_s
        self._terms = terms
        self._limit = limit
        self._clock = clock

    async def fetch(self, location_keywords: str) -> list[ContentItem]:
        primary = [s for s in self._sources if s.priority >= PRIMARY_MIN_PRIORITY]
        items = await self._fetch_tier(primary, location_keywords)

        if len(items) < SECONDARY_TRIGGER:
            secondary = [
                s
                for s in self._sources
                if SECONDARY_MIN_PRIORITY <= s.priority < PRIMARY_MIN_PRIORITY
            ]
            items.extend(await self._fetch_tier(secondary, location_keywords))

        return rank(dedupe(items), self._limit)

    async def _fetch_tier(
        self, sources: list[FeedSource], location_keywords: str
    ) -> list[ContentItem]:
        if not sources:
            return []
        results = await asyncio.gather(
            *(self._fetch_source(s, location_keywords) for s in sources),
            return_exceptions=True,
        )
        items: list[ContentItem] = []
        for source, result in zip(sources, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.error(
                    "feed %s failed: %s: %s",
                    source.source_id,
                    result.__class__.__name__,
                    result,
                )
                continue
            items.extend(result)
        return items

    async def _fetch_source(
        self, source: FeedSource, location_keywords: str
    ) -> list[ContentItem]:
        url = render_feed_url(source, location_keywords)
        try:
            status, body, elapsed_ms = await fetch(
                self._client,
                url=url,
                user_agent=self._user_agent,
                timeout_s=self._timeout_s,
                accept=FEED_ACCEPT,
            )
        except (httpx.TimeoutException, TimeoutError):
            logger.warning("feed %s timed out", source.source_id)
            return []
        except httpx.RequestError as e:
            logger.warning("feed %s request error: %s", source.source_id, e.__class__.__name__)
            return []

        if status != 200 or body is None:
            logger.warning("feed %s returned http %s", source.source_id, status)
            return []

        records = parse_feed(body, now=self._clock())
        items: list[ContentItem] = []
        for record in records:
            item = self._score(source, record, location_keywords)
            if item is not None:
                items.append(item)
        logger.debug(
            "feed %s: %d/%d relevant in %d ms",
            source.source_id,
            len(items),
            len(records),
            elapsed_ms,
        )
        return items

    def _score(
        self, source: FeedSource, record: dict, location_keywords: str
    ) -> ContentItem | None:
        title = record["title"]
        summary = record["summary"]
        location = score_location(title, summary, location_keywords)
        flood = score_flood_topic(title, summary, self._terms)
        score = min(
            combined_score(location, flood, source.category, source.priority),
            FEED_SCORE_CEILING,
        )
        if score <= FEED_SCORE_THRESHOLD:
            return None
        return ContentItem(
            title=title,
            url=record["link"],
            snippet=summary[:SNIPPET_LENGTH],
            source_name=source.name,
            publish_date=record["published"],
            content_type=CONTENT_TYPES.get(source.category, "news"),
            relevance_score=score,
            data_source="rss_feed",
        )
