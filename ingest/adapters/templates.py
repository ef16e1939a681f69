from __future__ import annotations

import random
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from ingest.feed_packs import PlatformConfig
from normalize.items import ContentItem, to_iso, utc_now
from rank.relevance import FLOOD_TERMS, TermGroup, score_flood_topic, score_location


TEMPLATE_SCORE_CEILING = 10.0
HEADLINE_LENGTH = 30


def _headline(content: str) -> str:
    if len(content) <= HEADLINE_LENGTH:
        return content
    return content[:HEADLINE_LENGTH].rstrip() + "..."


class TemplateContentGenerator:
    """Synthetic social posts for one platform, used only as a last resort.

    Nothing here touches the network; every item is tagged ``synthetic``.
    """

    def __init__(
        self,
        config: PlatformConfig,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utc_now,
        terms: Sequence[TermGroup] = FLOOD_TERMS,
    ) -> None:
        self.config = config
        self.name = f"templates_{config.platform}"
        self._rng = rng or random.Random()
        self._clock = clock
        self._terms = terms

    def local_channel(self, location_keywords: str) -> str | None:
        location = location_keywords.replace("臺", "台")
        for city, channel in self.config.channels.items():
            if city in location:
                return channel
        return None

    async def fetch(self, location_keywords: str) -> list[ContentItem]:
        return self.generate(location_keywords)

    def generate(self, location_keywords: str) -> list[ContentItem]:
        location = location_keywords.strip()
        if not location:
            return []

        cfg = self.config
        rng = self._rng
        now = self._clock()
        local = self.local_channel(location)

        items: list[ContentItem] = []
        for template in cfg.templates:
            if template.local_only and local is None:
                continue
            if rng.random() >= template.probability:
                continue

            channel = template.channel or local or cfg.default_channel
            content = template.content.format(location=location, channel=channel)
            title = (
                template.title.format(location=location, channel=channel)
                if template.title
                else _headline(content)
            )

            location_score = score_location(title, content, location)
            flood_score = score_flood_topic(title, content, self._terms)
            if location_score <= 0 and flood_score <= 0:
                continue

            author = rng.choice(cfg.authors) if cfg.authors else cfg.source_name
            url = cfg.url_template.format(
                channel=channel,
                post_id=rng.randrange(10**9, 10**10),
                author=author,
            )
            published = now - timedelta(hours=rng.uniform(0, cfg.recency_hours))
            items.append(
                ContentItem(
                    title=title,
                    url=url,
                    snippet=content,
                    source_name=cfg.source_name,
                    publish_date=to_iso(published),
                    content_type=cfg.content_type,
                    relevance_score=min(location_score + flood_score, TEMPLATE_SCORE_CEILING),
                    data_source=f"synthetic_{cfg.platform}",
                    synthetic=True,
                    extra={
                        counter: rng.randint(low, high)
                        for counter, (low, high) in cfg.engagement.items()
                    },
                )
            )
        return items
