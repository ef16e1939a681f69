from __future__ import annotations

import logging
import math
import random
import sqlite3
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from geo.address import extract_location_keywords
from geo.heatmap import synthesize_points
from ingest.adapters.base import SourceAdapter
from ingest.fanout import AdapterOutcome, gather_settled
from normalize.items import ContentItem, to_iso, utc_now
from rank.dedupe import DEFAULT_LIMIT, merge, rank
from search.cache_gate import check_cache
from search.fallback import DEFAULT_FALLBACK_COUNT, generate_fallback_items
from store.db import Database
from store.queries import incidents_within_radius, insert_news_items, upsert_search


logger = logging.getLogger(__name__)


class InputValidationError(ValueError):
    pass


@dataclass(frozen=True)
class SearchQuery:
    latitude: float
    longitude: float
    radius_m: float
    address: str | None = None

    @property
    def location_keywords(self) -> str:
        return extract_location_keywords(self.address or "")

    def display_name(self) -> str:
        keywords = self.location_keywords
        if keywords:
            return keywords
        if self.address and self.address.strip():
            return self.address.strip()
        return f"{self.latitude:.4f}, {self.longitude:.4f}"


def _finite_number(value: object, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InputValidationError(f"{field_name} must be a number")
    if not math.isfinite(value):
        raise InputValidationError(f"{field_name} must be finite")
    return float(value)


def parse_search_request(body: object) -> SearchQuery:
    if not isinstance(body, dict):
        raise InputValidationError("Request body must be a JSON object")

    location = body.get("searchLocation")
    if not isinstance(location, dict):
        raise InputValidationError("searchLocation with latitude and longitude is required")

    latitude = _finite_number(location.get("latitude"), "searchLocation.latitude")
    longitude = _finite_number(location.get("longitude"), "searchLocation.longitude")
    if not -90.0 <= latitude <= 90.0:
        raise InputValidationError("searchLocation.latitude must be between -90 and 90")
    if not -180.0 <= longitude <= 180.0:
        raise InputValidationError("searchLocation.longitude must be between -180 and 180")

    radius = _finite_number(body.get("searchRadius"), "searchRadius")
    if radius <= 0:
        raise InputValidationError("searchRadius must be greater than 0")

    address = location.get("address")
    if address is not None and not isinstance(address, str):
        raise InputValidationError("searchLocation.address must be a string")

    return SearchQuery(
        latitude=latitude,
        longitude=longitude,
        radius_m=radius,
        address=(address.strip() or None) if address else None,
    )


class SearchOrchestrator:
    """One search request end to end: record, cache, fan out, rank, persist."""

    def __init__(
        self,
        db: Database,
        primary: Sequence[SourceAdapter],
        last_resort: Sequence[SourceAdapter] = (),
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utc_now,
        max_results: int = DEFAULT_LIMIT,
        fallback_count: int = DEFAULT_FALLBACK_COUNT,
    ) -> None:
        self._db = db
        self._primary = list(primary)
        self._last_resort = list(last_resort)
        self._rng = rng or random.Random()
        self._clock = clock
        self._max_results = max_results
        self._fallback_count = fallback_count

    async def search(self, query: SearchQuery) -> dict:
        now = self._clock()
        now_iso = to_iso(now)

        search_id: str | None = None
        search_count = 0
        try:
            search_id, search_count = upsert_search(
                self._db,
                latitude=query.latitude,
                longitude=query.longitude,
                radius_m=query.radius_m,
                address=query.address,
                now_iso=now_iso,
            )
        except sqlite3.Error:
            logger.exception("failed to record search")

        hit = check_cache(
            self._db,
            latitude=query.latitude,
            longitude=query.longitude,
            radius_m=query.radius_m,
            now=now,
        )
        if hit is not None:
            items = rank(hit.search.items, self._max_results)
            logger.info(
                "cache hit %s at %.0f m, %.1f h old",
                hit.search.search_id,
                hit.distance_m,
                hit.age_hours,
            )
            response = self._respond(
                query,
                search_id=search_id,
                items=items,
                data_source="cache",
                stats={
                    "totalSources": 0,
                    "articlesFound": len(items),
                    "realDataSources": 0,
                    "searchCount": search_count,
                    "cachedSearchId": hit.search.search_id,
                },
            )
            response["cached"] = True
            response["cacheAge"] = hit.age_hours
            return response

        keywords = query.location_keywords
        outcomes = await gather_settled(self._primary, keywords)

        used_last_resort = False
        if not any(o.items for o in outcomes) and self._last_resort:
            used_last_resort = True
            logger.info("no primary content for %r; running last-resort generators", keywords)
            outcomes.extend(await gather_settled(self._last_resort, keywords))

        items = merge([o.items for o in outcomes], self._max_results)

        used_fallback = False
        if not items:
            used_fallback = True
            items = generate_fallback_items(query.display_name(), self._fallback_count, now=now)

        if search_id is not None:
            try:
                insert_news_items(self._db, search_id, items, fetched_at=now_iso)
            except sqlite3.Error:
                logger.exception("failed to persist %d items for search %s", len(items), search_id)

        data_source = "real" if any(not item.synthetic for item in items) else "fallback"
        return self._respond(
            query,
            search_id=search_id,
            items=items,
            data_source=data_source,
            stats=self._stats(
                outcomes,
                items,
                search_count=search_count,
                used_last_resort=used_last_resort,
                used_fallback=used_fallback,
            ),
        )

    def _incidents(self, query: SearchQuery) -> list[dict]:
        try:
            return incidents_within_radius(
                self._db,
                latitude=query.latitude,
                longitude=query.longitude,
                radius_m=query.radius_m,
            )
        except sqlite3.Error:
            logger.exception("incident lookup failed")
            return []

    def _respond(
        self,
        query: SearchQuery,
        *,
        search_id: str | None,
        items: list[ContentItem],
        data_source: str,
        stats: dict,
    ) -> dict:
        points = synthesize_points(
            incidents=self._incidents(query),
            items=items,
            center_lat=query.latitude,
            center_lon=query.longitude,
            radius_m=query.radius_m,
            rng=self._rng,
        )
        return {
            "success": True,
            "news": [item.to_dict() for item in items],
            "searchId": search_id,
            "cached": False,
            "points": [p.to_dict() for p in points],
            "dataSource": data_source,
            "stats": stats,
        }

    def _stats(
        self,
        outcomes: list[AdapterOutcome],
        items: list[ContentItem],
        *,
        search_count: int,
        used_last_resort: bool,
        used_fallback: bool,
    ) -> dict:
        return {
            "totalSources": len(outcomes),
            "articlesFound": len(items),
            "realDataSources": sum(
                1 for o in outcomes if any(not i.synthetic for i in o.items)
            ),
            "sources": {o.name: len(o.items) for o in outcomes},
            "failedSources": [o.name for o in outcomes if not o.ok],
            "lastResortUsed": used_last_resort,
            "fallbackUsed": used_fallback,
            "searchCount": search_count,
        }
