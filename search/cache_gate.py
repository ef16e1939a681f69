from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from geo.distance import haversine_m
from normalize.items import parse_iso, to_iso
from store.db import Database
from store.queries import StoredSearch, recent_searches_with_news


logger = logging.getLogger(__name__)

MAX_DISTANCE_M = 500.0
MAX_RADIUS_DELTA = 0.5
MAX_AGE = timedelta(hours=3)
MIN_ITEMS = 3
LOOKBACK = timedelta(hours=6)


@dataclass(frozen=True)
class CacheHit:
    search: StoredSearch
    distance_m: float
    age: timedelta

    @property
    def age_hours(self) -> float:
        return round(self.age.total_seconds() / 3600, 1)


def is_radius_similar(candidate_radius_m: float, query_radius_m: float) -> bool:
    if query_radius_m <= 0:
        return False
    return abs(candidate_radius_m - query_radius_m) / query_radius_m <= MAX_RADIUS_DELTA


def is_cache_valid(
    *,
    distance_m: float,
    candidate_radius_m: float,
    query_radius_m: float,
    age: timedelta,
    item_count: int,
) -> bool:
    """All bounds are inclusive."""
    return (
        distance_m <= MAX_DISTANCE_M
        and is_radius_similar(candidate_radius_m, query_radius_m)
        and age <= MAX_AGE
        and item_count >= MIN_ITEMS
    )


def find_cache_hit(
    candidates: Iterable[StoredSearch],
    *,
    latitude: float,
    longitude: float,
    radius_m: float,
    now: datetime,
) -> CacheHit | None:
    """Nearest candidate that satisfies every bound, if any.

    Age counts from the newest stored batch, not from the record's
    ``updated_at``, so repeat searches do not keep stale content alive.
    """
    measured = sorted(
        (
            (haversine_m(latitude, longitude, c.latitude, c.longitude), c)
            for c in candidates
            if c.newest_fetched_at is not None
        ),
        key=lambda pair: pair[0],
    )
    for distance, candidate in measured:
        age = max(now - parse_iso(candidate.newest_fetched_at), timedelta(0))
        if is_cache_valid(
            distance_m=distance,
            candidate_radius_m=candidate.search_radius,
            query_radius_m=radius_m,
            age=age,
            item_count=len(candidate.items),
        ):
            return CacheHit(search=candidate, distance_m=distance, age=age)
    return None


def check_cache(
    db: Database,
    *,
    latitude: float,
    longitude: float,
    radius_m: float,
    now: datetime,
) -> CacheHit | None:
    try:
        candidates = recent_searches_with_news(db, since_iso=to_iso(now - LOOKBACK))
    except sqlite3.Error:
        logger.exception("cache lookup failed; treating as a miss")
        return None
    return find_cache_hit(
        candidates, latitude=latitude, longitude=longitude, radius_m=radius_m, now=now
    )
