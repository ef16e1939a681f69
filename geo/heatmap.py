from __future__ import annotations

import math
import random
from collections.abc import Iterable
from dataclasses import asdict, dataclass

from geo.distance import offset_point
from normalize.items import ContentItem


NEWS_JITTER_DEG = 0.005
ESTIMATED_POINT_COUNT = 5
DEFAULT_INCIDENT_WEIGHT = 3

# fractions of half the search radius, and weights, for the estimated ring
_RING_FRACTIONS = (0.45, 0.8, 0.6, 1.0, 0.3)
_RING_WEIGHTS = (3, 1, 2, 2, 1)


@dataclass(frozen=True)
class HeatmapPoint:
    latitude: float
    longitude: float
    weight: int
    type: str

    def to_dict(self) -> dict:
        return asdict(self)


def incident_points(incidents: Iterable[dict]) -> list[HeatmapPoint]:
    points: list[HeatmapPoint] = []
    for incident in incidents:
        severity = incident.get("severity_level")
        points.append(
            HeatmapPoint(
                latitude=float(incident["latitude"]),
                longitude=float(incident["longitude"]),
                weight=int(severity) if severity is not None else DEFAULT_INCIDENT_WEIGHT,
                type="incident",
            )
        )
    return points


def news_points(
    items: Iterable[ContentItem],
    center_lat: float,
    center_lon: float,
    rng: random.Random,
) -> list[HeatmapPoint]:
    points: list[HeatmapPoint] = []
    for item in items:
        if item.synthetic:
            continue
        points.append(
            HeatmapPoint(
                latitude=center_lat + rng.uniform(-NEWS_JITTER_DEG, NEWS_JITTER_DEG),
                longitude=center_lon + rng.uniform(-NEWS_JITTER_DEG, NEWS_JITTER_DEG),
                weight=rng.randint(1, 4),
                type="news",
            )
        )
    return points


def estimated_ring(
    center_lat: float, center_lon: float, radius_m: float
) -> list[HeatmapPoint]:
    """Evenly spaced placeholder points for when there is no evidence at all."""
    points: list[HeatmapPoint] = []
    for i in range(ESTIMATED_POINT_COUNT):
        angle = 2 * math.pi * i / ESTIMATED_POINT_COUNT
        distance = (radius_m / 2) * _RING_FRACTIONS[i]
        lat, lon = offset_point(center_lat, center_lon, distance, angle)
        points.append(
            HeatmapPoint(latitude=lat, longitude=lon, weight=_RING_WEIGHTS[i], type="estimated")
        )
    return points


def synthesize_points(
    *,
    incidents: list[dict],
    items: list[ContentItem],
    center_lat: float,
    center_lon: float,
    radius_m: float,
    rng: random.Random | None = None,
) -> list[HeatmapPoint]:
    rng = rng or random.Random()
    points = incident_points(incidents)
    points.extend(news_points(items, center_lat, center_lon, rng))
    if not points:
        return estimated_ring(center_lat, center_lon, radius_m)
    return points
