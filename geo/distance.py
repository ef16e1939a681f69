from __future__ import annotations

import math


EARTH_RADIUS_M = 6_371_000.0
METERS_PER_DEGREE_LAT = 111_320.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def offset_point(
    lat: float, lon: float, distance_m: float, bearing_rad: float
) -> tuple[float, float]:
    """Flat-earth offset, good enough for a few kilometres."""
    lat_offset = (distance_m / METERS_PER_DEGREE_LAT) * math.cos(bearing_rad)
    lon_scale = METERS_PER_DEGREE_LAT * math.cos(math.radians(lat))
    lon_offset = (distance_m / lon_scale) * math.sin(bearing_rad) if lon_scale else 0.0
    return lat + lat_offset, lon + lon_offset


def bbox_around(
    lat: float, lon: float, radius_m: float
) -> tuple[float, float, float, float]:
    """(minlat, minlon, maxlat, maxlon) enclosing a circle of ``radius_m``.

    Padded by 1% so that the exact haversine check decides edge cases.
    """
    radius_m *= 1.01
    d_lat = radius_m / METERS_PER_DEGREE_LAT
    cos_lat = max(math.cos(math.radians(lat)), 1e-6)
    d_lon = radius_m / (METERS_PER_DEGREE_LAT * cos_lat)
    return lat - d_lat, lon - d_lon, lat + d_lat, lon + d_lon
