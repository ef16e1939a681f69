from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass

import httpx

from geo.address import normalize_address
from geo.places import lookup_local, lookup_region


logger = logging.getLogger(__name__)

NOMINATIM_CONFIDENCE = 0.9


class GeocodingError(RuntimeError):
    pass


@dataclass(frozen=True)
class GeocodeCandidate:
    latitude: float
    longitude: float
    normalized_address: str
    display_name: str
    confidence: float = NOMINATIM_CONFIDENCE
    source: str = "nominatim"

    def to_dict(self) -> dict:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "normalizedAddress": self.normalized_address,
            "displayName": self.display_name,
            "confidence": self.confidence,
            "source": self.source,
        }


class Geocoder:
    """Address → coordinates against a Nominatim-compatible search endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_url: str,
        user_agent: str,
        country_codes: str = "tw",
        limit: int = 5,
        rng: random.Random | None = None,
    ) -> None:
        self._client = client
        self._base_url = base_url
        self._user_agent = user_agent
        self._country_codes = country_codes
        self._limit = limit
        self._rng = rng or random.Random()

    async def geocode(self, text: str) -> list[GeocodeCandidate]:
        """Online search first, then the offline district and region tables.

        Raises ``GeocodingError`` only when the online service failed and no
        offline table knows the address either.
        """
        normalized = normalize_address(text)
        if not normalized:
            return []

        failure: GeocodingError | None = None
        try:
            candidates = await self._search(normalized)
        except GeocodingError as e:
            logger.warning("online geocoding of %r failed: %s", normalized, e)
            failure = e
            candidates = []
        if candidates:
            return candidates

        source = "local"
        place = lookup_local(normalized) or lookup_local(text)
        if place is None:
            source = "region"
            place = lookup_region(normalized, self._rng)
        if place is not None:
            logger.info("geocoded %r from the %s table (%s)", normalized, source, place.name)
            return [
                GeocodeCandidate(
                    latitude=place.latitude,
                    longitude=place.longitude,
                    normalized_address=normalized,
                    display_name=place.name,
                    confidence=place.confidence,
                    source=source,
                )
            ]

        if failure is not None:
            raise failure
        return []

    async def _search(self, normalized: str) -> list[GeocodeCandidate]:
        params = {
            "q": normalized,
            "format": "json",
            "limit": str(self._limit),
            "countrycodes": self._country_codes,
            "accept-language": "zh-TW",
        }
        try:
            res = await self._client.get(
                self._base_url,
                params=params,
                headers={"User-Agent": self._user_agent, "Accept": "application/json"},
                timeout=httpx.Timeout(connect=5.0, read=10.0, write=5.0, pool=5.0),
            )
        except httpx.TimeoutException as e:
            raise GeocodingError("geocoder timeout") from e
        except httpx.RequestError as e:
            raise GeocodingError(f"geocoder request error: {e.__class__.__name__}") from e

        if res.status_code != 200:
            raise GeocodingError(f"geocoder http {res.status_code}")

        try:
            rows = res.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise GeocodingError("geocoder returned invalid JSON") from e
        if not isinstance(rows, list):
            return []

        candidates: list[GeocodeCandidate] = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            try:
                lat = float(row["lat"])
                lon = float(row["lon"])
            except (KeyError, TypeError, ValueError):
                continue
            candidates.append(
                GeocodeCandidate(
                    latitude=lat,
                    longitude=lon,
                    normalized_address=normalized,
                    display_name=str(row.get("display_name") or normalized),
                )
            )
        logger.debug("geocoded %r to %d candidates", normalized, len(candidates))
        return candidates
