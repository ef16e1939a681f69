"""Government monitoring feeds: weather-station rainfall and river water levels.

Both adapters emit an item only for stations inside the searched area whose
reading crosses a threshold. When the upstream API is unusable they emit a
small, clearly-tagged backup set instead so that the area is not silently
reported as quiet.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

import httpx

from ingest.fetch import JSON_ACCEPT, fetch
from ingest.parsers.json import find_path
from normalize.items import ContentItem, to_iso, utc_now
from rank.relevance import location_fragments


logger = logging.getLogger(__name__)

SEVERITY_SCORES = {2: 8.0, 3: 12.0}
BACKUP_SCORE = 3.0
BACKUP_AGE = timedelta(hours=3)


@dataclass(frozen=True)
class Reading:
    station: str
    value: float


class UpstreamUnavailable(Exception):
    pass


def station_matches(station: str, location_keywords: str) -> bool:
    keywords = location_keywords.strip()
    if not keywords:
        return False
    if keywords[:2] in station:
        return True
    return any(part in station for part in location_fragments(keywords))


def _to_float(value: object) -> float | None:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


class _SensorAdapter(ABC):
    name = "sensor"
    data_source = "sensor"
    source_name = ""
    content_type = ""
    info_url = ""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        url: str,
        user_agent: str,
        timeout_s: float,
        params: dict[str, str] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._client = client
        self._url = url
        self._user_agent = user_agent
        self._timeout_s = timeout_s
        self._params = params
        self._clock = clock

    async def fetch(self, location_keywords: str) -> list[ContentItem]:
        try:
            readings = await self._readings()
        except UpstreamUnavailable as e:
            logger.warning("%s unavailable (%s); using backup set", self.name, e)
            return self.backup_items(location_keywords)

        now_iso = to_iso(self._clock())
        items: list[ContentItem] = []
        for reading in readings:
            if not station_matches(reading.station, location_keywords):
                continue
            severity = self.severity(reading.value)
            if severity is None:
                continue
            items.append(
                ContentItem(
                    title=self.title(reading),
                    url=self.info_url,
                    snippet=self.snippet(reading),
                    source_name=self.source_name,
                    publish_date=now_iso,
                    content_type=self.content_type,
                    relevance_score=SEVERITY_SCORES[severity],
                    data_source=self.data_source,
                    severity=severity,
                )
            )
        return items

    async def _readings(self) -> list[Reading]:
        try:
            status, body, _ = await fetch(
                self._client,
                url=self._url,
                user_agent=self._user_agent,
                timeout_s=self._timeout_s,
                accept=JSON_ACCEPT,
                params=self._params,
            )
        except (httpx.TimeoutException, TimeoutError) as e:
            raise UpstreamUnavailable("timeout") from e
        except httpx.RequestError as e:
            raise UpstreamUnavailable(e.__class__.__name__) from e

        if status != 200 or body is None:
            raise UpstreamUnavailable(f"http {status}")

        try:
            doc = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise UpstreamUnavailable("invalid JSON") from e

        try:
            readings = self.parse(doc)
        except (TypeError, ValueError, AttributeError) as e:
            raise UpstreamUnavailable("unexpected document shape") from e
        if readings is None:
            raise UpstreamUnavailable("unexpected document shape")
        return readings

    def backup_items(self, location_keywords: str) -> list[ContentItem]:
        location = location_keywords.strip()
        if not location:
            return []
        return [
            ContentItem(
                title=self.backup_title(location),
                url=self.info_url,
                snippet=self.backup_snippet(location),
                source_name=self.source_name,
                publish_date=to_iso(self._clock() - BACKUP_AGE),
                content_type=self.content_type,
                relevance_score=BACKUP_SCORE,
                data_source=f"{self.data_source}_backup",
                synthetic=True,
            )
        ]

    @abstractmethod
    def parse(self, doc: object) -> list[Reading] | None: ...

    @abstractmethod
    def severity(self, value: float) -> int | None: ...

    @abstractmethod
    def title(self, reading: Reading) -> str: ...

    @abstractmethod
    def snippet(self, reading: Reading) -> str: ...

    @abstractmethod
    def backup_title(self, location: str) -> str: ...

    @abstractmethod
    def backup_snippet(self, location: str) -> str: ...


class WeatherStationAdapter(_SensorAdapter):
    """Accumulated rainfall from the Central Weather Administration observation feed."""

    name = "weather_stations"
    data_source = "central_weather_bureau"
    source_name = "中央氣象署"
    content_type = "weather_data"
    info_url = "https://www.cwa.gov.tw/V8/C/W/OBS_Rain.html"

    RAIN_THRESHOLD_MM = 30.0
    SEVERE_RAIN_MM = 80.0

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        url: str,
        user_agent: str,
        api_key: str | None = None,
        timeout_s: float = 8.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        params = {"format": "JSON"}
        if api_key:
            params["Authorization"] = api_key
        super().__init__(
            client,
            url=url,
            user_agent=user_agent,
            timeout_s=timeout_s,
            params=params,
            clock=clock,
        )

    def parse(self, doc: object) -> list[Reading] | None:
        stations = find_path(doc, "cwbopendata", "location")
        if not isinstance(stations, list):
            return None
        readings: list[Reading] = []
        for station in stations:
            if not isinstance(station, dict):
                continue
            name = str(station.get("locationName") or "")
            rain = None
            elements = station.get("weatherElement")
            if not isinstance(elements, list):
                elements = []
            for element in elements:
                if isinstance(element, dict) and element.get("elementName") == "RAIN":
                    rain = _to_float(find_path(element, "elementValue", "value"))
                    break
            if name and rain is not None:
                readings.append(Reading(station=name, value=rain))
        return readings

    def severity(self, value: float) -> int | None:
        if value >= self.SEVERE_RAIN_MM:
            return 3
        if value > self.RAIN_THRESHOLD_MM:
            return 2
        return None

    def title(self, reading: Reading) -> str:
        return f"{reading.station} 雨量觀測 {reading.value:g}毫米 - {self.source_name}"

    def snippet(self, reading: Reading) -> str:
        return f"目前累積雨量: {reading.value:g}毫米，已達豪雨等級"

    def backup_title(self, location: str) -> str:
        return f"{location}氣象監測"

    def backup_snippet(self, location: str) -> str:
        return f"根據最近一次氣象資料分析，{location}需注意降雨積水可能性"


class RiverGaugeAdapter(_SensorAdapter):
    """River water levels from the Water Resources Agency open data service."""

    name = "river_gauges"
    data_source = "water_resources_agency"
    source_name = "經濟部水利署"
    content_type = "water_level"
    info_url = "https://fhy.wra.gov.tw/ReservoirPage_2011/Statistics.aspx"

    LEVEL_THRESHOLD_M = 2.0
    SEVERE_LEVEL_M = 5.0

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        url: str,
        user_agent: str,
        timeout_s: float = 6.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__(
            client, url=url, user_agent=user_agent, timeout_s=timeout_s, clock=clock
        )

    def parse(self, doc: object) -> list[Reading] | None:
        if not isinstance(doc, list):
            return None
        readings: list[Reading] = []
        for row in doc:
            if not isinstance(row, dict):
                continue
            name = str(row.get("StationName") or "")
            level = _to_float(row.get("WaterLevel"))
            if name and level is not None:
                readings.append(Reading(station=name, value=level))
        return readings

    def severity(self, value: float) -> int | None:
        if value > self.SEVERE_LEVEL_M:
            return 3
        if value > self.LEVEL_THRESHOLD_M:
            return 2
        return None

    def title(self, reading: Reading) -> str:
        return f"{reading.station} 水位 {reading.value:g}公尺 - 水利署"

    def snippet(self, reading: Reading) -> str:
        return f"目前水位: {reading.value:g}公尺，請注意河川水位變化"

    def backup_title(self, location: str) -> str:
        return f"{location}河川水位監測"

    def backup_snippet(self, location: str) -> str:
        return f"最近一次監測顯示{location}周邊河川水位需持續留意，豪雨期間請遠離河岸"
