import asyncio
import inspect
import time
from datetime import UTC, datetime
from pathlib import Path

import httpx
import pytest

from ingest.adapters.feeds import FeedAdapter, render_feed_url
from ingest.adapters.news_index import NewsIndexAdapter, build_query
from ingest.adapters.sensors import (
    RiverGaugeAdapter,
    WeatherStationAdapter,
    _SensorAdapter,
    station_matches,
)
from ingest.feed_packs import FeedSource
from ingest.fetch import fetch


FIXTURES = Path(__file__).resolve().parent / "fixtures"
NOW = datetime(2024, 8, 16, tzinfo=UTC)
KEYWORDS = "台南市安南區"


def _clock() -> datetime:
    return NOW


def _source(source_id: str, url: str, priority: int, **kwargs) -> FeedSource:
    return FeedSource(
        pack_id="test",
        source_id=source_id,
        name=source_id,
        category=kwargs.pop("category", "national"),
        url=url,
        priority=priority,
        enabled=kwargs.pop("enabled", True),
        query=kwargs.pop("query", None),
    )


def _run(handler, make_adapter, keywords: str = KEYWORDS):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await make_adapter(client).fetch(keywords)

    return asyncio.run(go())


def test_render_feed_url_fills_query_template() -> None:
    source = _source(
        "g", "https://news.example/rss?q={query}&hl=zh-TW", 9, query="{location} 淹水"
    )
    assert render_feed_url(source, "安南區") == (
        "https://news.example/rss?q=%E5%AE%89%E5%8D%97%E5%8D%80%20%E6%B7%B9%E6%B0%B4&hl=zh-TW"
    )
    plain = _source("p", "https://news.example/rss", 9)
    assert render_feed_url(plain, "安南區") == "https://news.example/rss"


def test_feed_adapter_scores_and_tiers() -> None:
    requested: list[str] = []
    rss = (FIXTURES / "sample.rss.xml").read_bytes()
    atom = (FIXTURES / "sample.atom.xml").read_bytes()

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.host + request.url.path)
        if request.url.host == "search.example":
            assert request.url.params["q"] == f"{KEYWORDS} 淹水"
            return httpx.Response(200, content=atom)
        if request.url.path == "/a.xml":
            return httpx.Response(200, content=rss)
        if request.url.path == "/slow.xml":
            raise httpx.ConnectTimeout("timed out", request=request)
        return httpx.Response(500)

    sources = [
        _source("a", "https://feeds.example/a.xml", 9),
        _source("search", "https://search.example/rss?q={query}", 8, query="{location} 淹水"),
        _source("slow", "https://feeds.example/slow.xml", 8),
        _source("b", "https://feeds.example/b.xml", 7),
        _source("c", "https://feeds.example/c.xml", 5),
        _source("d", "https://feeds.example/d.xml", 9, enabled=False),
    ]
    items = _run(handler, lambda c: FeedAdapter(c, sources, user_agent="test", clock=_clock))

    assert {i.title for i in items} == {
        "台南市安南區豪雨 多處道路淹水",
        "颱風外圍環流影響 南部防豪雨",
        "高雄市豪雨特報",
    }
    assert all(2.0 < i.relevance_score <= 15.0 for i in items)
    assert all(i.content_type == "national_news" for i in items)
    assert not any(i.synthetic for i in items)
    # fewer than 10 from the first tier, so the 6-7 tier ran; below 6 never does
    assert "feeds.example/b.xml" in requested
    assert "feeds.example/c.xml" not in requested
    assert "feeds.example/d.xml" not in requested


def test_feed_adapter_skips_second_tier_when_first_is_full() -> None:
    requested: list[str] = []
    entries = "".join(
        f"<item><title>台南淹水 {n}</title><link>https://n.example/{n}</link></item>"
        for n in range(12)
    )
    body = f"<rss version='2.0'><channel><title>x</title>{entries}</channel></rss>".encode()

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        return httpx.Response(200, content=body)

    sources = [
        _source("a", "https://feeds.example/a.xml", 10, category="government"),
        _source("b", "https://feeds.example/b.xml", 6),
    ]
    items = _run(handler, lambda c: FeedAdapter(c, sources, user_agent="test", clock=_clock))

    assert len(items) == 12
    assert requested == ["/a.xml"]
    assert {i.content_type for i in items} == {"government_info"}


def test_news_index_query_shape() -> None:
    assert build_query("安南區").startswith('"安南區" AND (淹水 OR 積水')
    assert build_query("").startswith("(淹水")
    assert build_query("").endswith("AND (Taiwan OR 台灣 OR 臺灣)")


def test_news_index_adapter_filters_articles() -> None:
    body = (FIXTURES / "gdelt.json").read_bytes()
    seen_params: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen_params.update(request.url.params)
        return httpx.Response(200, content=body)

    items = _run(
        handler,
        lambda c: NewsIndexAdapter(
            c, base_url="https://gdelt.example/doc", user_agent="test", clock=_clock
        ),
    )

    assert seen_params["mode"] == "artlist"
    assert seen_params["maxrecords"] == "15"
    assert seen_params["timespan"] == "7d"
    assert [i.url for i in items] == [
        "https://www.taipeitimes.com/News/taiwan/archives/2024/08/15/1",
        "https://focustaiwan.tw/society/1",
    ]
    assert items[0].publish_date == "2024-08-15T06:30:00Z"
    assert items[0].source_name == "taipeitimes.com"
    assert all(i.content_type == "international_news" for i in items)
    assert all(3.0 < i.relevance_score <= 15.0 for i in items)


def test_news_index_adapter_tolerates_plain_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"Your search contained invalid terms.")

    items = _run(
        handler,
        lambda c: NewsIndexAdapter(c, base_url="https://gdelt.example/doc", user_agent="test"),
    )
    assert items == []


def test_station_matches() -> None:
    assert station_matches("安南", KEYWORDS)
    assert station_matches("台南機場", KEYWORDS)
    assert not station_matches("高雄", KEYWORDS)
    assert not station_matches("台南", "")


def test_weather_station_adapter_thresholds() -> None:
    body = (FIXTURES / "cwa.json").read_bytes()
    seen_params: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen_params.update(request.url.params)
        return httpx.Response(200, content=body)

    items = _run(
        handler,
        lambda c: WeatherStationAdapter(
            c, url="https://cwa.example/obs", user_agent="test", api_key="KEY", clock=_clock
        ),
    )

    assert seen_params["Authorization"] == "KEY"
    by_severity = {i.severity: i for i in items}
    assert set(by_severity) == {2, 3}
    assert by_severity[2].relevance_score == 8.0
    assert by_severity[3].relevance_score == 12.0
    assert "安南" in by_severity[2].title
    assert all(not i.synthetic and i.data_source == "central_weather_bureau" for i in items)


def test_weather_station_adapter_backup_on_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    items = _run(
        handler,
        lambda c: WeatherStationAdapter(
            c, url="https://cwa.example/obs", user_agent="test", clock=_clock
        ),
    )

    assert len(items) == 1
    backup = items[0]
    assert backup.synthetic
    assert backup.data_source == "central_weather_bureau_backup"
    assert KEYWORDS in backup.title
    assert backup.publish_date == "2024-08-15T21:00:00Z"


def test_weather_station_adapter_no_backup_without_location() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    items = _run(
        handler,
        lambda c: WeatherStationAdapter(c, url="https://cwa.example/obs", user_agent="test"),
        keywords="",
    )
    assert items == []


def test_weather_station_adapter_no_backup_when_nothing_matches() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"cwbopendata": {"location": []}})

    items = _run(
        handler,
        lambda c: WeatherStationAdapter(c, url="https://cwa.example/obs", user_agent="test"),
    )
    assert items == []


def test_river_gauge_adapter() -> None:
    body = (FIXTURES / "wra.json").read_bytes()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body)

    items = _run(
        handler,
        lambda c: RiverGaugeAdapter(
            c, url="https://wra.example/levels", user_agent="test", clock=_clock
        ),
    )

    assert {(i.title.split()[0], i.severity) for i in items} == {("台南大橋", 2), ("安南", 3)}
    assert all(i.content_type == "water_level" for i in items)


def test_river_gauge_adapter_backup_on_bad_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>maintenance</html>")

    items = _run(
        handler,
        lambda c: RiverGaugeAdapter(
            c, url="https://wra.example/levels", user_agent="test", clock=_clock
        ),
    )
    assert [i.data_source for i in items] == ["water_resources_agency_backup"]


class _TrickleStream(httpx.AsyncByteStream):
    """A body that keeps sending one byte at a time, slower than any timeout."""

    async def __aiter__(self):
        for _ in range(100):
            await asyncio.sleep(0.05)
            yield b" "


def _trickle(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, stream=_TrickleStream())


def test_fetch_reports_status_body_and_elapsed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"ok")

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch(client, url="https://x.example/", user_agent="t", timeout_s=5)

    status, body, elapsed_ms = asyncio.run(go())
    assert (status, body) == (200, b"ok")
    assert isinstance(elapsed_ms, int) and elapsed_ms >= 0
    assert set(inspect.signature(fetch).parameters) == {
        "client", "url", "user_agent", "timeout_s", "accept", "params"
    }


def test_fetch_timeout_bounds_the_whole_body() -> None:
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(_trickle)) as client:
            return await fetch(client, url="https://x.example/", user_agent="t", timeout_s=0.2)

    started = time.perf_counter()
    with pytest.raises(TimeoutError):
        asyncio.run(go())
    assert time.perf_counter() - started < 2.0


def test_feed_adapter_gives_up_on_trickling_source() -> None:
    sources = [_source("slow", "https://feeds.example/slow.xml", 9)]
    started = time.perf_counter()
    items = _run(
        _trickle,
        lambda c: FeedAdapter(c, sources, user_agent="test", timeout_s=0.2, clock=_clock),
    )
    assert items == []
    assert time.perf_counter() - started < 2.0


def test_sensor_adapter_backup_on_trickling_upstream() -> None:
    items = _run(
        _trickle,
        lambda c: RiverGaugeAdapter(
            c, url="https://wra.example/levels", user_agent="test", timeout_s=0.2, clock=_clock
        ),
    )
    assert [i.data_source for i in items] == ["water_resources_agency_backup"]


def test_feed_adapter_isolates_a_failing_source() -> None:
    rss = (FIXTURES / "sample.rss.xml").read_bytes()

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/broken.xml":
            raise RuntimeError("transport bug")
        return httpx.Response(200, content=rss)

    sources = [
        _source("broken", "https://feeds.example/broken.xml", 9),
        _source("a", "https://feeds.example/a.xml", 9),
    ]
    items = _run(handler, lambda c: FeedAdapter(c, sources, user_agent="test", clock=_clock))

    assert "台南市安南區豪雨 多處道路淹水" in {i.title for i in items}


def test_news_index_adapter_accepts_numeric_seendate() -> None:
    body = {
        "articles": [
            {"title": "台南淹水 豪雨", "url": "https://x.example/1", "seendate": 20240815},
            {"title": "台南淹水 豪雨 續報", "url": "https://x.example/2", "seendate": None},
        ]
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    items = _run(
        handler,
        lambda c: NewsIndexAdapter(
            c, base_url="https://gdelt.example/doc", user_agent="test", clock=_clock
        ),
    )

    assert [i.publish_date for i in items] == ["2024-08-15T00:00:00Z", "2024-08-16T00:00:00Z"]


def test_weather_station_adapter_ignores_malformed_elements() -> None:
    doc = {
        "cwbopendata": {
            "location": [
                {"locationName": "台南", "weatherElement": 5},
                {
                    "locationName": "安南",
                    "weatherElement": [{"elementName": "RAIN", "elementValue": {"value": "90"}}],
                },
            ]
        }
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=doc)

    items = _run(
        handler,
        lambda c: WeatherStationAdapter(
            c, url="https://cwa.example/obs", user_agent="test", clock=_clock
        ),
    )
    assert [(i.severity, i.synthetic) for i in items] == [(3, False)]


def test_sensor_adapter_backup_when_parsing_breaks() -> None:
    class _Fragile(WeatherStationAdapter):
        def parse(self, doc):
            return [r for r in doc["cwbopendata"]["location"].values()]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"cwbopendata": {"location": []}})

    items = _run(
        handler,
        lambda c: _Fragile(c, url="https://cwa.example/obs", user_agent="test", clock=_clock),
    )
    assert [i.data_source for i in items] == ["central_weather_bureau_backup"]


def test_sensor_hooks_must_be_implemented() -> None:
    class _Partial(_SensorAdapter):
        def parse(self, doc):
            return []

    with pytest.raises(TypeError):
        _Partial(None, url="https://x.example", user_agent="t", timeout_s=1)
