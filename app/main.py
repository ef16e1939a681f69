from __future__ import annotations

import json
import logging
import random
from collections.abc import Callable
from contextlib import asynccontextmanager
import httpx
from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from app.logs import setup_logging
from app.settings import Settings, resolve_path
from geo.address import extract_address_from_text
from geo.geocoder import Geocoder, GeocodingError
from ingest.adapters.base import SourceAdapter
from ingest.adapters.feeds import FeedAdapter
from ingest.adapters.news_index import NewsIndexAdapter
from ingest.adapters.sensors import RiverGaugeAdapter, WeatherStationAdapter
from ingest.adapters.templates import TemplateContentGenerator
from ingest.feed_packs import load_feed_sources, load_platform_configs
from search.orchestrator import (
    InputValidationError,
    SearchOrchestrator,
    parse_search_request,
)
from store.db import Database, open_database
from store.queries import incidents_within_radius, search_stats


logger = logging.getLogger(__name__)

AdapterFactory = Callable[
    [Settings, httpx.AsyncClient, random.Random],
    tuple[list[SourceAdapter], list[SourceAdapter]],
]


def build_adapters(
    settings: Settings, client: httpx.AsyncClient, rng: random.Random
) -> tuple[list[SourceAdapter], list[SourceAdapter]]:
    """(primary, last-resort) adapters from settings and the YAML packs."""
    primary: list[SourceAdapter] = [
        FeedAdapter(
            client,
            load_feed_sources(resolve_path(settings.feeds_dir)),
            user_agent=settings.user_agent,
        ),
        NewsIndexAdapter(
            client, base_url=settings.gdelt_api_url, user_agent=settings.user_agent
        ),
        WeatherStationAdapter(
            client,
            url=settings.cwa_api_url,
            user_agent=settings.user_agent,
            api_key=settings.cwa_api_key,
        ),
        RiverGaugeAdapter(
            client, url=settings.wra_api_url, user_agent=settings.user_agent
        ),
    ]
    last_resort: list[SourceAdapter] = [
        TemplateContentGenerator(config, rng=rng)
        for config in load_platform_configs(resolve_path(settings.social_templates_path))
    ]
    return primary, last_resort


router = APIRouter()


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


@router.post("/api/search-flood-news")
async def api_search_flood_news(request: Request) -> JSONResponse:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error("Invalid JSON in request body", 400)

    try:
        query = parse_search_request(body)
    except InputValidationError as e:
        return _error(str(e), 400)

    orchestrator: SearchOrchestrator = request.app.state.orchestrator
    try:
        result = await orchestrator.search(query)
    except Exception as e:
        logger.exception("search failed for %s", query)
        return _error(str(e) or e.__class__.__name__, 500)
    return JSONResponse(result)


@router.get("/api/geocode")
async def api_geocode(request: Request, q: str = "", content: str = "") -> JSONResponse:
    address = q.strip()
    if not address and content.strip():
        address = extract_address_from_text(content) or ""
    if not address:
        return _error("No address provided", 400)

    geocoder: Geocoder = request.app.state.geocoder
    try:
        candidates = await geocoder.geocode(address)
    except GeocodingError as e:
        logger.warning("geocoding %r failed: %s", address, e)
        return _error("Geocoding service unavailable", 502)

    if not candidates:
        return JSONResponse(
            {"success": False, "error": "No results", "address": address, "candidates": []},
            status_code=404,
        )
    return JSONResponse(
        {
            "success": True,
            "address": address,
            "candidates": [c.to_dict() for c in candidates],
        }
    )


@router.get("/api/incidents")
def api_incidents(
    request: Request,
    lat: float = Query(ge=-90.0, le=90.0),
    lon: float = Query(ge=-180.0, le=180.0),
    radius: float = Query(default=1000.0, gt=0.0, le=50_000.0),
) -> JSONResponse:
    db: Database = request.app.state.db
    incidents = incidents_within_radius(db, latitude=lat, longitude=lon, radius_m=radius)
    return JSONResponse({"success": True, "incidents": incidents})


@router.get("/api/search-stats")
def api_search_stats(
    request: Request, limit: int = Query(default=10, ge=1, le=100)
) -> JSONResponse:
    db: Database = request.app.state.db
    return JSONResponse({"success": True, **search_stats(db, limit=limit)})


def create_app(
    settings: Settings | None = None,
    adapter_factory: AdapterFactory = build_adapters,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        resolved = settings or Settings()
        setup_logging(resolved.log_level)
        db = open_database(resolve_path(resolved.db_path))
        rng = random.Random()

        async with httpx.AsyncClient(follow_redirects=True) as client:
            primary, last_resort = adapter_factory(resolved, client, rng)
            app.state.settings = resolved
            app.state.db = db
            app.state.geocoder = Geocoder(
                client, base_url=resolved.geocoder_url, user_agent=resolved.user_agent
            )
            app.state.orchestrator = SearchOrchestrator(
                db,
                primary,
                last_resort,
                rng=rng,
                max_results=resolved.max_results,
                fallback_count=resolved.fallback_count,
            )
            logger.info(
                "ready: %d primary adapters, %d last-resort generators",
                len(primary),
                len(last_resort),
            )
            try:
                yield
            finally:
                with db.lock:
                    db.conn.close()

    app = FastAPI(lifespan=lifespan)
    app.include_router(router)
    return app


app = create_app()
