from __future__ import annotations

import json
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field

from geo.distance import bbox_around, haversine_m
from normalize.items import ContentItem
from store.db import Database


@dataclass(frozen=True)
class StoredSearch:
    search_id: str
    location_name: str
    latitude: float
    longitude: float
    search_radius: float
    search_count: int
    updated_at: str
    newest_fetched_at: str | None = None
    items: list[ContentItem] = field(default_factory=list)


def location_label(latitude: float, longitude: float, address: str | None) -> str:
    if address and address.strip():
        return address.strip()
    return f"{latitude:.6f}, {longitude:.6f}"


def upsert_search(
    db: Database,
    *,
    latitude: float,
    longitude: float,
    radius_m: float,
    address: str | None,
    now_iso: str,
) -> tuple[str, int]:
    """Create the search record or bump its counter; returns (search_id, count).

    Read-modify-write under the connection lock only, so the counter is
    approximate across processes.
    """
    with db.lock:
        db.conn.execute(
            """
            INSERT INTO searches(
              search_id, location_name, address, latitude, longitude, search_radius,
              search_count, created_at, updated_at
            )
            VALUES(?, ?, ?, ?, ?, ?, 1, ?, ?)
            ON CONFLICT(latitude, longitude, search_radius) DO UPDATE SET
              search_count = search_count + 1,
              address = COALESCE(excluded.address, searches.address),
              updated_at = excluded.updated_at;
            """,
            (
                str(uuid.uuid4()),
                location_label(latitude, longitude, address),
                address,
                latitude,
                longitude,
                radius_m,
                now_iso,
                now_iso,
            ),
        )
        row = db.conn.execute(
            """
            SELECT search_id, search_count
            FROM searches
            WHERE latitude = ? AND longitude = ? AND search_radius = ?;
            """,
            (latitude, longitude, radius_m),
        ).fetchone()
        db.conn.commit()
    return str(row["search_id"]), int(row["search_count"])


def insert_news_items(
    db: Database, search_id: str, items: Iterable[ContentItem], *, fetched_at: str
) -> int:
    rows = [
        {
            "news_id": str(uuid.uuid4()),
            "search_id": search_id,
            "title": item.title,
            "url": item.url,
            "source": item.source_name,
            "content_snippet": item.snippet,
            "publish_date": item.publish_date,
            "content_type": item.content_type,
            "data_source": item.data_source,
            "relevance_score": item.relevance_score,
            "synthetic": int(item.synthetic),
            "severity": item.severity,
            "extra_json": json.dumps(item.extra) if item.extra else None,
            "fetched_at": fetched_at,
        }
        for item in items
    ]
    if not rows:
        return 0
    with db.lock:
        db.conn.executemany(
            """
            INSERT INTO search_news(
              news_id, search_id, title, url, source, content_snippet, publish_date,
              content_type, data_source, relevance_score, synthetic, severity,
              extra_json, fetched_at
            )
            VALUES(
              :news_id, :search_id, :title, :url, :source, :content_snippet, :publish_date,
              :content_type, :data_source, :relevance_score, :synthetic, :severity,
              :extra_json, :fetched_at
            );
            """,
            rows,
        )
        db.conn.commit()
    return len(rows)


def _row_to_item(row) -> ContentItem:
    extra = json.loads(row["extra_json"]) if row["extra_json"] else {}
    return ContentItem(
        title=str(row["title"]),
        url=str(row["url"]),
        snippet=str(row["content_snippet"] or ""),
        source_name=str(row["source"] or ""),
        publish_date=str(row["publish_date"] or row["fetched_at"]),
        content_type=str(row["content_type"] or "news"),
        relevance_score=float(row["relevance_score"]),
        data_source=str(row["data_source"]),
        synthetic=bool(row["synthetic"]),
        severity=(int(row["severity"]) if row["severity"] is not None else None),
        extra=extra,
    )


def recent_searches_with_news(db: Database, *, since_iso: str) -> list[StoredSearch]:
    """Searches touched since ``since_iso`` with their latest news batch.

    Only items fetched since ``since_iso`` are considered; of those, the batch
    with the newest ``fetched_at`` is attached.
    """
    with db.lock:
        searches = db.conn.execute(
            """
            SELECT search_id, location_name, latitude, longitude, search_radius,
                   search_count, updated_at
            FROM searches
            WHERE updated_at >= ?
            ORDER BY updated_at DESC;
            """,
            (since_iso,),
        ).fetchall()
        news = db.conn.execute(
            """
            SELECT n.*
            FROM search_news n
            JOIN searches s ON s.search_id = n.search_id
            WHERE s.updated_at >= ? AND n.fetched_at >= ?
            ORDER BY n.fetched_at DESC, n.relevance_score DESC;
            """,
            (since_iso, since_iso),
        ).fetchall()

    newest: dict[str, str] = {}
    batches: dict[str, list[ContentItem]] = {}
    for row in news:
        search_id = str(row["search_id"])
        fetched_at = str(row["fetched_at"])
        newest.setdefault(search_id, fetched_at)
        if fetched_at != newest[search_id]:
            continue
        batches.setdefault(search_id, []).append(_row_to_item(row))

    return [
        StoredSearch(
            search_id=str(r["search_id"]),
            location_name=str(r["location_name"]),
            latitude=float(r["latitude"]),
            longitude=float(r["longitude"]),
            search_radius=float(r["search_radius"]),
            search_count=int(r["search_count"]),
            updated_at=str(r["updated_at"]),
            newest_fetched_at=newest.get(str(r["search_id"])),
            items=batches.get(str(r["search_id"]), []),
        )
        for r in searches
    ]


def incidents_within_radius(
    db: Database, *, latitude: float, longitude: float, radius_m: float, limit: int = 500
) -> list[dict]:
    min_lat, min_lon, max_lat, max_lon = bbox_around(latitude, longitude, radius_m)
    with db.lock:
        rows = db.conn.execute(
            """
            SELECT incident_id, latitude, longitude, address, incident_date,
                   severity_level, data_source, source_title, source_content,
                   source_url, verified, confidence_score
            FROM incidents
            WHERE latitude BETWEEN ? AND ?
              AND longitude BETWEEN ? AND ?
            ORDER BY incident_date DESC
            LIMIT ?;
            """,
            (min_lat, max_lat, min_lon, max_lon, limit),
        ).fetchall()

    out: list[dict] = []
    for r in rows:
        d = haversine_m(latitude, longitude, float(r["latitude"]), float(r["longitude"]))
        if d > radius_m:
            continue
        incident = {k: r[k] for k in r.keys()}
        incident["verified"] = bool(incident["verified"])
        incident["distance_meters"] = round(d, 1)
        out.append(incident)
    out.sort(key=lambda i: i["distance_meters"])
    return out


def insert_incident(db: Database, incident: dict, *, now_iso: str) -> bool:
    """Insert one incident; False when the (lat, lon, date) triple already exists."""
    with db.lock:
        cur = db.conn.execute(
            """
            INSERT INTO incidents(
              incident_id, latitude, longitude, address, incident_date, severity_level,
              data_source, source_title, source_content, source_url, verified,
              confidence_score, created_at
            )
            VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(latitude, longitude, incident_date) DO NOTHING;
            """,
            (
                str(uuid.uuid4()),
                float(incident["latitude"]),
                float(incident["longitude"]),
                incident.get("address"),
                str(incident["incident_date"]),
                incident.get("severity_level"),
                str(incident.get("data_source") or "manual"),
                incident.get("source_title"),
                incident.get("source_content"),
                incident.get("source_url"),
                int(bool(incident.get("verified", False))),
                incident.get("confidence_score"),
                now_iso,
            ),
        )
        db.conn.commit()
    return cur.rowcount == 1


def search_stats(db: Database, *, limit: int = 10) -> dict:
    with db.lock:
        totals = db.conn.execute(
            """
            SELECT COUNT(*) AS locations, COALESCE(SUM(search_count), 0) AS searches
            FROM searches;
            """
        ).fetchone()
        top = db.conn.execute(
            """
            SELECT location_name, latitude, longitude, search_radius, search_count, updated_at
            FROM searches
            ORDER BY search_count DESC, updated_at DESC
            LIMIT ?;
            """,
            (limit,),
        ).fetchall()
        news_total = db.conn.execute("SELECT COUNT(*) AS n FROM search_news;").fetchone()
    return {
        "totalSearches": int(totals["searches"]),
        "uniqueLocations": int(totals["locations"]),
        "storedNews": int(news_total["n"]),
        "topLocations": [{k: r[k] for k in r.keys()} for r in top],
    }
