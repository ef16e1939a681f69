from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Database:
    conn: sqlite3.Connection
    lock: threading.Lock


_MIGRATIONS: list[tuple[int, str]] = [
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
          version INTEGER NOT NULL PRIMARY KEY
        );

        CREATE TABLE IF NOT EXISTS searches (
          search_id TEXT NOT NULL PRIMARY KEY,
          location_name TEXT NOT NULL,
          address TEXT NULL,
          latitude REAL NOT NULL,
          longitude REAL NOT NULL,
          search_radius REAL NOT NULL,
          search_count INTEGER NOT NULL DEFAULT 1,
          created_at TEXT NOT NULL,
          updated_at TEXT NOT NULL
        );

        CREATE UNIQUE INDEX IF NOT EXISTS searches_point_radius_uq
          ON searches(latitude, longitude, search_radius);
        CREATE INDEX IF NOT EXISTS searches_updated_at_idx ON searches(updated_at);

        CREATE TABLE IF NOT EXISTS search_news (
          news_id TEXT NOT NULL PRIMARY KEY,
          search_id TEXT NOT NULL,
          title TEXT NOT NULL,
          url TEXT NOT NULL,
          source TEXT NULL,
          content_snippet TEXT NULL,
          publish_date TEXT NULL,
          content_type TEXT NULL,
          data_source TEXT NOT NULL,
          relevance_score REAL NOT NULL DEFAULT 0,
          synthetic INTEGER NOT NULL DEFAULT 0,
          severity INTEGER NULL,
          extra_json TEXT NULL,
          fetched_at TEXT NOT NULL,

          FOREIGN KEY (search_id) REFERENCES searches(search_id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS search_news_search_id_idx ON search_news(search_id);
        CREATE INDEX IF NOT EXISTS search_news_fetched_at_idx ON search_news(fetched_at);

        CREATE TABLE IF NOT EXISTS incidents (
          incident_id TEXT NOT NULL PRIMARY KEY,
          latitude REAL NOT NULL,
          longitude REAL NOT NULL,
          address TEXT NULL,
          incident_date TEXT NOT NULL,
          severity_level INTEGER NULL,
          data_source TEXT NOT NULL,
          source_title TEXT NULL,
          source_content TEXT NULL,
          source_url TEXT NULL,
          verified INTEGER NOT NULL DEFAULT 0,
          confidence_score REAL NULL,
          created_at TEXT NOT NULL
        );

        CREATE UNIQUE INDEX IF NOT EXISTS incidents_point_date_uq
          ON incidents(latitude, longitude, incident_date);
        CREATE INDEX IF NOT EXISTS incidents_lat_lon_idx ON incidents(latitude, longitude);
        """,
    ),
]


def open_database(path: Path) -> Database:
    if str(path) != ":memory:":
        path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    conn.execute("PRAGMA busy_timeout=5000;")
    _apply_migrations(conn)
    return Database(conn=conn, lock=threading.Lock())


def _apply_migrations(conn: sqlite3.Connection) -> None:
    conn.execute(
        "CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER NOT NULL PRIMARY KEY);"
    )
    row = conn.execute(
        "SELECT COALESCE(MAX(version), 0) AS v FROM schema_migrations;"
    ).fetchone()
    current_version = int(row["v"])

    for version, sql in _MIGRATIONS:
        if version <= current_version:
            continue
        conn.executescript(sql)
        conn.execute("INSERT INTO schema_migrations(version) VALUES (?);", (version,))
        conn.commit()
