from __future__ import annotations

import argparse
import logging
from pathlib import Path

import yaml

from app.logs import setup_logging
from app.settings import BASE_DIR, Settings, resolve_path
from normalize.items import to_iso, utc_now
from store.db import open_database
from store.queries import insert_incident


logger = logging.getLogger(__name__)

DEFAULT_FILE = BASE_DIR / "data" / "historical_incidents.yaml"
REQUIRED_KEYS = ("latitude", "longitude", "incident_date")


def load_incidents(path: Path) -> list[dict]:
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError(f"invalid incident file: {path}")
    incidents: list[dict] = []
    for entry in raw:
        if not isinstance(entry, dict) or any(k not in entry for k in REQUIRED_KEYS):
            raise ValueError(f"incident entry missing {REQUIRED_KEYS} in: {path}")
        severity = entry.get("severity_level")
        if severity is not None and int(severity) not in (1, 2, 3):
            raise ValueError(f"severity_level must be 1-3 in: {path}")
        incidents.append(entry)
    return incidents


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--db", type=Path, default=None)
    parser.add_argument("--file", type=Path, default=DEFAULT_FILE)
    args = parser.parse_args()

    settings = Settings()
    setup_logging(settings.log_level)
    db = open_database(args.db or resolve_path(settings.db_path))
    now_iso = to_iso(utc_now())

    inserted = 0
    incidents = load_incidents(args.file)
    try:
        for incident in incidents:
            if insert_incident(db, incident, now_iso=now_iso):
                inserted += 1
    finally:
        with db.lock:
            db.conn.close()

    logger.info("skipped %d existing incidents", len(incidents) - inserted)
    print(inserted)


if __name__ == "__main__":
    main()
