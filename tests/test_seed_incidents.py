import sys
from pathlib import Path

import pytest

import scripts.seed_incidents as seed
from app.settings import BASE_DIR, resolve_path
from scripts.seed_incidents import DEFAULT_FILE, load_incidents
from store.db import open_database
from store.queries import incidents_within_radius, insert_incident


def test_shipped_incidents_seed_once(tmp_path: Path) -> None:
    incidents = load_incidents(DEFAULT_FILE)
    assert len(incidents) == 14

    db = open_database(tmp_path / "t.db")
    first = [insert_incident(db, i, now_iso="2024-08-16T00:00:00Z") for i in incidents]
    again = [insert_incident(db, i, now_iso="2024-08-16T00:00:00Z") for i in incidents]
    assert all(first)
    assert not any(again)

    near = incidents_within_radius(db, latitude=23.010792, longitude=120.212896, radius_m=100)
    assert near[0]["address"] == "台南市安南區安中路一段"
    assert near[0]["distance_meters"] == 0.0


def test_load_incidents_validates(tmp_path: Path) -> None:
    path = tmp_path / "i.yaml"
    path.write_text("- latitude: 23.0\n  longitude: 120.0\n", encoding="utf-8")
    with pytest.raises(ValueError, match="missing"):
        load_incidents(path)

    path.write_text(
        "- latitude: 23.0\n  longitude: 120.0\n  incident_date: '2023-01-01'\n"
        "  severity_level: 4\n",
        encoding="utf-8",
    )
    with pytest.raises(ValueError, match="severity_level"):
        load_incidents(path)


def test_resolve_path_anchors_relative_paths_at_project_root() -> None:
    assert resolve_path(Path("data/x.db")) == BASE_DIR / "data" / "x.db"
    absolute = Path("/var/lib/flood/x.db")
    assert resolve_path(absolute) == absolute


def test_seed_main_uses_project_relative_default_db(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    seen: list[Path] = []
    target = tmp_path / "seeded.db"

    def fake_resolve(path: Path) -> Path:
        seen.append(path)
        return target

    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DB_PATH", raising=False)
    monkeypatch.setattr(seed, "resolve_path", fake_resolve)
    monkeypatch.setattr(sys, "argv", ["seed_incidents"])
    seed.main()

    assert seen == [Path("data/flood-watch.db")]
    assert target.exists()
    assert capsys.readouterr().out.strip() == "14"


def test_seed_main_explicit_db_is_used_as_given(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    target = tmp_path / "explicit.db"
    monkeypatch.setattr(sys, "argv", ["seed_incidents", "--db", str(target)])
    seed.main()
    assert target.exists()
    assert capsys.readouterr().out.strip() == "14"
