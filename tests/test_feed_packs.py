from pathlib import Path

import pytest

from ingest.feed_packs import load_feed_sources, load_platform_configs


ROOT = Path(__file__).resolve().parents[1]


def test_shipped_feed_packs_load_sorted_by_priority() -> None:
    sources = load_feed_sources(ROOT / "feeds")

    assert len(sources) == 21
    priorities = [s.priority for s in sources]
    assert priorities == sorted(priorities, reverse=True)
    assert {s.pack_id for s in sources} == {"taiwan_gov", "taiwan_local", "taiwan_news"}
    assert all("{query}" in s.url for s in sources if s.query)
    assert len({(s.pack_id, s.source_id) for s in sources}) == len(sources)


def test_feed_pack_defaults(tmp_path: Path) -> None:
    (tmp_path / "one.yaml").write_text(
        "- id: x\n  name: X\n  url: https://x.example/rss\n", encoding="utf-8"
    )
    (tmp_path / "empty.yaml").write_text("", encoding="utf-8")

    [source] = load_feed_sources(tmp_path)
    assert source.category == "national"
    assert source.priority == 5
    assert source.enabled
    assert source.query is None


def test_feed_pack_rejects_bad_entries(tmp_path: Path) -> None:
    bad = tmp_path / "bad.yaml"
    bad.write_text(
        "- id: x\n  name: X\n  url: https://x.example\n  category: sports\n",
        encoding="utf-8",
    )
    with pytest.raises(ValueError, match="category"):
        load_feed_sources(tmp_path)

    bad.write_text(
        "- id: x\n  name: X\n  url: https://x.example\n  priority: 11\n", encoding="utf-8"
    )
    with pytest.raises(ValueError, match="priority"):
        load_feed_sources(tmp_path)


def test_missing_dirs_are_empty(tmp_path: Path) -> None:
    assert load_feed_sources(tmp_path / "nope") == []
    assert load_platform_configs(tmp_path / "nope.yaml") == []


def test_platform_config_validation(tmp_path: Path) -> None:
    path = tmp_path / "t.yaml"
    path.write_text(
        "forum:\n"
        "  url_template: https://f.example/{post_id}\n"
        "  engagement:\n"
        "    likes: [5, 1]\n",
        encoding="utf-8",
    )
    with pytest.raises(ValueError, match="low > high"):
        load_platform_configs(path)

    path.write_text(
        "forum:\n"
        "  url_template: https://f.example/{post_id}\n"
        "  templates:\n"
        "    - content: x\n"
        "      probability: 1.5\n",
        encoding="utf-8",
    )
    with pytest.raises(ValueError, match="probability"):
        load_platform_configs(path)
