from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml


FEED_CATEGORIES = ("government", "weather", "national", "local")


@dataclass(frozen=True)
class FeedSource:
    pack_id: str
    source_id: str
    name: str
    category: str
    url: str
    priority: int
    enabled: bool
    query: str | None = None


@dataclass(frozen=True)
class PostTemplate:
    content: str
    probability: float
    title: str | None = None
    channel: str | None = None
    local_only: bool = False


@dataclass(frozen=True)
class PlatformConfig:
    platform: str
    source_name: str
    content_type: str
    url_template: str
    recency_hours: float
    default_channel: str
    channels: dict[str, str] = field(default_factory=dict)
    engagement: dict[str, tuple[int, int]] = field(default_factory=dict)
    authors: list[str] = field(default_factory=list)
    templates: list[PostTemplate] = field(default_factory=list)


def load_feed_sources(feeds_dir: Path) -> list[FeedSource]:
    """All feed entries from ``feeds_dir/*.yaml``, highest priority first."""
    sources: list[FeedSource] = []
    if not feeds_dir.exists():
        return sources

    for path in sorted(feeds_dir.glob("*.yaml")):
        pack_id = path.stem
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        if raw is None:
            continue
        if not isinstance(raw, list):
            raise ValueError(f"invalid feed pack: {path}")

        for entry in raw:
            if not isinstance(entry, dict):
                raise ValueError(f"invalid feed entry in: {path}")
            category = str(entry.get("category") or "national")
            if category not in FEED_CATEGORIES:
                raise ValueError(f"unknown feed category {category!r} in: {path}")
            priority = int(entry.get("priority") or 5)
            if not 1 <= priority <= 10:
                raise ValueError(f"feed priority out of range in: {path}")
            sources.append(
                FeedSource(
                    pack_id=pack_id,
                    source_id=str(entry["id"]),
                    name=str(entry["name"]),
                    category=category,
                    url=str(entry["url"]),
                    priority=priority,
                    enabled=bool(entry.get("enabled", True)),
                    query=(str(entry["query"]) if entry.get("query") else None),
                )
            )

    sources.sort(key=lambda s: s.priority, reverse=True)
    return sources


def _parse_range(value: object, path: Path) -> tuple[int, int]:
    if not isinstance(value, list) or len(value) != 2:
        raise ValueError(f"engagement range must be [low, high] in: {path}")
    low, high = int(value[0]), int(value[1])
    if low > high:
        raise ValueError(f"engagement range low > high in: {path}")
    return low, high


def load_platform_configs(path: Path) -> list[PlatformConfig]:
    if not path.exists():
        return []
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        return []
    if not isinstance(raw, dict):
        raise ValueError(f"invalid template config: {path}")

    configs: list[PlatformConfig] = []
    for platform, entry in raw.items():
        if not isinstance(entry, dict):
            raise ValueError(f"invalid platform entry {platform!r} in: {path}")

        templates: list[PostTemplate] = []
        for t in entry.get("templates") or []:
            probability = float(t.get("probability", 1.0))
            if not 0.0 <= probability <= 1.0:
                raise ValueError(f"template probability out of range in: {path}")
            templates.append(
                PostTemplate(
                    content=str(t["content"]),
                    probability=probability,
                    title=(str(t["title"]) if t.get("title") else None),
                    channel=(str(t["channel"]) if t.get("channel") else None),
                    local_only=bool(t.get("local_only", False)),
                )
            )

        configs.append(
            PlatformConfig(
                platform=str(platform),
                source_name=str(entry.get("source_name") or platform),
                content_type=str(entry.get("content_type") or "forum_discussion"),
                url_template=str(entry["url_template"]),
                recency_hours=float(entry.get("recency_hours") or 168),
                default_channel=str(entry.get("default_channel") or ""),
                channels={str(k): str(v) for k, v in (entry.get("channels") or {}).items()},
                engagement={
                    str(k): _parse_range(v, path)
                    for k, v in (entry.get("engagement") or {}).items()
                },
                authors=[str(a) for a in (entry.get("authors") or [])],
                templates=templates,
            )
        )
    return configs
