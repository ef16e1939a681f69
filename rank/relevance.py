"""Geographic and flood-topic relevance scoring.

All functions are pure. Scores are additive keyword/fragment hits with
per-function caps so that a single noisy article cannot dominate a merge.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass


MAX_LOCATION_SCORE = 10.0
MAX_FLOOD_SCORE = 15.0

_ADMIN_DELIMITER_RE = re.compile(r"[市區縣鄉鎮,，\s]+")


@dataclass(frozen=True)
class TermGroup:
    terms: tuple[str, ...]
    weight: int


FLOOD_TERMS: tuple[TermGroup, ...] = (
    TermGroup(("淹水", "積水", "水災", "洪災"), 5),
    TermGroup(("豪雨", "暴雨", "大雨", "強降雨"), 4),
    TermGroup(("颱風", "颶風", "熱帶氣旋"), 4),
    TermGroup(("梅雨", "鋒面", "低氣壓"), 3),
    TermGroup(("排水", "下水道", "溝渠", "水溝"), 3),
    TermGroup(("淹沒", "浸水", "溢堤", "潰堤"), 4),
    TermGroup(("水位上漲", "水位警戒", "河川氾濫"), 4),
    TermGroup(("災情", "災害", "受災", "災區"), 3),
    TermGroup(("封路", "道路中斷", "交通中斷"), 2),
    TermGroup(("停班停課", "警戒區", "撤離"), 3),
    TermGroup(("抽水", "抽水機", "抽水站"), 2),
    # colloquial
    TermGroup(("看海", "划船"), 1),
    TermGroup(("flood", "flooding", "inundation"), 4),
    TermGroup(("heavy rain", "storm", "typhoon"), 3),
    TermGroup(("drainage", "sewer", "road closure"), 2),
)

SOURCE_TYPE_WEIGHTS: dict[str, float] = {
    "government": 2.0,
    "weather": 1.5,
    "national": 1.2,
    "local": 1.0,
}


def location_fragments(target_location: str) -> list[str]:
    return [
        part
        for part in _ADMIN_DELIMITER_RE.split(target_location.strip())
        if len(part) > 1
    ]


def score_location(title: str, body: str, target_location: str) -> float:
    target = target_location.strip().casefold()
    if not target:
        return 0.0

    title_cf = title.casefold()
    body_cf = body.casefold()

    score = 0.0
    for part in location_fragments(target):
        long_part = len(part) >= 3
        if part in title_cf:
            score += 4 if long_part else 3
        if part in body_cf:
            score += 2 if long_part else 1

    if target in f"{title_cf} {body_cf}":
        score += 3

    return min(score, MAX_LOCATION_SCORE)


def score_flood_topic(
    title: str, body: str, terms: Sequence[TermGroup] = FLOOD_TERMS
) -> float:
    title_cf = title.casefold()
    text = f"{title_cf} {body.casefold()}"

    score = 0.0
    for group in terms:
        for term in group.terms:
            term_cf = term.casefold()
            if term_cf not in text:
                continue
            score += group.weight
            if term_cf in title_cf:
                score += group.weight

    return min(score, MAX_FLOOD_SCORE)


def combined_score(
    location_score: float,
    flood_score: float,
    source_type: str | None = None,
    priority: int = 0,
) -> float:
    weight = SOURCE_TYPE_WEIGHTS.get(source_type or "", 1.0)
    score = (location_score + flood_score) * weight + priority * 0.1
    return round(score, 1)
