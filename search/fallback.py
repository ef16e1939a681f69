from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from normalize.items import ContentItem, to_iso, utc_now


DEFAULT_FALLBACK_COUNT = 3
FALLBACK_SCORE = 1.0


@dataclass(frozen=True)
class Topic:
    title: str
    snippet: str
    source_name: str


@dataclass(frozen=True)
class CityProfile:
    city: str
    topics: tuple[Topic, ...]


CITY_PROFILES: tuple[CityProfile, ...] = (
    CityProfile(
        "台北",
        (
            Topic(
                "{location}抽水站與雨水下水道運轉資訊",
                "台北市以抽水站搭配雨水下水道排洪，短時強降雨超過設計容量時，{location}低窪路段與地下道仍可能積水。",
                "台北市水利工程處",
            ),
            Topic(
                "{location}午後雷陣雨積水提醒",
                "盆地地形使午後對流旺盛，{location}一帶遇到短延時強降雨時請留意騎樓與地下停車場進水。",
                "中央氣象署",
            ),
            Topic(
                "{location}防汛整備與沙包領取",
                "颱風季前可向區公所洽詢{location}沙包與防水閘板借用，並留意捷運出入口防水措施。",
                "區公所",
            ),
        ),
    ),
    CityProfile(
        "新北",
        (
            Topic(
                "{location}河川沿岸淹水潛勢說明",
                "新北市多處鄰近淡水河、大漢溪與基隆河，{location}豪雨期間請注意河川水位與堤外道路封閉資訊。",
                "新北市政府水利局",
            ),
            Topic(
                "{location}山區道路豪雨注意事項",
                "{location}部分山區道路在豪雨時可能有落石與路面積水，出門前請確認道路通行狀況。",
                "新北市政府",
            ),
            Topic(
                "{location}移動式抽水機預布資訊",
                "豪雨特報發布時，市府會在易積水地區預布移動式抽水機，{location}居民可透過1999反映積水。",
                "新北市政府水利局",
            ),
        ),
    ),
    CityProfile(
        "桃園",
        (
            Topic(
                "{location}埤塘與區域排水概況",
                "桃園地區埤塘密布，{location}遇連續降雨時區域排水負荷增加，請留意低窪地帶積水。",
                "桃園市政府水務局",
            ),
            Topic(
                "{location}豪雨期間交通提醒",
                "{location}主要幹道與地下道在強降雨時可能短暫積水，請改道並減速慢行。",
                "桃園市政府",
            ),
            Topic(
                "{location}防汛志工與通報管道",
                "{location}里辦公處與防汛志工協助巡查側溝，發現積水可撥打1999通報。",
                "區公所",
            ),
        ),
    ),
    CityProfile(
        "台中",
        (
            Topic(
                "{location}滯洪池與排水改善工程",
                "台中市持續興建滯洪池與排水改善工程，{location}遇短延時強降雨時仍需注意局部積水。",
                "台中市政府水利局",
            ),
            Topic(
                "{location}梅雨鋒面降雨提醒",
                "梅雨季鋒面帶來連續降雨，{location}低窪路口與地下道請避免涉水通行。",
                "中央氣象署",
            ),
            Topic(
                "{location}側溝清淤與防汛整備",
                "汛期前各區進行側溝清淤，{location}居民可協助清除排水孔落葉雜物，降低積水風險。",
                "區公所",
            ),
        ),
    ),
    CityProfile(
        "台南",
        (
            Topic(
                "{location}低窪地區淹水潛勢資訊",
                "台南沿海與低窪地區地勢平坦，{location}在豪雨與漲潮同時發生時排水較慢，請提早做好防汛準備。",
                "台南市政府水利局",
            ),
            Topic(
                "{location}颱風豪雨期間防汛提醒",
                "颱風外圍環流與西南氣流常為{location}帶來豪雨，請留意抽水站運轉與道路封閉公告。",
                "中央氣象署",
            ),
            Topic(
                "{location}排水系統改善進度",
                "市府持續推動區域排水與雨水下水道建設，{location}改善工程完工前請注意易積水路段。",
                "台南市政府",
            ),
        ),
    ),
    CityProfile(
        "高雄",
        (
            Topic(
                "{location}滯洪池運作與積水因應",
                "高雄市以多座滯洪池調節洪峰，{location}遇西南氣流豪雨時請留意愛河與區域排水水位。",
                "高雄市政府水利局",
            ),
            Topic(
                "{location}西南氣流豪雨提醒",
                "夏季西南氣流帶來長時間降雨，{location}低窪社區請預先移置車輛並準備防水閘板。",
                "中央氣象署",
            ),
            Topic(
                "{location}地下道與道路積水通報",
                "{location}地下道積水時將啟動封閉機制，用路人請依現場警示改道並可撥打1999通報。",
                "高雄市政府工務局",
            ),
        ),
    ),
)

GENERIC_PROFILE = CityProfile(
    "",
    (
        Topic(
            "{location}地區排水系統與防汛資訊",
            "{location}目前無即時淹水新聞，汛期間仍請留意地方政府防汛公告與積水通報管道。",
            "地方政府",
        ),
        Topic(
            "{location}豪雨特報注意事項",
            "中央氣象署發布豪雨特報時，{location}低窪路段與地下室請提早做好防水準備。",
            "中央氣象署",
        ),
        Topic(
            "{location}淹水潛勢查詢說明",
            "可透過水利署淹水潛勢圖了解{location}周邊易積水區域，並規劃替代通行路線。",
            "經濟部水利署",
        ),
    ),
)


def profile_for(location: str) -> CityProfile:
    normalized = location.replace("臺", "台")
    for profile in CITY_PROFILES:
        if profile.city in normalized:
            return profile
    return GENERIC_PROFILE


def generate_fallback_items(
    location: str,
    count: int = DEFAULT_FALLBACK_COUNT,
    *,
    now: datetime | None = None,
) -> list[ContentItem]:
    """Exactly ``count`` informational items that name ``location``."""
    location = location.strip() or "查詢地點"
    now = now or utc_now()
    profile = profile_for(location)

    items: list[ContentItem] = []
    for i in range(count):
        topic = profile.topics[i % len(profile.topics)]
        items.append(
            ContentItem(
                title=topic.title.format(location=location),
                url=f"https://example.com/flood-info/{uuid.uuid4().hex}",
                snippet=topic.snippet.format(location=location),
                source_name=topic.source_name,
                publish_date=to_iso(now - timedelta(hours=i)),
                content_type="fallback_info",
                relevance_score=FALLBACK_SCORE,
                data_source="fallback",
                synthetic=True,
            )
        )
    return items
