"""Offline coordinates for Taiwan districts, counties, landmarks and regions.

Used by the geocoder when the online service has nothing for an address.
"""

from __future__ import annotations

import random
from dataclasses import dataclass


LANDMARK_CONFIDENCE = 0.95
DISTRICT_CONFIDENCE = 0.9
COUNTY_CONFIDENCE = 0.8
REGION_CONFIDENCE = 0.7
REGION_JITTER_DEG = 0.05


@dataclass(frozen=True)
class PlaceMatch:
    latitude: float
    longitude: float
    confidence: float
    name: str


LANDMARKS: dict[str, tuple[float, float]] = {
    "台北101": (25.0338, 121.5645),
    "故宮博物院": (25.1013, 121.5491),
    "中正紀念堂": (25.0359, 121.5200),
    "龍山寺": (25.0368, 121.4999),
    "西門町": (25.0421, 121.5071),
    "日月潭": (23.8517, 120.9154),
    "阿里山": (23.5088, 120.8056),
    "太魯閣": (24.1947, 121.6211),
    "墾丁": (21.9409, 120.7931),
    "九份": (25.1097, 121.8445),
    "淡水老街": (25.1678, 121.4395),
    "逢甲夜市": (24.1798, 120.6478),
    "赤崁樓": (22.9974, 120.2025),
    "安平古堡": (23.0016, 120.1606),
    "愛河": (22.6273, 120.2919),
}

DISTRICTS: dict[str, dict[str, tuple[float, float]]] = {
    "台北市": {
        "信義區": (25.0338, 121.5645),
        "中正區": (25.0359, 121.5200),
        "大安區": (25.0267, 121.5436),
        "松山區": (25.0569, 121.5657),
        "中山區": (25.0636, 121.5264),
        "萬華區": (25.0368, 121.4999),
        "士林區": (25.1013, 121.5491),
        "北投區": (25.1315, 121.5018),
        "內湖區": (25.0820, 121.5940),
        "南港區": (25.0554, 121.6078),
        "文山區": (24.9889, 121.5709),
        "大同區": (25.0636, 121.5151),
    },
    "新北市": {
        "板橋區": (25.0097, 121.4598),
        "三重區": (25.0569, 121.4861),
        "中和區": (24.9999, 121.4991),
        "永和區": (25.0139, 121.5156),
        "新莊區": (25.0375, 121.4318),
        "新店區": (24.9675, 121.5373),
        "樹林區": (24.9939, 121.4203),
        "鶯歌區": (24.9543, 121.3548),
        "三峽區": (24.9347, 121.3686),
        "淡水區": (25.1678, 121.4395),
    },
    "桃園市": {
        "桃園區": (24.9936, 121.3010),
        "中壢區": (24.9537, 121.2251),
        "大溪區": (24.8886, 121.2904),
        "楊梅區": (24.9112, 121.1464),
        "蘆竹區": (25.0455, 121.2918),
    },
    "台中市": {
        "中區": (24.1367, 120.6850),
        "西區": (24.1393, 120.6732),
        "南區": (24.1223, 120.6864),
        "北區": (24.1569, 120.6840),
        "西屯區": (24.1798, 120.6478),
        "南屯區": (24.1286, 120.6467),
        "北屯區": (24.1810, 120.7013),
        "豐原區": (24.2567, 120.7239),
    },
    "台南市": {
        "中西區": (22.9974, 120.2025),
        "東區": (22.9969, 120.2121),
        "南區": (22.9735, 120.1922),
        "北區": (23.0124, 120.2087),
        "安平區": (23.0016, 120.1606),
        "安南區": (23.0408, 120.1876),
        "永康區": (23.0264, 120.2572),
        "歸仁區": (22.9697, 120.2895),
        "新化區": (23.0386, 120.3117),
        "左鎮區": (23.0575, 120.4075),
    },
    "高雄市": {
        "新興區": (22.6273, 120.3015),
        "前金區": (22.6273, 120.2919),
        "苓雅區": (22.6123, 120.3015),
        "鹽埕區": (22.6261, 120.2823),
        "鼓山區": (22.6406, 120.2740),
        "旗津區": (22.6187, 120.2694),
        "前鎮區": (22.5949, 120.3190),
        "三民區": (22.6568, 120.3252),
        "左營區": (22.6742, 120.2942),
    },
}

COUNTIES: dict[str, tuple[float, float]] = {
    "基隆市": (25.1276, 121.7392),
    "新竹市": (24.8014, 120.9714),
    "新竹縣": (24.8387, 121.0177),
    "苗栗縣": (24.5602, 120.8214),
    "彰化縣": (24.0518, 120.5161),
    "南投縣": (23.9609, 120.9718),
    "雲林縣": (23.7092, 120.4313),
    "嘉義縣": (23.4518, 120.2554),
    "嘉義市": (23.4801, 120.4491),
    "屏東縣": (22.5519, 120.5487),
    "宜蘭縣": (24.7021, 121.7378),
    "花蓮縣": (23.9871, 121.6015),
    "台東縣": (22.7972, 121.1713),
    "澎湖縣": (23.5711, 119.5794),
    "金門縣": (24.4369, 118.3174),
    "連江縣": (26.1605, 119.9297),
}

# (names that select the region, centre, label)
REGIONS: tuple[tuple[tuple[str, ...], tuple[float, float], str], ...] = (
    (("台北", "新北"), (25.0330, 121.5654), "Northern Taiwan"),
    (("桃園", "新竹", "苗栗"), (24.8014, 120.9714), "Northwestern Taiwan"),
    (("台中", "彰化", "南投"), (24.1477, 120.6736), "Central Taiwan"),
    (("雲林", "嘉義"), (23.5518, 120.4313), "South-Central Taiwan"),
    (("台南",), (22.9997, 120.2270), "Tainan Region"),
    (("高雄", "屏東"), (22.6273, 120.3014), "Southern Taiwan"),
    (("宜蘭",), (24.7021, 121.7378), "Yilan County"),
    (("花蓮",), (23.9871, 121.6015), "Hualien County"),
    (("台東",), (22.7972, 121.1713), "Taitung County"),
    (("澎湖",), (23.5711, 119.5794), "Penghu County"),
    (("金門",), (24.4369, 118.3174), "Kinmen County"),
    (("連江", "馬祖"), (26.1605, 119.9297), "Lienchiang County"),
)


def lookup_local(address: str) -> PlaceMatch | None:
    """Landmark, then city district, then county or provincial city."""
    text = address.replace("臺", "台")

    for name, (lat, lon) in LANDMARKS.items():
        if name in text:
            return PlaceMatch(lat, lon, LANDMARK_CONFIDENCE, name)

    for city, districts in DISTRICTS.items():
        at = text.find(city)
        if at < 0:
            continue
        rest = text[at + len(city):]
        # longest name wins: 安南區 must not resolve as 南區
        found = [d for d in districts if d in rest]
        if found:
            district = max(found, key=len)
            lat, lon = districts[district]
            return PlaceMatch(lat, lon, DISTRICT_CONFIDENCE, city + district)

    for name, (lat, lon) in COUNTIES.items():
        if name in text:
            return PlaceMatch(lat, lon, COUNTY_CONFIDENCE, name)
    return None


def lookup_region(address: str, rng: random.Random | None = None) -> PlaceMatch | None:
    """Regional centre with a small random offset, for addresses naming only a region."""
    text = address.replace("臺", "台")
    rng = rng or random.Random()
    for names, (lat, lon), label in REGIONS:
        if any(name in text for name in names):
            return PlaceMatch(
                latitude=lat + rng.uniform(-REGION_JITTER_DEG, REGION_JITTER_DEG),
                longitude=lon + rng.uniform(-REGION_JITTER_DEG, REGION_JITTER_DEG),
                confidence=REGION_CONFIDENCE,
                name=label,
            )
    return None
