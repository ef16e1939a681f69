from __future__ import annotations

import re


_FRAGMENT_SPLIT_RE = re.compile(r"[,，\s]+")

# city > district > county > township
_KEYWORD_PRIORITY = ("市", "區", "縣", "鄉", "鎮")

_REGION_NAMES: dict[str, str] = {
    "台北": "台北市",
    "新北": "新北市",
    "桃園": "桃園市",
    "台中": "台中市",
    "台南": "台南市",
    "高雄": "高雄市",
    "基隆": "基隆市",
    "新竹": "新竹縣",
    "苗栗": "苗栗縣",
    "彰化": "彰化縣",
    "南投": "南投縣",
    "雲林": "雲林縣",
    "嘉義": "嘉義縣",
    "屏東": "屏東縣",
    "宜蘭": "宜蘭縣",
    "花蓮": "花蓮縣",
    "台東": "台東縣",
    "澎湖": "澎湖縣",
    "金門": "金門縣",
    "連江": "連江縣",
}

_ADDRESS_PATTERNS = (
    re.compile(
        r"[台臺]?(?:[北中南高屏]?[縣市])?[^\s]{1,4}[區鄉鎮市][^\s]{1,15}?"
        r"[路街巷弄道][一二三四五六七八九十\d]*段?\d*號?"
    ),
    re.compile(r"[^\s]{1,15}?[路街巷弄道][一二三四五六七八九十\d]*段?\d+號?"),
    re.compile(r"[^\s]{1,4}[區鄉鎮市][^\s]{1,15}?[路街巷弄道]"),
    re.compile(r"[台臺]?[北中南高屏新雲嘉彰投苗竹桃宜花東澎金馬連][縣市]"),
)


def extract_location_keywords(address: str) -> str:
    """Pick the most useful administrative fragment of an address.

    Comma/space separated geocoder output such as
    ``"安南區, 台南市, 台灣"`` yields ``"台南市"``.
    """
    if not address:
        return ""
    parts = [p for p in _FRAGMENT_SPLIT_RE.split(address.strip()) if len(p) > 1]
    if not parts:
        return ""
    for marker in _KEYWORD_PRIORITY:
        for part in parts:
            if marker in part:
                return part
    return parts[min(2, len(parts) - 1)]


def normalize_address(address: str) -> str:
    normalized = address.strip().replace("臺", "台").replace("巿", "市")
    for short, full in _REGION_NAMES.items():
        if short in normalized and full not in normalized:
            # "新竹市"/"嘉義市" are cities, not the counties of the same name
            if full.endswith("縣") and f"{short}市" in normalized:
                continue
            normalized = normalized.replace(short, full, 1)
    return normalized.replace("縣市", "縣").replace("市區", "市")


def extract_address_from_text(text: str) -> str | None:
    for pattern in _ADDRESS_PATTERNS:
        matches = pattern.findall(text)
        if matches:
            return max(matches, key=len)
    return None
