from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


def resolve_path(path: Path) -> Path:
    """Relative paths are taken from the project root, not the working directory."""
    return path if path.is_absolute() else BASE_DIR / path


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", populate_by_name=True
    )

    db_path: Path = Field(default=Path("data/flood-watch.db"), validation_alias="DB_PATH")
    user_agent: str = Field(
        default="flood-watch/0.1 (+https://example.com/flood-watch)",
        validation_alias="USER_AGENT",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    feeds_dir: Path = Field(default=Path("feeds"), validation_alias="FEEDS_DIR")
    social_templates_path: Path = Field(
        default=Path("config/social_templates.yaml"),
        validation_alias="SOCIAL_TEMPLATES_PATH",
    )

    gdelt_api_url: str = Field(
        default="https://api.gdeltproject.org/api/v2/doc/doc",
        validation_alias="GDELT_API_URL",
    )
    cwa_api_url: str = Field(
        default="https://opendata.cwa.gov.tw/fileapi/v1/opendataapi/O-A0001-001",
        validation_alias="CWA_API_URL",
    )
    cwa_api_key: str | None = Field(default=None, validation_alias="CWA_API_KEY")
    wra_api_url: str = Field(
        default="https://data.wra.gov.tw/Service/OpenData.aspx?format=json&id=2B04AD6B-F6F4-40C5-8BBE-3B1ED5F8AE9F",
        validation_alias="WRA_API_URL",
    )
    geocoder_url: str = Field(
        default="https://nominatim.openstreetmap.org/search",
        validation_alias="GEOCODER_URL",
    )

    max_results: int = Field(default=25, validation_alias="MAX_RESULTS")
    fallback_count: int = Field(default=3, validation_alias="FALLBACK_COUNT")
