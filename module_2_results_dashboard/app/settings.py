from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PEDDETECT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    upload_dir: Path = Field(default_factory=lambda: Path.cwd() / "uploads")
    uploads_url_path: str = "/uploads"
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_extensions: List[str] = Field(default_factory=lambda: ["jpeg", "jpg", "png", "webp"])
    render_processed_images: bool = True
    seed_accuracy: float = 94.2
    seed_precision: float = 91.8
    seed_recall: float = 89.5
    default_avg_processing_time: float = 0.21
    high_risk_threshold: float = 0.9
    recent_window_hours: float = 24.0
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])

    @field_validator("upload_dir", mode="before")
    @classmethod
    def _expand_dir(cls, value: str | Path) -> Path:
        return Path(value).expanduser()

    @field_validator("allowed_extensions")
    @classmethod
    def _normalize_extensions(cls, value: List[str]) -> List[str]:
        return [item.lower().lstrip(".") for item in value if item.strip()]


def get_settings(**overrides: object) -> AppSettings:
    return AppSettings(**overrides)
