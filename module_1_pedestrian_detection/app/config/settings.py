"""Configuration utilities for Module 1 pedestrian detection."""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DetectionSettings(BaseSettings):
    """Detector and overlay configuration sourced from environment variables or defaults."""

    model_config = SettingsConfigDict(env_prefix="PEDDETECT_DETECTION_", case_sensitive=False)

    mock_delay_min_seconds: float = Field(default=0.2, ge=0.0, description="Lower bound of the simulated inference delay.")
    mock_delay_max_seconds: float = Field(default=0.5, ge=0.0, description="Upper bound of the simulated inference delay.")
    mock_detections_path: Optional[Path] = Field(
        default=None,
        description="Optional YAML file replacing the built-in canned detections.",
    )
    overlay_color_bgr: List[int] = Field(default_factory=lambda: [153, 211, 54])
    overlay_text_color_bgr: List[int] = Field(default_factory=lambda: [26, 19, 15])
    overlay_line_thickness: int = Field(default=2, ge=1)
    overlay_font_scale: float = Field(default=0.4, gt=0.0)
    label_width: int = Field(default=60, ge=1)
    label_height: int = Field(default=20, ge=1)
    annotated_jpeg_quality: int = Field(default=90, ge=1, le=100)
    log_format: str = Field(default="text")

    @field_validator("mock_detections_path", mode="before")
    @classmethod
    def _expand_path(cls, value: Optional[str | Path]) -> Optional[Path]:
        if value in (None, ""):
            return None
        return Path(value).expanduser()

    @field_validator("overlay_color_bgr", "overlay_text_color_bgr")
    @classmethod
    def _check_color(cls, value: List[int]) -> List[int]:
        if len(value) != 3 or any(channel < 0 or channel > 255 for channel in value):
            raise ValueError("colors must be three BGR channels in 0..255")
        return value

    @model_validator(mode="after")
    def _order_delay_bounds(self) -> "DetectionSettings":
        if self.mock_delay_max_seconds < self.mock_delay_min_seconds:
            self.mock_delay_max_seconds = self.mock_delay_min_seconds
        return self


def load_settings(**overrides: object) -> DetectionSettings:
    """Return detection settings, applying optional overrides."""

    return DetectionSettings(**overrides)
