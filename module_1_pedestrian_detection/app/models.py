"""Shared data models for Module 1."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Detection(BaseModel):
    """A single predicted pedestrian in normalized ``[x, y, width, height]`` form."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    bbox: Tuple[float, float, float, float]
    confidence: float = Field(ge=0.0, le=1.0)
    class_name: str = Field(default="person", alias="class")

    @field_validator("bbox")
    @classmethod
    def _check_normalized(cls, value: Tuple[float, float, float, float]) -> Tuple[float, float, float, float]:
        for component in value:
            if component < 0.0 or component > 1.0:
                raise ValueError("bbox components must be normalized to 0..1")
        return value


@dataclass(frozen=True)
class PixelBox:
    """Bounding box resolved against a concrete drawing surface."""

    x: int
    y: int
    width: int
    height: int

    @property
    def bottom_right(self) -> tuple[int, int]:
        return (self.x + self.width, self.y + self.height)
